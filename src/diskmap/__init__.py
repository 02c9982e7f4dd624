"""
DiskMap - MBR and GPT partition map decoder
"""

from diskmap.errors import (
    DecodeError,
    Diagnostic,
    DiagnosticCode,
    InvalidSignatureError,
    MalformedStructureError,
    OutOfRangeError,
    ReadError,
)
from diskmap.reader import BufferSource, FileSource, PrimitiveReader
from diskmap.mbr import MbrLayoutKind, MasterBootRecordSector, decode_mbr, detect_layout
from diskmap.gpt import GptHeader, GptPartitionEntry, decode_gpt_entries, decode_gpt_header
from diskmap.layout import (
    SECTOR_SIZE,
    DiskLayout,
    DiskLayoutDecoder,
    EntryCountPolicy,
    GptTable,
    decode_disk_layout,
)

__version__ = "1.0.0"
