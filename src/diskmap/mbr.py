"""
DiskMap - Master Boot Record decoder

Decodes sector 0: the boot code in one of three known layouts, the four-slot
legacy partition table and the boot signature.

Layouts:
- Classic: 446 bytes of boot code
- Modern Windows: boot code split around a drive/timestamp field, followed by
  the disk signature and copy-protect marker
- NEWLDR: boot code split around the NEWLDR loader parameter block, with an
  optional AAP (Advanced Active Partition) entry before the table
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Union

from diskmap import partition_types
from diskmap.bitfield import CHS_LAYOUT, pack_fields, unpack_fields
from diskmap.errors import Diagnostic, DiagnosticCode

logger = logging.getLogger(__name__)

MBR_SIZE = 512
PARTITION_TABLE_OFFSET = 0x1BE
PARTITION_ENTRY_SIZE = 16
PARTITION_SLOTS = 4
BOOT_SIGNATURE_OFFSET = 0x1FE
BOOT_SIGNATURE = 0xAA55

BOOT_INDICATOR_INACTIVE = 0x00
BOOT_INDICATOR_ACTIVE = 0x80

NEWLDR_MAGIC = 0x4C57454E  # "NEWL"
COPY_PROTECTED = 0x5A5A
AAP_SIGNATURE = 0x5678


class MbrLayoutKind(Enum):
    CLASSIC = "classic"
    MODERN_WINDOWS = "modern_windows"
    NEWLDR = "newldr"


@dataclass(frozen=True)
class CHSAddress:
    """Cylinder/head/sector address packed into 3 bytes"""
    head: int
    sector: int
    cylinder: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "CHSAddress":
        fields = unpack_fields(data, CHS_LAYOUT)
        return cls(head=fields['head'], sector=fields['sector'], cylinder=fields['cylinder'])

    def pack(self) -> bytes:
        return pack_fields(
            {'head': self.head, 'sector': self.sector, 'cylinder': self.cylinder},
            CHS_LAYOUT,
        )

    def __str__(self) -> str:
        return f"{self.cylinder}/{self.head}/{self.sector}"


@dataclass(frozen=True)
class LegacyPartitionEntry:
    """One 16-byte slot of the legacy partition table"""
    slot: int
    boot_indicator: int
    chs_start: CHSAddress
    partition_type: int
    chs_end: CHSAddress
    first_lba: int
    sector_count: int

    @property
    def type_name(self) -> str:
        return partition_types.lookup(self.partition_type)

    @property
    def is_bootable(self) -> bool:
        return self.boot_indicator == BOOT_INDICATOR_ACTIVE

    @property
    def is_empty(self) -> bool:
        return self.partition_type == 0 and self.sector_count == 0

    @property
    def is_protective(self) -> bool:
        return self.partition_type == partition_types.PROTECTIVE_MBR_TYPE

    @property
    def last_lba(self) -> int:
        return self.first_lba + self.sector_count - 1 if self.sector_count else self.first_lba


@dataclass(frozen=True)
class ClassicBootCode:
    boot_code: bytes

    kind = MbrLayoutKind.CLASSIC


@dataclass(frozen=True)
class ModernWindowsBootCode:
    """Boot code of the MBR written by Windows 95B and later"""
    boot_code_1: bytes
    pad: int
    original_drive: int
    seconds: int
    minutes: int
    hours: int
    boot_code_2: bytes
    disk_signature: int
    copy_protect: int

    kind = MbrLayoutKind.MODERN_WINDOWS

    @property
    def boot_code(self) -> bytes:
        return self.boot_code_1 + self.boot_code_2

    @property
    def is_copy_protected(self) -> bool:
        return self.copy_protect == COPY_PROTECTED

    @property
    def disk_timestamp(self) -> str:
        return f"{self.hours:02d}:{self.minutes:02d}:{self.seconds:02d}"


@dataclass(frozen=True)
class NewLdrBootCode:
    """Boot code with the NEWLDR loader parameter block"""
    boot_code_1: bytes
    signature: bytes
    physical_drive: int
    loader_chs: CHSAddress
    dl_min: int
    reserved: bytes
    loader_lba: int
    patch_offset: int
    checksum: int
    oem_signature: bytes
    boot_code_2: bytes
    aap_signature: int
    aap_region: bytes
    aap_partition: Optional[LegacyPartitionEntry] = None

    kind = MbrLayoutKind.NEWLDR

    @property
    def boot_code(self) -> bytes:
        return self.boot_code_1 + self.boot_code_2

    @property
    def has_aap(self) -> bool:
        return self.aap_signature == AAP_SIGNATURE


BootSector = Union[ClassicBootCode, ModernWindowsBootCode, NewLdrBootCode]


@dataclass(frozen=True)
class MasterBootRecordSector:
    """Decoded sector 0"""
    layout_kind: MbrLayoutKind
    boot: BootSector
    partitions: Tuple[LegacyPartitionEntry, ...]
    boot_signature: int
    offset: int = 0

    @property
    def has_valid_signature(self) -> bool:
        return self.boot_signature == BOOT_SIGNATURE

    @property
    def is_protective(self) -> bool:
        return self.partitions[0].is_protective

    def used_partitions(self) -> List[LegacyPartitionEntry]:
        return [p for p in self.partitions if not p.is_empty]


def detect_layout(reader, offset: int = 0) -> MbrLayoutKind:
    """
    Sniff which boot-code layout sector 0 uses.

    The rules are checked in order and only look at fixed offsets; boot code
    that happens to match a rule is classified by it.

    Args:
        reader: PrimitiveReader over the device
        offset: Byte offset of the sector

    Returns:
        Detected layout kind
    """
    if reader.read_uint32(offset + 0x02) == NEWLDR_MAGIC:
        return MbrLayoutKind.NEWLDR
    if reader.read_uint16(offset + 0xDA) == 0 and reader.read_uint16(offset + 0xDC) >= 128:
        return MbrLayoutKind.MODERN_WINDOWS
    return MbrLayoutKind.CLASSIC


def decode_partition_entry(data: bytes, slot: int) -> LegacyPartitionEntry:
    """Decode one 16-byte legacy partition record."""
    return LegacyPartitionEntry(
        slot=slot,
        boot_indicator=data[0],
        chs_start=CHSAddress.from_bytes(data[1:4]),
        partition_type=data[4],
        chs_end=CHSAddress.from_bytes(data[5:8]),
        first_lba=int.from_bytes(data[8:12], 'little'),
        sector_count=int.from_bytes(data[12:16], 'little'),
    )


def _decode_classic(reader, offset: int) -> ClassicBootCode:
    return ClassicBootCode(boot_code=reader.read_bytes(offset, 446))


def _decode_modern_windows(reader, offset: int) -> ModernWindowsBootCode:
    return ModernWindowsBootCode(
        boot_code_1=reader.read_bytes(offset, 0xDA),
        pad=reader.read_uint16(offset + 0xDA),
        original_drive=reader.read_uint8(offset + 0xDC),
        seconds=reader.read_uint8(offset + 0xDD),
        minutes=reader.read_uint8(offset + 0xDE),
        hours=reader.read_uint8(offset + 0xDF),
        boot_code_2=reader.read_bytes(offset + 0xE0, 0x1B8 - 0xE0),
        disk_signature=reader.read_uint32(offset + 0x1B8),
        copy_protect=reader.read_uint16(offset + 0x1BC),
    )


def _decode_newldr(reader, offset: int) -> NewLdrBootCode:
    aap_signature = reader.read_uint16(offset + 0x1AC)
    aap_partition = None
    if aap_signature == AAP_SIGNATURE:
        aap_partition = decode_partition_entry(reader.read_bytes(offset + 0x1AE, 16), slot=-1)

    return NewLdrBootCode(
        boot_code_1=reader.read_bytes(offset, 2),
        signature=reader.read_bytes(offset + 0x02, 6),
        physical_drive=reader.read_uint8(offset + 0x08),
        loader_chs=CHSAddress.from_bytes(reader.read_bytes(offset + 0x09, 3)),
        dl_min=reader.read_uint8(offset + 0x0C),
        reserved=reader.read_bytes(offset + 0x0D, 3),
        loader_lba=reader.read_uint32(offset + 0x10),
        patch_offset=reader.read_uint16(offset + 0x14),
        checksum=reader.read_uint16(offset + 0x16),
        oem_signature=reader.read_bytes(offset + 0x18, 6),
        boot_code_2=reader.read_bytes(offset + 0x1E, 0x1AC - 0x1E),
        aap_signature=aap_signature,
        aap_region=reader.read_bytes(offset + 0x1AC, PARTITION_TABLE_OFFSET - 0x1AC),
        aap_partition=aap_partition,
    )


_LAYOUT_DECODERS = {
    MbrLayoutKind.CLASSIC: _decode_classic,
    MbrLayoutKind.MODERN_WINDOWS: _decode_modern_windows,
    MbrLayoutKind.NEWLDR: _decode_newldr,
}


def decode_mbr(reader, offset: int = 0,
               diagnostics: Optional[List[Diagnostic]] = None) -> MasterBootRecordSector:
    """
    Decode the master boot record.

    The boot signature and boot indicators are recorded as found; unexpected
    values only add diagnostics.

    Args:
        reader: PrimitiveReader over the device
        offset: Byte offset of sector 0
        diagnostics: Optional list that receives advisory findings

    Returns:
        Decoded sector

    Raises:
        OutOfRangeError: If the source holds less than a full sector
    """
    if diagnostics is None:
        diagnostics = []

    # Fail on a short source before decoding anything
    sector = reader.read_bytes(offset, MBR_SIZE)

    layout_kind = detect_layout(reader, offset)
    logger.debug(f"MBR layout detected: {layout_kind.value}")
    boot = _LAYOUT_DECODERS[layout_kind](reader, offset)

    partitions = []
    for slot in range(PARTITION_SLOTS):
        start = PARTITION_TABLE_OFFSET + slot * PARTITION_ENTRY_SIZE
        entry = decode_partition_entry(sector[start:start + PARTITION_ENTRY_SIZE], slot)
        if entry.boot_indicator not in (BOOT_INDICATOR_INACTIVE, BOOT_INDICATOR_ACTIVE):
            _advise(diagnostics, DiagnosticCode.UNEXPECTED_LAYOUT,
                    f"Partition slot {slot} has boot indicator 0x{entry.boot_indicator:02X}")
        partitions.append(entry)

    if isinstance(boot, NewLdrBootCode) and boot.aap_partition is not None:
        aap = boot.aap_partition
        if aap.boot_indicator not in (BOOT_INDICATOR_INACTIVE, BOOT_INDICATOR_ACTIVE):
            _advise(diagnostics, DiagnosticCode.UNEXPECTED_LAYOUT,
                    f"AAP partition entry has boot indicator 0x{aap.boot_indicator:02X}")

    boot_signature = int.from_bytes(sector[BOOT_SIGNATURE_OFFSET:MBR_SIZE], 'little')
    if boot_signature != BOOT_SIGNATURE:
        _advise(diagnostics, DiagnosticCode.UNEXPECTED_LAYOUT,
                f"Boot signature is 0x{boot_signature:04X}, expected 0x{BOOT_SIGNATURE:04X}")

    mbr = MasterBootRecordSector(
        layout_kind=layout_kind,
        boot=boot,
        partitions=tuple(partitions),
        boot_signature=boot_signature,
        offset=offset,
    )
    logger.info(f"MBR decoded: layout={layout_kind.value}, "
                f"{len(mbr.used_partitions())} used partition slot(s)")
    return mbr


def _advise(diagnostics: List[Diagnostic], code: DiagnosticCode, message: str) -> None:
    logger.warning(message)
    diagnostics.append(Diagnostic(code, message))
