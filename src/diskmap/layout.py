"""
DiskMap - Disk layout decoder

Top-level controller: always decodes the MBR, then follows a protective MBR
into the GPT header and partition-entry array. A disk without a usable GPT
is a normal result (gpt is None), never an error.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from diskmap.errors import (
    DecodeError,
    Diagnostic,
    DiagnosticCode,
    InvalidSignatureError,
    OutOfRangeError,
    ReadError,
)
from diskmap.gpt import (
    GPT_SIGNATURE_U64,
    GptHeader,
    GptPartitionEntry,
    compute_entries_crc32,
    compute_header_crc32,
    decode_gpt_entries,
    decode_gpt_header,
)
from diskmap.mbr import MasterBootRecordSector, decode_mbr
from diskmap.partition_types import PROTECTIVE_MBR_TYPE
from diskmap.reader import as_reader

SECTOR_SIZE = 512


class EntryCountPolicy(Enum):
    """Where the number of GPT entries to decode comes from"""
    USABLE_RANGE = "usable_range"   # last_usable_lba - first_usable_lba
    HEADER = "header"               # header.num_entries


@dataclass(frozen=True)
class GptTable:
    header: GptHeader
    entries: Tuple[GptPartitionEntry, ...]
    count_policy: EntryCountPolicy

    @property
    def declared_entry_count(self) -> int:
        return self.header.num_entries

    @property
    def usable_range_count(self) -> int:
        return self.header.usable_range_count

    def used_entries(self) -> List[GptPartitionEntry]:
        return [e for e in self.entries if e.is_used]


@dataclass(frozen=True)
class DiskLayout:
    """Unified partition map of a device"""
    mbr: MasterBootRecordSector
    gpt: Optional[GptTable] = None
    diagnostics: Tuple[Diagnostic, ...] = field(default_factory=tuple)
    sector_size: int = SECTOR_SIZE

    @property
    def scheme(self) -> str:
        return "gpt" if self.gpt is not None else "mbr"


class DiskLayoutDecoder:
    """
    Decodes the partition map of a byte source.

    The decoder holds only configuration, so one instance can decode any
    number of sources.
    """

    def __init__(self, sector_size: int = SECTOR_SIZE,
                 count_policy: EntryCountPolicy = EntryCountPolicy.USABLE_RANGE,
                 verify_crc: bool = True):
        """
        Args:
            sector_size: Logical sector size used for LBA arithmetic
            count_policy: Source of the GPT entry count
            verify_crc: Compare the stored GPT CRC-32 values with computed ones
        """
        if sector_size <= 0:
            raise ValueError(f"Invalid sector size: {sector_size}")
        self.sector_size = sector_size
        self.count_policy = EntryCountPolicy(count_policy)
        self.verify_crc = verify_crc
        self.logger = logging.getLogger(__name__)

    def decode(self, source) -> DiskLayout:
        """
        Decode the MBR and, when present, the GPT.

        Args:
            source: Byte source, PrimitiveReader or raw bytes

        Returns:
            DiskLayout with gpt set only when a GPT was decoded

        Raises:
            OutOfRangeError: If sector 0 cannot be read in full
        """
        reader = as_reader(source)
        diagnostics: List[Diagnostic] = []

        mbr = decode_mbr(reader, 0, diagnostics)

        gpt = None
        if mbr.partitions[0].partition_type == PROTECTIVE_MBR_TYPE:
            gpt = self._decode_gpt(reader, diagnostics)
        else:
            self.logger.debug(
                f"Slot 0 type 0x{mbr.partitions[0].partition_type:02X} is not protective, no GPT"
            )

        return DiskLayout(
            mbr=mbr,
            gpt=gpt,
            diagnostics=tuple(diagnostics),
            sector_size=self.sector_size,
        )

    def entry_count(self, header: GptHeader) -> int:
        if self.count_policy is EntryCountPolicy.HEADER:
            return header.num_entries
        return header.usable_range_count

    def _decode_gpt(self, reader, diagnostics: List[Diagnostic]) -> Optional[GptTable]:
        offset = self.sector_size
        try:
            signature = reader.peek_uint64(offset)
        except OutOfRangeError:
            self.logger.info("Protective MBR but no sector after it, no GPT")
            return None
        except ReadError as e:
            _record(diagnostics, self.logger, DiagnosticCode.READ_ERROR,
                    f"GPT discarded: {e}")
            return None
        if signature != GPT_SIGNATURE_U64:
            self.logger.info("Protective MBR but sector 1 has no GPT signature")
            return None

        try:
            header = decode_gpt_header(reader, offset)
            count = self.entry_count(header)
            if count > header.num_entries:
                self.logger.warning(
                    f"Decoding {count} GPT entries ({self.count_policy.value}), header "
                    f"declares {header.num_entries}; use the header count on large disks"
                )
            elif count != header.num_entries:
                self.logger.info(
                    f"GPT entry count {count} ({self.count_policy.value}) differs from "
                    f"header count {header.num_entries}"
                )
            entries = decode_gpt_entries(
                reader, header.first_entry_lba, header.entry_size, count, self.sector_size
            )
        except DecodeError as e:
            self.logger.warning(f"GPT decoding failed, reporting MBR only: {e}")
            diagnostics.append(Diagnostic(_diagnostic_code(e), f"GPT discarded: {e}"))
            return None

        if self.verify_crc:
            self._check_crc(reader, header, diagnostics)

        return GptTable(header=header, entries=tuple(entries), count_policy=self.count_policy)

    def _check_crc(self, reader, header: GptHeader, diagnostics: List[Diagnostic]) -> None:
        computed = compute_header_crc32(header)
        if computed != header.header_crc32:
            _record(diagnostics, self.logger, DiagnosticCode.CRC_MISMATCH,
                    f"GPT header CRC32 stored=0x{header.header_crc32:08X}, computed=0x{computed:08X}")

        try:
            computed = compute_entries_crc32(reader, header, self.sector_size)
        except (OutOfRangeError, ReadError) as e:
            _record(diagnostics, self.logger, _diagnostic_code(e),
                    f"GPT entry array CRC32 not checked: {e}")
            return
        if computed != header.entries_crc32:
            _record(diagnostics, self.logger, DiagnosticCode.CRC_MISMATCH,
                    f"GPT entry array CRC32 stored=0x{header.entries_crc32:08X}, computed=0x{computed:08X}")


def _diagnostic_code(error: DecodeError) -> DiagnosticCode:
    if isinstance(error, InvalidSignatureError):
        return DiagnosticCode.INVALID_SIGNATURE
    if isinstance(error, OutOfRangeError):
        return DiagnosticCode.OUT_OF_RANGE
    if isinstance(error, ReadError):
        return DiagnosticCode.READ_ERROR
    return DiagnosticCode.MALFORMED


def _record(diagnostics: List[Diagnostic], logger: logging.Logger,
            code: DiagnosticCode, message: str) -> None:
    logger.warning(message)
    diagnostics.append(Diagnostic(code, message))


def decode_disk_layout(source, **kwargs) -> DiskLayout:
    """Decode a source with a one-off DiskLayoutDecoder(**kwargs)."""
    return DiskLayoutDecoder(**kwargs).decode(source)
