"""
DiskMap - GUID Partition Table decoder

Decodes the GPT header found in the sector after the protective MBR and the
partition-entry array it points to. GUIDs are stored mixed-endian on disk and
decoded with uuid.UUID(bytes_le=...).

CRC-32 values are recorded, not enforced; compute_header_crc32() and
compute_entries_crc32() let callers check them.
"""

import struct
import logging
import zlib
from dataclasses import dataclass
from typing import Iterator, List
from uuid import UUID

from diskmap.bitfield import GPT_FLAGS_LAYOUT, unpack_fields
from diskmap.errors import InvalidSignatureError, MalformedStructureError

logger = logging.getLogger(__name__)

GPT_SIGNATURE = b'EFI PART'
GPT_SIGNATURE_U64 = struct.unpack('<Q', GPT_SIGNATURE)[0]
GPT_HEADER_SIZE = 92
GPT_HEADER_CRC_OFFSET = 0x10
GPT_ENTRY_NAME_OFFSET = 0x38
DEFAULT_ENTRY_SIZE = 128

# signature(8) revision(4) header_size(4) header_crc32(4) reserved(4)
# current_lba(8) backup_lba(8) first_usable(8) last_usable(8) disk_guid(16)
# entries_lba(8) num_entries(4) entry_size(4) entries_crc32(4)
_HEADER_STRUCT = struct.Struct('<8sIIIIQQQQ16sQIII')

# type_guid(16) unique_guid(16) first_lba(8) last_lba(8) attributes(8)
_ENTRY_STRUCT = struct.Struct('<16s16sQQ8s')

UNUSED_GUID = UUID(int=0)

# Well-known partition type GUIDs
GPT_PARTITION_TYPES = {
    UUID('00000000-0000-0000-0000-000000000000'): "Unused entry",
    UUID('024DEE41-33E7-11D3-9D69-0008C781F39F'): "MBR partition scheme",
    UUID('C12A7328-F81F-11D2-BA4B-00A0C93EC93B'): "EFI System partition",
    UUID('21686148-6449-6E6F-744E-656564454649'): "BIOS boot partition",
    UUID('D3BFE2DE-3DAF-11DF-BA40-E3A556D89593'): "Intel Fast Flash (iFFS) partition",
    UUID('E3C9E316-0B5C-4DB8-817D-F92DF00215AE'): "Microsoft Reserved Partition (MSR)",
    UUID('EBD0A0A2-B9E5-4433-87C0-68B6B72699C7'): "Basic data partition",
    UUID('5808C8AA-7E8F-42E0-85D2-E1E90434CFB3'): "Logical Disk Manager (LDM) metadata partition",
    UUID('AF9B60A0-1431-4F62-BC68-3311714A69AD'): "Logical Disk Manager data partition",
    UUID('DE94BBA4-06D1-4D40-A16A-BFD50179D6AC'): "Windows Recovery Environment",
    UUID('E75CAF8F-F680-4CEE-AFA3-B001E56EFC2D'): "Storage Spaces partition",
    UUID('0FC63DAF-8483-4772-8E79-3D69D8477DE4'): "Linux filesystem data",
    UUID('A19D880F-05FC-4D3B-A006-743F0F84911E'): "Linux RAID partition",
    UUID('44479540-F297-41B2-9AF7-D131D5F0458A'): "Linux root partition (x86)",
    UUID('4F68BCE3-E8CD-4DB1-96E7-FBCAF984B709'): "Linux root partition (x86-64)",
    UUID('69DAD710-2CE4-4E3C-B16C-21A1D49ABED3'): "Linux root partition (32-bit ARM)",
    UUID('B921B045-1DF0-41C3-AF44-4C6F280D3FAE'): "Linux root partition (AArch64)",
    UUID('BC13C2FF-59E6-4262-A352-B275FD6F7172'): "Linux /boot partition",
    UUID('0657FD6D-A4AB-43C4-84E5-0933C84B4F4F'): "Linux swap partition",
    UUID('E6D6D379-F507-44C2-A23C-238F2A3DF928'): "Linux Logical Volume Manager (LVM) partition",
    UUID('933AC7E1-2EB4-4F13-B844-0E14E2AEF915'): "Linux /home partition",
    UUID('3B8F8425-20E0-4F3B-907F-1A25A76F98E8'): "Linux /srv partition",
    UUID('7FFEC5C9-2D00-49B7-8941-3EA10A5586B7'): "Linux plain dm-crypt partition",
    UUID('CA7D7CCB-63ED-4C53-861C-1742536059CC'): "Linux LUKS partition",
    UUID('8DA63339-0007-60C0-C436-083AC8230908'): "Linux reserved",
    UUID('83BD6B9D-7F41-11DC-BE0B-001560B84F0F'): "FreeBSD boot partition",
    UUID('516E7CB4-6ECF-11D6-8FF8-00022D09712B'): "FreeBSD data partition",
    UUID('516E7CB5-6ECF-11D6-8FF8-00022D09712B'): "FreeBSD swap partition",
    UUID('516E7CB6-6ECF-11D6-8FF8-00022D09712B'): "FreeBSD Unix File System (UFS) partition",
    UUID('516E7CB8-6ECF-11D6-8FF8-00022D09712B'): "FreeBSD Vinum volume manager partition",
    UUID('516E7CBA-6ECF-11D6-8FF8-00022D09712B'): "FreeBSD ZFS partition",
    UUID('48465300-0000-11AA-AA11-00306543ECAC'): "Apple Hierarchical File System Plus (HFS+) partition",
    UUID('7C3457EF-0000-11AA-AA11-00306543ECAC'): "Apple APFS container",
    UUID('55465300-0000-11AA-AA11-00306543ECAC'): "Apple UFS container",
    UUID('6A898CC3-1DD2-11B2-99A6-080020736631'): "Apple ZFS / Solaris /usr partition",
    UUID('52414944-0000-11AA-AA11-00306543ECAC'): "Apple RAID partition",
    UUID('426F6F74-0000-11AA-AA11-00306543ECAC'): "Apple Boot partition (Recovery HD)",
    UUID('6A82CB45-1DD2-11B2-99A6-080020736631'): "Solaris boot partition",
    UUID('6A85CF4D-1DD2-11B2-99A6-080020736631'): "Solaris root partition",
    UUID('49F48D32-B10E-11DC-B99B-0019D1879648'): "NetBSD swap partition",
    UUID('49F48D5A-B10E-11DC-B99B-0019D1879648'): "NetBSD FFS partition",
    UUID('FE3A2A5D-4F32-41A7-B725-ACCC3285A309'): "ChromeOS kernel",
    UUID('3CB8E202-3B7E-47DD-8A3C-7FF2A13CFCEC'): "ChromeOS rootfs",
    UUID('AA31E02A-400F-11DB-9590-000C2911D1B8'): "VMware VMFS filesystem partition",
    UUID('9D275380-40AD-11DB-BF97-000C2911D1B8'): "VMware reserved partition",
}


def gpt_type_name(guid: UUID) -> str:
    return GPT_PARTITION_TYPES.get(guid, "unknown")


@dataclass(frozen=True)
class GptHeader:
    """Decoded GPT header"""
    signature: bytes
    revision: int
    header_size: int
    header_crc32: int
    reserved: int
    current_lba: int
    backup_lba: int
    first_usable_lba: int
    last_usable_lba: int
    disk_guid: UUID
    first_entry_lba: int
    num_entries: int
    entry_size: int
    entries_crc32: int
    offset: int
    raw: bytes

    @property
    def revision_string(self) -> str:
        return f"{self.revision >> 16}.{self.revision & 0xFFFF}"

    @property
    def usable_range_count(self) -> int:
        """last_usable_lba - first_usable_lba, or 0 when the range is empty"""
        if self.last_usable_lba < self.first_usable_lba:
            return 0
        return self.last_usable_lba - self.first_usable_lba


@dataclass(frozen=True)
class GptPartitionFlags:
    """GPT partition attribute bits"""
    raw: int
    platform_required: bool
    efi_ignore: bool
    legacy_boot: bool
    priority: int
    tries_remaining: int
    successful: bool
    read_only: bool
    shadow_copy: bool
    hidden: bool
    no_drive_letter: bool

    @classmethod
    def from_bytes(cls, data: bytes) -> "GptPartitionFlags":
        f = unpack_fields(data, GPT_FLAGS_LAYOUT)
        return cls(
            raw=int.from_bytes(data, 'little'),
            platform_required=bool(f['platform_required']),
            efi_ignore=bool(f['efi_ignore']),
            legacy_boot=bool(f['legacy_boot']),
            priority=f['priority'],
            tries_remaining=f['tries_remaining'],
            successful=bool(f['successful']),
            read_only=bool(f['read_only']),
            shadow_copy=bool(f['shadow_copy']),
            hidden=bool(f['hidden']),
            no_drive_letter=bool(f['no_drive_letter']),
        )

    def names(self) -> List[str]:
        """Names of the single-bit flags that are set"""
        return [
            name for name in ('platform_required', 'efi_ignore', 'legacy_boot', 'successful',
                              'read_only', 'shadow_copy', 'hidden', 'no_drive_letter')
            if getattr(self, name)
        ]


@dataclass(frozen=True)
class GptPartitionEntry:
    """One record of the GPT partition-entry array"""
    index: int
    type_guid: UUID
    unique_guid: UUID
    first_lba: int
    last_lba: int
    flags: GptPartitionFlags
    name: str

    @property
    def type_name(self) -> str:
        return gpt_type_name(self.type_guid)

    @property
    def is_used(self) -> bool:
        return self.type_guid != UNUSED_GUID

    @property
    def sector_count(self) -> int:
        if self.last_lba < self.first_lba:
            return 0
        return self.last_lba - self.first_lba + 1


def decode_gpt_header(reader, offset: int) -> GptHeader:
    """
    Decode the GPT header at a byte offset.

    Args:
        reader: PrimitiveReader over the device
        offset: Byte offset of the header sector

    Returns:
        Decoded header

    Raises:
        InvalidSignatureError: If the header does not start with "EFI PART"
        OutOfRangeError: If the header is cut short by the end of the source
    """
    signature = reader.read_bytes(offset, len(GPT_SIGNATURE))
    if signature != GPT_SIGNATURE:
        raise InvalidSignatureError(GPT_SIGNATURE, signature, offset)

    data = reader.read_bytes(offset, GPT_HEADER_SIZE)
    (signature, revision, header_size, header_crc32, reserved,
     current_lba, backup_lba, first_usable_lba, last_usable_lba, disk_guid,
     first_entry_lba, num_entries, entry_size, entries_crc32) = _HEADER_STRUCT.unpack(data)

    # Keep the bytes the header CRC covers when they are readable
    raw = data
    if header_size > GPT_HEADER_SIZE and reader.has_range(offset, header_size):
        raw = reader.read_bytes(offset, header_size)

    header = GptHeader(
        signature=signature,
        revision=revision,
        header_size=header_size,
        header_crc32=header_crc32,
        reserved=reserved,
        current_lba=current_lba,
        backup_lba=backup_lba,
        first_usable_lba=first_usable_lba,
        last_usable_lba=last_usable_lba,
        disk_guid=UUID(bytes_le=disk_guid),
        first_entry_lba=first_entry_lba,
        num_entries=num_entries,
        entry_size=entry_size,
        entries_crc32=entries_crc32,
        offset=offset,
        raw=raw,
    )
    logger.info(f"GPT header decoded: revision {header.revision_string}, "
                f"disk {header.disk_guid}, {num_entries} entries of {entry_size} bytes")
    return header


def compute_header_crc32(header: GptHeader) -> int:
    """
    Standard CRC-32 over the header bytes with the CRC field zeroed.

    Covers [0, header_size) when those bytes were readable, else the 92-byte
    header.
    """
    size = header.header_size
    if not GPT_HEADER_CRC_OFFSET + 4 <= size <= len(header.raw):
        size = len(header.raw)
    data = bytearray(header.raw[:size])
    data[GPT_HEADER_CRC_OFFSET:GPT_HEADER_CRC_OFFSET + 4] = b'\x00\x00\x00\x00'
    return zlib.crc32(bytes(data)) & 0xFFFFFFFF


def compute_entries_crc32(reader, header: GptHeader, sector_size: int = 512) -> int:
    """CRC-32 of the num_entries * entry_size bytes of the partition-entry array"""
    offset = header.first_entry_lba * sector_size
    length = header.num_entries * header.entry_size
    crc = 0
    chunk = 64 * 1024
    for start in range(0, length, chunk):
        crc = zlib.crc32(reader.read_bytes(offset + start, min(chunk, length - start)), crc)
    return crc & 0xFFFFFFFF


def _decode_name(data: bytes) -> str:
    # Stop at the first NUL code unit; an odd trailing byte is padding
    end = len(data) - (len(data) % 2)
    for i in range(0, end, 2):
        if data[i] == 0 and data[i + 1] == 0:
            end = i
            break
    return data[:end].decode('utf-16-le', errors='replace')


def decode_gpt_entry(data: bytes, index: int) -> GptPartitionEntry:
    """Decode one partition entry record of at least 0x38 bytes."""
    type_guid, unique_guid, first_lba, last_lba, attributes = \
        _ENTRY_STRUCT.unpack_from(data, 0)
    return GptPartitionEntry(
        index=index,
        type_guid=UUID(bytes_le=type_guid),
        unique_guid=UUID(bytes_le=unique_guid),
        first_lba=first_lba,
        last_lba=last_lba,
        flags=GptPartitionFlags.from_bytes(attributes),
        name=_decode_name(data[GPT_ENTRY_NAME_OFFSET:]),
    )


def iter_gpt_entries(reader, first_entry_lba: int, entry_size: int, count: int,
                     sector_size: int = 512) -> Iterator[GptPartitionEntry]:
    """
    Lazily decode `count` partition entries.

    Raises:
        MalformedStructureError: If entry_size cannot hold the fixed fields
        OutOfRangeError: If an entry lies past the end of the source
    """
    if count <= 0:
        return
    if entry_size < GPT_ENTRY_NAME_OFFSET:
        raise MalformedStructureError(
            f"GPT entry size {entry_size} is smaller than the {GPT_ENTRY_NAME_OFFSET}-byte fixed part"
        )

    base = first_entry_lba * sector_size
    for index in range(count):
        data = reader.read_bytes(base + index * entry_size, entry_size)
        yield decode_gpt_entry(data, index)


def decode_gpt_entries(reader, first_entry_lba: int, entry_size: int, count: int,
                       sector_size: int = 512) -> List[GptPartitionEntry]:
    """
    Decode the partition-entry array.

    Args:
        reader: PrimitiveReader over the device
        first_entry_lba: LBA of the first entry
        entry_size: Size of one entry in bytes (usually 128)
        count: Number of entries to decode
        sector_size: Logical sector size

    Returns:
        Entries in array order; empty when count is zero
    """
    entries = list(iter_gpt_entries(reader, first_entry_lba, entry_size, count, sector_size))
    logger.debug(f"Decoded {len(entries)} GPT entries from LBA {first_entry_lba}")
    return entries
