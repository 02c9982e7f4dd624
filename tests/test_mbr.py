import struct

import pytest

from diskmap.errors import DiagnosticCode, OutOfRangeError
from diskmap.mbr import (
    ClassicBootCode,
    MbrLayoutKind,
    ModernWindowsBootCode,
    NewLdrBootCode,
    decode_mbr,
    detect_layout,
)
from diskmap.reader import as_reader

from disk_images import build_mbr, partition_entry


def modern_windows_sector():
    sector = build_mbr([partition_entry(boot=0x80, ptype=0x07, first_lba=2048, count=409600)])
    sector[0x00:0x02] = b'\x33\xC0'
    sector[0xDC] = 0x80          # original drive
    sector[0xDD:0xE0] = bytes([30, 15, 9])
    sector[0x1B8:0x1BC] = struct.pack('<I', 0xCAFEBABE)
    sector[0x1BC:0x1BE] = struct.pack('<H', 0x5A5A)
    return sector


def newldr_sector(aap=True):
    sector = build_mbr([partition_entry(ptype=0x0C, first_lba=63, count=1000)])
    sector[0x00:0x02] = b'\xEB\x1C'
    sector[0x02:0x08] = b'NEWLDR'
    sector[0x08] = 0x80
    sector[0x09:0x0C] = bytes([0x0A, 0x05, 0x19])
    sector[0x0C] = 0x80
    sector[0x10:0x14] = struct.pack('<I', 0x3F)
    sector[0x14:0x16] = struct.pack('<H', 0x0123)
    sector[0x16:0x18] = struct.pack('<H', 0xBEEF)
    sector[0x18:0x1E] = b'OEMSIG'
    if aap:
        sector[0x1AC:0x1AE] = struct.pack('<H', 0x5678)
        sector[0x1AE:0x1BE] = partition_entry(boot=0x80, ptype=0xDE, first_lba=16, count=32)
    return sector


def test_classic_layout():
    sector = build_mbr([partition_entry(boot=0x80, ptype=0x83, first_lba=2048, count=2048,
                                        chs_start=bytes([0x0A, 0x05, 0x19]))])
    diagnostics = []
    mbr = decode_mbr(as_reader(bytes(sector)), diagnostics=diagnostics)

    assert mbr.layout_kind is MbrLayoutKind.CLASSIC
    assert isinstance(mbr.boot, ClassicBootCode)
    assert len(mbr.boot.boot_code) == 446
    assert mbr.has_valid_signature
    assert diagnostics == []

    first = mbr.partitions[0]
    assert first.slot == 0
    assert first.is_bootable
    assert first.partition_type == 0x83
    assert first.type_name == "Linux native (usually ext2fs)"
    assert (first.first_lba, first.sector_count) == (2048, 2048)
    assert (first.chs_start.head, first.chs_start.sector, first.chs_start.cylinder) == (10, 5, 100)
    assert [p.slot for p in mbr.partitions] == [0, 1, 2, 3]
    assert len(mbr.used_partitions()) == 1


def test_modern_windows_layout():
    mbr = decode_mbr(as_reader(bytes(modern_windows_sector())))

    assert mbr.layout_kind is MbrLayoutKind.MODERN_WINDOWS
    boot = mbr.boot
    assert isinstance(boot, ModernWindowsBootCode)
    assert boot.pad == 0
    assert boot.original_drive == 0x80
    assert boot.disk_timestamp == "09:15:30"
    assert boot.disk_signature == 0xCAFEBABE
    assert boot.is_copy_protected
    assert len(boot.boot_code_1) == 218
    assert len(boot.boot_code_2) == 216
    assert boot.boot_code[:2] == b'\x33\xC0'
    assert mbr.partitions[0].partition_type == 0x07


def test_newldr_layout_with_aap():
    mbr = decode_mbr(as_reader(bytes(newldr_sector())))

    assert mbr.layout_kind is MbrLayoutKind.NEWLDR
    boot = mbr.boot
    assert isinstance(boot, NewLdrBootCode)
    assert boot.signature == b'NEWLDR'
    assert boot.physical_drive == 0x80
    assert (boot.loader_chs.head, boot.loader_chs.sector, boot.loader_chs.cylinder) == (10, 5, 100)
    assert boot.loader_lba == 0x3F
    assert boot.patch_offset == 0x0123
    assert boot.checksum == 0xBEEF
    assert boot.oem_signature == b'OEMSIG'
    assert len(boot.boot_code_1) == 2
    assert len(boot.boot_code_2) == 398
    assert boot.has_aap
    assert boot.aap_partition.partition_type == 0xDE
    assert boot.aap_partition.first_lba == 16
    assert mbr.partitions[0].partition_type == 0x0C


def test_newldr_layout_without_aap():
    mbr = decode_mbr(as_reader(bytes(newldr_sector(aap=False))))
    assert not mbr.boot.has_aap
    assert mbr.boot.aap_partition is None
    assert len(mbr.boot.aap_region) == 18


def test_newldr_aap_boot_indicator_is_advisory():
    sector = newldr_sector()
    sector[0x1AE] = 0x12
    diagnostics = []
    mbr = decode_mbr(as_reader(bytes(sector)), diagnostics=diagnostics)

    assert mbr.boot.aap_partition.boot_indicator == 0x12
    assert [d.code for d in diagnostics] == [DiagnosticCode.UNEXPECTED_LAYOUT]
    assert "AAP" in diagnostics[0].message

    diagnostics = []
    decode_mbr(as_reader(bytes(newldr_sector())), diagnostics=diagnostics)
    assert diagnostics == []


def test_newldr_detection_ignores_other_bytes():
    sector = modern_windows_sector()
    sector[0x02:0x06] = struct.pack('<I', 0x4C57454E)
    assert detect_layout(as_reader(bytes(sector))) is MbrLayoutKind.NEWLDR


def test_modern_windows_needs_zero_pad():
    sector = modern_windows_sector()
    sector[0xDA] = 0x01
    assert detect_layout(as_reader(bytes(sector))) is MbrLayoutKind.CLASSIC


def test_bad_signature_and_boot_indicator_are_advisory():
    sector = build_mbr([partition_entry(boot=0x12, ptype=0x83, first_lba=1, count=1)],
                       signature=0x1234)
    diagnostics = []
    mbr = decode_mbr(as_reader(bytes(sector)), diagnostics=diagnostics)

    assert mbr.boot_signature == 0x1234
    assert not mbr.has_valid_signature
    assert mbr.partitions[0].boot_indicator == 0x12
    assert [d.code for d in diagnostics] == [DiagnosticCode.UNEXPECTED_LAYOUT] * 2


def test_truncated_sector():
    with pytest.raises(OutOfRangeError):
        decode_mbr(as_reader(bytes(511)))
