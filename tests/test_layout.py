import logging
import os
from uuid import UUID

import pytest

from diskmap.errors import DiagnosticCode, OutOfRangeError
from diskmap.layout import DiskLayoutDecoder, EntryCountPolicy, decode_disk_layout
from diskmap.mbr import MbrLayoutKind
from diskmap.reader import BufferSource, FileSource

from disk_images import (
    EFI_SYSTEM,
    LINUX_FS,
    MIB,
    SECTOR,
    build_classic_image,
    build_gpt_image,
    build_mbr,
    gpt_entry,
    gpt_header,
    partition_entry,
)


def test_classic_image_end_to_end():
    layout = decode_disk_layout(BufferSource(build_classic_image()))

    assert layout.mbr.layout_kind is MbrLayoutKind.CLASSIC
    first = layout.mbr.partitions[0]
    assert first.boot_indicator == 0x80
    assert first.partition_type == 0x83
    assert first.first_lba == 2048
    assert first.sector_count == 2048
    assert layout.gpt is None
    assert layout.scheme == "mbr"
    assert layout.diagnostics == ()


def test_gpt_image_end_to_end():
    image = build_gpt_image([
        gpt_entry(EFI_SYSTEM, UUID(int=1), 34, 1023, name='EFI'),
        gpt_entry(LINUX_FS, UUID(int=2), 1024, 2014, name='root'),
    ])
    layout = decode_disk_layout(image)

    assert layout.scheme == "gpt"
    gpt = layout.gpt
    assert gpt.header.signature == b'EFI PART'
    assert gpt.count_policy is EntryCountPolicy.USABLE_RANGE
    assert len(gpt.entries) == 2014 - 34
    assert gpt.declared_entry_count == 128
    assert gpt.usable_range_count == 1980
    assert [e.name for e in gpt.used_entries()] == ['EFI', 'root']
    assert layout.diagnostics == ()


def test_header_count_policy():
    image = build_gpt_image([gpt_entry(name='only')])
    layout = DiskLayoutDecoder(count_policy=EntryCountPolicy.HEADER).decode(image)
    assert len(layout.gpt.entries) == 128
    assert layout.gpt.count_policy is EntryCountPolicy.HEADER


def test_count_policy_accepts_config_strings():
    decoder = DiskLayoutDecoder(count_policy="header")
    assert decoder.count_policy is EntryCountPolicy.HEADER


def test_empty_usable_range_gives_no_entries():
    image = build_gpt_image([gpt_entry()], first_usable=100, last_usable=50)
    layout = decode_disk_layout(image)
    assert layout.gpt is not None
    assert layout.gpt.entries == ()
    assert layout.gpt.usable_range_count == 0


def test_gpt_signature_without_protective_mbr():
    image = build_gpt_image([gpt_entry()], slot0_type=0x83)
    assert decode_disk_layout(image).gpt is None


def test_protective_mbr_without_gpt_signature():
    image = build_gpt_image([gpt_entry()], signature=b'NOT GPT!')
    layout = decode_disk_layout(image)
    assert layout.gpt is None
    assert layout.diagnostics == ()


def test_protective_mbr_on_single_sector_image():
    sector = build_mbr([partition_entry(ptype=0xEE, first_lba=1, count=0xFFFFFFFF)])
    layout = decode_disk_layout(bytes(sector))
    assert layout.gpt is None


def test_entry_array_past_end_drops_gpt():
    image = bytearray(4 * SECTOR)
    image[:SECTOR] = build_mbr([partition_entry(ptype=0xEE, first_lba=1, count=3)])
    image[SECTOR:SECTOR + 92] = gpt_header(first_usable=34, last_usable=2014)
    layout = decode_disk_layout(bytes(image))

    assert layout.gpt is None
    assert layout.mbr.partitions[0].partition_type == 0xEE
    assert [d.code for d in layout.diagnostics] == [DiagnosticCode.OUT_OF_RANGE]


def test_crc_mismatch_is_reported():
    image = build_gpt_image([gpt_entry()], corrupt_header_crc=True)
    layout = decode_disk_layout(image)

    assert layout.gpt is not None
    assert [d.code for d in layout.diagnostics] == [DiagnosticCode.CRC_MISMATCH]
    assert decode_disk_layout(image, verify_crc=False).diagnostics == ()


def test_truncated_source_is_fatal():
    with pytest.raises(OutOfRangeError):
        decode_disk_layout(bytes(100))


def test_custom_sector_size():
    sector_size = 4096
    image = bytearray(MIB)
    image[:SECTOR] = build_mbr([partition_entry(ptype=0xEE, first_lba=1, count=255)])
    header = gpt_header(first_usable=6, last_usable=10, first_entry_lba=2, num_entries=4)
    image[sector_size:sector_size + len(header)] = header
    image[2 * sector_size:2 * sector_size + 128] = gpt_entry(name='big')

    layout = DiskLayoutDecoder(sector_size=sector_size, verify_crc=False).decode(bytes(image))
    assert layout.sector_size == sector_size
    assert len(layout.gpt.entries) == 4
    assert layout.gpt.entries[0].name == 'big'


def test_invalid_sector_size():
    with pytest.raises(ValueError):
        DiskLayoutDecoder(sector_size=0)


def test_read_failure_in_entry_array_drops_gpt(tmp_path):
    path = tmp_path / "gpt.img"
    path.write_bytes(build_gpt_image([gpt_entry(name='root')]))

    with FileSource(path) as source:
        os.truncate(path, 2 * SECTOR + 64)
        layout = decode_disk_layout(source)

    assert layout.gpt is None
    assert layout.mbr.partitions[0].partition_type == 0xEE
    assert [d.code for d in layout.diagnostics] == [DiagnosticCode.READ_ERROR]


def test_entry_size_too_small_drops_gpt():
    image = build_gpt_image(entry_size=0x20)
    layout = decode_disk_layout(image)

    assert layout.gpt is None
    assert layout.scheme == "mbr"
    assert [d.code for d in layout.diagnostics] == [DiagnosticCode.MALFORMED]


def test_usable_range_larger_than_header_warns(caplog):
    image = build_gpt_image([gpt_entry()])
    with caplog.at_level(logging.WARNING, logger="diskmap"):
        decode_disk_layout(image)
    assert "header declares 128" in caplog.text

    caplog.clear()
    with caplog.at_level(logging.WARNING, logger="diskmap"):
        decode_disk_layout(image, count_policy=EntryCountPolicy.HEADER)
    assert caplog.text == ""
