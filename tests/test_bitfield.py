import pytest

from diskmap.bitfield import (
    CHS_LAYOUT,
    GPT_FLAGS_LAYOUT,
    BitCursor,
    pack_fields,
    unpack_fields,
)
from diskmap.gpt import GptPartitionFlags
from diskmap.mbr import CHSAddress


def test_cursor_reads_right_to_left():
    cursor = BitCursor(bytes([0b10110100, 0b00000011]))
    assert cursor.read(2) == 0b00
    assert cursor.read(3) == 0b101
    # straddles the byte boundary: top 3 bits of byte 0, low 2 bits of byte 1
    assert cursor.read(5) == 0b11101
    assert cursor.position == 10
    assert cursor.remaining == 6
    with pytest.raises(ValueError):
        cursor.read(7)


def test_chs_round_trip():
    chs = CHSAddress(head=10, sector=5, cylinder=100)
    packed = chs.pack()
    assert packed == bytes([0x0A, 0x05, 0x19])
    assert CHSAddress.from_bytes(packed) == chs


def test_chs_maximum_values():
    chs = CHSAddress.from_bytes(b'\xFE\xFF\xFF')
    assert (chs.head, chs.sector, chs.cylinder) == (254, 63, 1023)


def test_chs_cylinder_low_bits_come_from_second_byte():
    chs = CHSAddress.from_bytes(bytes([0x01, 0xC1, 0x00]))
    assert chs.head == 1
    assert chs.sector == 1
    assert chs.cylinder == 3


def test_layout_must_cover_span():
    with pytest.raises(ValueError):
        unpack_fields(b'\x00\x00', CHS_LAYOUT)
    assert sum(width for _, width in GPT_FLAGS_LAYOUT) == 64


def test_pack_rejects_oversized_values():
    with pytest.raises(ValueError):
        pack_fields({'head': 0, 'sector': 64, 'cylinder': 0}, CHS_LAYOUT)


def test_gpt_flags():
    raw = (1 | 1 << 2 | 15 << 48 | 6 << 52 | 1 << 56 | 1 << 60 | 1 << 62 | 1 << 63)
    flags = GptPartitionFlags.from_bytes(raw.to_bytes(8, 'little'))

    assert flags.raw == raw
    assert flags.platform_required
    assert not flags.efi_ignore
    assert flags.legacy_boot
    assert flags.priority == 15
    assert flags.tries_remaining == 6
    assert flags.successful
    assert flags.read_only
    assert not flags.shadow_copy
    assert flags.hidden
    assert flags.no_drive_letter
    assert flags.names() == ['platform_required', 'legacy_boot', 'successful',
                             'read_only', 'hidden', 'no_drive_letter']


def test_gpt_flags_reserved_bits_are_ignored():
    flags = GptPartitionFlags.from_bytes((0xFFFF << 8).to_bytes(8, 'little'))
    assert flags.names() == []
    assert flags.priority == 0
