"""
DiskMap - Bit-packed field codec

Fields are packed right-to-left: bit 0 of the first byte is the least
significant bit of the whole little-endian value, and fields follow one
another with no padding, straddling byte boundaries where they must.
"""

from collections import OrderedDict
from typing import Dict, List, Sequence, Tuple

Layout = Sequence[Tuple[str, int]]

# Cylinder/head/sector triplet as stored in legacy partition entries
CHS_LAYOUT: List[Tuple[str, int]] = [
    ('head', 8),
    ('sector', 6),
    ('cylinder', 10),
]

# GPT partition attribute flags (64 bits)
GPT_FLAGS_LAYOUT: List[Tuple[str, int]] = [
    ('platform_required', 1),
    ('efi_ignore', 1),
    ('legacy_boot', 1),
    ('reserved_1', 45),
    ('priority', 4),
    ('tries_remaining', 4),
    ('successful', 1),
    ('reserved_2', 3),
    ('read_only', 1),
    ('shadow_copy', 1),
    ('hidden', 1),
    ('no_drive_letter', 1),
]


class BitCursor:
    """Reads consecutive unsigned bit ranges from a byte span."""

    def __init__(self, data: bytes):
        self._value = int.from_bytes(data, 'little')
        self._total = len(data) * 8
        self._position = 0

    @property
    def position(self) -> int:
        return self._position

    @property
    def remaining(self) -> int:
        return self._total - self._position

    def read(self, width: int) -> int:
        if width < 0 or width > self.remaining:
            raise ValueError(
                f"Cannot read {width} bits at bit {self._position} of {self._total}"
            )
        value = (self._value >> self._position) & ((1 << width) - 1)
        self._position += width
        return value


def _check_layout(layout: Layout, total_bits: int) -> None:
    width = sum(w for _, w in layout)
    if width != total_bits:
        raise ValueError(f"Layout covers {width} bits, span has {total_bits}")


def unpack_fields(data: bytes, layout: Layout) -> Dict[str, int]:
    """
    Extract each field of a bit layout from a byte span.

    Args:
        data: Packed bytes
        layout: Ordered (name, width) pairs summing to len(data) * 8

    Returns:
        Ordered mapping of field name to unsigned value
    """
    _check_layout(layout, len(data) * 8)
    cursor = BitCursor(data)
    return OrderedDict((name, cursor.read(width)) for name, width in layout)


def pack_fields(values: Dict[str, int], layout: Layout) -> bytes:
    """Inverse of unpack_fields; missing fields pack as zero."""
    total = sum(w for _, w in layout)
    if total % 8:
        raise ValueError(f"Layout covers {total} bits, not a whole number of bytes")

    packed = 0
    shift = 0
    for name, width in layout:
        value = values.get(name, 0)
        if value < 0 or value >= (1 << width):
            raise ValueError(f"Value {value} does not fit field '{name}' ({width} bits)")
        packed |= value << shift
        shift += width
    return packed.to_bytes(total // 8, 'little')
