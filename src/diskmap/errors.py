"""
DiskMap - Decode errors and advisory diagnostics
"""

from dataclasses import dataclass
from enum import Enum


class DecodeError(Exception):
    """Base class for every failure raised while decoding a structure."""


class OutOfRangeError(DecodeError):
    """A read would go past the bounds of the byte source."""

    def __init__(self, offset: int, length: int, size: int):
        self.offset = offset
        self.length = length
        self.size = size
        super().__init__(
            f"Read out of bounds: off={offset} size={length} total={size}"
        )


class ReadError(DecodeError):
    """The byte source failed to deliver bytes that lie within its bounds."""

    def __init__(self, offset: int, length: int, reason: str):
        self.offset = offset
        self.length = length
        super().__init__(f"Read failed at off={offset} size={length}: {reason}")


class InvalidSignatureError(DecodeError):
    """A structure did not start with its expected magic bytes."""

    def __init__(self, expected: bytes, found: bytes, offset: int):
        self.expected = expected
        self.found = found
        self.offset = offset
        super().__init__(
            f"Invalid signature at 0x{offset:X}: expected {expected!r}, found {found!r}"
        )


class MalformedStructureError(DecodeError):
    """A field holds a value the rest of the structure cannot be decoded with."""


class DiagnosticCode(Enum):
    UNEXPECTED_LAYOUT = "unexpected_layout"
    INVALID_SIGNATURE = "invalid_signature"
    OUT_OF_RANGE = "out_of_range"
    READ_ERROR = "read_error"
    CRC_MISMATCH = "crc_mismatch"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class Diagnostic:
    """Non-fatal finding recorded while decoding"""
    code: DiagnosticCode
    message: str
    severity: str = "warning"

    def __str__(self) -> str:
        return f"[{self.severity}] {self.code.value}: {self.message}"
