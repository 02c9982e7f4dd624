"""
DiskMap - Positioned little-endian reads over a byte source

Byte sources never keep a shared cursor: every read names its absolute
offset, so one source can back several independent decodes.
"""

import os
import struct
import logging
from pathlib import Path
from typing import BinaryIO, Optional, Union

from diskmap.errors import OutOfRangeError, ReadError

logger = logging.getLogger(__name__)


class BufferSource:
    """Byte source backed by an in-memory buffer"""

    def __init__(self, data: Union[bytes, bytearray, memoryview]):
        self._data = bytes(data)

    @property
    def size(self) -> int:
        return len(self._data)

    def read(self, offset: int, length: int) -> bytes:
        if offset < 0 or length < 0 or offset + length > len(self._data):
            raise OutOfRangeError(offset, length, len(self._data))
        return self._data[offset:offset + length]

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class FileSource:
    """
    Read-only byte source over a disk image or block device.

    The size of a block device is found by seeking to its end, since
    os.path.getsize() reports zero for device nodes.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._f: Optional[BinaryIO] = None
        self._size = 0

    def open(self) -> "FileSource":
        try:
            self._f = open(self.path, 'rb', buffering=0)
            self._size = self._f.seek(0, os.SEEK_END)
            logger.debug(f"Opened {self.path} ({self._size} bytes)")
        except OSError as e:
            logger.error(f"Failed to open image {self.path}: {e}")
            raise
        return self

    @property
    def size(self) -> int:
        return self._size

    def read(self, offset: int, length: int) -> bytes:
        if self._f is None:
            self.open()
        if offset < 0 or length < 0 or offset + length > self._size:
            raise OutOfRangeError(offset, length, self._size)
        try:
            self._f.seek(offset)
            data = self._f.read(length)
        except OSError as e:
            logger.error(f"I/O error reading {self.path}: {e}")
            raise ReadError(offset, length, str(e)) from e
        if len(data) != length:
            raise ReadError(offset, length, f"short read, got {len(data)} bytes")
        return data

    def close(self) -> None:
        if self._f:
            self._f.close()
            self._f = None

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class PrimitiveReader:
    """
    Fixed-width little-endian integer and byte-array reads at absolute offsets.

    Every read either returns the full value or raises OutOfRangeError
    (ReadError when a file source fails inside its bounds).
    """

    _U8 = struct.Struct('<B')
    _U16 = struct.Struct('<H')
    _U32 = struct.Struct('<I')
    _U64 = struct.Struct('<Q')

    def __init__(self, source):
        self.source = source

    @property
    def size(self) -> int:
        return self.source.size

    def read_bytes(self, offset: int, length: int) -> bytes:
        return self.source.read(offset, length)

    def _unpack(self, fmt: struct.Struct, offset: int) -> int:
        return fmt.unpack(self.source.read(offset, fmt.size))[0]

    def read_uint8(self, offset: int) -> int:
        return self._unpack(self._U8, offset)

    def read_uint16(self, offset: int) -> int:
        return self._unpack(self._U16, offset)

    def read_uint32(self, offset: int) -> int:
        return self._unpack(self._U32, offset)

    def read_uint64(self, offset: int) -> int:
        return self._unpack(self._U64, offset)

    # Reads never advance anything, so a peek is a plain read; the name marks
    # call sites that only sniff for a signature.
    peek_uint64 = read_uint64

    def has_range(self, offset: int, length: int) -> bool:
        return offset >= 0 and length >= 0 and offset + length <= self.source.size


def as_reader(source) -> PrimitiveReader:
    """Wrap raw bytes or a byte source in a PrimitiveReader"""
    if isinstance(source, PrimitiveReader):
        return source
    if isinstance(source, (bytes, bytearray, memoryview)):
        return PrimitiveReader(BufferSource(source))
    return PrimitiveReader(source)
