import zlib
from uuid import UUID

import pytest

from diskmap.errors import InvalidSignatureError, MalformedStructureError, OutOfRangeError
from diskmap.gpt import (
    compute_entries_crc32,
    compute_header_crc32,
    decode_gpt_entries,
    decode_gpt_header,
    gpt_type_name,
)
from diskmap.reader import BufferSource, PrimitiveReader, as_reader

from disk_images import (
    DISK_GUID,
    EFI_SYSTEM,
    LINUX_FS,
    SECTOR,
    build_gpt_image,
    gpt_entry,
    gpt_header,
)


class CountingSource(BufferSource):
    def __init__(self, data):
        super().__init__(data)
        self.reads = []

    def read(self, offset, length):
        self.reads.append((offset, length))
        return super().read(offset, length)


@pytest.fixture
def image():
    return build_gpt_image([
        gpt_entry(EFI_SYSTEM, UUID(int=1), 34, 1023, attributes=1, name='EFI system'),
        gpt_entry(LINUX_FS, UUID(int=2), 1024, 2014, attributes=1 << 60, name='root'),
    ])


def test_header_fields(image):
    header = decode_gpt_header(as_reader(image), SECTOR)

    assert header.signature == b'EFI PART'
    assert header.revision_string == "1.0"
    assert header.header_size == 92
    assert header.current_lba == 1
    assert header.backup_lba == 2047
    assert (header.first_usable_lba, header.last_usable_lba) == (34, 2014)
    assert header.disk_guid == DISK_GUID
    assert header.first_entry_lba == 2
    assert (header.num_entries, header.entry_size) == (128, 128)
    assert header.usable_range_count == 1980


def test_header_crc(image):
    reader = as_reader(image)
    header = decode_gpt_header(reader, SECTOR)
    assert compute_header_crc32(header) == header.header_crc32
    assert compute_entries_crc32(reader, header) == header.entries_crc32


def test_header_crc_mismatch_is_not_an_error():
    image = build_gpt_image(corrupt_header_crc=True)
    header = decode_gpt_header(as_reader(image), SECTOR)
    assert header.header_crc32 == 0xDEADBEEF
    assert compute_header_crc32(header) != header.header_crc32


def test_invalid_signature():
    data = bytes(SECTOR) + gpt_header(signature=b'EFI PARX')
    with pytest.raises(InvalidSignatureError):
        decode_gpt_header(as_reader(data), SECTOR)


def test_truncated_header():
    data = bytes(SECTOR) + gpt_header()[:40]
    with pytest.raises(OutOfRangeError):
        decode_gpt_header(as_reader(data), SECTOR)


def test_entries(image):
    entries = decode_gpt_entries(as_reader(image), 2, 128, 4)

    assert [e.index for e in entries] == [0, 1, 2, 3]
    esp, root, empty, _ = entries
    assert esp.type_guid == EFI_SYSTEM
    assert esp.type_name == "EFI System partition"
    assert esp.unique_guid == UUID(int=1)
    assert (esp.first_lba, esp.last_lba, esp.sector_count) == (34, 1023, 990)
    assert esp.flags.platform_required
    assert esp.name == 'EFI system'
    assert root.name == 'root'
    assert root.flags.read_only
    assert not empty.is_used
    assert empty.name == ''


def test_zero_count_reads_nothing():
    source = CountingSource(bytes(SECTOR * 2))
    assert decode_gpt_entries(PrimitiveReader(source), 2, 128, 0) == []
    assert source.reads == []


def test_entry_name_fills_whole_field():
    name = 'x' * 36
    data = bytes(2 * SECTOR) + gpt_entry(name=name)
    entry = decode_gpt_entries(as_reader(data), 2, 128, 1)[0]
    assert entry.name == name


def test_larger_entry_size_ignores_padding():
    record = gpt_entry(name='data', entry_size=256)[:128] + b'\xFF' * 128
    data = bytes(2 * SECTOR) + record
    entry = decode_gpt_entries(as_reader(data), 2, 256, 1)[0]
    assert entry.name.startswith('data')


def test_entry_size_too_small():
    with pytest.raises(MalformedStructureError):
        decode_gpt_entries(as_reader(bytes(4 * SECTOR)), 2, 0x20, 1)


def test_entries_past_end():
    with pytest.raises(OutOfRangeError):
        decode_gpt_entries(as_reader(bytes(3 * SECTOR)), 2, 128, 5)


def test_gpt_type_names():
    assert gpt_type_name(LINUX_FS) == "Linux filesystem data"
    assert gpt_type_name(UUID(int=0)) == "Unused entry"
    assert gpt_type_name(UUID(int=99)) == "unknown"


def test_entries_crc_matches_zlib(image):
    reader = as_reader(image)
    header = decode_gpt_header(reader, SECTOR)
    expected = zlib.crc32(image[2 * SECTOR:2 * SECTOR + 128 * 128]) & 0xFFFFFFFF
    assert compute_entries_crc32(reader, header) == expected
