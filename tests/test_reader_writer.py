import random
import struct

import pytest

from linearregion import (
    ChecksumMismatchError, ChunkChecksumMismatchError, DecompressionError,
    IndexOutOfBoundsError, IntegrityError, MalformedIndexError,
    OverlappingEntriesError, Region, TruncatedError, dump_region, read_region,
)
from linearregion.compression import decompress
from linearregion.errors import BadMagicError, FormatError
from linearregion.integrity import chunk_crc
from linearregion import writer
from linearregion.writer import build_payload

ENTRY = struct.Struct(">IIqI")
INDEX_SIZE = 20480


def random_region(seed, fill=0.3):
    rng = random.Random(seed)
    region = Region()
    for z in range(32):
        for x in range(32):
            if rng.random() < fill:
                size = rng.randrange(1, 600)
                region.set(x, z, bytes(rng.getrandbits(8) for _ in range(size)), rng.randrange(0, 2**40))
    return region


def payload_of(data):
    return bytearray(decompress(data[32:-8]))


def test_concrete_scenario():
    region = Region()
    region.set(0, 0, bytes(range(1, 11)), 1000)
    loaded = read_region(dump_region(region, level=3))
    record = loaded.get(0, 0)
    assert record is not None
    assert record.raw_bytes == bytes([1, 2, 3, 4, 5, 6, 7, 8, 9, 10])
    assert record.timestamp == 1000
    assert loaded.get(1, 0) is None


@pytest.mark.parametrize("level", [-1, 1, 3, 9, 22])
def test_roundtrip_every_level(level):
    region = random_region(level)
    loaded = read_region(dump_region(region, level=level))
    assert loaded == region
    assert loaded.dropped == []


def test_absence_preserved(sample_region):
    loaded = read_region(dump_region(sample_region, level=3))
    for x, z, record in loaded.iterate():
        assert (record is None) == (sample_region.get(x, z) is None)


def test_empty_region_roundtrip():
    data = dump_region(Region(), level=3)
    assert read_region(data).count_chunks() == 0


def test_full_capacity():
    region = Region()
    for x in range(32):
        for z in range(32):
            region.set(x, z, bytes([(x * 7 + z) & 0xFF]), 1000 + x + z * 32)
    loaded = read_region(dump_region(region, level=3))
    assert loaded.count_chunks() == 1024
    for x, z, record in loaded.iterate():
        assert record.raw_bytes == bytes([(x * 7 + z) & 0xFF])
        assert record.timestamp == 1000 + x + z * 32


def test_cleared_slot_stays_absent():
    region = Region()
    region.set(2, 2, b"gone", 5)
    region.clear(2, 2)
    loaded = read_region(dump_region(region, level=3))
    assert loaded.get(2, 2) is None
    assert loaded == region


def test_header_length_field_overflow(monkeypatch, sample_region):
    class Huge(bytes):
        def __len__(self):
            return 1 << 31

    monkeypatch.setattr(writer, "compress", lambda payload, level: Huge(b"x"))
    with pytest.raises(ValueError, match="header length field"):
        dump_region(sample_region, level=3)


def test_idempotent_read(sample_region):
    data = dump_region(sample_region, level=3)
    assert read_region(data) == read_region(data)


def test_level_independence():
    region = random_region(7, fill=0.6)
    fast = dump_region(region, level=1)
    small = dump_region(region, level=19)
    assert payload_of(fast) == payload_of(small)
    assert read_region(fast) == read_region(small) == region


def test_header_fields(sample_region):
    data = dump_region(sample_region, level=5)
    version, newest, level, count, length = struct.unpack(">bqbhi", data[8:24])
    assert (version, newest, level, count) == (3, 1700000500, 5, 3)
    assert len(data) == 32 + length + 8


def test_dense_layout(sample_region):
    payload = payload_of(dump_region(sample_region, level=3))
    assert len(payload) == INDEX_SIZE + 10 + 220 + 300
    assert ENTRY.unpack_from(payload, 0)[:2] == (0, 10)
    assert ENTRY.unpack_from(payload, (5 + 7 * 32) * ENTRY.size)[:2] == (10, 220)
    assert ENTRY.unpack_from(payload, 1023 * ENTRY.size)[:2] == (230, 300)
    assert ENTRY.unpack_from(payload, 1 * ENTRY.size) == (0, 0, 0, 0)


def test_region_coordinates(sample_region):
    loaded = read_region(dump_region(sample_region, level=3), region_x=4, region_z=-9)
    assert (loaded.region_x, loaded.region_z) == (4, -9)


# --- bounds safety ---

@pytest.mark.parametrize("offset,length", [(0, 10000), (0xFFFFFFF0, 10), (531, 1), (0, 0xFFFFFFFF)])
def test_index_out_of_bounds(sample_region, v3_file, offset, length):
    payload = bytearray(build_payload(sample_region, 3))
    ts = 1000
    ENTRY.pack_into(payload, 0, offset, length, ts, 0)
    data = v3_file(payload, chunk_count=3)

    with pytest.raises(IndexOutOfBoundsError) as exc:
        read_region(data)
    assert exc.value.slot == 0
    assert exc.value.limit == 530

    salvaged = read_region(data, lenient=True)
    assert salvaged.dropped == [(0, 0)]
    assert salvaged.get(0, 0) is None
    assert salvaged.get(5, 7) == sample_region.get(5, 7)
    assert salvaged.get(31, 31) == sample_region.get(31, 31)


def test_overlapping_entries(v3_file):
    region = Region()
    region.set(0, 0, b"abc", 5)
    region.set(1, 0, b"abc", 5)
    payload = bytearray(build_payload(region, 3))
    _, length, ts, crc = ENTRY.unpack_from(payload, ENTRY.size)
    ENTRY.pack_into(payload, ENTRY.size, 0, length, ts, crc)
    data = v3_file(payload, chunk_count=2)

    with pytest.raises(OverlappingEntriesError) as exc:
        read_region(data)
    assert (exc.value.slot, exc.value.other) == (1, 0)

    # the bytes still check out, so salvage keeps both
    salvaged = read_region(data, lenient=True)
    assert salvaged.get(0, 0).raw_bytes == b"abc"
    assert salvaged.get(1, 0).raw_bytes == b"abc"


def test_chunk_checksum_mismatch(sample_region, v3_file):
    payload = bytearray(build_payload(sample_region, 3))
    offset, length, ts, crc = ENTRY.unpack_from(payload, 0)
    ENTRY.pack_into(payload, 0, offset, length, ts, crc ^ 1)
    # header checksum recomputed: only the per-chunk crc catches this
    data = v3_file(payload, chunk_count=3)
    with pytest.raises(ChunkChecksumMismatchError) as exc:
        read_region(data)
    assert exc.value.slot == 0
    assert read_region(data, lenient=True).dropped == [(0, 0)]


def test_chunk_count_mismatch(sample_region, v3_file):
    data = v3_file(build_payload(sample_region, 3), chunk_count=4)
    with pytest.raises(MalformedIndexError):
        read_region(data)
    assert read_region(data, lenient=True) == sample_region


# --- checksum sensitivity ---

def _affected_slot(pos, payload):
    if pos < INDEX_SIZE:
        return pos // ENTRY.size
    rel = pos - INDEX_SIZE
    for slot in range(1024):
        offset, length, _, _ = ENTRY.unpack_from(payload, slot * ENTRY.size)
        if length and offset <= rel < offset + length:
            return slot
    return None


def test_single_byte_flip(sample_region, v3_file):
    data = dump_region(sample_region, level=3)
    original = payload_of(data)
    checksum = struct.unpack(">Q", data[24:32])[0]

    positions = list(range(0, len(original), 97))
    positions += [0, 7, 20 * 229 + 7, INDEX_SIZE, INDEX_SIZE + 15, len(original) - 1]
    for pos in positions:
        corrupt = bytearray(original)
        corrupt[pos] ^= 0xFF
        bad = v3_file(corrupt, chunk_count=3, fix_checksum=False, checksum=checksum)

        with pytest.raises(IntegrityError):
            read_region(bad)

        salvaged = read_region(bad, lenient=True)
        hit = _affected_slot(pos, original)
        for slot, (x, z, record) in enumerate(salvaged.iterate()):
            expected = sample_region.get(x, z)
            if slot == hit:
                assert record in (None, expected)
            else:
                assert record == expected, (pos, slot)


def test_checksum_mismatch_strict(sample_region):
    data = bytearray(dump_region(sample_region, level=3))
    data[31] ^= 0x01
    with pytest.raises(ChecksumMismatchError) as exc:
        read_region(bytes(data))
    assert isinstance(exc.value, IntegrityError)
    # chunks themselves are intact
    assert read_region(bytes(data), lenient=True) == sample_region


# --- framing ---

def test_bad_magic(sample_region):
    data = bytearray(dump_region(sample_region, level=3))
    data[3] ^= 0xFF
    with pytest.raises(BadMagicError):
        read_region(bytes(data), lenient=True)


def test_bad_footer(sample_region):
    data = bytearray(dump_region(sample_region, level=3))
    data[-1] ^= 0xFF
    with pytest.raises(BadMagicError) as exc:
        read_region(bytes(data))
    assert exc.value.where == "footer"
    assert read_region(bytes(data), lenient=True) == sample_region


def test_truncated_file(sample_region):
    data = dump_region(sample_region, level=3)
    with pytest.raises(TruncatedError):
        read_region(data[:-20])
    with pytest.raises(TruncatedError):
        read_region(data[:12])


def test_trailing_bytes(sample_region):
    data = dump_region(sample_region, level=3)
    with pytest.raises(FormatError):
        read_region(data + b"extra")


def test_corrupt_stream(sample_region):
    data = bytearray(dump_region(sample_region, level=3))
    for i in range(32, 40):
        data[i] = 0
    with pytest.raises(DecompressionError):
        read_region(bytes(data))
    with pytest.raises(DecompressionError):
        read_region(bytes(data), lenient=True)


def test_accepts_buffer_types(sample_region):
    data = dump_region(sample_region, level=3)
    assert read_region(bytearray(data)) == sample_region
    assert read_region(memoryview(data)) == sample_region


def test_crc_covers_timestamp():
    assert chunk_crc(1, b"abc") != chunk_crc(2, b"abc")
