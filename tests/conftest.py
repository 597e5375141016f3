import struct

import pytest
import zstandard as zstd

from linearregion import Region
from linearregion.constants import LINEAR_SIGNATURE


@pytest.fixture(autouse=True)
def no_user_config(tmp_path, monkeypatch):
    # Keep a linearregion.json in the developer's cwd out of the tests
    monkeypatch.setenv("LINEARREGION_CONFIG", str(tmp_path / "absent-config.json"))


@pytest.fixture
def sample_region():
    region = Region(3, -2)
    region.set(0, 0, bytes(range(1, 11)), 1000)
    region.set(5, 7, b"hello chunk" * 20, 1700000000)
    region.set(31, 31, b"\x00" * 300, 1700000500)
    return region


def write_legacy(chunks, version=2, compression_level=3, chunk_count=None, footer=True, raw_tail=b"",
                 write_content_size=True):
    """Build a version 1/2 file: (size, timestamp) index, no checksum.

    chunks maps slot index -> (bytes, timestamp).
    """
    raw = bytearray()
    for i in range(1024):
        if i in chunks:
            data, ts = chunks[i]
            raw += struct.pack(">ii", len(data), ts)
        else:
            raw += struct.pack(">ii", 0, 0)
    for i in range(1024):
        if i in chunks:
            raw += chunks[i][0]
    raw += raw_tail
    cctx = zstd.ZstdCompressor(level=compression_level, write_content_size=write_content_size)
    encoded = cctx.compress(bytes(raw))
    newest = max((ts for _, ts in chunks.values()), default=0)
    if chunk_count is None:
        chunk_count = len(chunks)
    out = struct.pack(">qbqbhiq", LINEAR_SIGNATURE, version, newest, compression_level,
                      chunk_count, len(encoded), 0)
    out += encoded
    if footer:
        out += struct.pack(">q", LINEAR_SIGNATURE)
    return out


def rebuild_v3(payload, chunk_count, fix_checksum=True, checksum=0, level=3):
    """Wrap an already-built version 3 payload into a file."""
    from linearregion.integrity import payload_checksum

    encoded = zstd.ZstdCompressor(level=level).compress(bytes(payload))
    if fix_checksum:
        checksum = payload_checksum(bytes(payload))
    out = struct.pack(">qbqbhiQ", LINEAR_SIGNATURE, 3, 0, level, chunk_count, len(encoded), checksum)
    return out + encoded + struct.pack(">q", LINEAR_SIGNATURE)


@pytest.fixture
def legacy_file():
    return write_legacy


@pytest.fixture
def v3_file():
    return rebuild_v3
