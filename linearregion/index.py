from collections import namedtuple

from .constants import CHUNK_COUNT
from .errors import MalformedIndexError
from .header import get_format

IndexEntry = namedtuple("IndexEntry", ["offset", "length", "timestamp", "checksum"])


def decode_index(data, version, count=CHUNK_COUNT):
    """Parse the index table at the start of data.

    Legacy versions only store (size, timestamp); offsets come from the
    running total of sizes. Nothing is checked against the payload length.
    """
    fmt = get_format(version)
    width = fmt.entry.size * count
    if len(data) < width:
        raise MalformedIndexError(f"Index needs {width} bytes, payload has {len(data)}")

    entries = []
    running = 0
    for values in fmt.entry.iter_unpack(memoryview(data)[:width]):
        if fmt.explicit_offsets:
            offset, length, timestamp, checksum = values
        else:
            length, timestamp = values
            offset, checksum = running, 0
            if length > 0:
                running += length
        entries.append(IndexEntry(offset, length, timestamp, checksum))
    return entries


def encode_index(entries, version, count=CHUNK_COUNT):
    fmt = get_format(version)
    if len(entries) != count:
        raise MalformedIndexError(f"Index needs {count} entries, got {len(entries)}")

    out = bytearray()
    for e in entries:
        if fmt.explicit_offsets:
            out += fmt.entry.pack(e.offset, e.length, e.timestamp, e.checksum)
        else:
            out += fmt.entry.pack(e.length, e.timestamp)
    return bytes(out)
