import os
import logging

from . import storage
from .compression import decompress
from .constants import FOOTER_SIZE, HEADER_SIZE
from .errors import (
    ChecksumMismatchError, ChunkChecksumMismatchError, FormatError,
    IndexOutOfBoundsError, MalformedIndexError, OverlappingEntriesError,
    TruncatedError,
)
from .header import decode_footer, decode_header, get_format, index_size
from .index import decode_index
from .integrity import chunk_crc, payload_checksum
from .region import Region, slot_coords

logger = logging.getLogger("LinearRegion.reader")


def open_region(source, lenient=False):
    """Read a region from a path or from the raw file bytes.

    When reading a file named r.<x>.<z>.linear the region coordinates are
    taken from the name. OSError from the filesystem is not wrapped.
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        return read_region(source, lenient=lenient)

    path = os.fspath(source)
    with open(path, "rb") as f:
        data = f.read()
    try:
        region_x, region_z = storage.parse_region_name(path)
    except ValueError:
        region_x, region_z = 0, 0
    logger.debug(f"Read {len(data)} bytes from {path}")
    return read_region(data, lenient=lenient, region_x=region_x, region_z=region_z)


def read_region(data, lenient=False, region_x=0, region_z=0):
    """Decode a whole region file held in memory.

    Strict mode (the default) raises on the first problem and never returns
    a partial region. Lenient mode drops the slots that fail bounds or
    checksum checks, lists them in region.dropped and returns the rest.
    Problems outside the slots (header, compressed stream, index layout)
    raise in both modes.
    """
    data = memoryview(data)
    header = decode_header(data)
    fmt = get_format(header.version)

    if header.compressed_length < 0:
        raise FormatError(f"Invalid compressed length: {header.compressed_length}")
    expected = HEADER_SIZE + header.compressed_length + FOOTER_SIZE
    if len(data) < expected:
        raise TruncatedError("file", expected, len(data))
    if len(data) > expected:
        raise FormatError(f"Unexpected {len(data) - expected} trailing bytes after footer")

    try:
        decode_footer(data)
    except FormatError as e:
        if not lenient:
            raise
        logger.warning(f"{e}, continuing in lenient mode")

    payload = decompress(data[HEADER_SIZE:HEADER_SIZE + header.compressed_length])

    if fmt.checksummed:
        actual = payload_checksum(payload)
        if actual != header.checksum:
            if not lenient:
                raise ChecksumMismatchError(header.checksum, actual)
            logger.warning(
                f"Checksum mismatch ({header.checksum:016x} != {actual:016x}), verifying chunks one by one"
            )

    entries = decode_index(payload, header.version)
    chunk_data = memoryview(payload)[index_size(header.version):]
    limit = len(chunk_data)

    bad = {}
    spans = []
    for slot, e in enumerate(entries):
        if e.length == 0:
            continue
        if e.length < 0 or e.offset < 0 or e.offset + e.length > limit:
            bad[slot] = IndexOutOfBoundsError(slot, e.offset, e.length, limit)
            continue
        spans.append((e.offset, e.offset + e.length, slot))

    if bad and not lenient:
        raise bad[min(bad)]

    if not fmt.explicit_offsets and not bad:
        # Sizes add up to less than the decompressed payload
        covered = spans[-1][1] if spans else 0
        if covered != limit:
            msg = f"Invalid decompressed size: index covers {covered} of {limit} chunk bytes"
            if not lenient:
                raise MalformedIndexError(msg)
            logger.warning(msg)

    spans.sort()
    for prev, cur in zip(spans, spans[1:]):
        if cur[0] < prev[1] and not lenient:
            raise OverlappingEntriesError(cur[2], prev[2])

    if fmt.checksummed:
        for start, end, slot in spans:
            e = entries[slot]
            actual = chunk_crc(e.timestamp, chunk_data[start:end])
            if actual != e.checksum:
                bad[slot] = ChunkChecksumMismatchError(slot, e.checksum, actual)

    present = sum(1 for e in entries if e.length != 0)
    if present != header.chunk_count:
        msg = f"Invalid chunk count {header.chunk_count}/{present}"
        if not lenient:
            raise MalformedIndexError(msg)
        logger.warning(msg)

    if bad and not lenient:
        raise bad[min(bad)]

    region = Region(region_x, region_z)
    for start, end, slot in spans:
        if slot in bad:
            continue
        x, z = slot_coords(slot)
        region.set(x, z, bytes(chunk_data[start:end]), entries[slot].timestamp)

    for slot in sorted(bad):
        logger.warning(f"Dropping chunk {slot_coords(slot)}: {bad[slot]}")
        region.dropped.append(slot_coords(slot))

    logger.debug(
        f"Read region {region_x}.{region_z} v{header.version}: "
        f"{region.count_chunks()} chunks, {len(region.dropped)} dropped, {len(payload)} bytes decompressed"
    )
    return region
