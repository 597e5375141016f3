import os
import logging

from . import storage
from .compression import MAX_OUTPUT_SIZE, check_level, compress
from .constants import DEFAULT_COMPRESSION_LEVEL, LINEAR_VERSION, LINEAR_WRITABLE
from .errors import UnsupportedVersionError
from .header import FOOTER, Header, encode_header, get_format, index_size
from .index import IndexEntry, encode_index
from .integrity import chunk_crc, payload_checksum

logger = logging.getLogger("LinearRegion.writer")

I32_MIN, I32_MAX = -(1 << 31), (1 << 31) - 1


def _resolve(config, level, version):
    if level is None or version is None:
        if config is None:
            config = storage.load_config()
        if level is None:
            level = config.get("compression_level", DEFAULT_COMPRESSION_LEVEL)
        if version is None:
            version = config.get("format_version", LINEAR_VERSION)
    return check_level(level), version


def build_payload(region, version):
    """Index table followed by the chunk bytes, present slots in slot order."""
    fmt = get_format(version)
    entries = []
    chunks = []
    offset = 0
    for _, _, record in region.iterate():
        if record is None:
            entries.append(IndexEntry(0, 0, 0, 0))
            continue
        size = len(record.raw_bytes)
        if not fmt.checksummed and not (size <= I32_MAX and I32_MIN <= record.timestamp <= I32_MAX):
            raise ValueError(f"Chunk does not fit version {version} index (size {size}, timestamp {record.timestamp})")
        crc = chunk_crc(record.timestamp, record.raw_bytes) if fmt.checksummed else 0
        entries.append(IndexEntry(offset, size, record.timestamp, crc))
        chunks.append(record.raw_bytes)
        offset += size

    total = index_size(version) + offset
    if total > MAX_OUTPUT_SIZE:
        raise ValueError(f"Region payload of {total} bytes exceeds the {MAX_OUTPUT_SIZE} byte limit")
    return encode_index(entries, version) + b"".join(chunks)


def dump_region(region, level=None, version=None, config=None):
    level, version = _resolve(config, level, version)
    if version not in LINEAR_WRITABLE:
        raise UnsupportedVersionError(version)
    fmt = get_format(version)

    payload = build_payload(region, version)
    encoded = compress(payload, level)
    if len(encoded) > I32_MAX:
        raise ValueError(f"Compressed region of {len(encoded)} bytes does not fit the header length field")

    header = Header(
        version=version,
        newest_timestamp=region.newest_timestamp,
        compression_level=level,
        chunk_count=region.count_chunks(),
        compressed_length=len(encoded),
        # Versões antigas não verificam o hash
        checksum=payload_checksum(payload) if fmt.checksummed else 0,
    )
    logger.debug(
        f"Encoded region {region.region_x}.{region.region_z} v{version} level {level}: "
        f"{header.chunk_count} chunks, {len(payload)} -> {len(encoded)} bytes"
    )
    return encode_header(header) + encoded + FOOTER


def save_region(region, destination, level=None, version=None, config=None):
    """Serialize region and write it to a path (atomically) or a binary file object.

    Returns the number of bytes written.
    """
    if config is None and (level is None or version is None):
        config = storage.load_config()
    data = dump_region(region, level=level, version=version, config=config)

    if hasattr(destination, "write"):
        destination.write(data)
        return len(data)

    fsync = config.get("fsync", True) if config is not None else True
    written = storage.atomic_write(os.fspath(destination), data, fsync=fsync)
    logger.info(f"Saved region {region.region_x}.{region.region_z} to {destination} ({written} bytes)")
    return written
