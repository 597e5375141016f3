import struct
from collections import namedtuple

from .constants import (
    CHUNK_COUNT, ENTRY_FORMAT, FOOTER_FORMAT, FOOTER_SIZE, HEADER_FORMAT,
    HEADER_SIZE, LEGACY_ENTRY_FORMAT, LINEAR_SIGNATURE,
)
from .errors import BadMagicError, TruncatedError, UnsupportedVersionError

Header = namedtuple("Header", [
    "version", "newest_timestamp", "compression_level",
    "chunk_count", "compressed_length", "checksum",
])

# entry: struct layout of one index entry
# explicit_offsets: index stores offsets (otherwise implied by running sizes)
# checksummed: header checksum and per-chunk crc are verified
RegionFormat = namedtuple("RegionFormat", ["version", "entry", "explicit_offsets", "checksummed"])

_LEGACY_ENTRY = struct.Struct(LEGACY_ENTRY_FORMAT)
_ENTRY = struct.Struct(ENTRY_FORMAT)

FORMATS = {
    1: RegionFormat(1, _LEGACY_ENTRY, False, False),
    2: RegionFormat(2, _LEGACY_ENTRY, False, False),
    3: RegionFormat(3, _ENTRY, True, True),
}

_HEADER = struct.Struct(HEADER_FORMAT)
_FOOTER = struct.Struct(FOOTER_FORMAT)

FOOTER = _FOOTER.pack(LINEAR_SIGNATURE)


def get_format(version):
    try:
        return FORMATS[version]
    except KeyError:
        raise UnsupportedVersionError(version) from None


def index_size(version, count=CHUNK_COUNT):
    return get_format(version).entry.size * count


def decode_header(data):
    if len(data) < HEADER_SIZE:
        raise TruncatedError("header", HEADER_SIZE, len(data))
    (signature, version, newest_timestamp, compression_level,
     chunk_count, compressed_length, checksum) = _HEADER.unpack_from(data, 0)

    if signature != LINEAR_SIGNATURE:
        raise BadMagicError(signature)
    get_format(version)
    return Header(version, newest_timestamp, compression_level, chunk_count, compressed_length, checksum)


def encode_header(header):
    get_format(header.version)
    return _HEADER.pack(
        LINEAR_SIGNATURE,
        header.version,
        header.newest_timestamp,
        header.compression_level,
        header.chunk_count,
        header.compressed_length,
        header.checksum,
    )


def decode_footer(data):
    if len(data) < FOOTER_SIZE:
        raise TruncatedError("footer", FOOTER_SIZE, len(data))
    signature = _FOOTER.unpack_from(data, len(data) - FOOTER_SIZE)[0]
    if signature != LINEAR_SIGNATURE:
        raise BadMagicError(signature, where="footer")
    return signature
