import hashlib
import struct
import zlib


def payload_checksum(payload):
    """First 8 bytes of BLAKE2b over the decompressed payload, as an unsigned int."""
    digest = hashlib.blake2b(payload, digest_size=8).digest()
    return struct.unpack(">Q", digest)[0]


def chunk_crc(timestamp, raw_bytes):
    crc = zlib.crc32(struct.pack(">q", timestamp))
    return zlib.crc32(raw_bytes, crc) & 0xFFFFFFFF
