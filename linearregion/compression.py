import logging
import zstandard as zstd

from .constants import CHUNK_COUNT, MAX_CHUNK_SIZE
from .errors import DecompressionError

logger = logging.getLogger("LinearRegion.compression")

MAX_OUTPUT_SIZE = CHUNK_COUNT * MAX_CHUNK_SIZE + CHUNK_COUNT * 20
READ_SIZE = 1 << 20


def check_level(level):
    # O header guarda o nível num i8
    if isinstance(level, bool) or not isinstance(level, int):
        raise ValueError(f"Compression level must be an integer, got {level!r}")
    if not -128 <= level <= zstd.MAX_COMPRESSION_LEVEL:
        raise ValueError(f"Compression level {level} outside -128..{zstd.MAX_COMPRESSION_LEVEL}")
    return level


def compress(payload, level):
    cctx = zstd.ZstdCompressor(level=check_level(level))
    return cctx.compress(payload)


def decompress(blob, max_output_size=MAX_OUTPUT_SIZE):
    """Decompress one whole zstd frame, refusing output larger than max_output_size.

    The frame is read in pieces, so memory follows the real output size and
    not the declared content size (which streaming writers leave out).
    """
    dctx = zstd.ZstdDecompressor()
    out = bytearray()
    try:
        params = zstd.get_frame_parameters(blob)
        expected = None if params.content_size == zstd.CONTENTSIZE_UNKNOWN else params.content_size
        if expected is not None and expected > max_output_size:
            raise DecompressionError(f"Decompressed payload exceeds {max_output_size} bytes")

        with dctx.stream_reader(blob) as reader:
            while True:
                piece = reader.read(READ_SIZE)
                if not piece:
                    break
                out += piece
                if len(out) > max_output_size:
                    raise DecompressionError(f"Decompressed payload exceeds {max_output_size} bytes")
    except zstd.ZstdError as e:
        logger.debug(f"zstd failure: {e}")
        raise DecompressionError(f"Corrupt compressed stream: {e}") from e

    if expected is not None and len(out) != expected:
        raise DecompressionError(f"Truncated compressed stream: got {len(out)} of {expected} bytes")
    return bytes(out)
