from .constants import VERSION as __version__
from .errors import (
    BadMagicError, ChecksumMismatchError, ChunkChecksumMismatchError,
    DecompressionError, FormatError, IndexOutOfBoundsError, IntegrityError,
    MalformedIndexError, OverlappingEntriesError, RegionError, TruncatedError,
    UnsupportedVersionError,
)
from .reader import open_region, read_region
from .region import ChunkRecord, Region
from .storage import RegionStorage, load_config, parse_region_name, region_file_name
from .writer import dump_region, save_region

__all__ = [
    "__version__",
    "BadMagicError", "ChecksumMismatchError", "ChunkChecksumMismatchError",
    "DecompressionError", "FormatError", "IndexOutOfBoundsError", "IntegrityError",
    "MalformedIndexError", "OverlappingEntriesError", "RegionError", "TruncatedError",
    "UnsupportedVersionError",
    "open_region", "read_region", "dump_region", "save_region",
    "ChunkRecord", "Region", "RegionStorage",
    "load_config", "parse_region_name", "region_file_name",
]
