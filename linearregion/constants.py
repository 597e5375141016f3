VERSION = "1.0.0"

# Assinatura do formato Linear (header e footer)
LINEAR_SIGNATURE = -4323716122432332390
LINEAR_VERSION = 3
LINEAR_SUPPORTED = (1, 2, 3)
LINEAR_WRITABLE = (2, 3)

REGION_SIZE = 32
CHUNK_COUNT = REGION_SIZE * REGION_SIZE

HEADER_FORMAT = ">qbqbhiQ"
HEADER_SIZE = 32
FOOTER_FORMAT = ">q"
FOOTER_SIZE = 8

# size, timestamp
LEGACY_ENTRY_FORMAT = ">ii"
# offset, size, timestamp, crc32
ENTRY_FORMAT = ">IIqI"

DEFAULT_COMPRESSION_LEVEL = 6
MAX_CHUNK_SIZE = 4 * 1024 * 1024

REGION_SUFFIX = ".linear"
WIP_SUFFIX = ".wip"
CONFIG_FILE_NAME = "linearregion.json"
CONFIG_ENV = "LINEARREGION_CONFIG"
