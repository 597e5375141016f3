"""
linearregion/errors.py

Exception hierarchy for Linear region files.
"""


class RegionError(Exception):
    """Base class for all region file errors."""
    pass


class FormatError(RegionError):
    """The file does not follow the Linear layout."""
    pass


class TruncatedError(FormatError):
    def __init__(self, what, expected, actual):
        self.what = what
        self.expected = expected
        self.actual = actual
        super().__init__(f"Truncated {what}: expected {expected} bytes, got {actual}")


class BadMagicError(FormatError):
    def __init__(self, signature, where="header"):
        self.signature = signature
        self.where = where
        super().__init__(f"Invalid {where} signature: {signature}")


class UnsupportedVersionError(FormatError):
    def __init__(self, version):
        self.version = version
        super().__init__(f"Invalid version: {version}")


class MalformedIndexError(FormatError):
    pass


class IndexOutOfBoundsError(FormatError):
    """Raised when an index entry points outside the decompressed payload."""

    def __init__(self, slot, offset, length, limit):
        self.slot = slot
        self.offset = offset
        self.length = length
        self.limit = limit
        super().__init__(
            f"Chunk {slot} out of bounds: [{offset}, {offset + length}) exceeds {limit} bytes"
        )


class OverlappingEntriesError(FormatError):
    def __init__(self, slot, other):
        self.slot = slot
        self.other = other
        super().__init__(f"Chunk {slot} overlaps chunk {other}")


class IntegrityError(RegionError):
    """Raised when checksums fail."""

    def __init__(self, msg, expected=0, actual=0):
        self.expected = expected
        self.actual = actual
        super().__init__(msg)


class ChecksumMismatchError(IntegrityError):
    def __init__(self, expected, actual):
        super().__init__(f"Checksum mismatch: expected {expected:016x}, got {actual:016x}", expected, actual)


class ChunkChecksumMismatchError(IntegrityError):
    def __init__(self, slot, expected, actual):
        self.slot = slot
        super().__init__(f"Chunk {slot} checksum mismatch: expected {expected:08x}, got {actual:08x}", expected, actual)


class DecompressionError(RegionError):
    pass
