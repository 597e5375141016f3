from collections import namedtuple

from .constants import CHUNK_COUNT, REGION_SIZE

ChunkRecord = namedtuple("ChunkRecord", ["raw_bytes", "timestamp"])

I64_MIN, I64_MAX = -(1 << 63), (1 << 63) - 1


def slot_index(x, z):
    for v in (x, z):
        if isinstance(v, bool) or not isinstance(v, int):
            raise TypeError(f"Chunk coordinates must be integers, got {v!r}")
        if not 0 <= v < REGION_SIZE:
            raise IndexError(f"Chunk coordinate {v} outside 0..{REGION_SIZE - 1}")
    return x + z * REGION_SIZE


def slot_coords(index):
    return index % REGION_SIZE, index // REGION_SIZE


class Region:
    """The 32x32 chunk grid of one region file, held in memory.

    Slots are either None or a ChunkRecord. get() hands out the record the
    region holds; the bytes are immutable so no copy is made.
    """

    def __init__(self, region_x=0, region_z=0):
        self.region_x = region_x
        self.region_z = region_z
        self._slots = [None] * CHUNK_COUNT
        # Slots skipped by a lenient read
        self.dropped = []

    def get(self, x, z):
        return self._slots[slot_index(x, z)]

    def set(self, x, z, raw_bytes, timestamp):
        idx = slot_index(x, z)
        if isinstance(timestamp, bool) or not isinstance(timestamp, int):
            raise TypeError(f"Timestamp must be an integer, got {timestamp!r}")
        if not I64_MIN <= timestamp <= I64_MAX:
            raise ValueError(f"Timestamp {timestamp} does not fit in 64 bits")
        if not isinstance(raw_bytes, bytes):
            # memoryview refuses int and str, which bytes() would accept
            raw_bytes = bytes(memoryview(raw_bytes))
        if not raw_bytes:
            # The index spells "absent" as length 0
            raise ValueError("Chunk payload is empty, use clear() for an absent slot")
        self._slots[idx] = ChunkRecord(raw_bytes, timestamp)

    def clear(self, x, z):
        self._slots[slot_index(x, z)] = None

    def iterate(self):
        for idx, record in enumerate(self._slots):
            x, z = slot_coords(idx)
            yield x, z, record

    def __iter__(self):
        return self.iterate()

    def chunks(self):
        for x, z, record in self.iterate():
            if record is not None:
                yield x, z, record

    def count_chunks(self):
        return sum(1 for record in self._slots if record is not None)

    @property
    def newest_timestamp(self):
        return max((r.timestamp for r in self._slots if r is not None), default=0)

    def chunk_coords(self, x, z):
        """World chunk coordinates of slot (x, z)."""
        slot_index(x, z)
        return REGION_SIZE * self.region_x + x, REGION_SIZE * self.region_z + z

    def render_grid(self):
        lines = []
        for z in range(REGION_SIZE):
            row = self._slots[z * REGION_SIZE:(z + 1) * REGION_SIZE]
            lines.append("".join("■" if r is not None else "□" for r in row))
        return "\n".join(lines)

    def __str__(self):
        return self.render_grid()

    def __repr__(self):
        return f"Region(region_x={self.region_x}, region_z={self.region_z}, chunks={self.count_chunks()})"

    def __eq__(self, other):
        if not isinstance(other, Region):
            return NotImplemented
        return self._slots == other._slots

    __hash__ = None
