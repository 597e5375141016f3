import os
import logging
from PIL import Image

from .constants import REGION_SIZE

logger = logging.getLogger("LinearRegion.map")


class MapRenderer:
    # Cores padrão
    BACKGROUND = (20, 20, 25)
    EMPTY = (40, 40, 48)
    SMALL = (63, 118, 228)
    LARGE = (219, 211, 160)
    DROPPED = (200, 40, 40)

    def __init__(self, scale=8):
        if scale < 1:
            raise ValueError(f"Scale must be at least 1, got {scale}")
        self.scale = scale

    def _size_color(self, size, largest):
        # Interpolate between SMALL and LARGE by relative chunk size
        t = size / largest if largest else 0.0
        return tuple(int(a + (b - a) * t) for a, b in zip(self.SMALL, self.LARGE))

    def render(self, region):
        side = REGION_SIZE * self.scale
        img = Image.new('RGB', (side, side), color=self.BACKGROUND)
        largest = max((len(r.raw_bytes) for _, _, r in region.chunks()), default=0)
        dropped = set(region.dropped)

        for x, z, record in region.iterate():
            if record is not None:
                color = self._size_color(len(record.raw_bytes), largest)
            elif (x, z) in dropped:
                color = self.DROPPED
            else:
                color = self.EMPTY
            px, pz = x * self.scale, z * self.scale
            # 1px gutter between cells once they are big enough to see it
            gutter = 1 if self.scale >= 4 else 0
            img.paste(color, (px, pz, px + self.scale - gutter, pz + self.scale - gutter))
        return img

    def render_to_file(self, region, path):
        img = self.render(region)
        directory = os.path.dirname(os.path.abspath(os.fspath(path)))
        os.makedirs(directory, exist_ok=True)
        img.save(path, format="PNG")
        logger.info(f"Rendered region {region.region_x}.{region.region_z} to {path}")
        return path


def render_occupancy(region, path, scale=8):
    return MapRenderer(scale).render_to_file(region, path)
