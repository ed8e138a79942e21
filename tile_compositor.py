"""
Web-Mercator tile projection and strip compositing.

For each sample point the 3x3 block of tiles around it is stitched onto a
768x768 surface with the point exactly at the center. The surface is rotated
so that the direction of travel points right, and a vertical strip is cut
from its center. Laid side by side, these strips form a ribbon.
"""

import asyncio
import logging
import math
from typing import Dict, Optional, Tuple

from PIL import Image

from constants import COMPOSITE_RADIUS, COMPOSITE_SIZE, MAX_TILE_ZOOM, TILE_SIZE
from data_models import SamplePoint, TilePixel
from tile_cache import TileCache

logger = logging.getLogger(__name__)

# Neighbor offsets (dx, dy) in row-major order, center included
NEIGHBOR_OFFSETS = [
    (dx, dy)
    for dy in range(-COMPOSITE_RADIUS, COMPOSITE_RADIUS + 1)
    for dx in range(-COMPOSITE_RADIUS, COMPOSITE_RADIUS + 1)
]


def lat_lng_to_tile_pixel(lat: float, lng: float, zoom: int) -> TilePixel:
    """Convert lat/lng to the containing tile and the pixel offset inside it.

    Uses 256px tiles; the pixel offsets keep sub-pixel precision.
    """
    scale = 2 ** zoom
    world_x = (lng + 180.0) / 360.0 * TILE_SIZE * scale
    lat_rad = math.radians(lat)
    # asinh(tan(x)) == ln(tan(x) + sec(x))
    world_y = (1.0 - math.asinh(math.tan(lat_rad)) / math.pi) / 2.0 * TILE_SIZE * scale

    tile_x = int(math.floor(world_x / TILE_SIZE))
    tile_y = int(math.floor(world_y / TILE_SIZE))
    return TilePixel(
        tile_x=tile_x,
        tile_y=tile_y,
        pixel_x=world_x - tile_x * TILE_SIZE,
        pixel_y=world_y - tile_y * TILE_SIZE,
    )


def tile_zoom(map_zoom: int) -> int:
    """Tile zoom used for ribbons: one level deeper than the map, capped at 17."""
    return min(map_zoom + 1, MAX_TILE_ZOOM)


class TileCompositor:
    """Builds rotated imagery strips for sample points.

    Args:
        tile_cache: Source of tile images, shared across ribbons
    """

    def __init__(self, tile_cache: TileCache):
        self.tile_cache = tile_cache
        self._composite_size = COMPOSITE_SIZE

    def assemble(self, tiles: Dict[Tuple[int, int], Optional[Image.Image]],
                 pixel_x: float, pixel_y: float) -> Image.Image:
        """Stitch neighbor tiles so that (pixel_x, pixel_y) of the center tile
        lands at the center of the composite.

        Args:
            tiles: Tile image (or None when missing) per (dx, dy) offset
            pixel_x, pixel_y: Point position inside the center tile

        Returns:
            RGBA composite; missing tiles stay transparent
        """
        size = self._composite_size
        composite = Image.new('RGBA', (size, size), (0, 0, 0, 0))
        half = size / 2

        for (dx, dy), tile in tiles.items():
            if tile is None:
                continue
            px = int(round(half - pixel_x + dx * TILE_SIZE))
            py = int(round(half - pixel_y + dy * TILE_SIZE))
            composite.paste(tile.convert('RGBA'), (px, py))

        return composite

    def extract_strip(self, composite: Image.Image, heading: float,
                      width: int, height: int) -> Image.Image:
        """Rotate the composite so travel points right and cut a centered strip.

        The rotation is ``-heading + pi/2`` in screen orientation (clockwise
        positive, y down). PIL rotates counter-clockwise, hence the sign flip.
        """
        angle = math.degrees(heading) - 90.0
        rotated = composite.rotate(angle, resample=Image.Resampling.BILINEAR, expand=False)

        center_x = rotated.width / 2
        center_y = rotated.height / 2
        left = int(round(center_x - width / 2))
        top = int(round(center_y - height / 2))
        return rotated.crop((left, top, left + width, top + height))

    async def fetch_neighbors(self, tile: TilePixel, zoom: int) -> Dict[Tuple[int, int], Optional[Image.Image]]:
        """Fetch the 3x3 block of tiles around ``tile`` concurrently.

        Columns wrap around the antimeridian. Rows beyond the poles do not
        exist and are returned as missing without a fetch.
        """
        n = 2 ** zoom

        async def fetch_one(dx: int, dy: int) -> Optional[Image.Image]:
            y = tile.tile_y + dy
            if y < 0 or y >= n:
                return None
            x = (tile.tile_x + dx) % n
            return await self.tile_cache.get(zoom, x, y)

        images = await asyncio.gather(*(fetch_one(dx, dy) for dx, dy in NEIGHBOR_OFFSETS))
        return dict(zip(NEIGHBOR_OFFSETS, images))

    async def strip_for(self, point: SamplePoint, zoom: int,
                        width: int, height: int) -> Tuple[Image.Image, int]:
        """Build the imagery strip for one sample point.

        Returns:
            (strip image, number of neighbor tiles that were unavailable)
        """
        tile = lat_lng_to_tile_pixel(point.lat, point.lng, zoom)
        tiles = await self.fetch_neighbors(tile, zoom)
        missing = sum(1 for img in tiles.values() if img is None)

        composite = self.assemble(tiles, tile.pixel_x, tile.pixel_y)
        strip = self.extract_strip(composite, point.heading, width, height)
        return strip, missing
