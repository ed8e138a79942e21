"""
Memoized asynchronous map tile fetching.

TileCache is the single owner of tile images for a session. Tiles are keyed by
their grid coordinates (zoom, x, y). Failed fetches are cached as well, so a
tile that 404s at the edge of the map is not requested again on every render.
Concurrent requests for the same tile share one in-flight fetch.
"""

import asyncio
import logging
from io import BytesIO
from typing import Awaitable, Callable, Dict, Optional, Tuple

import requests
from PIL import Image

from constants import TILE_FETCH_TIMEOUT, TILE_USER_AGENT

logger = logging.getLogger(__name__)

TileKey = Tuple[int, int, int]  # (zoom, x, y)
TileFetcher = Callable[[int, int, int], Awaitable[Optional[Image.Image]]]  # (x, y, zoom)

# Stored in place of an image when a fetch failed
_FETCH_FAILED = object()


class TileCache:
    """Keyed store of tile images with at most one fetch per key.

    Args:
        fetcher: Async callable ``fetcher(x, y, zoom)`` returning an image or None
        timeout: Seconds before an unanswered fetch is treated as failed
        source_id: Identity of the tile source; changing it clears the cache
    """

    def __init__(self, fetcher: TileFetcher, timeout: float = TILE_FETCH_TIMEOUT,
                 source_id: Optional[str] = None):
        self._fetcher = fetcher
        self._timeout = timeout
        self._source_id = source_id
        self._tiles: Dict[TileKey, object] = {}
        self._in_flight: Dict[TileKey, asyncio.Future] = {}
        self._generation = 0
        self.fetch_count = 0

    def __len__(self) -> int:
        return len(self._tiles)

    def __contains__(self, key: TileKey) -> bool:
        return key in self._tiles

    @property
    def source_id(self) -> Optional[str]:
        return self._source_id

    async def get(self, zoom: int, x: int, y: int) -> Optional[Image.Image]:
        """Return the tile image, fetching it on first use. None means unavailable."""
        key = (zoom, x, y)
        if key in self._tiles:
            return self._unwrap(self._tiles[key])

        pending = self._in_flight.get(key)
        if pending is not None and pending.cancelled():
            # Left behind by a cancelled render, possibly on a closed loop
            del self._in_flight[key]
            pending = None
        if pending is None:
            pending = asyncio.ensure_future(self._fetch(key, self._generation))
            self._in_flight[key] = pending

        # Shielded so one cancelled waiter does not cancel the shared fetch
        result = await asyncio.shield(pending)
        return self._unwrap(result)

    async def _fetch(self, key: TileKey, generation: int) -> object:
        zoom, x, y = key
        self.fetch_count += 1

        try:
            try:
                img = await asyncio.wait_for(self._fetcher(x, y, zoom), timeout=self._timeout)
            except asyncio.TimeoutError:
                logger.debug(f"Tile {zoom}/{x}/{y} timed out after {self._timeout}s")
                img = None
            except Exception as e:
                logger.debug(f"Failed to fetch tile {zoom}/{x}/{y}: {e}")
                img = None

            value = img if img is not None else _FETCH_FAILED

            # Results of fetches started before an invalidation are not stored
            if generation == self._generation:
                self._tiles[key] = value
            return value
        finally:
            # Cleared on cancellation too
            if generation == self._generation:
                self._in_flight.pop(key, None)

    @staticmethod
    def _unwrap(value: object) -> Optional[Image.Image]:
        return None if value is _FETCH_FAILED else value

    def invalidate(self) -> None:
        """Drop every cached tile and failure."""
        self._tiles.clear()
        self._in_flight.clear()
        self._generation += 1
        logger.debug("Tile cache invalidated")

    def set_source(self, source_id: str, fetcher: Optional[TileFetcher] = None) -> None:
        """Switch tile source; the cache is cleared when the source changes."""
        if fetcher is not None:
            self._fetcher = fetcher
        if source_id != self._source_id:
            self._source_id = source_id
            self.invalidate()


class HttpTileSource:
    """Tile fetcher that downloads tiles over HTTP with requests.

    The URL for a tile is produced by ``url_for(x, y, zoom)``, supplied by the
    caller. Blocking downloads run in a worker thread.
    """

    def __init__(self, url_for: Callable[[int, int, int], str], timeout: float = 5.0,
                 user_agent: str = TILE_USER_AGENT):
        self.url_for = url_for
        self.timeout = timeout
        self.headers = {"User-Agent": user_agent}

    async def __call__(self, x: int, y: int, zoom: int) -> Optional[Image.Image]:
        return await asyncio.to_thread(self.fetch, x, y, zoom)

    def fetch(self, x: int, y: int, zoom: int) -> Optional[Image.Image]:
        """Download and decode one tile. Returns None on HTTP or decode errors."""
        url = self.url_for(x, y, zoom)
        try:
            resp = requests.get(url, headers=self.headers, timeout=self.timeout)
            resp.raise_for_status()
            return Image.open(BytesIO(resp.content)).convert('RGBA')
        except (requests.RequestException, OSError) as e:
            logger.debug(f"Failed to fetch tile {zoom}/{x}/{y} from {url}: {e}")
            return None
