"""Map region bookkeeping for offline use.

Only the requested bounds per zoom level are recorded. No tile imagery is
fetched or stored.
"""

import logging
import math

from tripsync.cache.keys import MAP_REGION_PREFIX, map_region_key
from tripsync.db.repositories import CacheStore, scan_prefix
from tripsync.models.common import MapBounds

logger = logging.getLogger(__name__)


def estimate_tile_count(bounds: MapBounds, zoom: int) -> int:
    """Approximate number of slippy-map tiles covering bounds at zoom."""
    span_lng = abs(bounds.northeast.lng - bounds.southwest.lng)
    span_lat = abs(bounds.northeast.lat - bounds.southwest.lat)
    tiles_x = math.ceil(span_lng * (2**zoom) / 360)
    tiles_y = math.ceil(span_lat * (2**zoom) / 180)
    return tiles_x * tiles_y


class MapRegionCache:
    """Records which map regions were requested at which zoom levels."""

    def __init__(self, store: CacheStore) -> None:
        self._store = store

    async def record_region(self, bounds: MapBounds, zoom_levels: list[int]) -> int:
        """Record bounds for each zoom level.

        Args:
            bounds: Region to make available offline
            zoom_levels: Zoom levels to record

        Returns:
            Estimated tile count across all zoom levels
        """
        tile_count = 0
        for zoom in zoom_levels:
            tile_count += estimate_tile_count(bounds, zoom)
            await self._store.put(map_region_key(zoom), bounds.model_dump(mode="json"))

        logger.info(f"[map_regions] recorded zooms={zoom_levels} tiles~{tile_count}")
        return tile_count

    async def get_region(self, zoom: int) -> MapBounds | None:
        """Bounds recorded for a zoom level, None if never requested."""
        raw = await self._store.get(map_region_key(zoom))
        if raw is None:
            return None
        return MapBounds.model_validate(raw)

    async def has_regions(self, zoom_levels: list[int]) -> bool:
        """Whether every zoom level has a recorded region."""
        for zoom in zoom_levels:
            if await self._store.get(map_region_key(zoom)) is None:
                return False
        return True

    async def clear_regions(self) -> int:
        """Forget every recorded region. Returns the number removed."""
        keys = await scan_prefix(self._store, MAP_REGION_PREFIX)
        for key in keys:
            await self._store.remove(key)
        return len(keys)
