"""Trip cache repository - trips, stops and resorts on top of a CacheStore.

A trip is written twice: each stop under its own ``stop_{id}`` key and the
whole trip under ``trip_{id}``. The two writes are not transactional and
are also made by different code paths (a single-stop sync refresh only
touches the stop key), so reads of a single trip merge both back together.
"""

import logging
from collections.abc import Mapping
from typing import Any

from tripsync.cache.keys import (
    MAP_REGION_PREFIX,
    RESORT_PREFIX,
    STOP_PREFIX,
    TRIP_PREFIX,
    id_from_key,
    resort_key,
    stop_key,
    trip_key,
)
from tripsync.cache.map_regions import MapRegionCache
from tripsync.codec.entity import (
    decode_resort,
    decode_stop,
    decode_trip,
    embedded_resorts,
    encode_resort,
    encode_stop,
    encode_trip,
)
from tripsync.db.repositories import CacheStore, dump_value, scan_prefix
from tripsync.errors import CacheWriteFailed, StorageFailure
from tripsync.models.resort import Resort
from tripsync.models.trip import Trip, TripStop

logger = logging.getLogger(__name__)


class TripCacheRepository:
    """Offline copy of trips and the resorts their stops reference.

    No method retries. Storage errors always reach the caller.
    """

    def __init__(
        self,
        store: CacheStore,
        map_regions: MapRegionCache | None = None,
        zoom_levels: list[int] | None = None,
    ) -> None:
        """Initialize repository.

        Args:
            store: Cache store backing every record
            map_regions: Region bookkeeping used by is_trip_cached
            zoom_levels: Zoom levels a fully cached trip needs
        """
        self._store = store
        self._map_regions = map_regions or MapRegionCache(store)
        self._zoom_levels = zoom_levels if zoom_levels is not None else [10, 12, 14]

    async def cache_trip(self, trip: Trip | Mapping[str, Any]) -> Trip:
        """Cache a trip and each of its stops.

        Accepts canonical trips or raw remote/legacy mappings. Resorts
        embedded in a remote result are cached along the way.

        Returns:
            The canonical trip that was written

        Raises:
            CacheWriteFailed: If any record could not be written
        """
        resorts = embedded_resorts(trip) if isinstance(trip, Mapping) else []
        canonical = decode_trip(trip)

        try:
            for stop in canonical.stops:
                await self._store.put(stop_key(stop.id), encode_stop(stop))
            await self._store.put(trip_key(canonical.id), encode_trip(canonical))
            for resort in resorts:
                await self._store.put(resort_key(resort.id), encode_resort(resort))
        except StorageFailure as e:
            logger.error(f"[trip_cache] failed to cache trip {canonical.id}: {e}")
            raise CacheWriteFailed(f"Failed to cache trip {canonical.id}") from e

        return canonical

    async def get_cached_trip(self, trip_id: str) -> Trip | None:
        """Get a trip with stop reconciliation applied.

        Stops cached individually under this trip id but missing from the
        snapshot are appended, then stops are sorted by stop_order.
        """
        raw = await self._store.get(trip_key(trip_id))
        if raw is None:
            return None

        trip = decode_trip(raw)
        known = trip.stop_ids()

        candidate_keys = [
            key
            for key in await scan_prefix(self._store, STOP_PREFIX)
            if id_from_key(key, STOP_PREFIX) not in known
        ]

        recovered: list[TripStop] = []
        if candidate_keys:
            for _, value in await self._store.multi_get(candidate_keys):
                if value is None:
                    continue
                stop = decode_stop(value)
                if stop.trip_id == trip_id:
                    recovered.append(stop)

        if recovered:
            logger.info(
                f"[trip_cache] reconciled {len(recovered)} stop(s) into trip {trip_id}"
            )

        stops = sorted([*trip.stops, *recovered], key=lambda s: s.stop_order)
        return trip.model_copy(update={"stops": stops})

    async def get_cached_trips(self, user_id: str | None = None) -> list[Trip]:
        """Get every cached trip, optionally only those owned by user_id.

        Bulk reads skip cross-trip stop reconciliation; only the
        stops-is-a-list guarantee applies.
        """
        keys = await scan_prefix(self._store, TRIP_PREFIX)
        if not keys:
            return []

        trips: list[Trip] = []
        for _, value in await self._store.multi_get(keys):
            if value is None:
                continue
            trip = decode_trip(value)
            if user_id is not None and trip.user_id != user_id:
                continue
            trips.append(trip)
        return trips

    async def cache_stop(self, stop: TripStop | Mapping[str, Any]) -> TripStop:
        """Cache a single stop record.

        Raises:
            CacheWriteFailed: If the record could not be written
        """
        canonical = decode_stop(stop)
        try:
            await self._store.put(stop_key(canonical.id), encode_stop(canonical))
        except StorageFailure as e:
            raise CacheWriteFailed(f"Failed to cache stop {canonical.id}") from e
        return canonical

    async def remove_stop(self, stop_id: str) -> None:
        """Remove a single stop record."""
        await self._store.remove(stop_key(stop_id))

    async def replace_stop(self, old_stop_id: str, stop: TripStop) -> None:
        """Swap a stop for its server-assigned replacement.

        The old record is removed and the owning trip's snapshot, when
        cached, holds the new stop in its place.
        """
        await self.remove_stop(old_stop_id)
        await self.cache_stop(stop)

        raw = await self._store.get(trip_key(stop.trip_id))
        if raw is None:
            return

        trip = decode_trip(raw)
        stops = [s for s in trip.stops if s.id not in (old_stop_id, stop.id)]
        stops.append(stop)
        stops.sort(key=lambda s: s.stop_order)
        await self.cache_trip(trip.model_copy(update={"stops": stops}))

    async def remove_trip(self, trip_id: str, keep_resorts: bool = False) -> None:
        """Remove a trip, all of its stops and the resorts they reference.

        Resorts are removed even if another trip also references them; they
        are re-fetched from the backend on demand. ``keep_resorts`` leaves
        them in place when the trip is only being re-keyed.
        """
        stops: dict[str, TripStop] = {}

        raw = await self._store.get(trip_key(trip_id))
        if raw is not None:
            for stop in decode_trip(raw).stops:
                stops[stop.id] = stop

        stop_keys = await scan_prefix(self._store, STOP_PREFIX)
        if stop_keys:
            for _, value in await self._store.multi_get(stop_keys):
                if value is None:
                    continue
                stop = decode_stop(value)
                if stop.trip_id == trip_id:
                    stops[stop.id] = stop

        resort_ids: set[str] = set()
        if not keep_resorts:
            resort_ids = {stop.resort_id for stop in stops.values() if stop.resort_id}

        # Snapshot first so a crash mid-way never shows a half-removed trip
        await self._store.remove(trip_key(trip_id))
        for stop_id in stops:
            await self._store.remove(stop_key(stop_id))
        for resort_id in resort_ids:
            await self._store.remove(resort_key(resort_id))

        logger.info(
            f"[trip_cache] removed trip {trip_id} "
            f"stops={len(stops)} resorts={len(resort_ids)}"
        )

    async def cache_resort(self, resort: Resort | Mapping[str, Any]) -> None:
        """Cache a resort.

        Raises:
            CacheWriteFailed: If the record could not be written
        """
        canonical = decode_resort(resort)
        try:
            await self._store.put(resort_key(canonical.id), encode_resort(canonical))
        except StorageFailure as e:
            raise CacheWriteFailed(f"Failed to cache resort {canonical.id}") from e

    async def cache_resorts(self, resorts: list[Resort]) -> None:
        """Cache several resorts."""
        for resort in resorts:
            await self.cache_resort(resort)

    async def get_cached_resort(self, resort_id: str) -> Resort | None:
        """Get a resort, None if not cached."""
        raw = await self._store.get(resort_key(resort_id))
        if raw is None:
            return None
        return decode_resort(raw)

    async def get_cached_resorts(self, trip_id: str) -> list[Resort]:
        """Get the cached resorts referenced by a trip's stops."""
        trip = await self.get_cached_trip(trip_id)
        if trip is None:
            return []

        resort_ids = list(dict.fromkeys(s.resort_id for s in trip.stops if s.resort_id))
        if not resort_ids:
            return []

        pairs = await self._store.multi_get([resort_key(rid) for rid in resort_ids])
        return [decode_resort(value) for _, value in pairs if value is not None]

    async def is_trip_cached(self, trip_id: str) -> bool:
        """Whether a trip, its resorts and its map regions are all available offline."""
        trip = await self.get_cached_trip(trip_id)
        if trip is None:
            return False

        for stop in trip.stops:
            if stop.resort_id and await self.get_cached_resort(stop.resort_id) is None:
                return False

        return await self._map_regions.has_regions(self._zoom_levels)

    async def get_cache_size(self) -> int:
        """Approximate bytes used by cached trips, stops, resorts and map regions."""
        total = 0
        for prefix in (TRIP_PREFIX, STOP_PREFIX, RESORT_PREFIX, MAP_REGION_PREFIX):
            keys = await scan_prefix(self._store, prefix)
            if not keys:
                continue
            for key, value in await self._store.multi_get(keys):
                if value is not None:
                    total += len(dump_value(key, value))
        return total
