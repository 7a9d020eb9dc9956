"""Sync processor - drains the mutation queue against the remote backend.

One drain walks the queue in enqueue order and applies every item
independently: a failing item is logged and counted, never allowed to stop
the rest. Afterwards the queue is either cleared (no failures) or cut down
to the items from the first failure onward. Items after that point that did
succeed are sent again on the next drain, so delivery is at-least-once.
Provisional ids resolved during the drain are written into the retained
items, which turns a repeated create into an update of the server record.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from tripsync.adapters.remote import RemoteBackend
from tripsync.cache.trip_cache import TripCacheRepository
from tripsync.codec.entity import (
    encode_stop,
    encode_trip,
    is_provisional_stop_id,
    is_provisional_trip_id,
)
from tripsync.errors import RemoteFailure
from tripsync.models.mutations import (
    DeleteMutation,
    MutationQueueItem,
    ReorderMutation,
    StopMutation,
    TripMutation,
)
from tripsync.models.trip import StopOrder, Trip, TripStop
from tripsync.sync.connectivity import ConnectivityGate
from tripsync.sync.queue import MutationQueue
from tripsync.utils.logging import SyncLogger
from tripsync.utils.metrics import SyncMetrics

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Counts from one drain."""

    processed: int = 0
    errors: int = 0


@dataclass
class IdMap:
    """Provisional -> server ids learned during a drain."""

    trips: dict[str, str] = field(default_factory=dict)
    stops: dict[str, str] = field(default_factory=dict)

    def trip(self, trip_id: str) -> str:
        return self.trips.get(trip_id, trip_id)

    def stop(self, stop_id: str) -> str:
        return self.stops.get(stop_id, stop_id)

    def remap_stop(self, stop: TripStop) -> TripStop:
        return stop.model_copy(update={"id": self.stop(stop.id), "trip_id": self.trip(stop.trip_id)})

    def remap_trip(self, trip: Trip) -> Trip:
        return trip.model_copy(
            update={
                "id": self.trip(trip.id),
                "stops": [self.remap_stop(stop) for stop in trip.stops],
            }
        )

    def remap_item(self, item: MutationQueueItem) -> MutationQueueItem:
        """Copy of item with every known provisional id replaced."""
        if isinstance(item, TripMutation):
            return item.model_copy(update={"payload": self.remap_trip(item.payload)})
        if isinstance(item, StopMutation):
            return item.model_copy(update={"payload": self.remap_stop(item.payload)})
        if isinstance(item, DeleteMutation):
            target = item.payload
            new_id = self.trip(target.id) if target.entity == "trip" else self.stop(target.id)
            new_trip_id = self.trip(target.trip_id) if target.trip_id else None
            return item.model_copy(
                update={"payload": target.model_copy(update={"id": new_id, "trip_id": new_trip_id})}
            )
        if isinstance(item, ReorderMutation):
            payload = item.payload
            order = [
                StopOrder(id=self.stop(entry.id), stop_order=entry.stop_order)
                for entry in payload.order
            ]
            return item.model_copy(
                update={
                    "payload": payload.model_copy(
                        update={"trip_id": self.trip(payload.trip_id), "order": order}
                    )
                }
            )
        raise TypeError(f"Unhandled mutation type: {type(item).__name__}")


class SyncProcessor:
    """Applies queued mutations to the backend and refreshes the cache."""

    def __init__(
        self,
        queue: MutationQueue,
        repository: TripCacheRepository,
        gate: ConnectivityGate,
        metrics: SyncMetrics | None = None,
        sync_logger: SyncLogger | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """Initialize processor.

        Args:
            queue: Queue to drain
            repository: Cache refreshed with server data after each success
            gate: Connectivity gate checked before any network call
            metrics: Metrics recorder (optional, defaults to no-op)
            sync_logger: Structured logger (optional, defaults to no-op)
            clock: Injectable monotonic clock (default: time.perf_counter)
        """
        self._queue = queue
        self._repository = repository
        self._gate = gate
        self._metrics = metrics or SyncMetrics()
        self._logger = sync_logger or SyncLogger()
        self._clock = clock or time.perf_counter

    async def process_queue(self, remote: RemoteBackend) -> SyncResult:
        """Drain the queue once.

        Returns:
            SyncResult with processed and error counts; (0, 0) when offline
            or when there is nothing to send

        Raises:
            StorageFailure: If the queue or the cache cannot be read or written
        """
        if not self._gate.is_online():
            logger.info("[sync] offline, skipping drain")
            return SyncResult()

        items = await self._queue.peek_all()
        if not items:
            return SyncResult()

        drain_start = self._clock()
        ids = IdMap()
        result = SyncResult()
        first_failure: int | None = None

        for index, queued in enumerate(items):
            item = ids.remap_item(queued)
            item_start = self._clock()
            try:
                outcome = await self._apply(item, remote, ids)
            except (RemoteFailure, ValueError) as e:
                result.errors += 1
                if first_failure is None:
                    first_failure = index
                latency_ms = (self._clock() - item_start) * 1000
                logger.warning(f"[sync] item {index} ({item.action}) failed: {e}")
                self._logger.log_item(index, item.action, "error", latency_ms, str(e))
                self._metrics.inc_item(item.action, "error")
                continue

            result.processed += 1
            latency_ms = (self._clock() - item_start) * 1000
            self._logger.log_item(index, item.action, outcome, latency_ms)
            self._metrics.inc_item(item.action, outcome)

        if first_failure is None:
            await self._queue.clear()
            retained = 0
        else:
            tail = [ids.remap_item(item) for item in items[first_failure:]]
            await self._queue.replace(tail)
            retained = len(tail)

        drain_ms = (self._clock() - drain_start) * 1000
        self._logger.log_drain(result.processed, result.errors, retained, drain_ms)
        self._metrics.record_drain(drain_ms, retained)
        return result

    async def _apply(self, item: MutationQueueItem, remote: RemoteBackend, ids: IdMap) -> str:
        """Dispatch one item by action kind. Returns the outcome label."""
        if isinstance(item, TripMutation):
            return await self._apply_trip(item.payload, remote, ids)
        if isinstance(item, StopMutation):
            return await self._apply_stop(item.payload, remote, ids)
        if isinstance(item, DeleteMutation):
            return await self._apply_delete(item, remote)
        if isinstance(item, ReorderMutation):
            return await self._apply_reorder(item, remote)
        raise TypeError(f"Unhandled mutation type: {type(item).__name__}")

    async def _apply_trip(self, trip: Trip, remote: RemoteBackend, ids: IdMap) -> str:
        if not is_provisional_trip_id(trip.id):
            updated = await remote.update_trip(trip.id, encode_trip(trip))
            await self._repository.cache_trip(updated)
            return "success"

        created = await remote.create_trip(encode_trip(trip))
        ids.trips[trip.id] = created.id

        # Stops sent with the trip come back with server ids; match them by order
        by_order = {stop.stop_order: stop.id for stop in created.stops}
        for stop in trip.stops:
            if is_provisional_stop_id(stop.id) and stop.stop_order in by_order:
                ids.stops[stop.id] = by_order[stop.stop_order]

        # Local stops without a server match still have their own items queued
        cached = await self._repository.get_cached_trip(trip.id)
        pending = [
            stop.model_copy(update={"trip_id": created.id})
            for stop in (cached.stops if cached else [])
            if is_provisional_stop_id(stop.id) and stop.id not in ids.stops
        ]

        await self._repository.remove_trip(trip.id, keep_resorts=True)
        await self._repository.cache_trip(
            created.model_copy(
                update={"stops": sorted([*created.stops, *pending], key=lambda s: s.stop_order)}
            )
        )
        logger.info(
            f"[sync] trip {trip.id} created as {created.id}, {len(pending)} local stop(s) kept"
        )
        return "success"

    async def _apply_stop(self, stop: TripStop, remote: RemoteBackend, ids: IdMap) -> str:
        if is_provisional_trip_id(stop.trip_id):
            raise RemoteFailure(f"Owning trip {stop.trip_id} has not been synced yet")

        if is_provisional_stop_id(stop.id):
            created = await remote.add_trip_stop(stop.trip_id, encode_stop(stop))
            ids.stops[stop.id] = created.id
            await self._repository.replace_stop(stop.id, created)
            logger.info(f"[sync] stop {stop.id} created as {created.id}")
        else:
            partial = encode_stop(stop)
            partial.pop("id", None)
            partial.pop("trip_id", None)
            await remote.update_trip_stop(stop.id, partial)

        await self._refresh_trip(remote, stop.trip_id)
        return "success"

    async def _apply_delete(self, item: DeleteMutation, remote: RemoteBackend) -> str:
        target = item.payload

        if target.entity == "trip":
            if is_provisional_trip_id(target.id):
                return "skipped"
            await remote.delete_trip(target.id)
            await self._repository.remove_trip(target.id)
            return "success"

        if is_provisional_stop_id(target.id):
            return "skipped"
        await remote.delete_trip_stop(target.id)
        # Server-side records for this stop may have been cached earlier in the drain
        await self._repository.remove_stop(target.id)
        if target.trip_id and not is_provisional_trip_id(target.trip_id):
            await self._refresh_trip(remote, target.trip_id)
        return "success"

    async def _apply_reorder(self, item: ReorderMutation, remote: RemoteBackend) -> str:
        payload = item.payload
        if is_provisional_trip_id(payload.trip_id):
            raise RemoteFailure(f"Owning trip {payload.trip_id} has not been synced yet")

        for entry in payload.order:
            if is_provisional_stop_id(entry.id):
                logger.warning(f"[sync] reorder skips unsynced stop {entry.id}")
                continue
            await remote.update_trip_stop(entry.id, {"stop_order": entry.stop_order})

        await self._refresh_trip(remote, payload.trip_id)
        return "success"

    async def _refresh_trip(self, remote: RemoteBackend, trip_id: str) -> None:
        """Re-cache a trip from the backend. Fetch failures only log."""
        try:
            trip = await remote.get_trip_by_id(trip_id)
        except RemoteFailure as e:
            logger.warning(f"[sync] refresh of trip {trip_id} failed: {e}")
            return
        await self._repository.cache_trip(trip)
