"""Trip session controller - write local, then best-effort remote.

Every mutation is written to the cache first, then routed through the
single decision table in ``routing.route_for``. Entities that still carry
a provisional id cannot be addressed on the backend yet, so a REMOTE route
for them is downgraded to QUEUE: the queued create for the entity runs
first during the drain and the id is rewritten for everything after it.
"""

import asyncio
import logging
from collections.abc import Mapping
from datetime import date, datetime, timezone
from typing import Any

from tripsync.adapters.remote import RemoteBackend
from tripsync.cache.trip_cache import TripCacheRepository
from tripsync.codec.entity import (
    encode_stop,
    encode_trip,
    is_provisional_stop_id,
    is_provisional_trip_id,
    new_provisional_stop_id,
    new_provisional_trip_id,
)
from tripsync.errors import NotFoundError, RemoteFailure
from tripsync.models.common import Location, TripStatus
from tripsync.models.mutations import TripMutation
from tripsync.models.trip import BookingInfo, StopOrder, Trip, TripStop
from tripsync.session.context import ActorContext
from tripsync.session.routing import WriteRoute, route_for
from tripsync.sync.connectivity import ConnectivityGate
from tripsync.sync.processor import SyncProcessor, SyncResult
from tripsync.sync.queue import MutationQueue

logger = logging.getLogger(__name__)

# Fields callers may not change through update_trip / update_stop
TRIP_FIXED_FIELDS = {"id", "user_id", "stops", "created_at", "updated_at"}
STOP_FIXED_FIELDS = {"id", "trip_id"}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _check_fields(changes: Mapping[str, Any], allowed: set[str], entity: str) -> None:
    unknown = set(changes) - allowed
    if unknown:
        raise ValueError(f"Cannot change {entity} field(s): {', '.join(sorted(unknown))}")


class TripSessionController:
    """Trip and stop mutations for one actor on one device."""

    def __init__(
        self,
        repository: TripCacheRepository,
        queue: MutationQueue,
        gate: ConnectivityGate,
        processor: SyncProcessor,
        remote: RemoteBackend,
        actor: ActorContext,
    ) -> None:
        self._repository = repository
        self._queue = queue
        self._gate = gate
        self._processor = processor
        self._remote = remote
        self._actor = actor
        self._sync_in_flight = False
        self._sync_tasks: set[asyncio.Task[SyncResult]] = set()

    @property
    def actor(self) -> ActorContext:
        return self._actor

    def _route(self, *ids: str) -> WriteRoute:
        """Route for a mutation touching ids, sampled at call time."""
        route = route_for(self._gate.is_online(), self._actor)
        if route == WriteRoute.REMOTE and any(
            is_provisional_trip_id(i) or is_provisional_stop_id(i) for i in ids
        ):
            return WriteRoute.QUEUE
        return route

    async def _require_trip(self, trip_id: str) -> Trip:
        trip = await self._repository.get_cached_trip(trip_id)
        if trip is None:
            raise NotFoundError("trip", trip_id)
        return trip

    async def _queue_missing_create(self, trip: Trip) -> None:
        """Queue a create for a provisional trip that has none queued.

        A failed online create is not queued, so mutations queued later on
        the same trip would otherwise wait for a create that never runs.
        """
        if not is_provisional_trip_id(trip.id):
            return
        for item in await self._queue.peek_all():
            if isinstance(item, TripMutation) and item.payload.id == trip.id:
                return
        await self._queue.enqueue_trip(trip)
        logger.info(f"[session] queued missing create for trip {trip.id}")

    # Reads

    async def load_trips(self) -> list[Trip]:
        """Cached trips owned by the actor."""
        return await self._repository.get_cached_trips(user_id=self._actor.user_id)

    async def get_trip(self, trip_id: str) -> Trip | None:
        """Get a trip, refreshed from the backend when possible.

        Falls back to the cached copy when the backend cannot be reached.
        """
        if self._route(trip_id) == WriteRoute.REMOTE:
            try:
                trip = await self._remote.get_trip_by_id(trip_id)
            except RemoteFailure as e:
                logger.warning(f"[session] get_trip {trip_id} using cache: {e}")
            else:
                await self._repository.cache_trip(trip)

        return await self._repository.get_cached_trip(trip_id)

    # Trip mutations

    async def create_trip(
        self,
        name: str,
        *,
        start_location: Location | None = None,
        end_location: Location | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        status: TripStatus = TripStatus.draft,
    ) -> Trip:
        """Create a trip.

        Raises:
            RemoteFailure: Online registered write failed; the local
                provisional trip is kept
        """
        now = _now()
        trip = Trip(
            id=new_provisional_trip_id(),
            user_id=self._actor.user_id,
            name=name,
            start_location=start_location,
            end_location=end_location,
            start_date=start_date,
            end_date=end_date,
            status=status,
            created_at=now,
            updated_at=now,
            stops=[],
        )
        await self._repository.cache_trip(trip)

        route = self._route()
        if route == WriteRoute.REMOTE:
            created = await self._remote.create_trip(encode_trip(trip))
            await self._repository.remove_trip(trip.id, keep_resorts=True)
            return await self._repository.cache_trip(created)
        if route == WriteRoute.QUEUE:
            await self._queue.enqueue_trip(trip)
        return trip

    async def update_trip(self, trip_id: str, changes: Mapping[str, Any]) -> Trip:
        """Apply changes to a trip.

        Raises:
            NotFoundError: Trip is not cached
            ValueError: Changes touch fixed or unknown fields
            RemoteFailure: Online registered write failed; local write kept
        """
        _check_fields(changes, set(Trip.model_fields) - TRIP_FIXED_FIELDS, "trip")
        existing = await self._require_trip(trip_id)

        updated = Trip.model_validate(
            {**existing.model_dump(), **changes, "updated_at": _now()}
        )
        await self._repository.cache_trip(updated)

        route = self._route(trip_id)
        if route == WriteRoute.REMOTE:
            encoded = encode_trip(updated)
            partial = {key: encoded[key] for key in changes}
            remote_trip = await self._remote.update_trip(trip_id, partial)
            return await self._repository.cache_trip(remote_trip)
        if route == WriteRoute.QUEUE:
            await self._queue.enqueue_trip(updated)
        return updated

    async def delete_trip(self, trip_id: str) -> None:
        """Delete a trip locally and, depending on route, remotely.

        Raises:
            NotFoundError: Trip is not cached
            RemoteFailure: Online registered delete failed; local delete kept
        """
        await self._require_trip(trip_id)
        await self._repository.remove_trip(trip_id)

        route = self._route(trip_id)
        if route == WriteRoute.REMOTE:
            await self._remote.delete_trip(trip_id)
        elif route == WriteRoute.QUEUE:
            await self._queue.enqueue_delete("trip", trip_id)

    # Stop mutations

    async def add_stop(
        self,
        trip_id: str,
        *,
        check_in: date,
        check_out: date,
        resort_id: str | None = None,
        stop_order: int | None = None,
        notes: str = "",
        booking_info: BookingInfo | None = None,
    ) -> TripStop:
        """Add a stop to a trip.

        Without stop_order the stop goes last.

        Raises:
            NotFoundError: Trip is not cached
            ValueError: stop_order already used in this trip
            RemoteFailure: Online registered write failed; local stop kept
        """
        trip = await self._require_trip(trip_id)

        used = {stop.stop_order for stop in trip.stops}
        if stop_order is None:
            stop_order = max(used, default=0) + 1
        elif stop_order in used:
            raise ValueError(f"stop_order {stop_order} already used in trip {trip_id}")

        stop = TripStop(
            id=new_provisional_stop_id(),
            trip_id=trip_id,
            resort_id=resort_id,
            stop_order=stop_order,
            check_in=check_in,
            check_out=check_out,
            notes=notes,
            booking_info=booking_info,
        )
        await self._repository.cache_trip(
            trip.model_copy(update={"stops": [*trip.stops, stop], "updated_at": _now()})
        )

        route = self._route(trip_id)
        if route == WriteRoute.REMOTE:
            created = await self._remote.add_trip_stop(trip_id, encode_stop(stop))
            await self._repository.replace_stop(stop.id, created)
            return created
        if route == WriteRoute.QUEUE:
            await self._queue_missing_create(trip)
            await self._queue.enqueue_stop(stop)
        return stop

    async def update_stop(
        self, trip_id: str, stop_id: str, changes: Mapping[str, Any]
    ) -> TripStop:
        """Apply changes to a stop.

        Raises:
            NotFoundError: Trip or stop is not cached
            ValueError: Changes touch fixed fields or reuse a stop_order
            RemoteFailure: Online registered write failed; local write kept
        """
        _check_fields(changes, set(TripStop.model_fields) - STOP_FIXED_FIELDS, "stop")
        trip = await self._require_trip(trip_id)
        existing = trip.find_stop(stop_id)
        if existing is None:
            raise NotFoundError("stop", stop_id)

        if "stop_order" in changes and any(
            s.stop_order == changes["stop_order"] for s in trip.stops if s.id != stop_id
        ):
            raise ValueError(f"stop_order {changes['stop_order']} already used in trip {trip_id}")

        updated = TripStop.model_validate({**existing.model_dump(), **changes})
        stops = sorted(
            [updated if s.id == stop_id else s for s in trip.stops], key=lambda s: s.stop_order
        )
        await self._repository.cache_trip(
            trip.model_copy(update={"stops": stops, "updated_at": _now()})
        )

        route = self._route(trip_id, stop_id)
        if route == WriteRoute.REMOTE:
            encoded = encode_stop(updated)
            remote_stop = await self._remote.update_trip_stop(
                stop_id, {key: encoded[key] for key in changes}
            )
            await self._repository.replace_stop(stop_id, remote_stop)
            return remote_stop
        if route == WriteRoute.QUEUE:
            await self._queue_missing_create(trip)
            await self._queue.enqueue_stop(updated)
        return updated

    async def delete_stop(self, trip_id: str, stop_id: str) -> None:
        """Delete a stop.

        Raises:
            NotFoundError: Trip or stop is not cached
            RemoteFailure: Online registered delete failed; local delete kept
        """
        trip = await self._require_trip(trip_id)
        if trip.find_stop(stop_id) is None:
            raise NotFoundError("stop", stop_id)

        # Individual record first, otherwise reconciliation would bring it back
        await self._repository.remove_stop(stop_id)
        await self._repository.cache_trip(
            trip.model_copy(
                update={
                    "stops": [s for s in trip.stops if s.id != stop_id],
                    "updated_at": _now(),
                }
            )
        )

        route = self._route(trip_id, stop_id)
        if route == WriteRoute.REMOTE:
            await self._remote.delete_trip_stop(stop_id)
        elif route == WriteRoute.QUEUE:
            await self._queue.enqueue_delete("stop", stop_id, trip_id=trip_id)

    async def reorder_stops(self, trip_id: str, order: list[StopOrder]) -> Trip:
        """Give stops new positions.

        Raises:
            NotFoundError: Trip or one of the stops is not cached
            ValueError: The resulting orders are not unique
            RemoteFailure: Online registered write failed; local order kept
        """
        trip = await self._require_trip(trip_id)
        new_orders = {entry.id: entry.stop_order for entry in order}

        for stop_id in new_orders:
            if trip.find_stop(stop_id) is None:
                raise NotFoundError("stop", stop_id)

        stops = [
            s.model_copy(update={"stop_order": new_orders[s.id]}) if s.id in new_orders else s
            for s in trip.stops
        ]
        if len({s.stop_order for s in stops}) != len(stops):
            raise ValueError(f"Reorder of trip {trip_id} produces duplicate stop orders")

        stops.sort(key=lambda s: s.stop_order)
        reordered = await self._repository.cache_trip(
            trip.model_copy(update={"stops": stops, "updated_at": _now()})
        )

        route = self._route(trip_id, *new_orders)
        if route == WriteRoute.REMOTE:
            for entry in order:
                await self._remote.update_trip_stop(entry.id, {"stop_order": entry.stop_order})
            return await self._repository.cache_trip(await self._remote.get_trip_by_id(trip_id))
        if route == WriteRoute.QUEUE:
            await self._queue_missing_create(trip)
            await self._queue.enqueue_reorder(trip_id, order)
        return reordered

    # Sync

    async def sync_offline_changes(self) -> SyncResult:
        """Drain the queue unless a drain is already running.

        Guests never sync.
        """
        if self._actor.is_guest:
            return SyncResult()
        if self._sync_in_flight:
            logger.info("[session] drain already in flight, skipping")
            return SyncResult()

        self._sync_in_flight = True
        try:
            return await self._processor.process_queue(self._remote)
        finally:
            self._sync_in_flight = False

    def enable_auto_sync(self) -> None:
        """Drain the queue whenever the gate reports a reconnect."""
        self._gate.add_reconnect_listener(self._on_reconnect)

    def _on_reconnect(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("[session] reconnect outside an event loop, drain not scheduled")
            return

        task = loop.create_task(self.sync_offline_changes())
        self._sync_tasks.add(task)
        task.add_done_callback(self._sync_tasks.discard)

    async def wait_for_sync(self) -> None:
        """Wait for drains scheduled by reconnects.

        For callers that must not release shared resources while a drain is
        still running; ``OfflineEngine.dispose`` awaits this for every
        session it created.
        """
        if self._sync_tasks:
            await asyncio.gather(*self._sync_tasks)
