"""Tests for the mutation queue."""

import pytest

from tripsync.errors import StorageFailure
from tripsync.models import (
    DeleteMutation,
    ReorderMutation,
    StopMutation,
    StopOrder,
    TripMutation,
)
from tripsync.sync.queue import MutationQueue


class TestMutationQueue:
    """Ordering and persistence."""

    @pytest.mark.asyncio
    async def test_empty_queue(self, queue) -> None:
        assert await queue.peek_all() == []
        assert await queue.size() == 0

    @pytest.mark.asyncio
    async def test_enqueue_preserves_order(self, queue, make_trip, make_stop) -> None:
        trip = make_trip("offline-1")
        stop = make_stop("local-1", "offline-1")

        await queue.enqueue_trip(trip)
        await queue.enqueue_stop(stop)
        await queue.enqueue_reorder("offline-1", [StopOrder(id="local-1", stop_order=4)])
        await queue.enqueue_delete("stop", "local-1", trip_id="offline-1")

        items = await queue.peek_all()

        assert [type(item) for item in items] == [
            TripMutation,
            StopMutation,
            ReorderMutation,
            DeleteMutation,
        ]
        assert items[0].payload == trip
        assert items[1].payload == stop
        assert items[2].payload.order == [StopOrder(id="local-1", stop_order=4)]
        assert items[3].payload.trip_id == "offline-1"

    @pytest.mark.asyncio
    async def test_no_deduplication(self, queue, make_trip) -> None:
        trip = make_trip()

        await queue.enqueue_trip(trip)
        await queue.enqueue_trip(trip)

        assert await queue.size() == 2

    @pytest.mark.asyncio
    async def test_persisted_under_single_key(self, queue, store, make_trip) -> None:
        await queue.enqueue_trip(make_trip())
        await queue.enqueue_delete("trip", "trip-1")

        raw = await store.get("sync_queue")

        assert [entry["action"] for entry in raw] == ["trip", "delete"]
        assert raw[1]["payload"] == {"entity": "trip", "id": "trip-1", "trip_id": None}
        assert isinstance(raw[0]["timestamp"], str)

    @pytest.mark.asyncio
    async def test_survives_new_instance(self, store, make_trip) -> None:
        """A queue rebuilt over the same store sees earlier items."""
        await MutationQueue(store).enqueue_trip(make_trip())

        items = await MutationQueue(store).peek_all()

        assert len(items) == 1
        assert items[0].payload.id == "trip-1"

    @pytest.mark.asyncio
    async def test_custom_key(self, store, make_trip) -> None:
        queue = MutationQueue(store, key="outbox")
        await queue.enqueue_trip(make_trip())

        assert await store.all_keys() == {"outbox"}

    @pytest.mark.asyncio
    async def test_replace_and_clear(self, queue, make_trip) -> None:
        await queue.enqueue_trip(make_trip("a"))
        await queue.enqueue_trip(make_trip("b"))
        items = await queue.peek_all()

        await queue.replace(items[1:])
        assert [item.payload.id for item in await queue.peek_all()] == ["b"]

        await queue.clear()
        assert await queue.peek_all() == []

    @pytest.mark.asyncio
    async def test_corrupt_queue_raises_storage_failure(self, queue, store) -> None:
        await store.put("sync_queue", [{"action": "teleport", "payload": {}}])

        with pytest.raises(StorageFailure, match="corrupt"):
            await queue.peek_all()
