"""Mutation queue - append-only log of writes waiting for the backend."""

import logging
from typing import Literal

from pydantic import ValidationError

from tripsync.db.repositories import CacheStore
from tripsync.errors import StorageFailure
from tripsync.models.mutations import (
    DeleteMutation,
    DeleteTarget,
    MutationQueueItem,
    ReorderMutation,
    ReorderPayload,
    StopMutation,
    TripMutation,
    queue_adapter,
)
from tripsync.models.trip import StopOrder, Trip, TripStop

logger = logging.getLogger(__name__)


class MutationQueue:
    """Ordered queue persisted as a single cache entry.

    Items are never reordered or deduplicated. Callers must not enqueue
    redundant operations.
    """

    def __init__(self, store: CacheStore, key: str = "sync_queue") -> None:
        self._store = store
        self._key = key

    async def peek_all(self) -> list[MutationQueueItem]:
        """All queued items in enqueue order.

        Raises:
            StorageFailure: If the persisted queue cannot be decoded
        """
        raw = await self._store.get(self._key)
        if raw is None:
            return []
        try:
            return queue_adapter.validate_python(raw)
        except ValidationError as e:
            raise StorageFailure(f"Persisted queue {self._key!r} is corrupt: {e}") from e

    async def size(self) -> int:
        """Number of queued items."""
        return len(await self.peek_all())

    async def enqueue(self, item: MutationQueueItem) -> None:
        """Append an item to the end of the queue."""
        items = await self.peek_all()
        items.append(item)
        await self.replace(items)
        logger.info(f"[queue] enqueued action={item.action} depth={len(items)}")

    async def enqueue_trip(self, trip: Trip) -> None:
        await self.enqueue(TripMutation(payload=trip))

    async def enqueue_stop(self, stop: TripStop) -> None:
        await self.enqueue(StopMutation(payload=stop))

    async def enqueue_delete(
        self, entity: Literal["trip", "stop"], entity_id: str, trip_id: str | None = None
    ) -> None:
        await self.enqueue(
            DeleteMutation(payload=DeleteTarget(entity=entity, id=entity_id, trip_id=trip_id))
        )

    async def enqueue_reorder(self, trip_id: str, order: list[StopOrder]) -> None:
        await self.enqueue(ReorderMutation(payload=ReorderPayload(trip_id=trip_id, order=order)))

    async def replace(self, items: list[MutationQueueItem]) -> None:
        """Overwrite the queue with items."""
        await self._store.put(self._key, queue_adapter.dump_python(items, mode="json"))

    async def clear(self) -> None:
        """Drop every queued item."""
        await self._store.remove(self._key)
