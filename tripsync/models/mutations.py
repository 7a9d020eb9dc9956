"""Mutation queue items - one typed payload per action kind."""

from datetime import datetime, timezone
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from tripsync.models.trip import StopOrder, Trip, TripStop

MutationAction = Literal["trip", "stop", "delete", "reorder"]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class DeleteTarget(BaseModel):
    """Entity removed by a delete mutation."""

    entity: Literal["trip", "stop"]
    id: str
    trip_id: str | None = None


class ReorderPayload(BaseModel):
    """New stop ordering for one trip."""

    trip_id: str
    order: list[StopOrder]


class TripMutation(BaseModel):
    """Create or update a trip."""

    action: Literal["trip"] = "trip"
    payload: Trip
    timestamp: datetime = Field(default_factory=_now)


class StopMutation(BaseModel):
    """Create or update a stop."""

    action: Literal["stop"] = "stop"
    payload: TripStop
    timestamp: datetime = Field(default_factory=_now)


class DeleteMutation(BaseModel):
    """Delete a trip or a stop."""

    action: Literal["delete"] = "delete"
    payload: DeleteTarget
    timestamp: datetime = Field(default_factory=_now)


class ReorderMutation(BaseModel):
    """Apply new stop orders."""

    action: Literal["reorder"] = "reorder"
    payload: ReorderPayload
    timestamp: datetime = Field(default_factory=_now)


MutationQueueItem = Annotated[
    Union[TripMutation, StopMutation, DeleteMutation, ReorderMutation],
    Field(discriminator="action"),
]

# Decodes the persisted queue entry
queue_adapter: TypeAdapter[list[MutationQueueItem]] = TypeAdapter(list[MutationQueueItem])
