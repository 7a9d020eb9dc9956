"""Models package - re-exports for convenience."""

from tripsync.models.common import LatLng, Location, MapBounds, TripStatus
from tripsync.models.mutations import (
    DeleteMutation,
    DeleteTarget,
    MutationAction,
    MutationQueueItem,
    ReorderMutation,
    ReorderPayload,
    StopMutation,
    TripMutation,
)
from tripsync.models.resort import Resort
from tripsync.models.trip import BookingInfo, StopOrder, Trip, TripStop

__all__ = [
    # Common
    "LatLng",
    "Location",
    "MapBounds",
    "TripStatus",
    # Trip
    "Trip",
    "TripStop",
    "BookingInfo",
    "StopOrder",
    # Resort
    "Resort",
    # Mutations
    "MutationAction",
    "MutationQueueItem",
    "TripMutation",
    "StopMutation",
    "DeleteMutation",
    "DeleteTarget",
    "ReorderMutation",
    "ReorderPayload",
]
