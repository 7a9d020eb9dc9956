"""Entity codec - one canonical shape for trips, stops and resorts.

Remote nested queries return a trip's stops under ``trip_stops`` and may
embed the resort record inside each stop. Older cache entries hold the
same data in camelCase. Everything crossing into or out of the cache goes
through these functions so only the canonical ``Trip.stops`` shape exists
past the boundary.
"""

import uuid
from collections.abc import Mapping
from typing import Any

from tripsync.config import get_settings
from tripsync.models.resort import Resort
from tripsync.models.trip import Trip, TripStop

ALTERNATE_STOPS_FIELD = "trip_stops"
EMBEDDED_RESORT_FIELD = "resort"


def canonicalize_trip_data(data: Mapping[str, Any]) -> dict[str, Any]:
    """Normalize a raw trip mapping to the canonical field layout.

    The nested-query list wins when both ``stops`` and ``trip_stops`` are
    present; the alternate field is always dropped.
    """
    canonical = dict(data)

    nested = canonical.pop(ALTERNATE_STOPS_FIELD, None)
    if nested is not None:
        canonical["stops"] = nested
    if canonical.get("stops") is None:
        canonical["stops"] = []

    trip_id = canonical.get("id")
    stops: list[Any] = []
    for raw_stop in canonical["stops"]:
        stop = dict(raw_stop) if isinstance(raw_stop, Mapping) else raw_stop
        if isinstance(stop, dict):
            stop.pop(EMBEDDED_RESORT_FIELD, None)
            if not stop.get("trip_id") and not stop.get("tripId") and trip_id:
                stop["trip_id"] = trip_id
        stops.append(stop)
    canonical["stops"] = stops

    return canonical


def embedded_resorts(data: Mapping[str, Any]) -> list[Resort]:
    """Resorts embedded inside a remote-shaped trip's stops."""
    raw_stops = data.get(ALTERNATE_STOPS_FIELD) or data.get("stops") or []

    resorts: list[Resort] = []
    for raw_stop in raw_stops:
        if not isinstance(raw_stop, Mapping):
            continue
        raw_resort = raw_stop.get(EMBEDDED_RESORT_FIELD)
        if isinstance(raw_resort, Mapping):
            resorts.append(Resort.model_validate(raw_resort))
    return resorts


def decode_trip(data: Trip | Mapping[str, Any]) -> Trip:
    """Build a canonical Trip. ``stops`` is always a list."""
    if isinstance(data, Trip):
        return data
    return Trip.model_validate(canonicalize_trip_data(data))


def decode_stop(data: TripStop | Mapping[str, Any]) -> TripStop:
    """Build a canonical TripStop."""
    if isinstance(data, TripStop):
        return data
    raw = dict(data)
    raw.pop(EMBEDDED_RESORT_FIELD, None)
    return TripStop.model_validate(raw)


def decode_resort(data: Resort | Mapping[str, Any]) -> Resort:
    """Build a canonical Resort."""
    if isinstance(data, Resort):
        return data
    return Resort.model_validate(data)


def encode_trip(trip: Trip) -> dict[str, Any]:
    """JSON-safe dict of a trip, stops included."""
    return trip.model_dump(mode="json")


def encode_stop(stop: TripStop) -> dict[str, Any]:
    """JSON-safe dict of a stop."""
    return stop.model_dump(mode="json")


def encode_resort(resort: Resort) -> dict[str, Any]:
    """JSON-safe dict of a resort."""
    return resort.model_dump(mode="json")


def new_provisional_trip_id() -> str:
    """Client-side id for a trip the server has not seen."""
    return f"{get_settings().provisional_trip_prefix}{uuid.uuid4()}"


def new_provisional_stop_id() -> str:
    """Client-side id for a stop the server has not seen."""
    return f"{get_settings().provisional_stop_prefix}{uuid.uuid4()}"


def is_provisional_trip_id(trip_id: str) -> bool:
    """Whether the id was generated locally."""
    return trip_id.startswith(get_settings().provisional_trip_prefix)


def is_provisional_stop_id(stop_id: str) -> bool:
    """Whether the id was generated locally."""
    return stop_id.startswith(get_settings().provisional_stop_prefix)
