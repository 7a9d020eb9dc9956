"""In-memory implementation of the remote backend.

Rows are stored the way the real backend stores them (flat trip rows,
stop rows keyed by trip_id) and trips are returned in the nested
``trip_stops`` shape so the entity codec is exercised end to end.
"""

import uuid
from collections import Counter
from datetime import date, datetime, timezone
from typing import Any

from tripsync.codec.entity import decode_stop, decode_trip
from tripsync.errors import RemoteFailure
from tripsync.models.trip import Trip, TripStop

TRIP_COLUMNS = {
    "user_id",
    "name",
    "start_location",
    "end_location",
    "start_date",
    "end_date",
    "status",
}
STOP_COLUMNS = {
    "trip_id",
    "resort_id",
    "stop_order",
    "check_in",
    "check_out",
    "notes",
    "booking_info",
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class InMemoryRemoteBackend:
    """In-memory implementation of RemoteBackend."""

    def __init__(self) -> None:
        self._trips: dict[str, dict[str, Any]] = {}
        self._stops: dict[str, dict[str, Any]] = {}
        self._failures: Counter[str] = Counter()
        self.calls: list[tuple[str, str]] = []

    def fail(self, operation: str, times: int = 1) -> None:
        """Make the next ``times`` calls of operation raise RemoteFailure."""
        self._failures[operation] += times

    def _record(self, operation: str, target: str) -> None:
        self.calls.append((operation, target))
        if self._failures[operation] > 0:
            self._failures[operation] -= 1
            raise RemoteFailure(f"{operation} unavailable", status_code=503)

    def _nested(self, trip_id: str) -> dict[str, Any]:
        stops = sorted(
            (row for row in self._stops.values() if row["trip_id"] == trip_id),
            key=lambda row: row["stop_order"],
        )
        return {**self._trips[trip_id], "trip_stops": [dict(row) for row in stops]}

    async def create_trip(self, data: dict[str, Any]) -> Trip:
        """Create a trip, then each carried stop."""
        self._record("create_trip", str(data.get("id", "")))

        if not data.get("user_id"):
            raise RemoteFailure("Missing required field: user_id", status_code=400)
        if not data.get("name"):
            raise RemoteFailure("Missing required field: name", status_code=400)

        trip_id = str(uuid.uuid4())
        now = _now_iso()
        row = {key: value for key, value in data.items() if key in TRIP_COLUMNS}
        row.setdefault("status", "draft")
        self._trips[trip_id] = {**row, "id": trip_id, "created_at": now, "updated_at": now}

        for stop in data.get("stops") or []:
            self._insert_stop(trip_id, stop)

        return decode_trip(self._nested(trip_id))

    async def update_trip(self, trip_id: str, partial: dict[str, Any]) -> Trip:
        """Update trip columns."""
        self._record("update_trip", trip_id)

        if trip_id not in self._trips:
            raise RemoteFailure(f"Trip {trip_id} not found", status_code=404)

        changes = {key: value for key, value in partial.items() if key in TRIP_COLUMNS}
        self._trips[trip_id].update(changes, updated_at=_now_iso())
        return decode_trip(self._nested(trip_id))

    async def delete_trip(self, trip_id: str) -> None:
        """Delete a trip and its stops. Unknown ids are a no-op."""
        self._record("delete_trip", trip_id)

        self._trips.pop(trip_id, None)
        for stop_id in [sid for sid, row in self._stops.items() if row["trip_id"] == trip_id]:
            del self._stops[stop_id]

    async def add_trip_stop(self, trip_id: str, data: dict[str, Any]) -> TripStop:
        """Insert a stop."""
        self._record("add_trip_stop", trip_id)

        if trip_id not in self._trips:
            raise RemoteFailure(f"Trip {trip_id} does not exist", status_code=409)

        return decode_stop(self._insert_stop(trip_id, data))

    async def update_trip_stop(self, stop_id: str, partial: dict[str, Any]) -> TripStop:
        """Update stop columns."""
        self._record("update_trip_stop", stop_id)

        if stop_id not in self._stops:
            raise RemoteFailure(f"Stop {stop_id} not found", status_code=404)

        changes = {
            key: value
            for key, value in partial.items()
            if key in STOP_COLUMNS and key != "trip_id"
        }
        self._stops[stop_id].update(changes)
        return decode_stop(self._stops[stop_id])

    async def delete_trip_stop(self, stop_id: str) -> None:
        """Delete a stop. Unknown ids are a no-op."""
        self._record("delete_trip_stop", stop_id)
        self._stops.pop(stop_id, None)

    async def get_trip_by_id(self, trip_id: str) -> Trip:
        """Get a trip with its stops."""
        self._record("get_trip_by_id", trip_id)

        if trip_id not in self._trips:
            raise RemoteFailure(f"Trip {trip_id} not found", status_code=404)
        return decode_trip(self._nested(trip_id))

    def _insert_stop(self, trip_id: str, data: dict[str, Any]) -> dict[str, Any]:
        today = date.today().isoformat()
        row = {key: value for key, value in data.items() if key in STOP_COLUMNS}
        row.update(trip_id=trip_id, id=str(uuid.uuid4()))
        row.setdefault("stop_order", 0)
        row.setdefault("check_in", today)
        row.setdefault("check_out", row["check_in"])
        row.setdefault("notes", "")
        self._stops[row["id"]] = row
        return dict(row)
