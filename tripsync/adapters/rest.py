"""REST adapter for a PostgREST-style backend (trips, trip_stops tables)."""

import logging
from typing import Any

import httpx

from tripsync.codec.entity import decode_stop, decode_trip
from tripsync.config import Settings
from tripsync.errors import RemoteFailure
from tripsync.models.trip import Trip, TripStop

logger = logging.getLogger(__name__)

# Nested select returning a trip with its stops under trip_stops
TRIP_WITH_STOPS = "*,trip_stops(*)"

# Columns the backend owns or that live in other tables
TRIP_READ_ONLY = ("id", "stops", "trip_stops", "created_at", "updated_at")
STOP_WRITABLE = ("resort_id", "stop_order", "check_in", "check_out", "notes", "booking_info")


class RestRemoteBackend:
    """RemoteBackend over HTTP.

    Every error, transport or HTTP status, surfaces as RemoteFailure.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        access_token: str | None = None,
        timeout_s: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize adapter.

        Args:
            base_url: Backend root URL (``/rest/v1`` is appended)
            api_key: Project API key
            access_token: Signed-in user's JWT, falls back to api_key
            timeout_s: Per-request timeout
            client: Optional httpx client (for testing with mocks)
        """
        self._rest_url = f"{base_url.rstrip('/')}/rest/v1"
        self._headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {access_token or api_key}",
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_s)

    @classmethod
    def from_settings(
        cls, settings: Settings, access_token: str | None = None
    ) -> "RestRemoteBackend":
        """Build an adapter from settings."""
        return cls(
            base_url=settings.remote_base_url,
            api_key=settings.remote_api_key,
            access_token=access_token,
            timeout_s=settings.remote_timeout_s,
        )

    async def aclose(self) -> None:
        """Close the underlying client if this adapter created it."""
        if self._owns_client:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        table: str,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self._rest_url}/{table}"
        try:
            response = await self._client.request(
                method, url, params=params, json=json, headers=self._headers
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning(f"[rest] {method} {table} failed status={status}")
            raise RemoteFailure(
                f"{method} {table} failed: {status} {e.response.text}", status_code=status
            ) from e
        except httpx.HTTPError as e:
            logger.warning(f"[rest] {method} {table} transport error: {e}")
            raise RemoteFailure(f"{method} {table} failed: {e}") from e

        if not response.content:
            return None
        return response.json()

    @staticmethod
    def _single(rows: Any, what: str) -> dict[str, Any]:
        if not rows:
            raise RemoteFailure(f"{what} not found", status_code=404)
        return rows[0]

    async def create_trip(self, data: dict[str, Any]) -> Trip:
        """Insert the trip row, then each carried stop."""
        row = {key: value for key, value in data.items() if key not in TRIP_READ_ONLY}
        created = self._single(
            await self._request("POST", "trips", params={"select": "*"}, json=row),
            "Created trip",
        )

        stops = data.get("stops") or []
        if not stops:
            return decode_trip(created)

        for stop in stops:
            await self.add_trip_stop(created["id"], stop)
        return await self.get_trip_by_id(created["id"])

    async def update_trip(self, trip_id: str, partial: dict[str, Any]) -> Trip:
        """Patch trip columns."""
        changes = {key: value for key, value in partial.items() if key not in TRIP_READ_ONLY}
        rows = await self._request(
            "PATCH",
            "trips",
            params={"id": f"eq.{trip_id}", "select": TRIP_WITH_STOPS},
            json=changes,
        )
        return decode_trip(self._single(rows, f"Trip {trip_id}"))

    async def delete_trip(self, trip_id: str) -> None:
        """Delete a trip row."""
        await self._request("DELETE", "trips", params={"id": f"eq.{trip_id}"})

    async def add_trip_stop(self, trip_id: str, data: dict[str, Any]) -> TripStop:
        """Insert a stop row."""
        row = {key: data[key] for key in STOP_WRITABLE if data.get(key) is not None}
        row["trip_id"] = trip_id
        rows = await self._request("POST", "trip_stops", params={"select": "*"}, json=row)
        return decode_stop(self._single(rows, "Created stop"))

    async def update_trip_stop(self, stop_id: str, partial: dict[str, Any]) -> TripStop:
        """Patch stop columns."""
        changes = {key: partial[key] for key in STOP_WRITABLE if key in partial}
        rows = await self._request(
            "PATCH",
            "trip_stops",
            params={"id": f"eq.{stop_id}", "select": "*"},
            json=changes,
        )
        return decode_stop(self._single(rows, f"Stop {stop_id}"))

    async def delete_trip_stop(self, stop_id: str) -> None:
        """Delete a stop row."""
        await self._request("DELETE", "trip_stops", params={"id": f"eq.{stop_id}"})

    async def get_trip_by_id(self, trip_id: str) -> Trip:
        """Fetch a trip with nested stops."""
        rows = await self._request(
            "GET",
            "trips",
            params={"id": f"eq.{trip_id}", "select": TRIP_WITH_STOPS},
        )
        trip = decode_trip(self._single(rows, f"Trip {trip_id}"))
        return trip.model_copy(update={"stops": sorted(trip.stops, key=lambda s: s.stop_order)})
