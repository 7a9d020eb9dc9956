"""Remote backend protocol - the system of record for trips and stops."""

from typing import Any, Protocol

from tripsync.models.trip import Trip, TripStop


class RemoteBackend(Protocol):
    """Capability interface of the remote data backend.

    Every method raises RemoteFailure on network or backend errors.
    Results are canonical models.
    """

    async def create_trip(self, data: dict[str, Any]) -> Trip:
        """Create a trip (and any stops carried in data).

        Args:
            data: Trip fields; ``id`` is ignored, the server assigns one

        Returns:
            Created trip with server id and stops
        """
        ...

    async def update_trip(self, trip_id: str, partial: dict[str, Any]) -> Trip:
        """Apply a partial update to a trip.

        Args:
            trip_id: Server trip id
            partial: Fields to change

        Returns:
            Updated trip
        """
        ...

    async def delete_trip(self, trip_id: str) -> None:
        """Delete a trip by id.

        Args:
            trip_id: Server trip id
        """
        ...

    async def add_trip_stop(self, trip_id: str, data: dict[str, Any]) -> TripStop:
        """Add a stop to a trip.

        Args:
            trip_id: Server trip id
            data: Stop fields; ``id`` is ignored, the server assigns one

        Returns:
            Created stop
        """
        ...

    async def update_trip_stop(self, stop_id: str, partial: dict[str, Any]) -> TripStop:
        """Apply a partial update to a stop.

        Args:
            stop_id: Server stop id
            partial: Fields to change

        Returns:
            Updated stop
        """
        ...

    async def delete_trip_stop(self, stop_id: str) -> None:
        """Delete a stop by id.

        Args:
            stop_id: Server stop id
        """
        ...

    async def get_trip_by_id(self, trip_id: str) -> Trip:
        """Get a trip with its stops.

        Args:
            trip_id: Server trip id

        Returns:
            Trip with stops ordered by stop_order
        """
        ...
