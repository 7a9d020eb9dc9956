"""Exception types shared across the engine."""


class TripSyncError(Exception):
    """Base class for engine errors."""

    pass


class StorageFailure(TripSyncError):
    """Local persistence failed. Fatal to the current operation."""

    pass


class CacheWriteFailed(StorageFailure):
    """A repository write path could not persist its records."""

    pass


class RemoteFailure(TripSyncError):
    """Remote backend or network error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(TripSyncError):
    """Entity missing from the cache on an update or delete path."""

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id
