"""In-memory implementation of the cache store."""

from tripsync.db.repositories import JsonValue, dump_value, load_value


class InMemoryCacheStore:
    """In-memory implementation of CacheStore.

    Values are kept as JSON text so callers never share objects with the
    store, matching the durable implementation.
    """

    def __init__(self) -> None:
        self._entries: dict[str, str] = {}

    async def put(self, key: str, value: JsonValue) -> None:
        """Store a value."""
        self._entries[key] = dump_value(key, value)

    async def get(self, key: str) -> JsonValue | None:
        """Get a value."""
        raw = self._entries.get(key)
        if raw is None:
            return None
        return load_value(key, raw)

    async def multi_get(self, keys: list[str]) -> list[tuple[str, JsonValue | None]]:
        """Get several values."""
        return [(key, await self.get(key)) for key in keys]

    async def remove(self, key: str) -> None:
        """Remove a key."""
        self._entries.pop(key, None)

    async def all_keys(self) -> set[str]:
        """List every stored key."""
        return set(self._entries)
