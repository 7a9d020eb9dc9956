"""Cache store protocol and shared helpers."""

import json
from typing import Any, Protocol

from tripsync.errors import StorageFailure

JsonValue = Any


class CacheStore(Protocol):
    """Durable string-keyed store of JSON-serializable values.

    Every operation is atomic per key. Nothing spans keys.
    """

    async def put(self, key: str, value: JsonValue) -> None:
        """Store a value, overwriting any previous one.

        Args:
            key: Cache key
            value: JSON-serializable value

        Raises:
            StorageFailure: On any persistence error
        """
        ...

    async def get(self, key: str) -> JsonValue | None:
        """Get a value.

        Args:
            key: Cache key

        Returns:
            Stored value or None if absent
        """
        ...

    async def multi_get(self, keys: list[str]) -> list[tuple[str, JsonValue | None]]:
        """Get several values at once.

        Args:
            keys: Cache keys

        Returns:
            (key, value) pairs in the order requested, value None when absent
        """
        ...

    async def remove(self, key: str) -> None:
        """Remove a key. Removing an absent key is a no-op.

        Args:
            key: Cache key
        """
        ...

    async def all_keys(self) -> set[str]:
        """List every stored key.

        Returns:
            Set of keys
        """
        ...


async def scan_prefix(store: CacheStore, prefix: str) -> list[str]:
    """Keys starting with prefix, sorted for stable iteration."""
    keys = await store.all_keys()
    return sorted(key for key in keys if key.startswith(prefix))


def dump_value(key: str, value: JsonValue) -> str:
    """Serialize a value for storage."""
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as e:
        raise StorageFailure(f"Value for {key!r} is not JSON-serializable: {e}") from e


def load_value(key: str, raw: str) -> JsonValue:
    """Deserialize a stored value."""
    try:
        return json.loads(raw)
    except ValueError as e:
        raise StorageFailure(f"Stored value for {key!r} is corrupt: {e}") from e
