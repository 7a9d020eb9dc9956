"""SQL implementation of the cache store."""

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from tripsync.db.models import CacheEntry
from tripsync.db.repositories import JsonValue, dump_value, load_value
from tripsync.errors import StorageFailure


class SqlCacheStore:
    """SQL implementation of CacheStore.

    One row per key in ``cache_entry``; each call runs in its own
    transaction, so writes are atomic per key only.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._sessions = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def put(self, key: str, value: JsonValue) -> None:
        """Store a value."""
        raw = dump_value(key, value)
        try:
            async with self._sessions() as session:
                await session.merge(CacheEntry(key=key, value=raw))
                await session.commit()
        except SQLAlchemyError as e:
            raise StorageFailure(f"Failed to write {key!r}: {e}") from e

    async def get(self, key: str) -> JsonValue | None:
        """Get a value."""
        try:
            async with self._sessions() as session:
                entry = await session.get(CacheEntry, key)
                raw = entry.value if entry is not None else None
        except SQLAlchemyError as e:
            raise StorageFailure(f"Failed to read {key!r}: {e}") from e

        if raw is None:
            return None
        return load_value(key, raw)

    async def multi_get(self, keys: list[str]) -> list[tuple[str, JsonValue | None]]:
        """Get several values in one query."""
        if not keys:
            return []

        try:
            async with self._sessions() as session:
                result = await session.execute(
                    select(CacheEntry.key, CacheEntry.value).where(CacheEntry.key.in_(keys))
                )
                found = {row.key: row.value for row in result}
        except SQLAlchemyError as e:
            raise StorageFailure(f"Failed to read {len(keys)} keys: {e}") from e

        return [
            (key, load_value(key, found[key]) if key in found else None) for key in keys
        ]

    async def remove(self, key: str) -> None:
        """Remove a key."""
        try:
            async with self._sessions() as session:
                await session.execute(delete(CacheEntry).where(CacheEntry.key == key))
                await session.commit()
        except SQLAlchemyError as e:
            raise StorageFailure(f"Failed to remove {key!r}: {e}") from e

    async def all_keys(self) -> set[str]:
        """List every stored key."""
        try:
            async with self._sessions() as session:
                result = await session.execute(select(CacheEntry.key))
                return set(result.scalars().all())
        except SQLAlchemyError as e:
            raise StorageFailure(f"Failed to list keys: {e}") from e
