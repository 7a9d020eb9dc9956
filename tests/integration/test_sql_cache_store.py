"""Integration tests for the SQL cache store on SQLite."""

import pytest

from tripsync.cache.trip_cache import TripCacheRepository
from tripsync.config import Settings
from tripsync.db.engine import create_async_engine_from_settings, init_schema
from tripsync.db.repositories import scan_prefix
from tripsync.db.sql_store import SqlCacheStore
from tripsync.errors import StorageFailure


@pytest.mark.asyncio
async def test_put_get_overwrite_remove(sqlite_engine) -> None:
    store = SqlCacheStore(sqlite_engine)

    await store.put("trip_1", {"id": "1", "stops": []})
    assert await store.get("trip_1") == {"id": "1", "stops": []}

    await store.put("trip_1", {"id": "1", "stops": [{"id": "s1"}]})
    assert await store.get("trip_1") == {"id": "1", "stops": [{"id": "s1"}]}

    await store.remove("trip_1")
    await store.remove("trip_1")
    assert await store.get("trip_1") is None


@pytest.mark.asyncio
async def test_multi_get_and_all_keys(sqlite_engine) -> None:
    store = SqlCacheStore(sqlite_engine)
    await store.put("stop_b", 2)
    await store.put("stop_a", 1)
    await store.put("resort_x", {"amenities": {"wifi": True}})

    assert await store.multi_get(["stop_a", "missing", "stop_b"]) == [
        ("stop_a", 1),
        ("missing", None),
        ("stop_b", 2),
    ]
    assert await store.multi_get([]) == []
    assert await store.all_keys() == {"stop_a", "stop_b", "resort_x"}
    assert await scan_prefix(store, "stop_") == ["stop_a", "stop_b"]


@pytest.mark.asyncio
async def test_values_survive_engine_restart(tmp_path) -> None:
    """Test that entries written through one engine are read by the next."""
    settings = Settings(cache_database_url=f"sqlite:///{tmp_path / 'cache.db'}")

    engine = create_async_engine_from_settings(settings)
    await init_schema(engine)
    await SqlCacheStore(engine).put("sync_queue", [{"action": "delete"}])
    await engine.dispose()

    engine = create_async_engine_from_settings(settings)
    await init_schema(engine)
    try:
        assert await SqlCacheStore(engine).get("sync_queue") == [{"action": "delete"}]
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_database_error_becomes_storage_failure() -> None:
    engine = create_async_engine_from_settings(
        Settings(cache_database_url="sqlite+aiosqlite:///:memory:")
    )
    # No schema: every statement fails
    store = SqlCacheStore(engine)
    try:
        with pytest.raises(StorageFailure):
            await store.put("k", 1)
        with pytest.raises(StorageFailure):
            await store.get("k")
        with pytest.raises(StorageFailure):
            await store.all_keys()
    finally:
        await engine.dispose()


def test_empty_database_url_rejected() -> None:
    with pytest.raises(ValueError, match="CACHE_DATABASE_URL"):
        create_async_engine_from_settings(Settings(cache_database_url=""))


@pytest.mark.asyncio
async def test_repository_reconciles_over_sql(sqlite_engine, make_trip, make_stop) -> None:
    repository = TripCacheRepository(SqlCacheStore(sqlite_engine))
    await repository.cache_trip(
        make_trip("T", stops=[make_stop("A", "T", 1), make_stop("B", "T", 2)])
    )
    await repository.cache_stop(make_stop("C", "T", 3))

    trip = await repository.get_cached_trip("T")

    assert [s.id for s in trip.stops] == ["A", "B", "C"]

    await repository.remove_trip("T")
    assert await repository.get_cached_trips() == []
