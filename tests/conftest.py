"""Shared pytest fixtures for all test suites."""

from collections.abc import AsyncGenerator, Callable
from datetime import date, timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine

from tripsync.adapters.inmemory_remote import InMemoryRemoteBackend
from tripsync.cache.map_regions import MapRegionCache
from tripsync.cache.trip_cache import TripCacheRepository
from tripsync.config import Settings
from tripsync.db.engine import create_async_engine_from_settings, init_schema
from tripsync.db.inmemory import InMemoryCacheStore
from tripsync.models.trip import Trip, TripStop
from tripsync.sync.connectivity import ConnectivityGate, ManualConnectivity
from tripsync.sync.processor import SyncProcessor
from tripsync.sync.queue import MutationQueue

TRIP_START = date(2025, 6, 1)


@pytest.fixture
def store() -> InMemoryCacheStore:
    return InMemoryCacheStore()


@pytest.fixture
def map_regions(store: InMemoryCacheStore) -> MapRegionCache:
    return MapRegionCache(store)


@pytest.fixture
def repository(store: InMemoryCacheStore, map_regions: MapRegionCache) -> TripCacheRepository:
    return TripCacheRepository(store, map_regions)


@pytest.fixture
def queue(store: InMemoryCacheStore) -> MutationQueue:
    return MutationQueue(store)


@pytest.fixture
def connectivity() -> ManualConnectivity:
    return ManualConnectivity(connected=True)


@pytest.fixture
def gate(connectivity: ManualConnectivity) -> ConnectivityGate:
    gate = ConnectivityGate(connectivity)
    connectivity.attach(gate)
    return gate


@pytest.fixture
def remote() -> InMemoryRemoteBackend:
    return InMemoryRemoteBackend()


@pytest.fixture
def processor(
    queue: MutationQueue, repository: TripCacheRepository, gate: ConnectivityGate
) -> SyncProcessor:
    return SyncProcessor(queue, repository, gate)


@pytest.fixture
def make_stop() -> Callable[..., TripStop]:
    """Factory for stops; stop N spans nights N..N+1 of the trip."""

    def _make(stop_id: str, trip_id: str = "trip-1", stop_order: int = 1, **fields) -> TripStop:
        check_in = TRIP_START + timedelta(days=stop_order)
        return TripStop(
            id=stop_id,
            trip_id=trip_id,
            stop_order=stop_order,
            check_in=check_in,
            check_out=check_in + timedelta(days=1),
            **fields,
        )

    return _make


@pytest.fixture
def make_trip() -> Callable[..., Trip]:
    """Factory for trips."""

    def _make(
        trip_id: str = "trip-1",
        stops: list[TripStop] | None = None,
        user_id: str = "user-1",
        name: str = "Pacific Coast",
    ) -> Trip:
        return Trip(id=trip_id, user_id=user_id, name=name, stops=stops or [])

    return _make


@pytest_asyncio.fixture
async def sqlite_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine with the cache schema created."""
    engine = create_async_engine_from_settings(
        Settings(cache_database_url="sqlite+aiosqlite:///:memory:")
    )
    await init_schema(engine)

    yield engine

    await engine.dispose()
