"""Composition root - builds one explicitly owned engine instance."""

from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncEngine

from tripsync.adapters.remote import RemoteBackend
from tripsync.cache.map_regions import MapRegionCache
from tripsync.cache.trip_cache import TripCacheRepository
from tripsync.config import Settings, get_settings
from tripsync.db.engine import create_async_engine_from_settings, init_schema
from tripsync.db.repositories import CacheStore
from tripsync.db.sql_store import SqlCacheStore
from tripsync.session.context import ActorContext
from tripsync.session.controller import TripSessionController
from tripsync.sync.connectivity import ConnectivityGate, ConnectivitySource, ManualConnectivity
from tripsync.sync.processor import SyncProcessor
from tripsync.sync.queue import MutationQueue
from tripsync.utils.logging import StructuredSyncLogger
from tripsync.utils.metrics import PrometheusSyncMetrics


@dataclass
class OfflineEngine:
    """Every engine component, wired once and passed by reference."""

    settings: Settings
    store: CacheStore
    map_regions: MapRegionCache
    repository: TripCacheRepository
    queue: MutationQueue
    gate: ConnectivityGate
    processor: SyncProcessor
    remote: RemoteBackend
    db_engine: AsyncEngine | None = None
    sessions: list[TripSessionController] = field(default_factory=list, repr=False)

    def session(self, actor: ActorContext) -> TripSessionController:
        """Controller for one actor, auto-sync wired per settings."""
        controller = TripSessionController(
            repository=self.repository,
            queue=self.queue,
            gate=self.gate,
            processor=self.processor,
            remote=self.remote,
            actor=actor,
        )
        if self.settings.auto_sync_on_reconnect and not actor.is_guest:
            controller.enable_auto_sync()
        self.sessions.append(controller)
        return controller

    async def dispose(self) -> None:
        """Release the engine.

        Drains already scheduled by reconnects finish first, then the
        database engine is disposed if this engine opened one.
        """
        for controller in self.sessions:
            await controller.wait_for_sync()
        if self.db_engine is not None:
            await self.db_engine.dispose()


def build_engine(
    store: CacheStore,
    source: ConnectivitySource,
    remote: RemoteBackend,
    settings: Settings | None = None,
) -> OfflineEngine:
    """Wire an engine around an existing store.

    Args:
        store: Cache store (in-memory or SQL)
        source: Connectivity signal
        remote: Remote backend adapter
        settings: Settings (default: get_settings())

    Returns:
        Wired OfflineEngine
    """
    settings = settings or get_settings()
    gate = ConnectivityGate(source)

    # Push-style sources notify the gate on reconnect
    if isinstance(source, ManualConnectivity):
        source.attach(gate)

    map_regions = MapRegionCache(store)
    repository = TripCacheRepository(store, map_regions, zoom_levels=settings.map_zoom_levels)
    queue = MutationQueue(store, key=settings.sync_queue_key)
    processor = SyncProcessor(
        queue,
        repository,
        gate,
        metrics=PrometheusSyncMetrics(),
        sync_logger=StructuredSyncLogger(),
    )

    return OfflineEngine(
        settings=settings,
        store=store,
        map_regions=map_regions,
        repository=repository,
        queue=queue,
        gate=gate,
        processor=processor,
        remote=remote,
    )


async def open_engine(
    source: ConnectivitySource,
    remote: RemoteBackend,
    settings: Settings | None = None,
) -> OfflineEngine:
    """Open the durable SQL cache and wire an engine around it."""
    settings = settings or get_settings()
    db_engine = create_async_engine_from_settings(settings)
    await init_schema(db_engine)

    engine = build_engine(SqlCacheStore(db_engine), source, remote, settings)
    engine.db_engine = db_engine
    return engine
