"""Database engine for the durable cache."""

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from tripsync.config import Settings
from tripsync.db.models import Base


def create_async_engine_from_settings(settings: Settings) -> AsyncEngine:
    """Create async SQLAlchemy engine from settings.

    Raises:
        ValueError: If cache_database_url is empty.
    """
    database_url = settings.cache_database_url

    if not database_url:
        raise ValueError(
            "CACHE_DATABASE_URL must be set to a valid connection string. "
            "Please configure the cache_database_url setting."
        )

    # Plain sqlite URLs need the async driver
    if database_url.startswith("sqlite://"):
        database_url = database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)

    # An in-memory database only lives as long as its single connection
    if ":memory:" in database_url:
        return create_async_engine(database_url, poolclass=StaticPool, echo=False)

    return create_async_engine(database_url, echo=False)


async def init_schema(engine: AsyncEngine) -> None:
    """Create the cache tables if they do not exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
