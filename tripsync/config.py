"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Local cache
    cache_database_url: str = "sqlite+aiosqlite:///tripsync_cache.db"
    sync_queue_key: str = "sync_queue"

    # Remote backend
    remote_base_url: str = "http://localhost:54321"
    remote_api_key: str = ""
    remote_timeout_s: float = 10.0

    # Provisional id prefixes
    provisional_trip_prefix: str = "offline-"
    provisional_stop_prefix: str = "local-"

    # Map regions recorded for offline use
    map_zoom_levels: list[int] = [10, 12, 14]

    # Drain the queue as soon as connectivity comes back
    auto_sync_on_reconnect: bool = True


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
