"""Global pytest configuration."""

import os

# Keep tests off the on-disk cache before any settings are read
os.environ.setdefault("CACHE_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
