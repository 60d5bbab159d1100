"""Core app configuration, database, cache, security and errors."""

from shareai.core.cache import CacheStore
from shareai.core.config import Settings, get_settings
from shareai.core.database import get_db

__all__ = ["CacheStore", "Settings", "get_settings", "get_db"]
