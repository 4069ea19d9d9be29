"""Cache and pattern-weight persistence."""

from .base import CacheStore
from .memory import MemoryCacheStore
from .models import CacheEntry, CacheStats
from .patterns import SQLitePatternStore
from .sqlite import SQLiteCacheStore
from .ttl import classify_complexity, ttl_for

__all__ = [
    "CacheEntry",
    "CacheStats",
    "CacheStore",
    "MemoryCacheStore",
    "SQLiteCacheStore",
    "SQLitePatternStore",
    "classify_complexity",
    "ttl_for",
]
