"""Abstract cache store.

The base class owns the cache semantics (expiry on read, idempotent and
collision-flagged writes, per-key write locks, statistics). Backends only
implement row-level persistence.
"""

import asyncio
import weakref
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta

import structlog

from enrich.utils.datetime import utc_now

from .models import CacheEntry, CacheStats

logger = structlog.get_logger()

Clock = Callable[[], datetime]


class CacheStore(ABC):
    """TTL cache of enhancement results keyed by fingerprint."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or utc_now
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._stats = CacheStats()
        self._logger = logger.bind(component=type(self).__name__)

    # Backend operations

    @abstractmethod
    async def initialize(self) -> None:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass

    @abstractmethod
    async def _load(self, key: str) -> CacheEntry | None:
        pass

    @abstractmethod
    async def _save(self, entry: CacheEntry) -> None:
        pass

    @abstractmethod
    async def _delete(self, keys: list[str]) -> int:
        pass

    @abstractmethod
    async def _delete_expired(self, now: datetime) -> int:
        pass

    @abstractmethod
    async def _all_entries(self) -> list[CacheEntry]:
        pass

    @abstractmethod
    async def _count(self) -> int:
        pass

    # Cache semantics

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def get(self, key: str) -> CacheEntry | None:
        """Return the live entry for key and count the hit.

        Expired entries are evicted and reported as a miss. Reads never
        extend ``expires_at``.
        """
        lock = self._lock_for(key)
        async with lock:
            entry = await self._load(key)
            if entry is None:
                self._stats.misses += 1
                return None

            if entry.is_expired(self._clock()):
                await self._delete([key])
                self._stats.evictions += 1
                self._stats.misses += 1
                self._logger.debug("cache_entry_expired", key=key)
                return None

            hit = replace(entry, hit_count=entry.hit_count + 1)
            await self._save(hit)
            self._stats.hits += 1
            return hit

    async def put(self, key: str, entry: CacheEntry, ttl_seconds: float) -> CacheEntry:
        """Store entry under key for ttl_seconds and return what was stored.

        Re-putting identical content into a live key is a no-op that keeps
        the original timestamps. Different content replaces the entry and
        flags it ``collided``.
        """
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")

        lock = self._lock_for(key)
        async with lock:
            now = self._clock()
            existing = await self._load(key)
            live = existing is not None and not existing.is_expired(now)

            if live and existing.enhanced_text == entry.enhanced_text:
                return existing

            collided = False
            if live:
                collided = True
                self._stats.collisions += 1
                self._logger.warning(
                    "fingerprint_collision",
                    key=key,
                    existing_created_at=existing.created_at.isoformat(),
                )

            stored = CacheEntry(
                key=key,
                enhanced_text=entry.enhanced_text,
                context_summary=dict(entry.context_summary),
                created_at=now,
                expires_at=now + timedelta(seconds=ttl_seconds),
                hit_count=0,
                collided=collided,
            )
            await self._save(stored)
            self._stats.writes += 1
            return stored

    async def invalidate(self, predicate: Callable[[CacheEntry], bool]) -> int:
        """Delete every entry matching predicate. Returns the count removed."""
        doomed = [entry.key for entry in await self._all_entries() if predicate(entry)]
        if not doomed:
            return 0
        removed = await self._delete(doomed)
        self._logger.info("cache_invalidated", removed=removed)
        return removed

    async def purge_expired(self) -> int:
        removed = await self._delete_expired(self._clock())
        self._stats.evictions += removed
        if removed:
            self._logger.debug("cache_purged", removed=removed)
        return removed

    async def stats(self) -> CacheStats:
        return replace(self._stats, entries=await self._count())
