"""In-memory cache store."""

from datetime import datetime

from .base import CacheStore, Clock
from .models import CacheEntry


class MemoryCacheStore(CacheStore):
    """Process-local cache. Contents are lost on exit."""

    def __init__(self, clock: Clock | None = None) -> None:
        super().__init__(clock=clock)
        self._entries: dict[str, CacheEntry] = {}

    async def initialize(self) -> None:
        pass

    async def close(self) -> None:
        self._entries.clear()

    async def _load(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    async def _save(self, entry: CacheEntry) -> None:
        self._entries[entry.key] = entry

    async def _delete(self, keys: list[str]) -> int:
        removed = 0
        for key in keys:
            if self._entries.pop(key, None) is not None:
                removed += 1
        return removed

    async def _delete_expired(self, now: datetime) -> int:
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        return await self._delete(expired)

    async def _all_entries(self) -> list[CacheEntry]:
        return list(self._entries.values())

    async def _count(self) -> int:
        return len(self._entries)
