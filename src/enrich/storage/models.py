"""Data models for the enhancement cache."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from enrich.utils.datetime import utc_now


@dataclass(frozen=True)
class CacheEntry:
    """A cached enhancement result.

    ``created_at`` and ``expires_at`` are set by the store on ``put``.
    """

    key: str
    enhanced_text: str
    context_summary: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)
    expires_at: datetime = field(default_factory=utc_now)
    hit_count: int = 0
    collided: bool = False

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


@dataclass
class CacheStats:
    """Counters for one cache store since it was created."""

    hits: int = 0
    misses: int = 0
    writes: int = 0
    collisions: int = 0
    evictions: int = 0
    entries: int = 0

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        if lookups == 0:
            return 0.0
        return self.hits / lookups
