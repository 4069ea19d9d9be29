"""Data models for adaptive detection patterns."""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from enrich.utils.datetime import utc_now


class PatternState(str, Enum):
    """Lifecycle of a detection pattern."""

    UNPROVEN = "unproven"
    TRUSTED = "trusted"
    DEMOTED = "demoted"


@dataclass(frozen=True)
class DetectionPattern:
    """A weighted framework/library signature.

    Direct-mention patterns set ``library`` to the canonical name they
    detect. Capture patterns leave it unset and name whatever their first
    group captures.
    """

    id: str
    matcher: re.Pattern[str]
    category: str
    weight: float
    base_strength: float = 0.8
    library: str | None = None
    success_count: int = 0
    usage_count: int = 0
    last_updated: datetime = field(default_factory=utc_now)
    state: PatternState = PatternState.UNPROVEN

    @property
    def success_rate(self) -> float:
        if self.usage_count == 0:
            return 0.0
        return self.success_count / self.usage_count


@dataclass(frozen=True)
class PatternMatch:
    """One detected framework/library name and the pattern behind it."""

    pattern_id: str
    name: str
    category: str
    strength: float
    weight: float
    state: PatternState
    match_text: str
    position: int

    @property
    def score(self) -> float:
        return self.weight * self.strength

    @property
    def trusted(self) -> bool:
        return self.state is PatternState.TRUSTED


@dataclass(frozen=True)
class LearningEvent:
    """Outcome of a detection, supplied after the fact."""

    pattern_id: str
    was_successful: bool
    timestamp: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class UsageTick:
    """Record of patterns that matched during one ``match()`` call."""

    pattern_ids: tuple[str, ...]
    timestamp: datetime = field(default_factory=utc_now)


@dataclass
class PatternStats:
    """Point-in-time statistics for a single pattern."""

    pattern_id: str
    usage_count: int
    success_count: int
    success_rate: float
    weight: float
    state: PatternState
    trend: str  # "up", "down", "stable"
