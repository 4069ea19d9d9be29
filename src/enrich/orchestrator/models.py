"""Request and result types for prompt enhancement."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from enrich.context.models import SourceKind


class RequestState(str, Enum):
    """Stages a single enhancement request passes through."""

    RECEIVED = "received"
    CACHE_CHECK = "cache_check"
    GATHERING = "gathering"
    BUDGETING = "budgeting"
    COMPOSING = "composing"
    CACHING = "caching"
    DONE = "done"


@dataclass(frozen=True)
class EnhanceOptions:
    """Per-request knobs.

    ``sources`` limits which kinds of context are gathered (None means
    all). ``framework_hint`` names frameworks to use in addition to the
    detected ones. ``max_tokens`` and ``ttl_seconds`` default to settings.
    """

    max_tokens: int | None = None
    project_root: Path | None = None
    framework_hint: tuple[str, ...] = ()
    sources: frozenset[SourceKind] | None = None
    use_cache: bool = True
    ttl_seconds: int | None = None

    def __post_init__(self) -> None:
        if self.project_root is not None and not isinstance(self.project_root, Path):
            object.__setattr__(self, "project_root", Path(self.project_root))

        hint: Any = self.framework_hint
        if isinstance(hint, str):
            hint = [hint]
        object.__setattr__(
            self,
            "framework_hint",
            tuple(h.strip().lower() for h in hint or () if isinstance(h, str) and h.strip()),
        )

        if self.sources is not None:
            object.__setattr__(
                self, "sources", frozenset(SourceKind(s) for s in self.sources)
            )


def _zero_counts() -> dict[str, int]:
    return {kind.value: 0 for kind in SourceKind}


@dataclass(frozen=True)
class ContextSummary:
    """What went into an enhanced prompt."""

    item_counts: dict[str, int] = field(default_factory=_zero_counts)
    summarized: bool = False
    total_tokens: int = 0
    degraded_sources: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_counts": dict(self.item_counts),
            "summarized": self.summarized,
            "total_tokens": self.total_tokens,
            "degraded_sources": list(self.degraded_sources),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ContextSummary":
        counts = _zero_counts()
        counts.update(
            {str(k): int(v) for k, v in (data.get("item_counts") or {}).items()}
        )
        return cls(
            item_counts=counts,
            summarized=bool(data.get("summarized", False)),
            total_tokens=int(data.get("total_tokens", 0)),
            degraded_sources=tuple(data.get("degraded_sources") or ()),
        )


@dataclass(frozen=True)
class EnhanceResult:
    enhanced_text: str
    context_summary: ContextSummary
    cache_hit: bool = False
    fingerprint: str = ""
    frameworks: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "enhanced_text": self.enhanced_text,
            "context_summary": self.context_summary.to_dict(),
            "cache_hit": self.cache_hit,
            "fingerprint": self.fingerprint,
            "frameworks": list(self.frameworks),
        }

    @classmethod
    def unchanged(cls, prompt: str, frameworks: Iterable[str] = ()) -> "EnhanceResult":
        """The original prompt with an empty summary."""
        return cls(
            enhanced_text=prompt,
            context_summary=ContextSummary(),
            frameworks=tuple(frameworks),
        )
