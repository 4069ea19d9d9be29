"""Data models for context assembly."""

import math
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any

from enrich.utils.numeric import clamp
from enrich.utils.tokens import estimate_tokens


class SourceKind(str, Enum):
    """Kind of context a source produces."""

    FACT = "fact"
    SNIPPET = "snippet"
    DOC = "doc"


@dataclass(frozen=True, eq=False)
class ContextItem:
    """A single piece of context from any source.

    Immutable: relevance is clamped to [0, 1] and metadata is frozen into a
    read-only mapping at construction.
    """

    kind: SourceKind
    text: str
    relevance: float
    origin: str
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        relevance = float(self.relevance)
        if not math.isfinite(relevance):
            relevance = 0.0
        object.__setattr__(self, "relevance", clamp(relevance, 0.0, 1.0))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def size_tokens(self) -> int:
        return estimate_tokens(self.text)

    def with_text(self, text: str, **metadata: Any) -> "ContextItem":
        """Copy of this item with new text and extra metadata."""
        merged = dict(self.metadata)
        merged.update(metadata)
        return replace(self, text=text, metadata=merged)

    def __hash__(self) -> int:
        return hash((self.kind, self.origin, self.text[:100], len(self.text)))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ContextItem):
            return False
        return (
            self.kind == other.kind
            and self.origin == other.origin
            and self.text == other.text
        )


@dataclass(frozen=True)
class ContextBundle:
    """Budget-checked context for one request."""

    items: tuple[ContextItem, ...]
    total_tokens: int
    max_tokens: int
    summarized: bool = False
    dropped: int = 0
    shortened: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.items

    def by_kind(self, kind: SourceKind) -> list[ContextItem]:
        return [item for item in self.items if item.kind is kind]

    def item_counts(self) -> dict[str, int]:
        counts = {kind.value: 0 for kind in SourceKind}
        for item in self.items:
            counts[item.kind.value] += 1
        return counts
