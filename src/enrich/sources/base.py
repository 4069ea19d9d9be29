"""Uniform interface over context sources."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from enrich.context.deduplication import deduplicate_items
from enrich.context.models import ContextItem, SourceKind

logger = structlog.get_logger()

ResolutionCallback = Callable[[str, bool], None]


@dataclass(frozen=True)
class DetectedFramework:
    """A framework name and how confident detection was about it."""

    name: str
    confidence: float = 1.0


@dataclass(frozen=True)
class SourceQuery:
    """What a request asks the sources for."""

    prompt: str
    frameworks: tuple[DetectedFramework, ...] = ()
    project_root: Path | None = None
    topic: str | None = None
    on_resolution: ResolutionCallback | None = field(default=None, compare=False)


@dataclass(frozen=True)
class FetchConstraints:
    max_items: int = 10
    doc_tokens: int = 2000


@dataclass(frozen=True)
class SourceResult:
    """Items from one source, plus the error that emptied it, if any."""

    source: str
    items: list[ContextItem]
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class ContextSource(ABC):
    """A producer of context items.

    Subclasses implement ``_fetch`` and may raise from it. ``fetch`` and
    ``fetch_result`` never raise: failures become an empty result and a
    logged warning. Output is deduplicated with ``dedup_key``, sorted by
    relevance and capped at ``constraints.max_items``.
    """

    kind: SourceKind
    name: str

    @abstractmethod
    async def _fetch(
        self, query: SourceQuery, constraints: FetchConstraints
    ) -> list[ContextItem]:
        pass

    @abstractmethod
    def dedup_key(self, item: ContextItem) -> str:
        pass

    async def fetch(
        self, query: SourceQuery, constraints: FetchConstraints | None = None
    ) -> list[ContextItem]:
        result = await self.fetch_result(query, constraints)
        return result.items

    async def fetch_result(
        self, query: SourceQuery, constraints: FetchConstraints | None = None
    ) -> SourceResult:
        constraints = constraints or FetchConstraints()
        try:
            items = await self._fetch(query, constraints)
        except Exception as e:
            logger.warning(
                "source_fetch_failed",
                source=self.name,
                error_type=type(e).__name__,
                error=str(e),
            )
            return SourceResult(source=self.name, items=[], error=str(e) or type(e).__name__)

        unique = deduplicate_items(items, self.dedup_key)
        capped = unique[: max(0, constraints.max_items)]

        logger.debug(
            "source_fetched",
            source=self.name,
            fetched=len(items),
            unique=len(unique),
            returned=len(capped),
        )
        return SourceResult(source=self.name, items=capped)
