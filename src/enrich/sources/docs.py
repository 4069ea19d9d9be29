"""Framework documentation as context."""

import asyncio
import re

import structlog

from enrich.clients.base import DocumentationClient, LibraryRef
from enrich.context.deduplication import doc_key
from enrich.context.models import ContextItem, SourceKind
from enrich.errors import SourceUnavailableError

from .base import ContextSource, DetectedFramework, FetchConstraints, SourceQuery

logger = structlog.get_logger()

DEFAULT_TOPIC = "best practices"

# Checked in order, first hit wins.
TOPIC_KEYWORDS: list[tuple[str, str]] = [
    ("component", "components"),
    ("routing", "routing"),
    ("route", "routing"),
    ("auth", "authentication"),
    ("login", "authentication"),
    ("api", "api"),
    ("endpoint", "api"),
    ("styling", "styling"),
    ("css", "styling"),
    ("test", "testing"),
    ("error", "error handling"),
    ("exception", "error handling"),
    ("performance", "performance"),
    ("optimiz", "performance"),
    ("security", "security"),
    ("deploy", "deployment"),
    ("docker", "deployment"),
    ("database", "database"),
    ("migration", "database"),
    ("schema", "database"),
    ("hook", "hooks"),
    ("lifecycle", "lifecycle"),
    ("state", "state management"),
    ("redux", "state management"),
    ("form", "forms"),
]

# Trust scores from the provider run 0-10.
MAX_TRUST_SCORE = 10.0


def extract_topic(prompt: str) -> str:
    """Map a prompt to a documentation topic by keyword."""
    lowered = prompt.lower()
    for keyword, topic in TOPIC_KEYWORDS:
        if re.search(rf"\b{re.escape(keyword)}", lowered):
            return topic
    return DEFAULT_TOPIC


class DocumentationSource(ContextSource):
    """Fetch documentation for each detected framework."""

    kind = SourceKind.DOC
    name = "docs"

    def __init__(self, client: DocumentationClient) -> None:
        self._client = client

    def dedup_key(self, item: ContextItem) -> str:
        return doc_key(item)

    async def _fetch(
        self, query: SourceQuery, constraints: FetchConstraints
    ) -> list[ContextItem]:
        if not query.frameworks:
            return []

        topic = query.topic or extract_topic(query.prompt)
        results = await asyncio.gather(
            *(
                self._fetch_library(query, framework, topic, constraints.doc_tokens)
                for framework in query.frameworks
            ),
            return_exceptions=True,
        )

        items: list[ContextItem] = []
        failures = 0
        for framework, result in zip(query.frameworks, results):
            if isinstance(result, BaseException):
                failures += 1
                logger.warning(
                    "library_docs_failed",
                    framework=framework.name,
                    error=str(result),
                )
                continue
            if result is not None:
                items.append(result)

        if failures == len(query.frameworks):
            raise SourceUnavailableError(
                self.name, f"documentation lookup failed for all {failures} frameworks"
            )
        return items

    async def _fetch_library(
        self,
        query: SourceQuery,
        framework: DetectedFramework,
        topic: str,
        max_tokens: int,
    ) -> ContextItem | None:
        refs = await self._client.resolve_library(framework.name)
        if not refs:
            self._report(query, framework.name, False)
            logger.info("library_not_resolved", framework=framework.name)
            return None

        best = max(refs, key=lambda ref: ref.trust_score)
        self._report(query, framework.name, True)

        docs = await self._client.get_docs(best, topic, max_tokens)
        if not docs.content.strip():
            return None

        return ContextItem(
            kind=SourceKind.DOC,
            text=docs.content,
            relevance=self._relevance(framework, best),
            origin=best.library_id,
            metadata={
                "library": framework.name,
                "library_id": best.library_id,
                "topic": topic,
                "trust_score": best.trust_score,
            },
        )

    @staticmethod
    def _relevance(framework: DetectedFramework, ref: LibraryRef) -> float:
        trust = max(0.0, min(1.0, ref.trust_score / MAX_TRUST_SCORE))
        return 0.6 * framework.confidence + 0.4 * trust

    @staticmethod
    def _report(query: SourceQuery, name: str, resolved: bool) -> None:
        if query.on_resolution is None:
            return
        try:
            query.on_resolution(name, resolved)
        except Exception as e:
            logger.warning("resolution_callback_failed", framework=name, error=str(e))
