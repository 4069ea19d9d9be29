"""Project facts as context."""

from enrich.context.deduplication import fact_key
from enrich.context.models import ContextItem, SourceKind
from enrich.relevance import lexical_similarity

from .base import ContextSource, FetchConstraints, SourceQuery
from .project import ProjectInspector


class ProjectFactsSource(ContextSource):
    """Short statements about the project's stack and layout.

    Facts are cheap and broadly useful, so every fact gets at least
    ``relevance_floor`` even when it shares no terms with the prompt.
    """

    kind = SourceKind.FACT
    name = "facts"

    def __init__(self, inspector: ProjectInspector, relevance_floor: float = 0.3) -> None:
        self._inspector = inspector
        self._relevance_floor = relevance_floor

    def dedup_key(self, item: ContextItem) -> str:
        return fact_key(item)

    async def _fetch(
        self, query: SourceQuery, constraints: FetchConstraints
    ) -> list[ContextItem]:
        if query.project_root is None:
            return []

        facts = await self._inspector.scan_facts(query.project_root)
        return [
            ContextItem(
                kind=SourceKind.FACT,
                text=fact.text,
                relevance=max(
                    self._relevance_floor, lexical_similarity(query.prompt, fact.text)
                ),
                origin=fact.source_file,
            )
            for fact in facts
        ]
