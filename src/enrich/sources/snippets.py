"""Code snippets from the project as context."""

from enrich.context.deduplication import snippet_key
from enrich.context.models import ContextItem, SourceKind
from enrich.relevance import lexical_similarity, salient_terms

from .base import ContextSource, FetchConstraints, SourceQuery
from .project import ProjectInspector


class SnippetSource(ContextSource):
    """Source lines that mention the prompt's salient terms."""

    kind = SourceKind.SNIPPET
    name = "snippets"

    def __init__(self, inspector: ProjectInspector, max_terms: int = 8) -> None:
        self._inspector = inspector
        self._max_terms = max_terms

    def dedup_key(self, item: ContextItem) -> str:
        return snippet_key(item)

    async def _fetch(
        self, query: SourceQuery, constraints: FetchConstraints
    ) -> list[ContextItem]:
        if query.project_root is None:
            return []

        search_text = " ".join([query.prompt, *(f.name for f in query.frameworks)])
        terms = salient_terms(search_text, limit=self._max_terms)
        if not terms:
            return []

        snippets = await self._inspector.find_snippets(query.project_root, terms)
        return [
            ContextItem(
                kind=SourceKind.SNIPPET,
                text=snippet.content,
                relevance=0.5 * snippet.term_coverage
                + 0.5 * lexical_similarity(search_text, snippet.content),
                origin=f"{snippet.file_path}:{snippet.start_line}-{snippet.end_line}",
                metadata={
                    "file_path": snippet.file_path,
                    "start_line": snippet.start_line,
                    "end_line": snippet.end_line,
                    "language": snippet.language,
                },
            )
            for snippet in snippets
        ]
