"""In-memory documentation catalog."""

from collections.abc import Mapping

from .base import DocsResult, DocumentationClient, LibraryRef


class StaticDocumentationClient(DocumentationClient):
    """Serve documentation from a fixed mapping.

    ``catalog`` maps a library name to its documentation text. Lookups are
    case-insensitive. Used for offline operation and in tests.
    """

    def __init__(
        self,
        catalog: Mapping[str, str] | None = None,
        trust_score: float = 8.0,
    ) -> None:
        self._catalog = {name.lower(): text for name, text in (catalog or {}).items()}
        self._trust_score = trust_score

    async def resolve_library(self, name: str) -> list[LibraryRef]:
        key = name.lower()
        if key not in self._catalog:
            return []
        return [
            LibraryRef(
                library_id=f"/static/{key}",
                name=key,
                trust_score=self._trust_score,
            )
        ]

    async def get_docs(
        self, library: LibraryRef, topic: str, max_tokens: int
    ) -> DocsResult:
        text = self._catalog.get(library.name.lower(), "")
        return DocsResult(
            content=text,
            metadata={"library_id": library.library_id, "topic": topic, "source": "static"},
        )
