"""Documentation client with a TTL cache in front of it."""

import json
from dataclasses import asdict
from typing import Any

import structlog

from enrich.errors import CacheUnavailableError
from enrich.storage.base import CacheStore
from enrich.storage.models import CacheEntry

from .base import DocsResult, DocumentationClient, LibraryRef

logger = structlog.get_logger()

DEFAULT_DOCS_TTL_SECONDS = 24 * 60 * 60


def resolve_key(name: str) -> str:
    return f"library:{name.strip().lower()}"


def docs_key(library_id: str, topic: str, max_tokens: int) -> str:
    return f"docs:{library_id}|{topic.strip().lower()}|{max_tokens}"


class CachingDocumentationClient(DocumentationClient):
    """Serve repeated library lookups from a CacheStore.

    Resolved refs are cached per library name, fetched documentation per
    (library id, topic, token size). Empty resolutions and empty documents
    are not cached, so an unknown library is looked up again next time.
    If the store is unavailable every lookup goes to the wrapped client.
    """

    def __init__(
        self,
        client: DocumentationClient,
        store: CacheStore,
        ttl_seconds: int = DEFAULT_DOCS_TTL_SECONDS,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self._client = client
        self._store = store
        self._ttl_seconds = ttl_seconds
        self._logger = logger.bind(component="docs_cache")

    @property
    def wrapped(self) -> DocumentationClient:
        return self._client

    async def resolve_library(self, name: str) -> list[LibraryRef]:
        key = resolve_key(name)
        entry = await self._get(key)
        if entry is not None:
            try:
                refs = [LibraryRef(**raw) for raw in json.loads(entry.enhanced_text)]
            except (TypeError, ValueError) as e:
                self._logger.warning("docs_cache_entry_invalid", key=key, error=str(e))
            else:
                self._logger.debug("library_refs_cached", library=name, refs=len(refs))
                return refs

        refs = await self._client.resolve_library(name)
        if refs:
            payload = json.dumps([asdict(ref) for ref in refs], sort_keys=True)
            await self._put(key, payload, {"library": name.strip().lower()})
        return refs

    async def get_docs(
        self, library: LibraryRef, topic: str, max_tokens: int
    ) -> DocsResult:
        key = docs_key(library.library_id, topic, max_tokens)
        entry = await self._get(key)
        if entry is not None:
            self._logger.debug("library_docs_cached", library_id=library.library_id)
            return DocsResult(
                content=entry.enhanced_text, metadata=dict(entry.context_summary)
            )

        docs = await self._client.get_docs(library, topic, max_tokens)
        if docs.content.strip():
            await self._put(key, docs.content, docs.metadata)
        return docs

    async def close(self) -> None:
        await self._client.close()

    async def _get(self, key: str) -> CacheEntry | None:
        try:
            return await self._store.get(key)
        except CacheUnavailableError as e:
            self._logger.warning("cache_unavailable", operation="get", error=str(e))
            return None

    async def _put(self, key: str, text: str, metadata: dict[str, Any]) -> None:
        entry = CacheEntry(key=key, enhanced_text=text, context_summary=dict(metadata))
        try:
            await self._store.put(key, entry, self._ttl_seconds)
        except CacheUnavailableError as e:
            self._logger.warning("cache_unavailable", operation="put", error=str(e))
