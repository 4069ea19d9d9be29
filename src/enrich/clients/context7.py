"""Context7 documentation client.

Talks JSON-RPC 2.0 ``tools/call`` to the Context7 MCP HTTP endpoint. The
endpoint answers either with a JSON body or with a server-sent events
stream whose ``data:`` lines carry the JSON-RPC response.
"""

import itertools
import json
import re
from typing import Any

import httpx
import structlog

from enrich.config import DocsSettings, settings
from enrich.errors import DocumentationClientError

from .base import DocsResult, DocumentationClient, LibraryRef

logger = structlog.get_logger()

RESOLVE_TOOL = "resolve-library-id"
DOCS_TOOL = "get-library-docs"

LIBRARY_SEPARATOR = re.compile(r"^-{10,}\s*$", re.MULTILINE)

_LISTING_FIELDS = {
    "title": "name",
    "context7-compatible library id": "library_id",
    "description": "description",
    "code snippets": "snippet_count",
    "trust score": "trust_score",
}


def parse_sse_body(text: str) -> dict[str, Any]:
    """Return the last JSON object carried by ``data:`` lines of an SSE body."""
    payload: dict[str, Any] | None = None
    data_lines: list[str] = []

    def flush() -> None:
        nonlocal payload
        if not data_lines:
            return
        try:
            parsed = json.loads("\n".join(data_lines))
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, dict):
            payload = parsed
        data_lines.clear()

    for line in text.splitlines():
        if not line.strip():
            flush()
        elif line.startswith("data:"):
            data_lines.append(line[5:].strip())
    flush()

    if payload is None:
        raise DocumentationClientError("No JSON payload in event stream")
    return payload


def parse_library_listing(text: str) -> list[LibraryRef]:
    """Parse the plain-text library listing returned by resolve-library-id.

    Sections are separated by dashed lines. Each holds ``- Field: value``
    lines. Sections without a library id are skipped.
    """
    refs = []
    for section in LIBRARY_SEPARATOR.split(text):
        fields: dict[str, str] = {}
        for raw in section.splitlines():
            line = raw.strip().lstrip("-").strip()
            label, sep, value = line.partition(":")
            if not sep:
                continue
            key = _LISTING_FIELDS.get(label.strip().lower())
            if key:
                fields[key] = value.strip()

        library_id = fields.get("library_id")
        if not library_id:
            continue
        refs.append(
            LibraryRef(
                library_id=library_id,
                name=fields.get("name") or library_id,
                description=fields.get("description", ""),
                trust_score=_to_float(fields.get("trust_score")),
                snippet_count=int(_to_float(fields.get("snippet_count"))),
            )
        )
    return refs


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _ref_from_mapping(data: dict[str, Any]) -> LibraryRef | None:
    library_id = data.get("libraryId") or data.get("id") or data.get("library_id")
    if not library_id:
        return None
    return LibraryRef(
        library_id=str(library_id),
        name=str(data.get("name") or data.get("title") or library_id),
        description=str(data.get("description") or ""),
        trust_score=_to_float(data.get("trustScore", data.get("trust_score"))),
        snippet_count=int(_to_float(data.get("codeSnippets", data.get("totalSnippets")))),
    )


def _content_text(result: Any) -> str:
    """Concatenate the text parts of an MCP tool result."""
    if isinstance(result, dict):
        content = result.get("content")
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            return "\n".join(
                part.get("text", "")
                for part in content
                if isinstance(part, dict) and part.get("type", "text") == "text"
            )
    return ""


class Context7Client(DocumentationClient):
    """Documentation client for the Context7 MCP endpoint."""

    def __init__(
        self,
        config: DocsSettings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config or settings.docs
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=self._config.timeout_seconds)
        self._ids = itertools.count(1)
        self._logger = logger.bind(component="context7_client")

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json, text/event-stream",
        }
        if self._config.api_key:
            headers["Authorization"] = f"Bearer {self._config.api_key}"
        return headers

    async def _call_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        request = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": "tools/call",
            "params": {"name": name, "arguments": arguments},
        }
        self._logger.debug("context7_request", tool=name, arguments=arguments)

        try:
            response = await self._http.post(
                self._config.base_url, json=request, headers=self._headers()
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise DocumentationClientError(f"Context7 {name} failed: {e}") from e

        body = self._decode(response)
        if body.get("error"):
            error = body["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise DocumentationClientError(f"Context7 {name} error: {message}")
        return body.get("result")

    @staticmethod
    def _decode(response: httpx.Response) -> dict[str, Any]:
        content_type = response.headers.get("content-type", "")
        if "text/event-stream" in content_type:
            return parse_sse_body(response.text)
        try:
            body = response.json()
        except ValueError:
            # Some deployments stream without the content type.
            return parse_sse_body(response.text)
        if not isinstance(body, dict):
            raise DocumentationClientError("Unexpected Context7 response shape")
        return body

    async def resolve_library(self, name: str) -> list[LibraryRef]:
        result = await self._call_tool(RESOLVE_TOOL, {"libraryName": name})

        if isinstance(result, list):
            refs = [
                ref
                for ref in (_ref_from_mapping(r) for r in result if isinstance(r, dict))
                if ref is not None
            ]
        else:
            refs = parse_library_listing(_content_text(result))

        refs.sort(key=lambda ref: ref.trust_score, reverse=True)
        self._logger.debug("context7_resolved", library=name, matches=len(refs))
        return refs

    async def get_docs(
        self, library: LibraryRef, topic: str, max_tokens: int
    ) -> DocsResult:
        arguments: dict[str, Any] = {
            "context7CompatibleLibraryID": library.library_id,
            "tokens": max_tokens,
        }
        if topic:
            arguments["topic"] = topic

        result = await self._call_tool(DOCS_TOOL, arguments)
        return DocsResult(
            content=_content_text(result),
            metadata={
                "library_id": library.library_id,
                "topic": topic,
                "tokens": max_tokens,
                "source": "context7",
            },
        )

    async def close(self) -> None:
        if self._owns_client:
            await self._http.aclose()
