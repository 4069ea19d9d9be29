"""Deduplication keys and helpers for context items."""

import posixpath
import re
from collections.abc import Callable, Iterable

from .models import ContextItem

_WHITESPACE = re.compile(r"\s+")


def deduplicate_items(
    items: Iterable[ContextItem],
    key: Callable[[ContextItem], str],
) -> list[ContextItem]:
    """Keep the most relevant item per key, sorted by relevance descending."""
    seen: dict[str, ContextItem] = {}

    for item in items:
        item_key = key(item)
        current = seen.get(item_key)
        if current is None or item.relevance > current.relevance:
            seen[item_key] = item

    return sorted(seen.values(), key=lambda x: x.relevance, reverse=True)


def normalize_text(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip().casefold()


def normalize_path(path: str) -> str:
    """Normalize a file path so ``./src//a.py`` and ``src/a.py`` agree."""
    cleaned = path.replace("\\", "/")
    normalized = posixpath.normpath(cleaned)
    if normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


def fact_key(item: ContextItem) -> str:
    return f"fact:{normalize_text(item.text)}"


def doc_key(item: ContextItem) -> str:
    library_id = item.metadata.get("library_id") or item.origin
    return f"doc:{library_id}"


def snippet_key(item: ContextItem) -> str:
    file_path = normalize_path(str(item.metadata.get("file_path", item.origin)))
    start = item.metadata.get("start_line", "?")
    end = item.metadata.get("end_line", "?")
    return f"snippet:{file_path}:{start}-{end}"
