"""Lexical relevance scoring.

Relevance is cosine similarity between term-count vectors of the query and
a candidate text, computed with numpy. This lexical overlap is the scoring
algorithm; there is no embedding model behind it.
"""

import re
from collections import Counter

import numpy as np

_TOKEN = re.compile(r"[a-z][a-z0-9_]+|[0-9]{2,}")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

STOP_WORDS = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "build", "by", "can", "create",
        "do", "does", "for", "from", "how", "i", "if", "in", "into", "is", "it",
        "make", "me", "my", "need", "of", "on", "or", "please", "should", "so",
        "some", "that", "the", "this", "to", "use", "using", "want", "what",
        "when", "where", "which", "with", "would", "you", "your",
    }
)


def tokenize(text: str) -> list[str]:
    """Split text into lower-case terms, splitting camelCase and snake_case."""
    if not text:
        return []
    spaced = _CAMEL_BOUNDARY.sub(" ", text).replace("_", " ").lower()
    return [t for t in _TOKEN.findall(spaced) if t not in STOP_WORDS]


def salient_terms(text: str, limit: int = 8) -> list[str]:
    """Most frequent non-stop-word terms, longest first on ties."""
    counts = Counter(tokenize(text))
    ranked = sorted(counts.items(), key=lambda kv: (-kv[1], -len(kv[0]), kv[0]))
    return [term for term, _ in ranked[:limit]]


def lexical_similarity(query: str, text: str) -> float:
    """Cosine similarity of term counts, in [0, 1]."""
    query_counts = Counter(tokenize(query))
    text_counts = Counter(tokenize(text))
    if not query_counts or not text_counts:
        return 0.0

    vocabulary = sorted(query_counts.keys() | text_counts.keys())
    query_vec = np.array([query_counts[t] for t in vocabulary], dtype=np.float32)
    text_vec = np.array([text_counts[t] for t in vocabulary], dtype=np.float32)

    query_norm = np.linalg.norm(query_vec)
    text_norm = np.linalg.norm(text_vec)
    if query_norm == 0 or text_norm == 0:
        return 0.0

    similarity = float(np.dot(query_vec, text_vec) / (query_norm * text_norm))
    return max(0.0, min(1.0, similarity))
