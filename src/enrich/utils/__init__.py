"""Enrich utility modules.

Provides centralized utilities for:
- datetime: UTC clock and ISO 8601 serialization for stored timestamps
- numeric: range clamping for weights and relevance scores
- tokens: heuristic token estimation and truncation
"""

from enrich.utils.datetime import deserialize_datetime, serialize_datetime, utc_now
from enrich.utils.numeric import clamp
from enrich.utils.tokens import estimate_tokens, truncate_to_tokens

__all__ = [
    "clamp",
    "deserialize_datetime",
    "estimate_tokens",
    "serialize_datetime",
    "truncate_to_tokens",
    "utc_now",
]
