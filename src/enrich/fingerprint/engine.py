"""Fingerprint engine.

A fingerprint is the SHA-256 of a canonical JSON document built from the
normalized prompt, the canonicalized options and the sorted set of detected
frameworks. Nothing process-local (``hash()``, object ids, dict ordering)
takes part, so keys are stable across restarts.
"""

import dataclasses
import hashlib
import json
import math
import re
import unicodedata
from collections.abc import Iterable, Mapping
from enum import Enum
from pathlib import PurePath
from typing import Any, NewType

import structlog

logger = structlog.get_logger()

Fingerprint = NewType("Fingerprint", str)

FINGERPRINT_VERSION = 1

# Options that describe how a request is served rather than what it asks for
REQUEST_SCOPED_OPTIONS = frozenset(
    {"use_cache", "ttl_seconds", "request_id", "session_id", "timestamp", "cache_key"}
)

_WHITESPACE = re.compile(r"\s+")


def normalize_prompt(prompt: Any) -> str:
    """Normalize a prompt so trivially different spellings share a key.

    Applies NFKC, case folding and whitespace collapsing. Non-string input
    becomes the empty string.
    """
    if not isinstance(prompt, str):
        return ""
    text = unicodedata.normalize("NFKC", prompt).casefold()
    return _WHITESPACE.sub(" ", text).strip()


def canonicalize_options(options: Any) -> dict[str, Any]:
    """Convert an options object into a sorted, JSON-safe dict.

    Accepts dataclasses, pydantic models, mappings and None. Request-scoped
    keys are dropped and unserializable values become ``""``.
    """
    raw = _options_to_mapping(options)
    canonical: dict[str, Any] = {}
    for key in sorted(raw, key=str):
        name = str(key)
        if name in REQUEST_SCOPED_OPTIONS:
            continue
        canonical[name] = _canonical_value(raw[key])
    return canonical


def _options_to_mapping(options: Any) -> Mapping[Any, Any]:
    if options is None:
        return {}
    if isinstance(options, Mapping):
        return options
    if dataclasses.is_dataclass(options) and not isinstance(options, type):
        return {f.name: getattr(options, f.name) for f in dataclasses.fields(options)}
    model_dump = getattr(options, "model_dump", None)
    if callable(model_dump):
        try:
            dumped = model_dump()
        except Exception:
            return {}
        if isinstance(dumped, Mapping):
            return dumped
    return {}


def _canonical_value(value: Any, depth: int = 0) -> Any:
    if depth > 8 or value is None:
        return ""
    if isinstance(value, bool | int | str):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else ""
    if isinstance(value, Enum):
        return _canonical_value(value.value, depth + 1)
    if isinstance(value, PurePath):
        return value.as_posix()
    if isinstance(value, Mapping):
        return {
            str(k): _canonical_value(v, depth + 1)
            for k, v in sorted(value.items(), key=lambda kv: str(kv[0]))
        }
    if isinstance(value, set | frozenset):
        items = [_canonical_value(v, depth + 1) for v in value]
        return sorted(items, key=lambda v: json.dumps(v, sort_keys=True))
    if isinstance(value, list | tuple):
        return [_canonical_value(v, depth + 1) for v in value]
    return ""


def _canonical_frameworks(frameworks: Iterable[Any] | None) -> list[str]:
    if not frameworks:
        return []
    names = set()
    for framework in frameworks:
        if isinstance(framework, str):
            name = framework.strip().casefold()
            if name:
                names.add(name)
    return sorted(names)


def fingerprint(
    prompt: str,
    options: Any = None,
    detected_frameworks: Iterable[str] | None = None,
) -> Fingerprint:
    """Compute the cache key for an enhancement request.

    Args:
        prompt: Raw user prompt
        options: Enhancement options (dataclass, pydantic model, mapping or None)
        detected_frameworks: Framework names in any order

    Returns:
        Hex SHA-256 digest. Never raises; malformed fields hash as empty.
    """
    try:
        frameworks = _canonical_frameworks(detected_frameworks)
    except Exception as e:
        logger.debug("fingerprint_frameworks_ignored", error=str(e))
        frameworks = []

    try:
        canonical_options = canonicalize_options(options)
    except Exception as e:
        logger.debug("fingerprint_options_ignored", error=str(e))
        canonical_options = {}

    document = {
        "v": FINGERPRINT_VERSION,
        "prompt": normalize_prompt(prompt),
        "options": canonical_options,
        "frameworks": frameworks,
    }
    payload = json.dumps(
        document, sort_keys=True, separators=(",", ":"), ensure_ascii=False
    )
    return Fingerprint(hashlib.sha256(payload.encode("utf-8")).hexdigest())
