"""Time-to-live policy for cached enhancements."""

from collections.abc import Iterable

from enrich.config import CacheSettings, settings

SIMPLE = "simple"
MEDIUM = "medium"
COMPLEX = "complex"


def classify_complexity(prompt: str, frameworks: Iterable[str] = ()) -> str:
    """Rough request complexity from prompt length and framework count.

    Short prompts about at most one framework are ``simple``. Long prompts
    or prompts spanning three or more frameworks are ``complex``.
    """
    words = len(prompt.split()) if isinstance(prompt, str) else 0
    framework_count = len(set(frameworks))
    if words > 40 or framework_count >= 3:
        return COMPLEX
    if words <= 8 and framework_count <= 1:
        return SIMPLE
    return MEDIUM


def ttl_for(complexity: str, config: CacheSettings | None = None) -> int:
    """TTL in seconds for a complexity class.

    Unknown classes use a multiplier of 1.0. The result never exceeds
    ``max_ttl_seconds`` and is at least one second.
    """
    config = config or settings.cache
    multiplier = config.ttl_multipliers.get(complexity, 1.0)
    ttl = int(config.default_ttl_seconds * multiplier)
    return max(1, min(ttl, config.max_ttl_seconds))
