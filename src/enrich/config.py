"""Enrich Configuration Module.

Provides centralized configuration for all Enrich components.
All settings support environment variable overrides with ENRICH_ prefix.
"""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PatternSettings(BaseModel):
    """Settings for the adaptive pattern registry."""

    learning_rate: float = Field(
        default=0.1,
        description="Step size of the exponential moving average weight update",
    )
    trusted_threshold: float = Field(
        default=0.7,
        description="Minimum weight for a pattern to become trusted",
    )
    min_success_rate: float = Field(
        default=0.3,
        description="Weight below which a pattern is demoted",
    )
    min_usage_for_trust: int = Field(
        default=5,
        description="Match attempts required before a pattern can be trusted",
    )
    max_learning_events: int = Field(
        default=1000,
        description="Number of learning events retained (oldest evicted first)",
    )
    learning_batch_size: int = Field(
        default=50,
        description="Maximum mailbox messages applied per batch",
    )
    min_detection_confidence: float = Field(
        default=0.5,
        description="Minimum score for an unproven pattern match to be used",
    )


class CacheSettings(BaseModel):
    """Settings for the enhancement cache."""

    enabled: bool = Field(default=True, description="Enable result caching")
    backend: str = Field(
        default="sqlite",
        description="Cache backend (sqlite, memory)",
    )
    default_ttl_seconds: int = Field(
        default=3600,
        description="Default time-to-live for cached enhancements",
    )
    max_ttl_seconds: int = Field(
        default=86400,
        description="Upper bound for any cache entry time-to-live",
    )
    ttl_multipliers: dict[str, float] = Field(
        default={"simple": 0.5, "medium": 1.0, "complex": 2.0},
        description="TTL multiplier per prompt complexity",
    )


class ContextSettings(BaseModel):
    """Settings for context gathering and budgeting."""

    default_max_tokens: int = Field(
        default=4000,
        description="Default token budget for assembled context",
    )
    max_items_per_source: int = Field(
        default=10,
        description="Maximum items any single source may contribute",
    )
    source_timeout_seconds: float = Field(
        default=5.0,
        description="Per-source fetch timeout",
    )
    doc_tokens_per_library: int = Field(
        default=2000,
        description="Token size requested from the documentation client per library",
    )
    fact_relevance_floor: float = Field(
        default=0.3,
        description="Minimum relevance assigned to a project fact",
    )
    snippet_context_lines: int = Field(
        default=6,
        description="Lines of context kept around a snippet hit",
    )
    max_snippet_lines: int = Field(
        default=40,
        description="Maximum lines in a single code snippet",
    )
    max_scan_files: int = Field(
        default=500,
        description="Maximum files inspected per snippet search",
    )
    max_file_bytes: int = Field(
        default=200_000,
        description="Files larger than this are skipped by snippet search",
    )
    summarize_timeout_seconds: float = Field(
        default=20.0,
        description="Timeout for a single summarization call",
    )


class QualitySettings(BaseModel):
    """Settings for the quality gate."""

    min_prompt_words: int = Field(
        default=4,
        description="Word count at which a prompt counts as already specific",
    )


class DocsSettings(BaseModel):
    """Settings for the documentation client."""

    provider: str = Field(
        default="context7",
        description="Documentation provider (context7, static)",
    )
    base_url: str = Field(
        default="https://mcp.context7.com/mcp",
        description="Context7 MCP HTTP endpoint",
    )
    api_key: str | None = Field(default=None, description="Context7 API key")
    timeout_seconds: float = Field(
        default=10.0,
        description="HTTP timeout for documentation requests",
    )
    cache_enabled: bool = Field(
        default=True,
        description="Cache resolved libraries and fetched docs (needs cache.enabled)",
    )
    cache_ttl_seconds: int = Field(
        default=86400,
        description="Time-to-live for cached library docs, capped by cache.max_ttl_seconds",
    )


class LLMSettings(BaseModel):
    """Settings for the completion client used by the summarizer."""

    api_key: str | None = Field(
        default=None,
        description="OpenAI API key (summarization disabled when unset)",
    )
    model: str = Field(default="gpt-4o-mini", description="Chat completion model")
    temperature: float = Field(default=0.2, description="Sampling temperature")
    max_output_tokens: int = Field(
        default=600,
        description="Upper bound on tokens generated per summary",
    )


# Default paths
ENRICH_HOME = Path.home() / ".enrich"
ENRICH_CACHE_DB = ENRICH_HOME / "cache.db"


class EnrichSettings(BaseSettings):
    """Enrich configuration.

    All settings can be overridden via environment variables with ENRICH_ prefix.
    For example, ENRICH_CACHE__BACKEND=memory sets cache.backend to "memory".
    """

    model_config = SettingsConfigDict(
        env_prefix="ENRICH_",
        env_nested_delimiter="__",
    )

    # Paths
    home: Path = Field(
        default=ENRICH_HOME,
        description="Base directory for Enrich data storage",
    )
    db_path: Path = Field(
        default=ENRICH_CACHE_DB,
        description="Path to SQLite database (defaults to <home>/cache.db)",
    )

    log_level: str = Field(
        default="info",
        description="Logging level (debug, info, warning, error)",
    )
    log_format: str = Field(
        default="json",
        description="Log output format (json, console)",
    )

    # Nested settings
    patterns: PatternSettings = Field(default_factory=PatternSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    context: ContextSettings = Field(default_factory=ContextSettings)
    quality: QualitySettings = Field(default_factory=QualitySettings)
    docs: DocsSettings = Field(default_factory=DocsSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)

    @model_validator(mode="before")
    @classmethod
    def _db_path_under_home(cls, data: Any) -> Any:
        """Place the database under ``home`` unless db_path is given."""
        if isinstance(data, dict) and not data.get("db_path"):
            home = Path(data.get("home") or ENRICH_HOME).expanduser()
            data = {**data, "db_path": home / ENRICH_CACHE_DB.name}
        return data

    @property
    def docs_cache_ttl_seconds(self) -> int:
        """Library docs TTL, never above the cache-wide maximum."""
        return max(1, min(self.docs.cache_ttl_seconds, self.cache.max_ttl_seconds))


# Module-level default
settings = EnrichSettings()
