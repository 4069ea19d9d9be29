"""Exceptions for Enrich components.

None of these escape `PromptEnhancer.enhance()`; each is recovered at the
boundary named in its docstring.
"""


class EnrichError(Exception):
    """Base exception for Enrich."""

    pass


class SourceUnavailableError(EnrichError):
    """Raised inside a context source when it cannot produce items.

    Recovered by `ContextSource.fetch_result()`, which reports the error
    and returns no items.
    """

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Context source '{source}' unavailable: {reason}")


class DocumentationClientError(EnrichError):
    """Raised when the documentation provider fails."""

    pass


class CompletionError(EnrichError):
    """Raised when the completion provider fails."""

    pass


class SummarizationError(EnrichError):
    """Raised when an item cannot be summarized.

    Recovered by the budgeter, which hard-truncates instead.
    """

    pass


class CacheUnavailableError(EnrichError):
    """Raised when the cache store cannot be reached.

    Recovered by the orchestrator, which treats the request as a miss.
    """

    pass
