"""Documentation and completion clients."""

from .base import (
    ChatMessage,
    CompletionClient,
    CompletionOptions,
    DocsResult,
    DocumentationClient,
    LibraryRef,
)
from .caching import CachingDocumentationClient
from .context7 import Context7Client
from .openai_completion import OpenAICompletionClient
from .static import StaticDocumentationClient

__all__ = [
    "CachingDocumentationClient",
    "ChatMessage",
    "CompletionClient",
    "CompletionOptions",
    "Context7Client",
    "DocsResult",
    "DocumentationClient",
    "LibraryRef",
    "OpenAICompletionClient",
    "StaticDocumentationClient",
]
