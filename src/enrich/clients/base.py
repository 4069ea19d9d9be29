"""Collaborator interfaces consumed by the enhancement core."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, TypedDict


class ChatMessage(TypedDict):
    role: str
    content: str


@dataclass(frozen=True)
class LibraryRef:
    """A documentation provider's handle on one library."""

    library_id: str
    name: str
    description: str = ""
    trust_score: float = 0.0
    snippet_count: int = 0


@dataclass
class DocsResult:
    """Documentation fetched for one library."""

    content: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CompletionOptions:
    max_tokens: int = 500
    temperature: float = 0.2


class DocumentationClient(ABC):
    """Documentation lookup service.

    Implementations raise DocumentationClientError on provider failure.
    """

    @abstractmethod
    async def resolve_library(self, name: str) -> list[LibraryRef]:
        pass

    @abstractmethod
    async def get_docs(
        self, library: LibraryRef, topic: str, max_tokens: int
    ) -> DocsResult:
        pass

    async def close(self) -> None:
        """Release network resources. No-op by default."""
        return None


class CompletionClient(ABC):
    """LLM completion service.

    Implementations raise CompletionError on provider failure.
    """

    @abstractmethod
    async def complete(
        self, messages: list[ChatMessage], options: CompletionOptions
    ) -> str:
        pass

    async def close(self) -> None:
        """Release network resources. No-op by default."""
        return None
