"""Best-effort summarization of oversized context items."""

import asyncio

import structlog

from enrich.clients.base import ChatMessage, CompletionClient, CompletionOptions
from enrich.errors import CompletionError, SummarizationError

from .models import ContextItem, SourceKind

logger = structlog.get_logger()

SYSTEM_PROMPT = (
    "You condense reference material for a coding assistant. Keep exact "
    "identifiers, API names, versions and file paths. Never invent facts."
)

KIND_INSTRUCTIONS = {
    SourceKind.FACT: (
        "Summarize these project facts into a few categorized lines "
        "(PROJECT, TECH_STACK, ARCHITECTURE, QUALITY)."
    ),
    SourceKind.DOC: (
        "Summarize this framework documentation, keeping the key APIs, "
        "usage patterns and best practices."
    ),
    SourceKind.SNIPPET: (
        "Summarize this code, keeping function and class signatures and the "
        "patterns it demonstrates."
    ),
}


def build_messages(item: ContextItem, max_tokens: int) -> list[ChatMessage]:
    instruction = KIND_INSTRUCTIONS[item.kind]
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {
            "role": "user",
            "content": (
                f"{instruction} Stay under {max_tokens} tokens.\n\n"
                f"Source: {item.origin}\n\n{item.text}"
            ),
        },
    ]


class Summarizer:
    """Shorten a context item with an LLM completion client."""

    def __init__(
        self,
        client: CompletionClient,
        timeout: float | None = 20.0,
        temperature: float = 0.2,
    ) -> None:
        self._client = client
        self._timeout = timeout
        self._temperature = temperature
        self._logger = logger.bind(component="summarizer")

    async def shorten(self, item: ContextItem, max_tokens: int) -> str:
        """Return a paraphrase of item.text aimed at max_tokens.

        Raises:
            SummarizationError: If the client fails, times out or returns
                nothing
        """
        options = CompletionOptions(max_tokens=max_tokens, temperature=self._temperature)
        try:
            text = await asyncio.wait_for(
                self._client.complete(build_messages(item, max_tokens), options),
                timeout=self._timeout,
            )
        except TimeoutError as e:
            raise SummarizationError(
                f"Summarization of {item.origin} timed out after {self._timeout}s"
            ) from e
        except CompletionError as e:
            raise SummarizationError(f"Summarization of {item.origin} failed: {e}") from e

        summary = (text or "").strip()
        if not summary:
            raise SummarizationError(f"Empty summary for {item.origin}")

        self._logger.debug(
            "item_summarized",
            origin=item.origin,
            original_tokens=item.size_tokens,
            max_tokens=max_tokens,
            summary_chars=len(summary),
        )
        return summary
