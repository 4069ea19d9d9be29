"""OpenAI chat-completion client."""

import openai
import structlog
from openai import AsyncOpenAI

from enrich.config import LLMSettings, settings
from enrich.errors import CompletionError

from .base import ChatMessage, CompletionClient, CompletionOptions

logger = structlog.get_logger()


class OpenAICompletionClient(CompletionClient):
    """Completion client backed by ``AsyncOpenAI`` chat completions."""

    def __init__(
        self,
        config: LLMSettings | None = None,
        client: AsyncOpenAI | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._config = config or settings.llm
        self._owns_client = client is None
        self._client = client or AsyncOpenAI(api_key=self._config.api_key, timeout=timeout)
        self._logger = logger.bind(component="openai_completion", model=self._config.model)

    async def complete(
        self, messages: list[ChatMessage], options: CompletionOptions
    ) -> str:
        max_tokens = min(options.max_tokens, self._config.max_output_tokens)
        try:
            response = await self._client.chat.completions.create(
                model=self._config.model,
                messages=[dict(m) for m in messages],
                max_tokens=max_tokens,
                temperature=options.temperature,
            )
        except openai.OpenAIError as e:
            raise CompletionError(f"OpenAI completion failed: {e}") from e

        if not response.choices:
            raise CompletionError("OpenAI returned no choices")

        content = response.choices[0].message.content or ""
        self._logger.debug(
            "completion_received",
            max_tokens=max_tokens,
            output_chars=len(content),
        )
        return content

    async def close(self) -> None:
        if self._owns_client:
            await self._client.close()
