"""Token budget enforcement for assembled context.

Two tiers: relevance-ordered truncation of the item list is always
available; summarization of an oversized top item is attempted only when a
Summarizer was supplied, and falls back to hard truncation of its text.
"""

from collections.abc import Iterable

import structlog

from enrich.errors import SummarizationError
from enrich.utils.tokens import estimate_tokens, truncate_to_tokens

from .models import ContextBundle, ContextItem
from .summarizer import Summarizer

logger = structlog.get_logger()


class ContextBudgeter:
    """Fit context items into a token budget."""

    def __init__(self, summarizer: Summarizer | None = None) -> None:
        self._summarizer = summarizer
        self._logger = logger.bind(component="context_budgeter")

    async def budget(
        self, items: Iterable[ContextItem], max_tokens: int
    ) -> ContextBundle:
        """Return a bundle whose total fits max_tokens.

        The result holds at most max_tokens tokens, or exactly one item.
        """
        candidates = list(items)

        if max_tokens <= 0:
            return ContextBundle(
                items=(),
                total_tokens=0,
                max_tokens=max_tokens,
                summarized=bool(candidates),
                dropped=len(candidates),
            )

        total_tokens = sum(item.size_tokens for item in candidates)
        if total_tokens <= max_tokens:
            return ContextBundle(
                items=tuple(candidates),
                total_tokens=total_tokens,
                max_tokens=max_tokens,
            )

        self._logger.info(
            "context_over_budget",
            budget=max_tokens,
            actual=total_tokens,
            item_count=len(candidates),
        )

        ranked = sorted(candidates, key=lambda item: item.relevance, reverse=True)
        kept: list[ContextItem] = []
        used_tokens = 0
        for item in ranked:
            item_tokens = item.size_tokens
            if used_tokens + item_tokens > max_tokens:
                break
            kept.append(item)
            used_tokens += item_tokens

        shortened = 0
        if not kept:
            top = await self._shorten(ranked[0], max_tokens)
            kept = [top]
            used_tokens = top.size_tokens
            shortened = 1

        dropped = len(candidates) - len(kept)
        self._logger.debug(
            "context_budgeted",
            kept=len(kept),
            dropped=dropped,
            shortened=shortened,
            total_tokens=used_tokens,
        )
        return ContextBundle(
            items=tuple(kept),
            total_tokens=used_tokens,
            max_tokens=max_tokens,
            summarized=True,
            dropped=dropped,
            shortened=shortened,
        )

    async def _shorten(self, item: ContextItem, max_tokens: int) -> ContextItem:
        if self._summarizer is not None:
            try:
                summary = await self._summarizer.shorten(item, max_tokens)
            except SummarizationError as e:
                self._logger.warning(
                    "summarization_failed", origin=item.origin, error=str(e)
                )
            else:
                if estimate_tokens(summary) <= max_tokens:
                    return item.with_text(summary, shortened="summary")
                self._logger.info(
                    "summary_over_budget",
                    origin=item.origin,
                    summary_tokens=estimate_tokens(summary),
                    budget=max_tokens,
                )

        return item.with_text(
            truncate_to_tokens(item.text, max_tokens), shortened="truncated"
        )
