"""Tests for ContextBudgeter."""

import random

import pytest

from enrich.clients.base import ChatMessage, CompletionClient, CompletionOptions
from enrich.context import ContextBudgeter, ContextItem, SourceKind, Summarizer
from enrich.errors import CompletionError


class StubCompletionClient(CompletionClient):
    """Returns a fixed reply, or raises when ``error`` is set."""

    def __init__(self, reply: str = "", error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: list[list[ChatMessage]] = []

    async def complete(
        self, messages: list[ChatMessage], options: CompletionOptions
    ) -> str:
        self.calls.append(messages)
        if self.error:
            raise self.error
        return self.reply


def item(tokens: int, relevance: float, origin: str = "x") -> ContextItem:
    return ContextItem(
        kind=SourceKind.DOC,
        text="a" * (tokens * 4),
        relevance=relevance,
        origin=origin,
    )


class TestWithinBudget:
    async def test_returned_unchanged(self) -> None:
        """Test returned unchanged."""
        items = [item(10, 0.2, "a"), item(10, 0.9, "b"), item(10, 0.5, "c")]
        bundle = await ContextBudgeter().budget(items, 100)

        assert list(bundle.items) == items
        assert bundle.total_tokens == 30
        assert bundle.summarized is False
        assert bundle.dropped == 0

    async def test_empty_input(self) -> None:
        """Test empty input yields no items."""
        bundle = await ContextBudgeter().budget([], 100)
        assert bundle.is_empty
        assert bundle.total_tokens == 0

    async def test_zero_budget(self) -> None:
        """Test a zero budget yields an empty bundle."""
        bundle = await ContextBudgeter().budget([item(10, 0.5)], 0)
        assert bundle.is_empty
        assert bundle.dropped == 1


class TestOverBudget:
    async def test_keeps_most_relevant(self) -> None:
        """Test keeps most relevant."""
        items = [item(40, 0.9, "a"), item(40, 0.5, "b"), item(40, 0.7, "c")]
        bundle = await ContextBudgeter().budget(items, 90)

        assert [i.origin for i in bundle.items] == ["a", "c"]
        assert bundle.total_tokens == 80
        assert bundle.summarized is True
        assert bundle.dropped == 1

    async def test_stops_at_first_overflow(self) -> None:
        """Relevance order is respected, a small low-ranked item is not squeezed in."""
        items = [item(80, 0.9, "big"), item(40, 0.8, "mid"), item(5, 0.1, "tiny")]
        bundle = await ContextBudgeter().budget(items, 100)

        assert [i.origin for i in bundle.items] == ["big"]
        assert bundle.dropped == 2

    async def test_truncates_single_oversized_item_without_summarizer(self) -> None:
        """Test truncates single oversized item without summarizer."""
        bundle = await ContextBudgeter().budget([item(1000, 0.9)], 50)

        assert len(bundle.items) == 1
        shortened = bundle.items[0]
        assert shortened.size_tokens <= 50
        assert shortened.metadata["shortened"] == "truncated"
        assert bundle.shortened == 1

    async def test_summarizes_single_oversized_item(self) -> None:
        """Test summarizes single oversized item."""
        client = StubCompletionClient(reply="Use hooks for state.")
        budgeter = ContextBudgeter(Summarizer(client))

        bundle = await budgeter.budget([item(1000, 0.9, "react-docs")], 50)

        assert bundle.items[0].text == "Use hooks for state."
        assert bundle.items[0].metadata["shortened"] == "summary"
        assert bundle.items[0].origin == "react-docs"
        assert len(client.calls) == 1

    async def test_falls_back_to_truncation_on_summarizer_error(self) -> None:
        """Test falls back to truncation on summarizer error."""
        client = StubCompletionClient(error=CompletionError("rate limited"))
        budgeter = ContextBudgeter(Summarizer(client))

        bundle = await budgeter.budget([item(1000, 0.9)], 50)

        assert bundle.items[0].metadata["shortened"] == "truncated"
        assert bundle.total_tokens <= 50

    async def test_falls_back_when_summary_too_long(self) -> None:
        """Test falls back when summary too long."""
        client = StubCompletionClient(reply="b" * 1000)
        budgeter = ContextBudgeter(Summarizer(client))

        bundle = await budgeter.budget([item(1000, 0.9)], 50)

        assert bundle.items[0].metadata["shortened"] == "truncated"
        assert bundle.total_tokens <= 50

    async def test_only_top_item_summarized(self) -> None:
        """Test only top item summarized."""
        client = StubCompletionClient(reply="short")
        budgeter = ContextBudgeter(Summarizer(client))

        bundle = await budgeter.budget([item(500, 0.4, "low"), item(600, 0.8, "high")], 50)

        assert [i.origin for i in bundle.items] == ["high"]
        assert bundle.dropped == 1


@pytest.mark.parametrize("seed", range(10))
async def test_budget_invariant(seed: int) -> None:
    """Total fits the budget, or the bundle holds exactly one item."""
    rng = random.Random(seed)
    items = [
        item(rng.randint(1, 300), rng.random(), origin=f"item-{n}")
        for n in range(rng.randint(1, 12))
    ]
    max_tokens = rng.randint(1, 600)

    bundle = await ContextBudgeter().budget(items, max_tokens)

    assert bundle.total_tokens == sum(i.size_tokens for i in bundle.items)
    assert bundle.total_tokens <= max_tokens or len(bundle.items) == 1
    assert len(bundle.items) + bundle.dropped == len(items)
