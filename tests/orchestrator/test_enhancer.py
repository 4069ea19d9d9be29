"""Tests for PromptEnhancer."""

import asyncio
from pathlib import Path

import pytest

from enrich.clients.base import DocsResult, DocumentationClient, LibraryRef
from enrich.config import ContextSettings, EnrichSettings
from enrich.context import ContextItem, SourceKind
from enrich.errors import CacheUnavailableError
from enrich.orchestrator import EnhanceOptions, PromptEnhancer
from enrich.patterns import PatternRegistry, PatternState
from enrich.sources import (
    ContextSource,
    DocumentationSource,
    FetchConstraints,
    ProjectFactsSource,
    ProjectInspector,
    SnippetSource,
    SourceQuery,
)
from enrich.storage import CacheEntry, MemoryCacheStore


class FakeDocsClient(DocumentationClient):
    def __init__(self, docs: dict[str, str]) -> None:
        self.docs = docs
        self.resolve_calls = 0

    async def resolve_library(self, name: str) -> list[LibraryRef]:
        self.resolve_calls += 1
        if name not in self.docs:
            return []
        return [LibraryRef(library_id=f"/docs/{name}", name=name, trust_score=8.0)]

    async def get_docs(
        self, library: LibraryRef, topic: str, max_tokens: int
    ) -> DocsResult:
        return DocsResult(content=self.docs[library.name])


class BrokenSource(ContextSource):
    kind = SourceKind.FACT
    name = "broken"

    def dedup_key(self, item: ContextItem) -> str:
        return item.text

    async def _fetch(
        self, query: SourceQuery, constraints: FetchConstraints
    ) -> list[ContextItem]:
        raise ConnectionError("backend down")


class SlowSource(ContextSource):
    kind = SourceKind.SNIPPET
    name = "slow"

    def dedup_key(self, item: ContextItem) -> str:
        return item.text

    async def _fetch(
        self, query: SourceQuery, constraints: FetchConstraints
    ) -> list[ContextItem]:
        await asyncio.sleep(10)
        return [ContextItem(SourceKind.SNIPPET, "late", 1.0, "slow")]


class StaticSource(ContextSource):
    kind = SourceKind.FACT
    name = "static"

    def __init__(self, *texts: str) -> None:
        self.texts = texts
        self.calls = 0

    def dedup_key(self, item: ContextItem) -> str:
        return item.text

    async def _fetch(
        self, query: SourceQuery, constraints: FetchConstraints
    ) -> list[ContextItem]:
        self.calls += 1
        return [ContextItem(SourceKind.FACT, t, 0.5, "static") for t in self.texts]


class UnavailableCache(MemoryCacheStore):
    async def _load(self, key: str) -> CacheEntry | None:
        raise CacheUnavailableError("disk gone")


@pytest.fixture
def config() -> EnrichSettings:
    return EnrichSettings(context=ContextSettings(source_timeout_seconds=0.2))


@pytest.fixture
def docs_client() -> FakeDocsClient:
    return FakeDocsClient(
        {
            "react": "Use function components and hooks.",
            "postgresql": "Use parameterized queries.",
        }
    )


def make_enhancer(
    config: EnrichSettings,
    sources: list[ContextSource],
    cache: MemoryCacheStore | None = None,
    registry: PatternRegistry | None = None,
) -> PromptEnhancer:
    return PromptEnhancer(
        registry=registry or PatternRegistry(config=config.patterns),
        sources=sources,
        cache=cache,
        config=config,
    )


class TestScenarios:
    async def test_specific_prompt_without_context_is_unchanged(
        self, config: EnrichSettings, docs_client: FakeDocsClient
    ) -> None:
        """Test specific prompt without context is unchanged."""
        enhancer = make_enhancer(config, [DocumentationSource(docs_client)])
        prompt = "How do I create a button?"

        result = await enhancer.enhance(prompt, EnhanceOptions(max_tokens=100_000))

        assert result.enhanced_text == prompt
        assert result.context_summary.item_counts == {"fact": 0, "snippet": 0, "doc": 0}
        assert result.frameworks == ()

    async def test_trusted_frameworks_add_docs(
        self, config: EnrichSettings, docs_client: FakeDocsClient
    ) -> None:
        """Test trusted frameworks add docs."""
        registry = PatternRegistry(config=config.patterns)
        registry.restore_state(
            [
                {
                    "pattern_id": pattern_id,
                    "weight": 0.9,
                    "success_count": 9,
                    "usage_count": 10,
                    "last_updated": "2026-01-01T00:00:00+00:00",
                }
                for pattern_id in ("mention-react", "mention-postgresql")
            ]
        )
        assert registry.get("mention-react").state is PatternState.TRUSTED
        enhancer = make_enhancer(config, [DocumentationSource(docs_client)], registry=registry)
        prompt = "Build an auth system with React and Postgres"

        result = await enhancer.enhance(prompt)

        assert result.context_summary.item_counts["doc"] >= 1
        assert len(result.enhanced_text) > len(prompt)
        assert result.enhanced_text.startswith(prompt)
        assert "Use function components and hooks." in result.enhanced_text
        assert set(result.frameworks) == {"react", "postgresql"}

    async def test_bare_fragment_is_wrapped(self, config: EnrichSettings) -> None:
        """Test bare fragment is wrapped."""
        enhancer = make_enhancer(config, [])
        result = await enhancer.enhance("button")
        assert result.enhanced_text.startswith("## Task\nbutton")

    async def test_project_context(self, config: EnrichSettings, project_tree: Path) -> None:
        """Test project context."""
        inspector = ProjectInspector(config.context)
        enhancer = make_enhancer(
            config, [ProjectFactsSource(inspector), SnippetSource(inspector)]
        )

        result = await enhancer.enhance(
            "Refactor createSession to use a pool",
            EnhanceOptions(project_root=project_tree),
        )

        counts = result.context_summary.item_counts
        assert counts["fact"] >= 1
        assert counts["snippet"] >= 1
        assert "## Project Context" in result.enhanced_text
        assert "src/auth/session.ts" in result.enhanced_text

    async def test_framework_hint(self, config: EnrichSettings, docs_client: FakeDocsClient) -> None:
        """Test framework hint."""
        enhancer = make_enhancer(config, [DocumentationSource(docs_client)])
        result = await enhancer.enhance(
            "Write the data access layer", EnhanceOptions(framework_hint=("PostgreSQL",))
        )
        assert result.frameworks == ("postgresql",)
        assert result.context_summary.item_counts["doc"] == 1


class TestCaching:
    async def test_miss_then_hit(self, config: EnrichSettings, docs_client: FakeDocsClient) -> None:
        """Test a repeated request is a miss then a hit."""
        cache = MemoryCacheStore()
        enhancer = make_enhancer(config, [DocumentationSource(docs_client)], cache=cache)
        prompt = "Add a React hook for fetching users"

        first = await enhancer.enhance(prompt)
        second = await enhancer.enhance("  add a react hook for FETCHING users ")

        assert first.cache_hit is False
        assert second.cache_hit is True
        assert second.enhanced_text == first.enhanced_text
        assert second.context_summary == first.context_summary
        assert second.fingerprint == first.fingerprint
        assert docs_client.resolve_calls == 1

    async def test_use_cache_false_bypasses(self, config: EnrichSettings) -> None:
        """Test use cache false bypasses."""
        cache = MemoryCacheStore()
        source = StaticSource("Uses pnpm")
        enhancer = make_enhancer(config, [source], cache=cache)

        await enhancer.enhance("Add a script", EnhanceOptions(use_cache=False))
        await enhancer.enhance("Add a script", EnhanceOptions(use_cache=False))

        assert source.calls == 2
        assert (await cache.stats()).entries == 0

    async def test_options_change_key(self, config: EnrichSettings) -> None:
        """Test options change key."""
        cache = MemoryCacheStore()
        source = StaticSource("Uses pnpm")
        enhancer = make_enhancer(config, [source], cache=cache)

        await enhancer.enhance("Add a script", EnhanceOptions(max_tokens=100))
        result = await enhancer.enhance("Add a script", EnhanceOptions(max_tokens=200))

        assert result.cache_hit is False
        assert source.calls == 2

    async def test_degraded_results_not_cached(self, config: EnrichSettings) -> None:
        """Test degraded results not cached."""
        cache = MemoryCacheStore()
        enhancer = make_enhancer(config, [StaticSource("Uses pnpm"), BrokenSource()], cache=cache)

        result = await enhancer.enhance("Add a build script")

        assert result.context_summary.degraded_sources == ("broken",)
        assert (await cache.stats()).entries == 0

    async def test_cache_unavailable_still_enhances(self, config: EnrichSettings) -> None:
        """Test cache unavailable still enhances."""
        enhancer = make_enhancer(config, [StaticSource("Uses pnpm")], cache=UnavailableCache())

        result = await enhancer.enhance("Add a build script")

        assert result.cache_hit is False
        assert "Uses pnpm" in result.enhanced_text

    async def test_invalidate_project(self, config: EnrichSettings, project_tree: Path) -> None:
        """Test invalidate project."""
        cache = MemoryCacheStore()
        source = StaticSource("Uses npm")
        enhancer = make_enhancer(config, [source], cache=cache)
        options = EnhanceOptions(project_root=project_tree)

        await enhancer.enhance("Add a build script", options)
        await enhancer.enhance("Add a lint script")
        removed = await enhancer.invalidate_project(project_tree)
        again = await enhancer.enhance("Add a build script", options)

        assert removed == 1
        assert again.cache_hit is False
        assert (await cache.stats()).entries == 2


class TestDegradation:
    async def test_all_sources_failing(self, config: EnrichSettings) -> None:
        """Test all sources failing."""
        enhancer = make_enhancer(config, [BrokenSource(), SlowSource()])
        prompt = "Add pagination to the orders table"

        result = await enhancer.enhance(prompt)

        assert result.enhanced_text == prompt
        assert result.context_summary.item_counts == {"fact": 0, "snippet": 0, "doc": 0}
        assert set(result.context_summary.degraded_sources) == {"broken", "slow"}

    async def test_slow_source_does_not_block_others(self, config: EnrichSettings) -> None:
        """Test slow source does not block others."""
        enhancer = make_enhancer(config, [StaticSource("Uses pnpm"), SlowSource()])

        result = await asyncio.wait_for(enhancer.enhance("Add a build script"), timeout=5)

        assert "Uses pnpm" in result.enhanced_text
        assert "late" not in result.enhanced_text

    async def test_unexpected_error_returns_prompt(self, config: EnrichSettings) -> None:
        """Test unexpected error returns prompt."""
        class ExplodingRegistry(PatternRegistry):
            def detect(self, text, min_confidence=None):
                raise RuntimeError("corrupt table")

        enhancer = make_enhancer(config, [], registry=ExplodingRegistry(config=config.patterns))
        result = await enhancer.enhance("Add a build script")

        assert result.enhanced_text == "Add a build script"
        assert result.context_summary.total_tokens == 0

    async def test_empty_and_non_text_prompts(self, config: EnrichSettings) -> None:
        """Test empty and non text prompts."""
        enhancer = make_enhancer(config, [StaticSource("Uses pnpm")])

        assert (await enhancer.enhance("   ")).enhanced_text == "   "
        assert (await enhancer.enhance(None)).enhanced_text == ""  # type: ignore[arg-type]


class TestBudgetAndSources:
    async def test_budget_respected(self, config: EnrichSettings) -> None:
        """Test budget respected."""
        facts = [f"Fact number {n} " + "x" * 200 for n in range(10)]
        enhancer = make_enhancer(config, [StaticSource(*facts)])

        result = await enhancer.enhance("Add a build script", EnhanceOptions(max_tokens=200))

        summary = result.context_summary
        assert summary.total_tokens <= 200
        assert summary.summarized is True
        assert summary.item_counts["fact"] < 10

    async def test_source_filter(self, config: EnrichSettings) -> None:
        """Test source filter."""
        fact_source = StaticSource("Uses pnpm")
        enhancer = make_enhancer(config, [fact_source, SlowSource()])

        result = await enhancer.enhance(
            "Add a build script", EnhanceOptions(sources=frozenset({SourceKind.FACT}))
        )

        assert fact_source.calls == 1
        assert result.context_summary.degraded_sources == ()


class TestLearning:
    async def test_resolution_outcomes_become_learning_events(
        self, config: EnrichSettings, docs_client: FakeDocsClient
    ) -> None:
        """Test resolution outcomes become learning events."""
        registry = PatternRegistry(config=config.patterns)
        enhancer = make_enhancer(config, [DocumentationSource(docs_client)], registry=registry)

        await enhancer.enhance("Create a widget component with React")
        registry.drain()

        events = {(e.pattern_id, e.was_successful) for e in registry.learning_events()}
        assert ("mention-react", True) in events
        assert ("create-component", False) in events
        assert registry.get("mention-react").weight > 0.8

    async def test_record_feedback(self, config: EnrichSettings) -> None:
        """Test record feedback."""
        registry = PatternRegistry(config=config.patterns)
        enhancer = make_enhancer(config, [], registry=registry)

        enhancer.record_feedback("mention-vue", False)

        assert registry.pending == 0
        assert registry.get("mention-vue").weight == pytest.approx(0.72)

    async def test_mailbox_applied_without_consumer(
        self, config: EnrichSettings, docs_client: FakeDocsClient
    ) -> None:
        """Test requests do not pile up mailbox messages when no consumer runs."""
        registry = PatternRegistry(config=config.patterns)
        enhancer = make_enhancer(config, [DocumentationSource(docs_client)], registry=registry)

        for _ in range(3):
            await enhancer.enhance("Add a React hook for fetching users")

        assert registry.running is False
        assert registry.pending == 0
        assert registry.get("mention-react").usage_count == 3
        assert len(registry.learning_events()) == 3

    async def test_running_consumer_is_left_alone(self, config: EnrichSettings) -> None:
        """Test the enhancer does not drain while a consumer owns the mailbox."""
        registry = PatternRegistry(config=config.patterns)
        enhancer = make_enhancer(config, [], registry=registry)
        registry.start()
        try:
            await enhancer.enhance("Add a React hook for fetching users")
            await registry.flush()
            assert registry.running is True
            assert registry.pending == 0
            assert registry.get("mention-react").usage_count == 1
        finally:
            await registry.stop()


def test_result_to_dict_shape() -> None:
    """Test result to dict shape."""
    from enrich.orchestrator import ContextSummary, EnhanceResult

    result = EnhanceResult(
        enhanced_text="text",
        context_summary=ContextSummary(degraded_sources=("docs",)),
        cache_hit=True,
        fingerprint="abc",
        frameworks=("react",),
    )
    assert result.to_dict() == {
        "enhanced_text": "text",
        "context_summary": {
            "item_counts": {"fact": 0, "snippet": 0, "doc": 0},
            "summarized": False,
            "total_tokens": 0,
            "degraded_sources": ["docs"],
        },
        "cache_hit": True,
        "fingerprint": "abc",
        "frameworks": ["react"],
    }
