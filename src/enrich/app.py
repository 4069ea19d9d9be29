"""Composition root.

Builds a ready-to-use PromptEnhancer from settings and owns the resources
behind it.
"""

from dataclasses import dataclass

import structlog

from enrich.clients.base import CompletionClient, DocumentationClient
from enrich.clients.caching import CachingDocumentationClient
from enrich.clients.context7 import Context7Client
from enrich.clients.openai_completion import OpenAICompletionClient
from enrich.clients.static import StaticDocumentationClient
from enrich.config import EnrichSettings, settings as default_settings
from enrich.context.budget import ContextBudgeter
from enrich.context.summarizer import Summarizer
from enrich.errors import CacheUnavailableError, EnrichError
from enrich.logging import configure_logging
from enrich.orchestrator.enhancer import PromptEnhancer
from enrich.patterns.registry import PatternRegistry
from enrich.sources.docs import DocumentationSource
from enrich.sources.facts import ProjectFactsSource
from enrich.sources.project import ProjectInspector
from enrich.sources.snippets import SnippetSource
from enrich.storage.base import CacheStore
from enrich.storage.memory import MemoryCacheStore
from enrich.storage.patterns import SQLitePatternStore
from enrich.storage.sqlite import SQLiteCacheStore

logger = structlog.get_logger()


@dataclass
class EnhancerApp:
    """A PromptEnhancer and the services it depends on.

    Call close() when done: it persists learned pattern weights and
    releases the aiosqlite connections, whose background threads otherwise
    keep the interpreter alive.
    """

    enhancer: PromptEnhancer
    registry: PatternRegistry
    docs_client: DocumentationClient
    cache: CacheStore | None = None
    pattern_store: SQLitePatternStore | None = None
    completion_client: CompletionClient | None = None
    docs_cache: CacheStore | None = None

    async def close(self) -> None:
        await self.registry.stop()

        if self.pattern_store is not None:
            try:
                await self.pattern_store.save(self.registry.export_state())
            except EnrichError as e:
                logger.warning("pattern_state_not_saved", error=str(e))
            await self.pattern_store.close()

        if self.cache is not None:
            await self.cache.close()
        await self.docs_client.close()
        if self.docs_cache is not None:
            await self.docs_cache.close()
        if self.completion_client is not None:
            await self.completion_client.close()
        logger.debug("enhancer_app_closed")


async def _open_cache(cache: CacheStore, name: str) -> CacheStore | None:
    try:
        await cache.initialize()
    except CacheUnavailableError as e:
        logger.warning("cache_unavailable", cache=name, operation="initialize", error=str(e))
        return None
    return cache


async def create_enhancer(
    settings: EnrichSettings | None = None,
    *,
    docs_client: DocumentationClient | None = None,
    completion_client: CompletionClient | None = None,
    setup_logging: bool = False,
) -> EnhancerApp:
    """Wire every component from settings.

    Supplied clients are used as-is. Otherwise the documentation client is
    chosen by ``docs.provider``, and an OpenAI client is created only when
    ``llm.api_key`` is set. Without a completion client the budgeter falls
    back to truncation.

    A cache or pattern store that cannot be opened is logged and left out:
    the enhancer then runs uncached or without persisted weights.

    With ``setup_logging`` the process-wide structlog configuration is set
    from ``log_level`` and ``log_format``. Embedding applications that
    configure logging themselves leave it off.
    """
    config = settings or default_settings
    if setup_logging:
        configure_logging(log_level=config.log_level, log_format=config.log_format)
    logger.info(
        "enhancer_initializing",
        cache_backend=config.cache.backend if config.cache.enabled else "disabled",
        docs_provider=config.docs.provider,
    )

    if docs_client is None:
        if config.docs.provider == "static":
            docs_client = StaticDocumentationClient()
        else:
            docs_client = Context7Client(config.docs)

    if completion_client is None and config.llm.api_key:
        completion_client = OpenAICompletionClient(config.llm)

    summarizer = None
    if completion_client is not None:
        summarizer = Summarizer(
            completion_client,
            timeout=config.context.summarize_timeout_seconds,
            temperature=config.llm.temperature,
        )

    in_memory = config.cache.backend == "memory"
    cache: CacheStore | None = None
    docs_cache: CacheStore | None = None
    if config.cache.enabled:
        cache = await _open_cache(
            MemoryCacheStore() if in_memory else SQLiteCacheStore(config.db_path),
            "prompt",
        )
        if config.docs.cache_enabled:
            docs_cache = await _open_cache(
                MemoryCacheStore()
                if in_memory
                else SQLiteCacheStore(config.db_path, table="library_docs"),
                "docs",
            )
    if docs_cache is not None:
        docs_client = CachingDocumentationClient(
            docs_client, docs_cache, ttl_seconds=config.docs_cache_ttl_seconds
        )

    registry = PatternRegistry(config=config.patterns)
    pattern_store: SQLitePatternStore | None = None
    if not in_memory:
        pattern_store = SQLitePatternStore(config.db_path)
        try:
            await pattern_store.initialize()
            restored = registry.restore_state(await pattern_store.load())
        except EnrichError as e:
            logger.warning("pattern_state_not_loaded", error=str(e))
            await pattern_store.close()
            pattern_store = None
        else:
            logger.info("pattern_state_restored", patterns=restored)
    registry.start()

    inspector = ProjectInspector(config.context)
    sources = [
        DocumentationSource(docs_client),
        ProjectFactsSource(inspector, relevance_floor=config.context.fact_relevance_floor),
        SnippetSource(inspector),
    ]

    enhancer = PromptEnhancer(
        registry=registry,
        sources=sources,
        budgeter=ContextBudgeter(summarizer),
        cache=cache,
        config=config,
    )
    logger.info("enhancer_initialized", sources=[s.name for s in sources])

    return EnhancerApp(
        enhancer=enhancer,
        registry=registry,
        docs_client=docs_client,
        cache=cache,
        pattern_store=pattern_store,
        completion_client=completion_client,
        docs_cache=docs_cache,
    )
