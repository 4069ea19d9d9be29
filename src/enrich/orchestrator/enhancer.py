"""Prompt enhancement orchestrator.

Ties detection, caching, context gathering, budgeting and composition
together for one request. ``enhance`` never raises: the worst case is the
original prompt with an empty context summary.
"""

import asyncio
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import structlog

from enrich.config import EnrichSettings, settings
from enrich.context.budget import ContextBudgeter
from enrich.context.formatting import compose_enhanced_prompt, wrap_bare_prompt
from enrich.errors import CacheUnavailableError
from enrich.fingerprint import fingerprint
from enrich.patterns.models import PatternMatch
from enrich.patterns.registry import PatternRegistry
from enrich.sources.base import (
    ContextSource,
    DetectedFramework,
    FetchConstraints,
    SourceQuery,
    SourceResult,
)
from enrich.storage.base import CacheStore
from enrich.storage.models import CacheEntry
from enrich.storage.ttl import classify_complexity, ttl_for

from .models import ContextSummary, EnhanceOptions, EnhanceResult, RequestState

logger = structlog.get_logger()

PROJECT_ROOT_KEY = "project_root"


def _project_key(root: Path | str) -> str:
    return Path(root).expanduser().resolve().as_posix()


class PromptEnhancer:
    """Enhance prompts with framework docs, project facts and code snippets."""

    def __init__(
        self,
        registry: PatternRegistry,
        sources: Sequence[ContextSource],
        budgeter: ContextBudgeter | None = None,
        cache: CacheStore | None = None,
        config: EnrichSettings | None = None,
    ) -> None:
        self._registry = registry
        self._sources = list(sources)
        self._budgeter = budgeter or ContextBudgeter()
        self._cache = cache
        self._config = config or settings
        self._logger = logger.bind(component="prompt_enhancer")

    async def enhance(
        self, prompt: str, options: EnhanceOptions | None = None
    ) -> EnhanceResult:
        if not isinstance(prompt, str):
            self._logger.warning("prompt_not_text", type=type(prompt).__name__)
            return EnhanceResult.unchanged("")
        if not prompt.strip():
            return EnhanceResult.unchanged(prompt)

        try:
            return await self._enhance(prompt, options or EnhanceOptions())
        except Exception as e:
            self._logger.error(
                "enhance_failed",
                error_type=type(e).__name__,
                error=str(e),
                exc_info=True,
            )
            return EnhanceResult.unchanged(prompt)
        finally:
            self._settle_learning()

    def record_feedback(self, pattern_id: str, was_successful: bool) -> None:
        """Report whether a detection by pattern_id turned out to be right."""
        self._registry.record_outcome(pattern_id, was_successful)
        self._settle_learning()

    def _settle_learning(self) -> None:
        # Without a background consumer the mailbox is applied inline.
        if self._registry.running:
            return
        try:
            self._registry.drain()
        except Exception as e:
            self._logger.error("pattern_drain_failed", error=str(e), exc_info=True)

    async def invalidate_project(self, project_root: Path | str) -> int:
        """Drop cached results built from project_root. Returns the count."""
        if self._cache is None:
            return 0
        target = _project_key(project_root)
        try:
            removed = await self._cache.invalidate(
                lambda entry: entry.context_summary.get(PROJECT_ROOT_KEY) == target
            )
        except CacheUnavailableError as e:
            self._logger.warning("cache_unavailable", operation="invalidate", error=str(e))
            return 0
        self._logger.info("project_invalidated", project_root=target, removed=removed)
        return removed

    async def _enhance(self, prompt: str, options: EnhanceOptions) -> EnhanceResult:
        log = self._logger
        state = RequestState.RECEIVED

        matches = self._registry.detect(prompt)
        frameworks = self._frameworks(matches, options.framework_hint)
        names = tuple(f.name for f in frameworks)

        key = fingerprint(prompt, options, names)
        log = log.bind(fingerprint=key[:16])
        log.debug("request_received", frameworks=list(names))

        state = self._advance(log, state, RequestState.CACHE_CHECK)
        use_cache = (
            options.use_cache and self._cache is not None and self._config.cache.enabled
        )
        if use_cache:
            try:
                entry = await self._cache.get(key)
            except CacheUnavailableError as e:
                log.warning("cache_unavailable", operation="get", error=str(e))
                use_cache = False
                entry = None
            if entry is not None:
                log.info("cache_hit", hit_count=entry.hit_count)
                self._advance(log, state, RequestState.DONE)
                return EnhanceResult(
                    enhanced_text=entry.enhanced_text,
                    context_summary=ContextSummary.from_dict(entry.context_summary),
                    cache_hit=True,
                    fingerprint=key,
                    frameworks=names,
                )
            if use_cache:
                log.debug("cache_miss")

        state = self._advance(log, state, RequestState.GATHERING)
        query = SourceQuery(
            prompt=prompt,
            frameworks=frameworks,
            project_root=options.project_root,
            on_resolution=self._resolution_reporter(matches),
        )
        results = await self._gather(query, options, log)
        items = [item for result in results for item in result.items]
        degraded = tuple(sorted(result.source for result in results if result.failed))

        state = self._advance(log, state, RequestState.BUDGETING)
        max_tokens = (
            options.max_tokens
            if options.max_tokens is not None
            else self._config.context.default_max_tokens
        )
        bundle = await self._budgeter.budget(items, max_tokens)

        state = self._advance(log, state, RequestState.COMPOSING)
        if bundle.is_empty:
            if len(prompt.split()) >= self._config.quality.min_prompt_words:
                enhanced_text = prompt
                log.debug("quality_gate_passthrough")
            else:
                enhanced_text = wrap_bare_prompt(prompt)
        else:
            enhanced_text = compose_enhanced_prompt(prompt, bundle)

        summary = ContextSummary(
            item_counts=bundle.item_counts(),
            summarized=bundle.summarized,
            total_tokens=bundle.total_tokens,
            degraded_sources=degraded,
        )

        state = self._advance(log, state, RequestState.CACHING)
        if use_cache:
            if degraded:
                log.info("cache_skipped", reason="degraded", sources=list(degraded))
            else:
                await self._store(key, prompt, names, options, enhanced_text, summary, log)

        self._advance(log, state, RequestState.DONE)
        log.info(
            "prompt_enhanced",
            item_counts=summary.item_counts,
            total_tokens=summary.total_tokens,
            summarized=summary.summarized,
            degraded_sources=list(degraded),
        )
        return EnhanceResult(
            enhanced_text=enhanced_text,
            context_summary=summary,
            cache_hit=False,
            fingerprint=key,
            frameworks=names,
        )

    @staticmethod
    def _advance(log: Any, current: RequestState, target: RequestState) -> RequestState:
        log.debug("request_state", previous=current.value, current=target.value)
        return target

    @staticmethod
    def _frameworks(
        matches: list[PatternMatch], hints: tuple[str, ...]
    ) -> tuple[DetectedFramework, ...]:
        confidence: dict[str, float] = {}
        for hint in hints:
            confidence[hint] = 1.0
        for match in matches:
            confidence[match.name] = max(confidence.get(match.name, 0.0), match.score)
        return tuple(DetectedFramework(name, score) for name, score in confidence.items())

    def _resolution_reporter(self, matches: list[PatternMatch]):
        pattern_ids: dict[str, list[str]] = {}
        for match in matches:
            pattern_ids.setdefault(match.name, []).append(match.pattern_id)

        def report(name: str, resolved: bool) -> None:
            for pattern_id in pattern_ids.get(name, ()):
                self._registry.record_outcome(pattern_id, resolved)

        return report

    async def _gather(
        self, query: SourceQuery, options: EnhanceOptions, log: Any
    ) -> list[SourceResult]:
        context_config = self._config.context
        constraints = FetchConstraints(
            max_items=context_config.max_items_per_source,
            doc_tokens=context_config.doc_tokens_per_library,
        )
        enabled = [
            source
            for source in self._sources
            if options.sources is None or source.kind in options.sources
        ]

        async def fetch(source: ContextSource) -> SourceResult:
            try:
                return await asyncio.wait_for(
                    source.fetch_result(query, constraints),
                    timeout=context_config.source_timeout_seconds,
                )
            except TimeoutError:
                log.warning(
                    "source_timeout",
                    source=source.name,
                    timeout=context_config.source_timeout_seconds,
                )
                return SourceResult(source=source.name, items=[], error="timeout")

        return list(await asyncio.gather(*(fetch(source) for source in enabled)))

    async def _store(
        self,
        key: str,
        prompt: str,
        frameworks: tuple[str, ...],
        options: EnhanceOptions,
        enhanced_text: str,
        summary: ContextSummary,
        log: Any,
    ) -> None:
        ttl = options.ttl_seconds or ttl_for(
            classify_complexity(prompt, frameworks), self._config.cache
        )
        cached_summary = summary.to_dict()
        if options.project_root is not None:
            cached_summary[PROJECT_ROOT_KEY] = _project_key(options.project_root)

        entry = CacheEntry(key=key, enhanced_text=enhanced_text, context_summary=cached_summary)
        try:
            await self._cache.put(key, entry, ttl)
        except CacheUnavailableError as e:
            log.warning("cache_unavailable", operation="put", error=str(e))
            return
        log.debug("cache_stored", ttl_seconds=ttl)
