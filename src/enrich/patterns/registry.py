"""Adaptive pattern registry.

The registry owns the pattern table. Reads (``match``/``detect``) see the
current table without locking. Every mutation, whether a usage tick from
``match`` or an outcome from ``record_outcome``, is posted to a mailbox and
applied by a single writer (``run``/``drain``), which builds a new table and
swaps the reference.
"""

import asyncio
import contextlib
import re
from collections import deque
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime
from typing import Any

import structlog

from enrich.config import PatternSettings, settings
from enrich.utils.datetime import deserialize_datetime, serialize_datetime, utc_now
from enrich.utils.numeric import clamp

from .catalog import default_patterns
from .models import (
    DetectionPattern,
    LearningEvent,
    PatternMatch,
    PatternState,
    PatternStats,
    UsageTick,
)

logger = structlog.get_logger()

Message = UsageTick | LearningEvent

STOP_WORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "is", "are", "was", "were", "this", "that", "new",
        "simple", "basic", "custom", "my", "our", "your", "some", "any",
    }
)

_VALID_NAME = re.compile(r"^[a-z0-9][a-z0-9.-]*$")


def is_valid_library_name(name: str) -> bool:
    return len(name) > 2 and name not in STOP_WORDS and bool(_VALID_NAME.match(name))


class PatternRegistry:
    """Weighted detection patterns that learn from outcomes.

    Posted messages wait in the mailbox until a consumer applies them:
    ``start()`` runs one on the event loop, ``drain()`` applies them inline.
    PromptEnhancer drains after each request when no consumer is running.
    """

    def __init__(
        self,
        patterns: Iterable[DetectionPattern] | None = None,
        config: PatternSettings | None = None,
    ) -> None:
        self._config = config or settings.patterns
        source = default_patterns() if patterns is None else list(patterns)

        table: dict[str, DetectionPattern] = {}
        for pattern in source:
            if pattern.id in table:
                raise ValueError(f"Duplicate pattern id: {pattern.id}")
            table[pattern.id] = replace(pattern, state=self._derive_state(pattern))

        self._patterns = table
        self._mailbox: asyncio.Queue[Message] = asyncio.Queue()
        self._events: deque[LearningEvent] = deque(
            maxlen=self._config.max_learning_events
        )
        self._consumer: asyncio.Task[None] | None = None
        self._logger = logger.bind(component="pattern_registry")

    # Reads

    def get(self, pattern_id: str) -> DetectionPattern | None:
        return self._patterns.get(pattern_id)

    @property
    def patterns(self) -> list[DetectionPattern]:
        return list(self._patterns.values())

    @property
    def pending(self) -> int:
        """Number of mailbox messages not yet applied."""
        return self._mailbox.qsize()

    @property
    def running(self) -> bool:
        """Whether a background consumer is applying the mailbox."""
        return self._consumer is not None and not self._consumer.done()

    def match(self, text: str) -> list[PatternMatch]:
        """Run every non-demoted pattern against text.

        Returns matches sorted by ``weight * strength`` descending. Ties go
        to the pattern updated longest ago. Posts a usage tick for every
        pattern that matched.
        """
        if not isinstance(text, str) or not text.strip():
            return []

        snapshot = self._patterns
        matches: list[PatternMatch] = []
        for pattern in snapshot.values():
            if pattern.state is PatternState.DEMOTED:
                continue
            matches.extend(self._match_pattern(pattern, text))

        if matches:
            matched_ids = tuple(sorted({m.pattern_id for m in matches}))
            self._mailbox.put_nowait(UsageTick(pattern_ids=matched_ids))

        matches.sort(
            key=lambda m: (
                -m.score,
                snapshot[m.pattern_id].last_updated,
                m.pattern_id,
                m.name,
            )
        )
        return matches

    def detect(
        self, text: str, min_confidence: float | None = None
    ) -> list[PatternMatch]:
        """Return usable detections, one per name.

        A match is usable when its pattern is trusted or its score reaches
        ``min_confidence``.
        """
        threshold = (
            self._config.min_detection_confidence
            if min_confidence is None
            else min_confidence
        )
        seen: set[str] = set()
        detected: list[PatternMatch] = []
        for match in self.match(text):
            if match.name in seen:
                continue
            if match.trusted or match.score >= threshold:
                seen.add(match.name)
                detected.append(match)
        return detected

    def _match_pattern(
        self, pattern: DetectionPattern, text: str
    ) -> list[PatternMatch]:
        found: dict[str, tuple[int, str, int]] = {}
        for hit in pattern.matcher.finditer(text):
            if pattern.library:
                name = pattern.library
            else:
                if not hit.groups() or hit.group(1) is None:
                    continue
                name = hit.group(1).lower()
                if not is_valid_library_name(name):
                    continue

            if name in found:
                count, match_text, position = found[name]
                found[name] = (count + 1, match_text, position)
            else:
                found[name] = (1, hit.group(0), hit.start())

        return [
            PatternMatch(
                pattern_id=pattern.id,
                name=name,
                category=pattern.category,
                strength=min(1.0, pattern.base_strength * (1 + 0.1 * (count - 1))),
                weight=pattern.weight,
                state=pattern.state,
                match_text=match_text,
                position=position,
            )
            for name, (count, match_text, position) in found.items()
        ]

    # Writes (mailbox)

    def record_outcome(
        self,
        pattern_id: str,
        was_successful: bool,
        timestamp: datetime | None = None,
    ) -> None:
        """Post the eventual outcome of a detection."""
        event = LearningEvent(
            pattern_id=pattern_id,
            was_successful=was_successful,
            timestamp=timestamp or utc_now(),
        )
        self._mailbox.put_nowait(event)

    def drain(self) -> int:
        """Apply every pending message now. Returns the number applied."""
        applied = 0
        while True:
            batch: list[Message] = []
            while len(batch) < self._config.learning_batch_size:
                try:
                    batch.append(self._mailbox.get_nowait())
                except asyncio.QueueEmpty:
                    break
            if not batch:
                return applied
            self._apply(batch)
            for _ in batch:
                self._mailbox.task_done()
            applied += len(batch)

    async def run(self) -> None:
        """Consume the mailbox forever, applying messages in batches."""
        while True:
            batch = [await self._mailbox.get()]
            while len(batch) < self._config.learning_batch_size:
                try:
                    batch.append(self._mailbox.get_nowait())
                except asyncio.QueueEmpty:
                    break
            try:
                self._apply(batch)
            except Exception as e:
                self._logger.error(
                    "pattern_batch_failed", batch_size=len(batch), error=str(e)
                )
            finally:
                for _ in batch:
                    self._mailbox.task_done()

    def start(self) -> None:
        """Start the background consumer on the running event loop."""
        if self._consumer is None or self._consumer.done():
            self._consumer = asyncio.get_running_loop().create_task(self.run())

    async def stop(self) -> None:
        """Stop the consumer and apply whatever is still queued."""
        if self._consumer is not None:
            self._consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._consumer
            self._consumer = None
        self.drain()

    async def flush(self) -> None:
        """Wait until every message posted so far has been applied."""
        if self.running:
            await self._mailbox.join()
        else:
            self.drain()

    def _apply(self, batch: list[Message]) -> None:
        table = dict(self._patterns)

        for message in batch:
            if isinstance(message, UsageTick):
                for pattern_id in message.pattern_ids:
                    pattern = table.get(pattern_id)
                    if pattern is None:
                        continue
                    table[pattern_id] = self._transition(
                        pattern, replace(pattern, usage_count=pattern.usage_count + 1)
                    )
            else:
                pattern = table.get(message.pattern_id)
                if pattern is None:
                    self._logger.debug(
                        "unknown_pattern_event", pattern_id=message.pattern_id
                    )
                    continue
                outcome = 1.0 if message.was_successful else 0.0
                weight = clamp(
                    pattern.weight
                    + self._config.learning_rate * (outcome - pattern.weight),
                    0.0,
                    1.0,
                )
                updated = replace(
                    pattern,
                    weight=weight,
                    success_count=pattern.success_count
                    + (1 if message.was_successful else 0),
                    last_updated=message.timestamp,
                )
                table[pattern.id] = self._transition(pattern, updated)
                self._events.append(message)

        self._patterns = table

    def _derive_state(self, pattern: DetectionPattern) -> PatternState:
        if pattern.weight < self._config.min_success_rate:
            return PatternState.DEMOTED
        if (
            pattern.usage_count >= self._config.min_usage_for_trust
            and pattern.weight >= self._config.trusted_threshold
        ):
            return PatternState.TRUSTED
        return PatternState.UNPROVEN

    def _transition(
        self, before: DetectionPattern, after: DetectionPattern
    ) -> DetectionPattern:
        state = self._derive_state(after)
        if state is not before.state:
            self._logger.info(
                "pattern_state_changed",
                pattern_id=after.id,
                previous=before.state.value,
                current=state.value,
                weight=round(after.weight, 4),
                usage_count=after.usage_count,
            )
        return replace(after, state=state)

    # Introspection and persistence

    def learning_events(self) -> list[LearningEvent]:
        """Retained learning events, oldest first."""
        return list(self._events)

    def stats(self) -> list[PatternStats]:
        result = []
        for pattern in self._patterns.values():
            rate = pattern.success_rate
            if pattern.usage_count == 0:
                trend = "stable"
            elif rate > 0.7:
                trend = "up"
            elif rate < 0.3:
                trend = "down"
            else:
                trend = "stable"
            result.append(
                PatternStats(
                    pattern_id=pattern.id,
                    usage_count=pattern.usage_count,
                    success_count=pattern.success_count,
                    success_rate=rate,
                    weight=pattern.weight,
                    state=pattern.state,
                    trend=trend,
                )
            )
        return sorted(result, key=lambda s: s.pattern_id)

    def export_state(self) -> list[dict[str, Any]]:
        """Learned fields of every pattern, JSON-safe."""
        return [
            {
                "pattern_id": p.id,
                "weight": p.weight,
                "success_count": p.success_count,
                "usage_count": p.usage_count,
                "last_updated": serialize_datetime(p.last_updated),
            }
            for p in self._patterns.values()
        ]

    def restore_state(self, rows: Iterable[dict[str, Any]]) -> int:
        """Load previously exported learned fields.

        Intended for startup, before the consumer runs. Rows for unknown
        pattern ids are skipped. Returns the number of patterns restored.
        """
        table = dict(self._patterns)
        restored = 0
        for row in rows:
            pattern = table.get(row.get("pattern_id", ""))
            if pattern is None:
                continue
            try:
                updated = replace(
                    pattern,
                    weight=clamp(float(row["weight"]), 0.0, 1.0),
                    success_count=int(row["success_count"]),
                    usage_count=int(row["usage_count"]),
                    last_updated=deserialize_datetime(row["last_updated"]),
                )
            except (KeyError, TypeError, ValueError) as e:
                self._logger.warning(
                    "pattern_state_row_invalid",
                    pattern_id=pattern.id,
                    error=str(e),
                )
                continue
            table[pattern.id] = replace(updated, state=self._derive_state(updated))
            restored += 1
        self._patterns = table
        return restored
