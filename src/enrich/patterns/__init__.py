"""Adaptive framework/library detection patterns."""

from .catalog import default_patterns
from .models import (
    DetectionPattern,
    LearningEvent,
    PatternMatch,
    PatternState,
    PatternStats,
    UsageTick,
)
from .registry import PatternRegistry

__all__ = [
    "DetectionPattern",
    "LearningEvent",
    "PatternMatch",
    "PatternRegistry",
    "PatternState",
    "PatternStats",
    "UsageTick",
    "default_patterns",
]
