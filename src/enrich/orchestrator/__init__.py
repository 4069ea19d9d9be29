"""Prompt enhancement orchestration."""

from .enhancer import PromptEnhancer
from .models import ContextSummary, EnhanceOptions, EnhanceResult, RequestState

__all__ = [
    "ContextSummary",
    "EnhanceOptions",
    "EnhanceResult",
    "PromptEnhancer",
    "RequestState",
]
