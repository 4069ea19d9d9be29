"""Context items, budgeting and rendering."""

from .budget import ContextBudgeter
from .formatting import compose_enhanced_prompt, wrap_bare_prompt
from .models import ContextBundle, ContextItem, SourceKind
from .summarizer import Summarizer

__all__ = [
    "ContextBudgeter",
    "ContextBundle",
    "ContextItem",
    "SourceKind",
    "Summarizer",
    "compose_enhanced_prompt",
    "wrap_bare_prompt",
]
