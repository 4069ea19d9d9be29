"""Deterministic cache keys for enhancement requests."""

from .engine import Fingerprint, canonicalize_options, fingerprint, normalize_prompt

__all__ = [
    "Fingerprint",
    "canonicalize_options",
    "fingerprint",
    "normalize_prompt",
]
