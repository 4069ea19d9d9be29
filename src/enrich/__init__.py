"""Enrich: context assembly and adaptive caching for prompt enhancement."""

__version__ = "0.1.0"
