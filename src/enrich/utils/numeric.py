"""Numeric helpers."""

from typing import TypeVar

__all__ = ["clamp"]

T = TypeVar("T", int, float)


def clamp(value: T, min_val: T, max_val: T) -> T:
    """Clamp value to range [min_val, max_val], preserving type.

    Raises:
        ValueError: If min_val > max_val

    Examples:
        >>> clamp(1.4, 0.0, 1.0)
        1.0
        >>> clamp(-5, 0, 10)
        0
    """
    if min_val > max_val:
        raise ValueError(f"min_val ({min_val}) must be <= max_val ({max_val})")
    return max(min_val, min(value, max_val))
