"""Centralized datetime handling for consistent serialization.

All timestamps stored by Enrich (cache entries, pattern state) go through
these helpers so that the SQLite and in-memory stores agree on format.

- Always serialize to ISO 8601 with UTC timezone
- Accept ISO strings and Unix timestamps when reading
- Naive datetimes are assumed to be UTC
"""

from datetime import datetime, timezone

__all__ = ["utc_now", "serialize_datetime", "deserialize_datetime"]


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def serialize_datetime(dt: datetime) -> str:
    """Serialize datetime to ISO 8601 string with UTC timezone.

    Examples:
        >>> serialize_datetime(datetime(2024, 12, 14, 10, 30, 0))
        '2024-12-14T10:30:00+00:00'
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def deserialize_datetime(value: str | float | int) -> datetime:
    """Deserialize datetime from an ISO 8601 string or Unix timestamp.

    Returns:
        Timezone-aware datetime in UTC.

    Raises:
        ValueError: If value cannot be parsed as a datetime.
        TypeError: If value is not a str, int, or float.
    """
    if isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value)
        except ValueError as e:
            raise ValueError(f"Cannot parse ISO datetime string: {value!r}") from e

        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)

    elif isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OSError, OverflowError, ValueError) as e:
            raise ValueError(f"Cannot parse Unix timestamp: {value!r}") from e

    else:
        raise TypeError(
            f"Cannot deserialize datetime from {type(value).__name__}: {value!r}. "
            f"Expected str (ISO 8601), int, or float (Unix timestamp)."
        )
