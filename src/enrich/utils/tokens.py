"""Token estimation utilities.

Provides heuristic-based token counting for budget enforcement.
These are approximations, not exact counts: roughly four characters per
token for English prose, less accurate for code and CJK text.
"""

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Estimate the number of tokens in text.

    Rounds up, so any non-empty text costs at least one token.

    Raises:
        TypeError: If text is not a string

    Examples:
        >>> estimate_tokens("Hello, world!")
        4
        >>> estimate_tokens("")
        0
    """
    if not isinstance(text, str):
        raise TypeError(f"text must be str, got {type(text).__name__}")

    return -(-len(text) // CHARS_PER_TOKEN)


def truncate_to_tokens(text: str, max_tokens: int) -> str:
    """Truncate text to fit within a token budget.

    Prefers cutting at a newline when one falls in the last 20% of the
    allowed span. The result always satisfies
    ``estimate_tokens(result) <= max_tokens``.
    """
    if max_tokens <= 0:
        return ""

    max_chars = max_tokens * CHARS_PER_TOKEN
    if len(text) <= max_chars:
        return text

    truncated = text[:max_chars]

    last_newline = truncated.rfind("\n")
    if last_newline > max_chars * 0.8:
        return truncated[:last_newline]

    return truncated
