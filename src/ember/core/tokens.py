"""Rough token counts for when the provider reports none."""


def estimate_tokens(text: str) -> int:
    """About one token per four characters of English; never 0 for non-empty text.

    Used for dry runs and for streams that end without usage.
    """
    if not text:
        return 0
    return len(text) // 4 + 1
