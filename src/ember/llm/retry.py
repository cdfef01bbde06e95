"""Retry with exponential backoff for transient provider failures.

Wraps batch completion requests. Streams are not retried; a stream that fails
surfaces as a backend error for that exchange.
"""

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Matched against str(error); SDK messages embed the HTTP status or reason
RETRYABLE_PATTERN = re.compile(
    r"overloaded|rate.?limit|too many requests|"
    r"429|500|502|503|504|529|"
    r"service.?unavailable|server error|internal error|"
    r"connection.?error|timed? ?out",
    re.IGNORECASE,
)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504, 529})

RETRYABLE_TYPE_HINTS = ("timeout", "connection", "ratelimit")


@dataclass
class RetryConfig:
    """Backoff settings. ``max_retries`` excludes the first attempt."""

    enabled: bool = True
    max_retries: int = 2
    base_delay_ms: int = 1000
    max_delay_ms: int = 15000

    def delay_for(self, retry: int) -> float:
        """Seconds to wait before retry number ``retry`` (0-based)."""
        return min(self.base_delay_ms * 2**retry, self.max_delay_ms) / 1000


def is_retryable_error(error: Exception) -> bool:
    """Check if an error is transient (rate limits, 5xx, overload, network)."""
    if getattr(error, "status_code", None) in RETRYABLE_STATUS_CODES:
        return True
    type_name = type(error).__name__.lower()
    if any(hint in type_name for hint in RETRYABLE_TYPE_HINTS):
        return True
    return RETRYABLE_PATTERN.search(str(error)) is not None


async def with_retry(
    func: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    operation_name: str = "API call",
) -> T:
    """Await ``func()``, calling it again after transient failures.

    Raises:
        The error itself when it is not transient, or the last error once
        ``max_retries`` retries have failed.
    """
    config = config or RetryConfig()
    retries = config.max_retries if config.enabled else 0

    for retry in range(retries + 1):
        try:
            return await func()
        except Exception as e:
            if not config.enabled or not is_retryable_error(e):
                raise
            error_fields = {"error.type": type(e).__name__, "error.message": str(e)}
            if retry == retries:
                logger.warning(
                    "retry_exhausted",
                    extra={
                        "operation": operation_name,
                        "attempts": retry + 1,
                        **error_fields,
                    },
                )
                raise

            delay_s = config.delay_for(retry)
            logger.info(
                "retry_attempt",
                extra={
                    "operation": operation_name,
                    "attempt": retry + 1,
                    "max_attempts": retries + 1,
                    "retry_delay_s": round(delay_s, 1),
                    **error_fields,
                },
            )
            await asyncio.sleep(delay_s)

    raise AssertionError("unreachable")
