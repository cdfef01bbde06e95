"""Tests for provider retry handling."""

import pytest

from ember.llm import retry
from ember.llm.retry import RetryConfig, is_retryable_error, with_retry


class StatusError(Exception):
    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}")


class APITimeoutError(Exception):
    pass


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Record backoff delays instead of sleeping."""
    delays: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        delays.append(seconds)

    monkeypatch.setattr(retry.asyncio, "sleep", fake_sleep)
    return delays


class TestIsRetryableError:
    @pytest.mark.parametrize(
        "message",
        [
            "Rate limit exceeded",
            "rate_limit_error",
            "Too many requests",
            "502 Bad Gateway",
            "Service Unavailable",
            "overloaded_error",
            "Connection error.",
            "Request timed out.",
        ],
    )
    def test_transient_messages(self, message):
        assert is_retryable_error(Exception(message))

    @pytest.mark.parametrize(
        "message",
        ["Invalid API key", "model not found", "context length exceeded"],
    )
    def test_permanent_messages(self, message):
        assert not is_retryable_error(Exception(message))

    def test_status_codes(self):
        assert is_retryable_error(StatusError(429))
        assert is_retryable_error(StatusError(529))
        assert not is_retryable_error(StatusError(401))

    def test_exception_type_name(self):
        assert is_retryable_error(APITimeoutError("gave up"))


class TestWithRetry:
    @pytest.mark.asyncio
    async def test_returns_first_success(self, sleeps):
        async def func():
            return "ok"

        assert await with_retry(func) == "ok"
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_recovers_from_transient_failures(self, sleeps):
        calls = 0

        async def func():
            nonlocal calls
            calls += 1
            if calls < 3:
                raise Exception("overloaded")
            return "ok"

        result = await with_retry(func, RetryConfig(max_retries=2, base_delay_ms=100))

        assert result == "ok"
        assert calls == 3
        assert sleeps == [0.1, 0.2]

    @pytest.mark.asyncio
    async def test_delay_capped(self, sleeps):
        async def func():
            raise Exception("503")

        config = RetryConfig(max_retries=3, base_delay_ms=1000, max_delay_ms=1500)
        with pytest.raises(Exception, match="503"):
            await with_retry(func, config)
        assert sleeps == [1.0, 1.5, 1.5]

    @pytest.mark.asyncio
    async def test_permanent_error_not_retried(self, sleeps):
        calls = 0

        async def func():
            nonlocal calls
            calls += 1
            raise ValueError("bad request")

        with pytest.raises(ValueError):
            await with_retry(func)
        assert calls == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_disabled(self, sleeps):
        calls = 0

        async def func():
            nonlocal calls
            calls += 1
            raise Exception("rate limit")

        with pytest.raises(Exception, match="rate limit"):
            await with_retry(func, RetryConfig(enabled=False))
        assert calls == 1
