"""Tests for Anthropic LLM provider."""

from types import SimpleNamespace

import pytest

from ember.llm.anthropic import AnthropicProvider
from ember.llm.types import Message, Role, StreamEventType, Usage


class FakeMessageStream:
    def __init__(self, events):
        self._events = list(events)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for event in self._events:
            yield event


class FakeMessages:
    def __init__(self, events):
        self.events = events
        self.calls: list[dict] = []

    def stream(self, **kwargs):
        self.calls.append(kwargs)
        return FakeMessageStream(self.events)


def _text(text: str) -> SimpleNamespace:
    return SimpleNamespace(
        type="content_block_delta",
        delta=SimpleNamespace(type="text_delta", text=text),
    )


class TestAnthropicBuildRequestKwargs:
    def setup_method(self):
        self.provider = AnthropicProvider(api_key="test-key")

    def test_system_out_of_band(self):
        messages = [
            Message(role=Role.SYSTEM, content="Be brief."),
            Message(role=Role.USER, content="Hi"),
        ]
        kwargs = self.provider._build_request_kwargs(messages, None, 2048, None)
        assert kwargs == {
            "model": "claude-haiku-4-5",
            "messages": [{"role": "user", "content": "Hi"}],
            "max_tokens": 2048,
            "system": "Be brief.",
        }

    def test_temperature(self):
        kwargs = self.provider._build_request_kwargs(
            [Message(role=Role.USER, content="Hi")], "claude-x", 100, 0.5
        )
        assert kwargs["temperature"] == 0.5
        assert "system" not in kwargs


class TestAnthropicStream:
    @pytest.mark.asyncio
    async def test_usage_reported_at_end(self):
        events = [
            SimpleNamespace(
                type="message_start",
                message=SimpleNamespace(usage=SimpleNamespace(input_tokens=9)),
            ),
            SimpleNamespace(type="content_block_start"),
            _text("Hel"),
            _text("lo"),
            SimpleNamespace(
                type="content_block_delta",
                delta=SimpleNamespace(type="input_json_delta"),
            ),
            SimpleNamespace(
                type="message_delta", usage=SimpleNamespace(output_tokens=4)
            ),
            SimpleNamespace(type="message_stop"),
        ]
        provider = AnthropicProvider(api_key="test-key")
        fake = FakeMessages(events)
        provider._client = SimpleNamespace(messages=fake)

        chunks = [
            c async for c in provider.stream([Message(role=Role.USER, content="Hi")])
        ]

        assert chunks[0].type == StreamEventType.MESSAGE_START
        assert [c.content for c in chunks if c.type == StreamEventType.TEXT_DELTA] == [
            "Hel",
            "lo",
        ]
        assert chunks[-1].type == StreamEventType.MESSAGE_END
        assert chunks[-1].usage == Usage(input_tokens=9, output_tokens=4)

    @pytest.mark.asyncio
    async def test_malformed_event_skipped(self):
        events = [
            SimpleNamespace(type="content_block_delta"),
            _text("ok"),
            SimpleNamespace(type="message_stop"),
        ]
        provider = AnthropicProvider(api_key="test-key")
        provider._client = SimpleNamespace(messages=FakeMessages(events))

        chunks = [
            c async for c in provider.stream([Message(role=Role.USER, content="Hi")])
        ]

        assert [c.content for c in chunks if c.type == StreamEventType.TEXT_DELTA] == [
            "ok"
        ]
        assert chunks[-1].usage == Usage(input_tokens=0, output_tokens=0)
