"""Claude models through the Anthropic Messages API."""

import logging
import time
from collections.abc import AsyncGenerator
from dataclasses import dataclass
from typing import Any

import anthropic

from ember.llm.base import LLMProvider, StreamParseError, split_system
from ember.llm.retry import RetryConfig, with_retry
from ember.llm.types import (
    CompletionResponse,
    Message,
    Role,
    StreamChunk,
    StreamEventType,
    Usage,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-haiku-4-5"


@dataclass
class _StreamTally:
    """Token counts, which Anthropic spreads over the start and delta events."""

    input_tokens: int = 0
    output_tokens: int = 0

    def usage(self) -> Usage:
        return Usage(input_tokens=self.input_tokens, output_tokens=self.output_tokens)


class AnthropicProvider(LLMProvider):
    def __init__(self, api_key: str | None = None):
        self._client = anthropic.AsyncAnthropic(api_key=api_key)

    @property
    def name(self) -> str:
        return "anthropic"

    @property
    def default_model(self) -> str:
        return DEFAULT_MODEL

    def _build_request_kwargs(
        self,
        messages: list[Message],
        model: str | None,
        max_tokens: int,
        temperature: float | None,
    ) -> dict[str, Any]:
        system, turns = split_system(messages)
        request: dict[str, Any] = {
            "model": model or self.default_model,
            "messages": turns,
            "max_tokens": max_tokens,
        }
        # System text is a top-level field, not a message role
        if system:
            request["system"] = system
        if temperature is not None:
            request["temperature"] = temperature
        return request

    def _decode_event(self, event: Any, tally: _StreamTally) -> StreamChunk | None:
        """Translate one Messages API stream event, updating ``tally``.

        Raises:
            StreamParseError: If the event lacks the fields its type implies.
        """
        try:
            match event.type:
                case "message_start":
                    tally.input_tokens = event.message.usage.input_tokens
                    return StreamChunk(type=StreamEventType.MESSAGE_START)
                case "content_block_delta" if event.delta.type == "text_delta":
                    return StreamChunk(
                        type=StreamEventType.TEXT_DELTA, content=event.delta.text
                    )
                case "message_delta":
                    tally.output_tokens = event.usage.output_tokens
                case "message_stop":
                    return StreamChunk(
                        type=StreamEventType.MESSAGE_END, usage=tally.usage()
                    )
        except AttributeError as e:
            raise StreamParseError(f"malformed {event.type} event: {e}") from e
        return None

    async def complete(
        self,
        messages: list[Message],
        *,
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float | None = None,
    ) -> CompletionResponse:
        request = self._build_request_kwargs(messages, model, max_tokens, temperature)
        started = time.monotonic()
        reply = await with_retry(
            lambda: self._client.messages.create(**request),
            config=RetryConfig(),
            operation_name=f"anthropic/{request['model']}",
        )
        logger.debug(
            "llm_complete",
            extra={
                "provider": self.name,
                "model": request["model"],
                "duration_ms": int((time.monotonic() - started) * 1000),
                "tokens_in": reply.usage.input_tokens,
                "tokens_out": reply.usage.output_tokens,
            },
        )

        text = "".join(b.text for b in reply.content if b.type == "text")
        return CompletionResponse(
            message=Message(role=Role.ASSISTANT, content=text),
            usage=Usage(
                input_tokens=reply.usage.input_tokens,
                output_tokens=reply.usage.output_tokens,
            ),
            stop_reason=reply.stop_reason,
            model=reply.model,
            raw=reply.model_dump(),
        )

    async def stream(
        self,
        messages: list[Message],
        *,
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float | None = None,
    ) -> AsyncGenerator[StreamChunk, None]:
        request = self._build_request_kwargs(messages, model, max_tokens, temperature)
        tally = _StreamTally()

        logger.debug(
            "stream_open", extra={"provider": self.name, "model": request["model"]}
        )
        async with self._client.messages.stream(**request) as events:
            async for event in events:
                try:
                    chunk = self._decode_event(event, tally)
                except StreamParseError as e:
                    logger.warning(
                        "stream_parse_error", extra={"error.message": str(e)}
                    )
                    continue
                if chunk is not None:
                    yield chunk
