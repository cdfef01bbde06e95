"""OpenAI models through the Responses API."""

import logging
import time
from collections.abc import AsyncGenerator
from typing import Any

import openai

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

DEFAULT_MODEL = "gpt-4o-mini"


def _usage_from(reported: Any) -> Usage | None:
    if not reported:
        return None
    return Usage(
        input_tokens=reported.input_tokens, output_tokens=reported.output_tokens
    )


def _output_text(response: Any) -> str:
    """Concatenate ``output_text`` parts; reasoning and tool items carry none."""
    return "".join(
        part.text
        for item in response.output
        if item.type == "message"
        for part in item.content
        if part.type == "output_text"
    )


class OpenAIProvider(LLMProvider):
    def __init__(self, api_key: str | None = None):
        self._client = openai.AsyncOpenAI(api_key=api_key)

    @property
    def name(self) -> str:
        return "openai"

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
        instructions, turns = split_system(messages)
        request: dict[str, Any] = {
            "model": model or self.default_model,
            "input": turns,
            "max_output_tokens": max_tokens,
        }
        if instructions:
            request["instructions"] = instructions
        if temperature is not None:
            request["temperature"] = temperature
        return request

    def _decode_event(self, event: Any) -> StreamChunk | None:
        """Translate one Responses API stream event.

        Lifecycle events with nothing to show (``response.created`` and the
        like) map to None.

        Raises:
            StreamParseError: If the event lacks the fields its type implies.
        """
        kind = getattr(event, "type", None)
        if kind is None:
            raise StreamParseError(f"stream event without type: {event!r}")

        try:
            match kind:
                case "response.output_text.delta":
                    if not isinstance(event.delta, str):
                        raise StreamParseError(f"non-text delta: {event.delta!r}")
                    return StreamChunk(
                        type=StreamEventType.TEXT_DELTA, content=event.delta
                    )
                case "response.completed":
                    return StreamChunk(
                        type=StreamEventType.MESSAGE_END,
                        usage=_usage_from(event.response.usage),
                    )
                case "response.failed":
                    error = event.response.error
                    return StreamChunk(
                        type=StreamEventType.ERROR,
                        content=error.message if error else "response failed",
                    )
                case "error":
                    return StreamChunk(
                        type=StreamEventType.ERROR, content=event.message
                    )
        except AttributeError as e:
            raise StreamParseError(f"malformed {kind} event: {e}") from e
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
            lambda: self._client.responses.create(**request),
            config=RetryConfig(),
            operation_name=f"openai/{request['model']}",
        )
        usage = _usage_from(reply.usage)
        logger.debug(
            "llm_complete",
            extra={
                "provider": self.name,
                "model": request["model"],
                "duration_ms": int((time.monotonic() - started) * 1000),
                "tokens_in": usage.input_tokens if usage else None,
                "tokens_out": usage.output_tokens if usage else None,
            },
        )

        return CompletionResponse(
            message=Message(role=Role.ASSISTANT, content=_output_text(reply)),
            usage=usage,
            stop_reason=getattr(reply, "status", None),
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

        logger.debug(
            "stream_open", extra={"provider": self.name, "model": request["model"]}
        )
        events = await self._client.responses.create(**request, stream=True)

        # The Responses API has no distinct start event worth waiting for
        yield StreamChunk(type=StreamEventType.MESSAGE_START)

        async for event in events:
            try:
                chunk = self._decode_event(event)
            except StreamParseError as e:
                logger.warning("stream_parse_error", extra={"error.message": str(e)})
                continue
            if chunk is not None:
                yield chunk
