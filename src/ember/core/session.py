"""Session controller: one request/response exchange per CLI invocation.

An exchange expands directives, optionally seeds the conversation from the last
logged exchange, calls the model, and appends the result to the conversation
log. Backend failures never raise out of ``run_exchange``; they come back as a
response whose text starts with ``Error:`` and are logged like any exchange.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from pathlib import Path

from ember.config.models import EmberConfig, ModelConfig
from ember.core.directives import expand
from ember.core.output import DiffLauncher, FileSaver
from ember.core.tokens import estimate_tokens
from ember.core.types import (
    ERROR_MARKER,
    ChatOutcome,
    ExchangeConfig,
    ExchangeOutcome,
    ExchangeStatus,
    OnDeltaCallback,
)
from ember.history.log import ConversationLog, ConversationLogError, LogEntry
from ember.llm.base import BackendError, LLMProvider
from ember.llm.types import Message, Role, StreamEventType

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[str], LLMProvider]


def default_provider_factory(config: EmberConfig) -> ProviderFactory:
    """Build providers for model aliases from configuration."""
    from ember.llm.registry import create_llm_provider

    def factory(alias: str) -> LLMProvider:
        model = config.get_model(alias)
        return create_llm_provider(model.provider, config.resolve_api_key(alias))

    return factory


class SessionController:
    """Runs exchanges against a provider and records them."""

    def __init__(
        self,
        config: EmberConfig,
        *,
        provider_factory: ProviderFactory | None = None,
        log: ConversationLog | None = None,
        saver: FileSaver | None = None,
        diff_launcher: DiffLauncher | None = None,
    ) -> None:
        self._config = config
        self._provider_factory = provider_factory or default_provider_factory(config)
        self._log = log or ConversationLog(config.log_file)
        self._saver = saver or FileSaver(config.save_dir)
        self._diff_launcher = diff_launcher or DiffLauncher(config.diff_command)

    @property
    def log(self) -> ConversationLog:
        return self._log

    async def run_exchange(
        self,
        request_text: str,
        exchange: ExchangeConfig,
        on_delta: OnDeltaCallback | None = None,
    ) -> ExchangeOutcome:
        """Run one exchange.

        Raises:
            ConfigError: If ``exchange.model`` is not a configured alias.
            ConversationLogError: If chat mode needs a log that is corrupt.
            OSError: If the system prompt file cannot be read.
        """
        expansion = expand(request_text)
        if not expansion.success:
            return ExchangeOutcome(
                status=ExchangeStatus.DIRECTIVE_ERROR,
                text=expansion.text,
                diff_targets=expansion.diff_targets,
            )

        expanded = expansion.text
        if exchange.dryrun:
            return ExchangeOutcome(
                status=ExchangeStatus.DRY_RUN,
                text=expanded,
                estimated_tokens=estimate_tokens(expanded),
                diff_targets=expansion.diff_targets,
            )

        model_config = self._config.get_model(exchange.model)
        messages = await self._build_messages(expanded, exchange)
        provider = self._provider_factory(exchange.model)

        start = time.monotonic()
        result = await self._fetch(
            provider, messages, model_config, exchange.stream, on_delta
        )
        duration = round(time.monotonic() - start, 3)

        tokens = result.token_count
        # Streaming providers may not report usage
        display_tokens = tokens or estimate_tokens(expanded + result.text)
        cost = self._config.format_cost(exchange.model, display_tokens)
        response = result.text.strip()

        messages.append(Message(role=Role.ASSISTANT, content=response))
        outcome = ExchangeOutcome(
            status=ExchangeStatus.ERROR if result.failed else ExchangeStatus.OK,
            text=response,
            token_count=tokens,
            estimated_tokens=display_tokens,
            cost=cost,
            duration_seconds=duration,
            diff_targets=expansion.diff_targets,
        )

        entry = LogEntry(
            messages=messages,
            token_count=tokens,
            cost=cost,
            duration_seconds=duration,
        )
        try:
            await self._log.append(entry)
        except ConversationLogError as e:
            logger.error("log_append_failed", extra={"error.message": str(e)})
            outcome.log_error = str(e)

        logger.info(
            "exchange_complete",
            extra={
                "model": model_config.model,
                "stream": exchange.stream,
                "chat": exchange.chat,
                "tokens": tokens,
                "duration_s": duration,
                "status": outcome.status.value,
            },
        )

        if outcome.ok and (exchange.from_file or exchange.save):
            outcome.saved_path = self._save_and_diff(response, exchange, outcome)

        return outcome

    async def _build_messages(
        self, expanded: str, exchange: ExchangeConfig
    ) -> list[Message]:
        messages: list[Message] = []
        if exchange.chat:
            messages = list(await self._log.last_conversation())

        if exchange.prompt is not None and not any(
            m.role == Role.SYSTEM for m in messages
        ):
            system_text = Path(exchange.prompt).expanduser().read_text(encoding="utf-8")
            messages.insert(0, Message(role=Role.SYSTEM, content=system_text))

        messages.append(Message(role=Role.USER, content=expanded))
        return messages

    async def _fetch(
        self,
        provider: LLMProvider,
        messages: list[Message],
        model_config: ModelConfig,
        stream: bool,
        on_delta: OnDeltaCallback | None,
    ) -> ChatOutcome:
        """Call the backend, folding any failure into an error outcome."""
        try:
            if stream:
                return await self._collect_stream(
                    provider, messages, model_config, on_delta
                )
            response = await provider.complete(
                messages,
                model=model_config.model,
                max_tokens=model_config.max_tokens,
                temperature=model_config.temperature,
            )
            return ChatOutcome(text=response.text, token_count=response.total_tokens)
        except Exception as e:
            logger.error(
                "backend_error",
                extra={
                    "provider": provider.name,
                    "model": model_config.model,
                    "error.type": type(e).__name__,
                    "error.message": str(e),
                },
            )
            return ChatOutcome(text=f"{ERROR_MARKER} {e}", token_count=0, failed=True)

    async def _collect_stream(
        self,
        provider: LLMProvider,
        messages: list[Message],
        model_config: ModelConfig,
        on_delta: OnDeltaCallback | None,
    ) -> ChatOutcome:
        """Drain a stream into a single outcome.

        Raises:
            BackendError: On an error event, or if the stream stops without an
                end marker.
        """
        parts: list[str] = []
        tokens = 0
        finished = False

        async for chunk in provider.stream(
            messages,
            model=model_config.model,
            max_tokens=model_config.max_tokens,
            temperature=model_config.temperature,
        ):
            if chunk.type == StreamEventType.TEXT_DELTA:
                if not isinstance(chunk.content, str):
                    logger.warning(
                        "stream_parse_error",
                        extra={"error.message": f"non-text delta: {chunk.content!r}"},
                    )
                    continue
                # Drop leading blank fragments
                if not parts and not chunk.content.strip():
                    continue
                parts.append(chunk.content)
                if on_delta is not None:
                    on_delta(chunk.content)

            elif chunk.type == StreamEventType.ERROR:
                raise BackendError(chunk.content or "stream error")

            elif chunk.type == StreamEventType.MESSAGE_END:
                tokens = chunk.usage.total_tokens if chunk.usage else 0
                finished = True

        if not finished:
            raise BackendError("stream ended before completion")

        return ChatOutcome(text="".join(parts), token_count=tokens)

    def _save_and_diff(
        self, response: str, exchange: ExchangeConfig, outcome: ExchangeOutcome
    ) -> Path | None:
        diff_file = exchange.diff
        if not diff_file and outcome.diff_targets:
            diff_file = outcome.diff_targets[0]

        saved = self._saver.save(response, diff_file, exchange.save)
        if diff_file and saved:
            self._diff_launcher.launch(saved, diff_file)
        return saved
