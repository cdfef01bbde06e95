"""Shared test fixtures and factories."""

from pathlib import Path
from typing import Any

import pytest

from ember.config.models import EmberConfig, ModelConfig
from ember.core.output import DiffLauncher, FileSaver
from ember.core.session import SessionController
from ember.history.log import ConversationLog
from ember.llm.base import LLMProvider
from ember.llm.types import (
    CompletionResponse,
    Message,
    Role,
    StreamChunk,
    StreamEventType,
    Usage,
)

# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def minimal_config(tmp_path: Path) -> EmberConfig:
    """Configuration with isolated log and save locations."""
    return EmberConfig(
        log_file=tmp_path / "log.json",
        save_dir=tmp_path / "saved",
        token_cost=0.000002,
        models={
            "default": ModelConfig(provider="openai", model="gpt-4o-mini"),
            "big": ModelConfig(provider="openai", model="gpt-4o"),
        },
    )


@pytest.fixture
def config_toml_content() -> str:
    """Valid TOML config content."""
    return """
token_cost = 0.000002
diff_command = "meld"

[models.default]
provider = "openai"
model = "gpt-4o-mini"

[models.claude]
provider = "anthropic"
model = "claude-haiku-4-5"
max_tokens = 2048
"""


@pytest.fixture
def config_file(tmp_path: Path, config_toml_content: str) -> Path:
    """Create a temporary config file."""
    config_path = tmp_path / "config.toml"
    config_path.write_text(config_toml_content)
    return config_path


# =============================================================================
# LLM Fixtures and Mocks
# =============================================================================


class MockLLMProvider(LLMProvider):
    """Mock LLM provider for testing."""

    def __init__(
        self,
        response: str = "Mock response",
        usage: Usage | None = None,
        stream_chunks: list[StreamChunk] | None = None,
        error: Exception | None = None,
    ):
        self.response = response
        self.usage = usage if usage is not None else Usage(input_tokens=100, output_tokens=50)
        self.stream_chunks = stream_chunks
        self.error = error
        self.complete_calls: list[dict[str, Any]] = []
        self.stream_calls: list[dict[str, Any]] = []

    @property
    def name(self) -> str:
        return "mock"

    @property
    def default_model(self) -> str:
        return "mock-model"

    async def complete(
        self,
        messages: list[Message],
        *,
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float | None = None,
    ) -> CompletionResponse:
        self.complete_calls.append(
            {"messages": list(messages), "model": model, "max_tokens": max_tokens}
        )
        if self.error is not None:
            raise self.error
        return CompletionResponse(
            message=Message(role=Role.ASSISTANT, content=self.response),
            usage=self.usage,
            stop_reason="end_turn",
            model=model or "mock-model",
        )

    async def stream(
        self,
        messages: list[Message],
        *,
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float | None = None,
    ):
        self.stream_calls.append({"messages": list(messages), "model": model})
        if self.error is not None:
            raise self.error

        if self.stream_chunks is not None:
            for chunk in self.stream_chunks:
                yield chunk
            return

        yield StreamChunk(type=StreamEventType.MESSAGE_START)
        yield StreamChunk(type=StreamEventType.TEXT_DELTA, content="Mock ")
        yield StreamChunk(type=StreamEventType.TEXT_DELTA, content="response")
        yield StreamChunk(type=StreamEventType.MESSAGE_END)


class RecordingDiffLauncher(DiffLauncher):
    """Diff launcher that records calls instead of spawning a process."""

    def __init__(self) -> None:
        super().__init__("true")
        self.calls: list[tuple[Path, str]] = []

    def launch(self, new_file: Path, diff_file: str) -> bool:
        self.calls.append((new_file, diff_file))
        return True


@pytest.fixture
def mock_llm() -> MockLLMProvider:
    """Create a mock LLM provider."""
    return MockLLMProvider()


@pytest.fixture
def conversation_log(minimal_config: EmberConfig) -> ConversationLog:
    return ConversationLog(minimal_config.log_file)


@pytest.fixture
def diff_launcher() -> RecordingDiffLauncher:
    return RecordingDiffLauncher()


def make_controller(
    config: EmberConfig,
    provider: LLMProvider,
    diff_launcher: DiffLauncher | None = None,
) -> SessionController:
    """Factory for a controller wired to a single provider."""
    return SessionController(
        config,
        provider_factory=lambda alias: provider,
        log=ConversationLog(config.log_file),
        saver=FileSaver(config.save_dir),
        diff_launcher=diff_launcher or RecordingDiffLauncher(),
    )


# =============================================================================
# Message Factories
# =============================================================================


def make_message(role: Role = Role.USER, content: str = "Hello") -> Message:
    """Factory for creating messages."""
    return Message(role=role, content=content)


# =============================================================================
# CLI Test Helpers
# =============================================================================


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner with colors disabled."""
    from typer.testing import CliRunner

    return CliRunner(env={"NO_COLOR": "1", "COLUMNS": "200"})
