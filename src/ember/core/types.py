"""Core type definitions for exchanges.

This module contains the data structures passed into and returned from the
session controller.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

# Receives each streamed text fragment as it arrives
OnDeltaCallback = Callable[[str], None]

ERROR_MARKER = "Error:"


@dataclass(frozen=True)
class ExchangeConfig:
    """Per-invocation options, validated once by the CLI.

    ``model`` is a model alias from the configuration. ``from_file`` is set for
    requests read from a file, which always go through the save/diff step.
    """

    model: str = "default"
    stream: bool = False
    chat: bool = False
    dryrun: bool = False
    stats: bool = False
    save: bool = False
    diff: str | None = None
    prompt: Path | None = None
    from_file: bool = False


class ExchangeStatus(str, Enum):
    """How an exchange ended."""

    OK = "ok"
    ERROR = "error"
    DIRECTIVE_ERROR = "directive_error"
    DRY_RUN = "dry_run"


@dataclass
class ChatOutcome:
    """Raw backend result. ``token_count == 0`` means unknown."""

    text: str
    token_count: int = 0
    failed: bool = False


@dataclass
class ExchangeOutcome:
    """Result of one exchange.

    ``token_count`` is what the provider reported (0 if unknown) and is what gets
    logged; ``estimated_tokens`` is the figure to display, which falls back to a
    local estimate.
    """

    status: ExchangeStatus
    text: str
    token_count: int = 0
    estimated_tokens: int = 0
    cost: str = ""
    duration_seconds: float = 0.0
    diff_targets: list[str] = field(default_factory=list)
    saved_path: Path | None = None
    log_error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == ExchangeStatus.OK

    @property
    def tokens_estimated(self) -> bool:
        return self.token_count == 0 and self.estimated_tokens > 0
