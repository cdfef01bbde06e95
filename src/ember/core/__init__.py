"""Core exchange functionality."""

from ember.core.directives import DirectiveError, DirectiveResult, expand
from ember.core.output import DiffLauncher, FileSaver
from ember.core.session import SessionController
from ember.core.tokens import estimate_tokens
from ember.core.types import (
    ERROR_MARKER,
    ChatOutcome,
    ExchangeConfig,
    ExchangeOutcome,
    ExchangeStatus,
)

__all__ = [
    "ERROR_MARKER",
    "ChatOutcome",
    "DiffLauncher",
    "DirectiveError",
    "DirectiveResult",
    "ExchangeConfig",
    "ExchangeOutcome",
    "ExchangeStatus",
    "FileSaver",
    "SessionController",
    "estimate_tokens",
    "expand",
]
