"""CLI command modules."""

from ember.cli.commands import config, exchange, history

__all__ = [
    "config",
    "exchange",
    "history",
]
