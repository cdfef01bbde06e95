"""Conversation log persistence."""

from ember.history.log import (
    ConversationLog,
    ConversationLogError,
    LogEntry,
    format_timestamp,
)

__all__ = [
    "ConversationLog",
    "ConversationLogError",
    "LogEntry",
    "format_timestamp",
]
