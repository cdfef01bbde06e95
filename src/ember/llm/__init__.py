"""LLM provider abstraction layer."""

from ember.llm.anthropic import AnthropicProvider
from ember.llm.base import BackendError, LLMProvider, StreamParseError
from ember.llm.openai import OpenAIProvider
from ember.llm.registry import ProviderName, create_llm_provider
from ember.llm.retry import RetryConfig, is_retryable_error, with_retry
from ember.llm.types import (
    CompletionResponse,
    Message,
    Role,
    StreamChunk,
    StreamEventType,
    Usage,
)

__all__ = [
    # Base
    "BackendError",
    "LLMProvider",
    "StreamParseError",
    # Providers
    "AnthropicProvider",
    "OpenAIProvider",
    "ProviderName",
    "create_llm_provider",
    # Retry
    "RetryConfig",
    "is_retryable_error",
    "with_retry",
    # Types
    "CompletionResponse",
    "Message",
    "Role",
    "StreamChunk",
    "StreamEventType",
    "Usage",
]
