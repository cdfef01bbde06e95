"""Provider lookup by the ``provider`` name used in model aliases."""

from typing import Literal

from pydantic import SecretStr

from ember.llm.anthropic import AnthropicProvider
from ember.llm.base import LLMProvider
from ember.llm.openai import OpenAIProvider

ProviderName = Literal["anthropic", "openai"]

PROVIDERS: dict[str, type[AnthropicProvider] | type[OpenAIProvider]] = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
}


def create_llm_provider(
    provider: ProviderName,
    api_key: str | SecretStr | None = None,
) -> LLMProvider:
    """Build a provider client. With no key, the SDK reads its own env var.

    Raises:
        ValueError: If ``provider`` is not a known name.
    """
    try:
        provider_cls = PROVIDERS[provider]
    except KeyError:
        raise ValueError(f"Unknown LLM provider: {provider}") from None
    if isinstance(api_key, SecretStr):
        api_key = api_key.get_secret_value()
    return provider_cls(api_key=api_key)
