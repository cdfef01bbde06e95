"""Pydantic models for ``config.toml``."""

import logging
import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, SecretStr, model_validator

from ember.config.paths import get_log_file_path

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "openai"
DEFAULT_MODEL = "gpt-4o-mini"
# USD per token for DEFAULT_MODEL (blended input/output rate)
DEFAULT_TOKEN_COST = 0.0000006
DEFAULT_DIFF_COMMAND = "vimdiff"

PROVIDER_KEY_ENV_VARS = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
}

ProviderName = Literal["anthropic", "openai"]


class ConfigError(Exception):
    """A setting refers to something that is not configured."""


class ModelConfig(BaseModel):
    """A ``[models.<alias>]`` table."""

    provider: ProviderName
    model: str
    temperature: float | None = None  # provider default
    max_tokens: int = 4096


class ProviderConfig(BaseModel):
    """An ``[openai]`` or ``[anthropic]`` table."""

    api_key: SecretStr | None = None


class EmberConfig(BaseModel):
    models: dict[str, ModelConfig] = Field(default_factory=dict)
    anthropic: ProviderConfig | None = None
    openai: ProviderConfig | None = None
    log_file: Path = Field(default_factory=get_log_file_path)
    token_cost: float = DEFAULT_TOKEN_COST
    diff_command: str = DEFAULT_DIFF_COMMAND
    save_dir: Path = Path(".")
    # Append diagnostics to $EMBER_HOME/logs/*.jsonl
    log_diagnostics: bool = False

    @model_validator(mode="after")
    def _fill_defaults(self) -> "EmberConfig":
        # "default" must always resolve
        if "default" not in self.models:
            if self.models:
                logger.warning(
                    "No [models.default] configured, using %s/%s",
                    DEFAULT_PROVIDER,
                    DEFAULT_MODEL,
                )
            self.models["default"] = ModelConfig(
                provider=DEFAULT_PROVIDER, model=DEFAULT_MODEL
            )
        self.log_file = self.log_file.expanduser()
        self.save_dir = self.save_dir.expanduser()
        return self

    def get_model(self, alias: str) -> ModelConfig:
        """Look up a model alias.

        Raises:
            ConfigError: If no ``[models.<alias>]`` table exists.
        """
        try:
            return self.models[alias]
        except KeyError:
            raise ConfigError(
                f"Unknown model alias '{alias}'. "
                f"Available: {', '.join(self.list_models())}"
            ) from None

    def list_models(self) -> list[str]:
        return sorted(self.models)

    @property
    def default_model(self) -> ModelConfig:
        return self.get_model("default")

    def is_default_model(self, alias: str) -> bool:
        """True when ``alias`` names the same provider and model as ``default``.

        ``token_cost`` is a price for the default model only.
        """
        chosen, default = self.get_model(alias), self.default_model
        return (chosen.provider, chosen.model) == (default.provider, default.model)

    def format_cost(self, alias: str, tokens: int) -> str:
        if not self.is_default_model(alias):
            return f"Cost only available for {self.default_model.model}"
        return f"${tokens * self.token_cost:.6f}"

    def resolve_api_key(self, alias: str) -> SecretStr | None:
        """Find the API key for the provider behind ``alias``.

        Checked in order: the provider's table in the config file, its
        environment variable, then a ``~/.openai`` or ``~/.anthropic`` key file.
        """
        provider = self.get_model(alias).provider

        section: ProviderConfig | None = getattr(self, provider)
        if section is not None and section.api_key is not None:
            return section.api_key

        if from_env := os.environ.get(PROVIDER_KEY_ENV_VARS[provider]):
            return SecretStr(from_env)

        try:
            from_file = (Path.home() / f".{provider}").read_text().strip()
        except OSError:
            return None
        return SecretStr(from_file) if from_file else None
