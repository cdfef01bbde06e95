"""Configuration loading from TOML files and environment variables."""

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import SecretStr

from ember.config.models import PROVIDER_KEY_ENV_VARS, EmberConfig
from ember.config.paths import get_config_path

# Project-local config, checked before the one in EMBER_HOME
LOCAL_CONFIG_NAME = "ember.toml"


def _candidate_paths() -> list[Path]:
    return [Path(LOCAL_CONFIG_NAME), get_config_path()]


def _apply_env_api_keys(raw: dict[str, Any]) -> dict[str, Any]:
    """Fill ``[openai]`` / ``[anthropic]`` sections that have no ``api_key``.

    Only sections present in the file are touched; models without one fall back
    to the same variables at call time (see ``EmberConfig.resolve_api_key``).
    """
    for provider, env_var in PROVIDER_KEY_ENV_VARS.items():
        section = raw.get(provider)
        if not isinstance(section, dict) or section.get("api_key") is not None:
            continue
        if value := os.environ.get(env_var):
            section["api_key"] = SecretStr(value)
    return raw


def find_config_path(path: Path | None = None) -> Path | None:
    """Locate the config file to load.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
    """
    if path is not None:
        explicit = Path(path).expanduser()
        if not explicit.exists():
            raise FileNotFoundError(f"Config file not found: {explicit}")
        return explicit

    return next((p for p in _candidate_paths() if p.exists()), None)


def load_config(path: Path | None = None) -> EmberConfig:
    """Load and validate the configuration file.

    Args:
        path: Explicit config file. If None, ``./ember.toml`` then
            ``$EMBER_HOME/config.toml`` are tried.

    Raises:
        FileNotFoundError: If no config file is found.
        ValueError: If the file is not valid TOML.
        pydantic.ValidationError: If the values are invalid.
    """
    config_path = find_config_path(path)
    if config_path is None:
        searched = ", ".join(str(p) for p in _candidate_paths())
        raise FileNotFoundError(f"No config file found. Searched: {searched}")

    with config_path.open("rb") as f:
        raw = tomllib.load(f)

    return EmberConfig.model_validate(_apply_env_api_keys(raw))


def get_default_config() -> EmberConfig:
    """Get the built-in configuration used when no config file exists."""
    return EmberConfig()
