"""Configuration module."""

from ember.config.loader import find_config_path, get_default_config, load_config
from ember.config.models import (
    ConfigError,
    EmberConfig,
    ModelConfig,
    ProviderConfig,
)
from ember.config.paths import (
    get_config_path,
    get_ember_home,
    get_log_file_path,
    normalize_path,
)

__all__ = [
    "ConfigError",
    "EmberConfig",
    "ModelConfig",
    "ProviderConfig",
    "find_config_path",
    "get_config_path",
    "get_default_config",
    "get_ember_home",
    "get_log_file_path",
    "load_config",
    "normalize_path",
]
