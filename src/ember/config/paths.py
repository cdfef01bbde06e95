"""Where ember keeps its files.

Everything lives under one directory, ``~/.ember`` unless ``EMBER_HOME`` says
otherwise::

    config.toml     settings and model aliases
    log.json        conversation log
    logs/           daily diagnostics files (when enabled)
"""

import os
from functools import lru_cache
from pathlib import Path

ENV_VAR = "EMBER_HOME"


def normalize_path(raw_path: str) -> str:
    """Expand a leading ``~``; everything else passes through untouched.

    Relative paths stay relative to the working directory and are not checked
    for existence here.
    """
    return os.path.expanduser(raw_path) if raw_path.startswith("~") else raw_path


@lru_cache(maxsize=1)
def get_ember_home() -> Path:
    override = os.environ.get(ENV_VAR)
    if override:
        return Path(override).expanduser().resolve()
    return Path.home() / ".ember"


def get_config_path() -> Path:
    return get_ember_home() / "config.toml"


def get_log_file_path() -> Path:
    return get_ember_home() / "log.json"


def get_logs_path() -> Path:
    return get_ember_home() / "logs"


def get_all_paths() -> dict[str, Path]:
    """Named paths, in the order ``ember config show`` lists them."""
    return {
        "home": get_ember_home(),
        "config": get_config_path(),
        "log_file": get_log_file_path(),
        "logs": get_logs_path(),
    }
