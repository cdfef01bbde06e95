"""Console output helpers shared by the CLI commands.

Model responses and requested output go through ``console`` on stdout;
messages passed to the colored helpers are escaped, so paths and provider
errors containing ``[brackets]`` print as written.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from pathlib import Path

    from pydantic import ValidationError

    from ember.config.models import EmberConfig

console = Console()


def _styled(style: str, msg: str) -> None:
    console.print(f"[{style}]{escape(msg)}[/{style}]")


def error(msg: str) -> None:
    _styled("red", msg)


def warning(msg: str) -> None:
    _styled("yellow", msg)


def success(msg: str) -> None:
    _styled("green", msg)


def info(msg: str) -> None:
    _styled("blue", msg)


def dim(msg: str) -> None:
    _styled("dim", msg)


def response(text: str, end: str = "\n") -> None:
    """Print model output as-is: no markup parsing, no highlighting."""
    console.print(text, style="green", end=end, markup=False, highlight=False)


def create_table(
    title: str,
    columns: list[tuple[str, str | dict]],
) -> Table:
    """Build a table from ``(name, style)`` or ``(name, add_column kwargs)`` pairs."""
    table = Table(title=title)
    for name, style in columns:
        if isinstance(style, dict):
            table.add_column(name, **style)
        else:
            table.add_column(name, style=style)
    return table


def print_validation_errors(exc: ValidationError) -> None:
    """One line per invalid setting, keyed by its dotted location."""
    error("Configuration validation failed:")
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"])
        console.print(f"  [yellow]{escape(location)}[/yellow]: {escape(err['msg'])}")


def load_config_or_exit(config_path: Path | None) -> EmberConfig:
    """Load configuration for a command, exiting with status 1 on bad config.

    Without ``--config``, a missing file means built-in defaults. An explicit
    path that does not exist is an error.
    """
    from pydantic import ValidationError

    from ember.config import get_default_config, load_config

    try:
        return load_config(config_path)
    except FileNotFoundError as e:
        if config_path is None:
            return get_default_config()
        error(str(e))
        raise typer.Exit(1) from None
    except ValidationError as e:
        print_validation_errors(e)
        raise typer.Exit(1) from None
    except ValueError as e:
        error(f"Error loading config: {e}")
        raise typer.Exit(1) from None
