"""``ember config``: inspect where settings live and check them."""

from pathlib import Path
from typing import Annotated

import click
import typer

from ember.cli.console import (
    console,
    create_table,
    error,
    print_validation_errors,
    success,
)


def _print_paths(_config_path: Path) -> None:
    from ember.config.paths import get_all_paths

    for name, value in get_all_paths().items():
        console.print(f"[cyan]{name}[/cyan]: {value}")


def _print_file(config_path: Path) -> None:
    from rich.syntax import Syntax

    if not config_path.exists():
        error(f"Config file not found: {config_path}")
        console.print("Built-in defaults are used when no config file exists")
        raise typer.Exit(1)

    console.print(f"[bold]Config file: {config_path}[/bold]\n")
    console.print(
        Syntax(config_path.read_text(), "toml", theme="monokai", line_numbers=True)
    )


def _validate(config_path: Path) -> None:
    from pydantic import ValidationError

    from ember.config import load_config

    if not config_path.exists():
        error(f"Config file not found: {config_path}")
        raise typer.Exit(1)

    try:
        loaded = load_config(config_path)
    except ValidationError as e:
        print_validation_errors(e)
        raise typer.Exit(1) from None
    except ValueError as e:
        error(f"Error loading config: {e}")
        raise typer.Exit(1) from None

    table = create_table(
        "Configuration Summary", [("Setting", "cyan"), ("Value", "green")]
    )
    for alias in loaded.list_models():
        model = loaded.get_model(alias)
        key_mark = (
            "[green]✓[/green]"
            if loaded.resolve_api_key(alias) is not None
            else "[yellow]no key[/yellow]"
        )
        table.add_row(f"Model '{alias}'", f"{model.provider}/{model.model} {key_mark}")
    table.add_row("Log file", str(loaded.log_file))
    table.add_row("Token cost", f"${loaded.token_cost:.8f}")
    table.add_row("Diff command", loaded.diff_command)
    table.add_row("Save directory", str(loaded.save_dir))
    table.add_row("Diagnostics log", "on" if loaded.log_diagnostics else "off")

    success("Configuration is valid!")
    console.print()
    console.print(table)


ACTIONS = {
    "path": _print_paths,
    "show": _print_file,
    "validate": _validate,
}


def register(app: typer.Typer) -> None:
    @app.command()
    def config(
        action: Annotated[
            str | None,
            typer.Argument(help="One of: " + ", ".join(ACTIONS)),
        ] = None,
        path: Annotated[
            Path | None,
            typer.Option(
                "--path",
                "-p",
                help="Config file to use (default: $EMBER_HOME/config.toml)",
            ),
        ] = None,
    ) -> None:
        """Show config paths, print the config file, or validate it."""
        from ember.config import get_config_path

        if action is None:
            click.echo(click.get_current_context().get_help())
            raise typer.Exit(0)

        handler = ACTIONS.get(action)
        if handler is None:
            error(f"Unknown action: {action}")
            console.print("Valid actions: " + ", ".join(ACTIONS))
            raise typer.Exit(1)

        handler(path.expanduser() if path else get_config_path())
