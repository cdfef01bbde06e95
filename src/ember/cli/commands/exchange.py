"""Request commands: ``ask`` and ``input``."""

import asyncio
import os
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer

from ember.cli.console import (
    console,
    dim,
    error,
    info,
    load_config_or_exit,
    response,
    warning,
)
from ember.core.types import ExchangeConfig

if TYPE_CHECKING:
    from ember.config import EmberConfig
    from ember.core import ExchangeOutcome, SessionController

StreamOption = Annotated[
    bool, typer.Option("--stream", help="Stream the response as it is generated")
]
ChatOption = Annotated[
    bool, typer.Option("--chat", help="Continue the last logged conversation")
]
ModelOption = Annotated[
    str | None,
    typer.Option(
        "--model",
        "-m",
        help="Model alias to use (default: 'default' or EMBER_MODEL env)",
    ),
]
DryRunOption = Annotated[
    bool,
    typer.Option("--dryrun", help="Print the expanded request and a token estimate"),
]
StatsOption = Annotated[
    bool, typer.Option("--stats", help="Print token, cost and timing statistics")
]
SaveOption = Annotated[bool, typer.Option("--save", help="Save the response to a file")]
DiffOption = Annotated[
    str | None,
    typer.Option("--diff", help="File to compare the saved response against"),
]
PromptOption = Annotated[
    Path | None,
    typer.Option(
        "--prompt", help="File with a system prompt", exists=True, dir_okay=False
    ),
]
ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to configuration file"),
]


def register(app: typer.Typer) -> None:
    """Register the ask and input commands."""

    @app.command()
    def ask(
        words: Annotated[list[str], typer.Argument(help="The request text")],
        stream: StreamOption = False,
        chat: ChatOption = False,
        model: ModelOption = None,
        dryrun: DryRunOption = False,
        stats: StatsOption = False,
        save: SaveOption = False,
        diff: DiffOption = None,
        prompt: PromptOption = None,
        config_path: ConfigOption = None,
    ) -> None:
        """Send a request given on the command line.

        Examples:
            ember ask "What is the capital of France?"
            ember ask --chat "And of Spain?"
            ember ask --stream --stats Explain asyncio in two sentences
        """
        _run_request(
            " ".join(words),
            config_path,
            ExchangeConfig(
                model=_resolve_model_alias(model),
                stream=stream,
                chat=chat,
                dryrun=dryrun,
                stats=stats,
                save=save,
                diff=diff,
                prompt=prompt,
            ),
        )

    @app.command("input")
    def input_(
        file: Annotated[Path, typer.Argument(help="File containing the request")],
        stream: StreamOption = False,
        chat: ChatOption = False,
        model: ModelOption = None,
        dryrun: DryRunOption = False,
        stats: StatsOption = False,
        save: SaveOption = False,
        diff: DiffOption = None,
        prompt: PromptOption = None,
        config_path: ConfigOption = None,
    ) -> None:
        """Send a request read from a file.

        The request may contain #import and #diff lines. The response is
        compared against the first #diff file (or --diff) when one is given.

        Examples:
            ember input request.txt
            ember input --stream --diff src/app.py refactor.txt
        """
        try:
            request = file.expanduser().read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            error(f"Cannot read input file {file}: {e}")
            raise typer.Exit(1) from None

        _run_request(
            request,
            config_path,
            ExchangeConfig(
                model=_resolve_model_alias(model),
                stream=stream,
                chat=chat,
                dryrun=dryrun,
                stats=stats,
                save=save,
                diff=diff,
                prompt=prompt,
                from_file=True,
            ),
        )


def _resolve_model_alias(model: str | None) -> str:
    """CLI flag > EMBER_MODEL env > "default"."""
    return model or os.environ.get("EMBER_MODEL") or "default"


def _validate_model(config: "EmberConfig", alias: str, *, need_key: bool) -> None:
    from ember.config import ConfigError

    try:
        model_config = config.get_model(alias)
    except ConfigError as e:
        error(str(e))
        raise typer.Exit(1) from None

    if need_key and config.resolve_api_key(alias) is None:
        provider = model_config.provider
        env_var = "ANTHROPIC_API_KEY" if provider == "anthropic" else "OPENAI_API_KEY"
        error(
            f"No API key for provider '{provider}'. "
            f"Set {env_var}, put the key in ~/.{provider}, or set api_key in config"
        )
        raise typer.Exit(1)


def _create_controller(config: "EmberConfig") -> "SessionController":
    from ember.core import SessionController

    return SessionController(config)


def _run_request(
    request: str, config_path: Path | None, exchange: ExchangeConfig
) -> None:
    from ember.config.paths import get_logs_path
    from ember.core import ExchangeStatus
    from ember.logging import configure_logging

    config = load_config_or_exit(config_path)
    configure_logging(log_dir=get_logs_path() if config.log_diagnostics else None)
    _validate_model(config, exchange.model, need_key=not exchange.dryrun)

    controller = _create_controller(config)
    try:
        outcome = asyncio.run(_execute(controller, request, exchange))
    except KeyboardInterrupt:
        console.print("\n[dim]Cancelled[/dim]")
        raise typer.Exit(130) from None

    if outcome.status in (ExchangeStatus.ERROR, ExchangeStatus.DIRECTIVE_ERROR):
        raise typer.Exit(1)


async def _execute(
    controller: "SessionController", request: str, exchange: ExchangeConfig
) -> "ExchangeOutcome":
    from ember.core import ExchangeStatus
    from ember.history import ConversationLogError

    def on_delta(text: str) -> None:
        response(text, end="")

    try:
        if exchange.stream or exchange.dryrun or not console.is_terminal:
            outcome = await controller.run_exchange(
                request, exchange, on_delta=on_delta if exchange.stream else None
            )
        else:
            with console.status("[dim]Waiting for the model...[/dim]"):
                outcome = await controller.run_exchange(request, exchange)
    except ConversationLogError as e:
        error(str(e))
        raise typer.Exit(1) from None
    except OSError as e:
        error(str(e))
        raise typer.Exit(1) from None

    if outcome.status == ExchangeStatus.DIRECTIVE_ERROR:
        error(outcome.text)
        return outcome

    if outcome.status == ExchangeStatus.DRY_RUN:
        response(outcome.text)
        info(f"Estimated request tokens: {outcome.estimated_tokens}")
        return outcome

    if exchange.stream:
        console.print()
    if outcome.status == ExchangeStatus.ERROR:
        error(outcome.text)
    elif not exchange.stream:
        response(outcome.text)

    if exchange.stats:
        _print_stats(outcome, exchange)
    if outcome.log_error:
        warning(f"Exchange was not logged: {outcome.log_error}")
    if outcome.saved_path:
        dim(f"Saved response to {outcome.saved_path}")

    return outcome


def _print_stats(outcome: "ExchangeOutcome", exchange: ExchangeConfig) -> None:
    if outcome.estimated_tokens > 0:
        stats = (
            f"Tokens: {outcome.estimated_tokens} Cost: {outcome.cost} "
            f"Elapsed: {outcome.duration_seconds} Seconds"
        )
    else:
        stats = f"Elapsed: {outcome.duration_seconds} Seconds"
    if exchange.stream and outcome.tokens_estimated:
        stats += ". Tokens and cost are estimates when streaming."
    info(stats)
