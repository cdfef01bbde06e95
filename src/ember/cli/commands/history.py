"""Conversation log inspection."""

import asyncio
from pathlib import Path
from typing import Annotated

import typer

from ember.cli.console import console, create_table, dim, error, load_config_or_exit


def _preview(text: str, width: int = 60) -> str:
    flat = " ".join(text.split())
    return flat if len(flat) <= width else flat[: width - 3] + "..."


def register(app: typer.Typer) -> None:
    """Register the history command."""

    @app.command()
    def history(
        limit: Annotated[
            int,
            typer.Option("--limit", "-n", help="Number of recent exchanges to show"),
        ] = 10,
        last: Annotated[
            bool,
            typer.Option("--last", help="Print the full last conversation"),
        ] = False,
        config_path: Annotated[
            Path | None,
            typer.Option("--config", "-c", help="Path to configuration file"),
        ] = None,
    ) -> None:
        """Show logged exchanges.

        Examples:
            ember history              # Ten most recent exchanges
            ember history -n 50
            ember history --last       # What --chat would continue from
        """
        from ember.history import ConversationLog, ConversationLogError

        config = load_config_or_exit(config_path)
        log = ConversationLog(config.log_file)

        try:
            if last:
                messages = asyncio.run(log.last_conversation())
            else:
                entries = asyncio.run(log.entries())
        except ConversationLogError as e:
            error(str(e))
            raise typer.Exit(1) from None

        if last:
            if not messages:
                dim("No conversation logged yet")
                return
            for message in messages:
                console.print(f"[bold cyan]{message.role.value}:[/bold cyan]")
                console.print(message.content, markup=False, highlight=False)
                console.print()
            return

        if not entries:
            dim(f"No exchanges in {config.log_file}")
            return

        table = create_table(
            f"Conversation log ({len(entries)} exchanges)",
            [
                ("#", {"style": "dim", "justify": "right"}),
                ("Time", "cyan"),
                ("Turns", {"justify": "right"}),
                ("Tokens", {"justify": "right"}),
                ("Cost", "green"),
                ("Duration", {"justify": "right"}),
                ("Request", ""),
            ],
        )
        start = max(len(entries) - limit, 0)
        for index, entry in enumerate(entries[start:], start=start + 1):
            user_messages = [m for m in entry.messages if m.role.value == "user"]
            request = user_messages[-1].content if user_messages else ""
            table.add_row(
                str(index),
                entry.timestamp,
                str(len(entry.messages)),
                str(entry.token_count),
                entry.cost,
                f"{entry.duration_seconds:.1f}s",
                _preview(request),
            )
        console.print(table)
