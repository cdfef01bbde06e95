"""Main CLI application."""

import typer

from ember.cli.commands import config, exchange, history

app = typer.Typer(
    name="ember",
    help="ember - chat with hosted LLMs from the command line",
    no_args_is_help=True,
)

exchange.register(app)
history.register(app)
config.register(app)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
