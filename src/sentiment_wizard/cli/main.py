"""
Sentiment Wizard command line interface.
"""

import typer

from sentiment_wizard import __version__
from sentiment_wizard.cli.analyze import analyze, preview
from sentiment_wizard.cli.runtime_cmds import models, pull, setup, stop
from sentiment_wizard.cli.wizard import wizard
from sentiment_wizard.config import settings

app = typer.Typer(
    name="sentiment-wizard",
    help="Local LLM sentiment analysis for CSV and XLSX comments.",
    no_args_is_help=True,
    add_completion=False,
)


def _print_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs on stderr"),
    version: bool = typer.Option(
        False, "--version", callback=_print_version, is_eager=True, help="Print the version and exit"
    ),
) -> None:
    if verbose:
        settings.LOG_LEVEL = "DEBUG"


app.command()(setup)
app.command()(models)
app.command()(pull)
app.command()(preview)
app.command()(analyze)
app.command()(stop)
app.command()(wizard)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
