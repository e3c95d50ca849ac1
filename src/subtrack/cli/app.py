"""subtrack CLI entry point."""

from typing import Annotated, Optional

import typer
from dotenv import load_dotenv

from subtrack import __version__
from subtrack.cli.cache import cache_app
from subtrack.cli.resolve import resolve
from subtrack.cli.show import export, mark, show

app = typer.Typer(
    name="subtrack",
    help="subtrack — Subtitles for hosted videos, with speech-to-text fallback.",
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"subtrack {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-V",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
) -> None:
    """subtrack — Subtitles for hosted videos, with speech-to-text fallback."""
    # API keys (OPENAI_API_KEY, GROQ_API_KEY, ...) may live in .env; shell exports win
    load_dotenv(override=False)


app.command("resolve")(resolve)
app.command("show")(show)
app.command("mark")(mark)
app.command("export")(export)
app.add_typer(cache_app, name="cache")
