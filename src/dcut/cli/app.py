"""dcut CLI entry point."""

from typing import Annotated, Optional

import typer
from dotenv import load_dotenv

from dcut import __version__
from dcut.cli.format import format_video
from dcut.cli.generate import generate
from dcut.cli.init import init
from dcut.cli.inspect import inspect
from dcut.cli.status import status

app = typer.Typer(
    name="dcut",
    help="DialogueCutter: assemble lip-synced dialogue videos from a JSON script.",
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"dcut {__version__}")
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
    """DialogueCutter: assemble lip-synced dialogue videos from a JSON script."""
    # Load .env for SYNC_API_KEY / DROPBOX_ACCESS_TOKEN
    # Does not override existing env vars; shell exports take precedence
    load_dotenv(override=False)


app.command("generate")(generate)
app.command("inspect")(inspect)
app.command("status")(status)
app.command("init")(init)
app.command("format")(format_video)
