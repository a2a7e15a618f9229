"""dcut init command: scaffold an assets tree and an example script."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer

from dcut.meta.resolver import CATEGORIES

EXAMPLE_SCRIPT = {
    "segments": [
        {"video": "host", "start": 0, "end": 4.5, "dialogue": "Welcome back to the show."},
        {"video": "guest", "end": 9, "dialogue": "Thanks for having me."},
        {"video": "audience", "end": 11, "sync": False},
        {"video": "host", "end": 15, "dialogue": "Let's get started."},
    ],
    "meta": [
        {
            "type": "intros",
            "name": "opening",
            "placement": "before",
            "timing": {"start": 0, "duration": 3},
        },
        {
            "type": "outros",
            "name": "closing",
            "placement": "after",
            "timing": {"start": 18, "duration": 4},
        },
    ],
}


def init(
    directory: Annotated[
        Path,
        typer.Argument(help="Project directory to scaffold."),
    ] = Path("."),
) -> None:
    """Create assets/characters/videos, assets/meta-videos/* and script.json."""
    from dcut.utils.console import console as _console

    characters = directory / "assets" / "characters" / "videos"
    characters.mkdir(parents=True, exist_ok=True)
    for category in CATEGORIES:
        (directory / "assets" / "meta-videos" / category).mkdir(parents=True, exist_ok=True)
    _console.print(f"[green]Created:[/green] {directory / 'assets'}")

    script = directory / "script.json"
    if script.exists():
        _console.print(f"[dim]{script} exists, leaving it alone.[/dim]")
    else:
        script.write_text(json.dumps(EXAMPLE_SCRIPT, indent=2) + "\n", encoding="utf-8")
        _console.print(f"[green]Created:[/green] {script}")

    _console.print(
        "\nNext: put character clips in assets/characters/videos "
        "(host.mp4, guest.mp4, ...), then run [bold]dcut inspect script.json[/bold]."
    )
