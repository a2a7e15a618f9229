"""dcut format command: reframe an existing video to a portrait frame."""

from __future__ import annotations

import shutil
from datetime import datetime
from pathlib import Path
from typing import Annotated, Optional

import typer

from dcut.core.config import load_config
from dcut.core.errors import DCutError
from dcut.media.ports import VERTICAL_MODES
from dcut.utils.console import console


def default_output(source: Path) -> Path:
    """``<dir>/<stem>_vertical_<timestamp>.mp4`` next to the source.

    A source inside a ``horizontal`` directory goes to its ``vertical`` sibling.
    """
    parent = source.parent
    if parent.name == "horizontal":
        parent = parent.with_name("vertical")
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return parent / f"{source.stem}_vertical_{timestamp}.mp4"


def format_video(
    source: Annotated[
        Path,
        typer.Argument(help="Video to convert."),
    ],
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Output file. Default: <name>_vertical_<time>.mp4"),
    ] = None,
    mode: Annotated[
        str,
        typer.Option("--mode", help="Reframing mode: crop, fit, fill or auto."),
    ] = "crop",
    width: Annotated[
        int,
        typer.Option("--width", min=2, help="Target width in pixels."),
    ] = 1080,
    height: Annotated[
        int,
        typer.Option("--height", min=2, help="Target height in pixels."),
    ] = 1920,
    copy: Annotated[
        bool,
        typer.Option("--copy", help="Work on a copy of the input, left next to it."),
    ] = False,
) -> None:
    """Convert a horizontal video to a vertical one."""
    from dcut.media.ffmpeg import FFmpegMedia

    if mode not in VERTICAL_MODES:
        console.print(
            f"[red]Error:[/red] Unknown mode '{mode}'. Choose from: {', '.join(VERTICAL_MODES)}"
        )
        raise typer.Exit(1)
    if not source.is_file():
        console.print(f"[red]Error:[/red] Input video not found: {source}")
        raise typer.Exit(1)

    if copy:
        copied = source.with_name(f"{source.stem}_copy{source.suffix}")
        shutil.copy2(source, copied)
        console.print(f"[dim]Working on copy: {copied}[/dim]")
        source = copied

    target = output or default_output(source)
    console.print(f"[bold]Converting:[/bold] {source}")
    console.print(f"  Mode: {mode}, target {width}x{height}")

    config = load_config()
    try:
        FFmpegMedia(config.render).to_vertical(
            source, target, mode=mode, width=width, height=height
        )
    except DCutError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    console.print(f"[green]Saved:[/green] {target}")
