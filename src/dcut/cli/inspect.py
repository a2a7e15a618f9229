"""dcut inspect command: show the planned timeline without producing media."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer

from dcut.cli.utils import dir_overrides, timeline_table
from dcut.core.config import load_config
from dcut.core.errors import DCutError


def inspect(
    script: Annotated[
        Path,
        typer.Argument(help="JSON script to inspect."),
    ],
    characters: Annotated[
        Optional[Path],
        typer.Option("--characters", "-c", help="Character video/image directory."),
    ] = None,
    meta: Annotated[
        Optional[Path],
        typer.Option("--meta", "-m", help="Meta video directory."),
    ] = None,
) -> None:
    """Parse, validate, resolve and compose a script, then print the timeline."""
    from dcut.core.pipeline import plan_generation
    from dcut.utils.console import console as _console

    config = load_config(**dir_overrides(characters, meta))
    try:
        plan = plan_generation(script, config)
    except (DCutError, FileNotFoundError) as e:
        _console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    _console.print()
    _console.print(timeline_table(plan.timeline))
    for name, asset in plan.mapping.resolved.items():
        _console.print(f"  [dim]{name} -> {asset.file_path.name}[/dim]")
    if plan.timeline.lead_in:
        _console.print(f"[dim]Audio delayed by {plan.timeline.lead_in:g}s for intros.[/dim]")
    _console.print(
        f"[bold]{plan.sync_count}[/bold] lip-sync jobs, "
        f"[bold]{len(plan.timeline.segments) - plan.sync_count}[/bold] local clips"
    )
