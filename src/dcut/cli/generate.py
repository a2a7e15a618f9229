"""dcut generate command: full run from script and audio to final video."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer

from dcut.cli.utils import dir_overrides, print_stage_events, report_table
from dcut.core.config import QUALITY_BITRATES, load_config
from dcut.core.errors import DCutError


def generate(
    script: Annotated[
        Path,
        typer.Argument(help="JSON script (explicit list, sequence or diarization)."),
    ],
    audio: Annotated[
        Optional[Path],
        typer.Option("--audio", "-a", help="Source dialogue audio to cut and lip-sync."),
    ] = None,
    characters: Annotated[
        Optional[Path],
        typer.Option("--characters", "-c", help="Character video/image directory."),
    ] = None,
    meta: Annotated[
        Optional[Path],
        typer.Option("--meta", "-m", help="Meta video directory (intros/, outros/, ...)."),
    ] = None,
    output: Annotated[
        Optional[str],
        typer.Option("--output", "-o", help="Workspace name (default: script name)."),
    ] = None,
    sync_api_key: Annotated[
        Optional[str],
        typer.Option("--sync-api-key", envvar="SYNC_API_KEY", help="sync.so API key."),
    ] = None,
    dropbox_token: Annotated[
        Optional[str],
        typer.Option(
            "--dropbox-token", envvar="DROPBOX_ACCESS_TOKEN", help="Dropbox access token."
        ),
    ] = None,
    concurrency: Annotated[
        Optional[int],
        typer.Option("--concurrency", help="Lip-sync jobs in flight at once."),
    ] = None,
    quality: Annotated[
        Optional[str],
        typer.Option("--quality", help="Output bitrate preset: low, medium, high or ultra."),
    ] = None,
    keep_temp: Annotated[
        bool,
        typer.Option("--keep-temp", help="Keep intermediate clips in the workspace."),
    ] = False,
) -> None:
    """Generate the final video for a script."""
    from dcut.core.pipeline import run_generation
    from dcut.utils.console import console as _console

    overrides: dict[str, object] = {
        **dir_overrides(characters, meta),
        "lipsync.api_key": sync_api_key,
        "lipsync.concurrency": concurrency,
        "staging.access_token": dropbox_token,
        "render.quality": quality,
    }
    if keep_temp:
        overrides["keep_temp"] = True
    if quality is not None and quality not in QUALITY_BITRATES:
        choices = ", ".join(QUALITY_BITRATES)
        _console.print(f"[red]Error:[/red] Unknown quality '{quality}'. Choose from: {choices}")
        raise typer.Exit(1)
    config = load_config(**overrides)

    try:
        report = run_generation(
            script_path=script,
            audio_path=audio,
            config=config,
            output_name=output,
            on_event=print_stage_events,
        )
    except (DCutError, FileNotFoundError) as e:
        _console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    _console.print()
    _console.print(report_table(report))
    if report.failed_count:
        _console.print(f"[yellow]{report.failed_count} segments were skipped.[/yellow]")
