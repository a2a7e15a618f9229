"""dcut status command: what's configured and what's on disk."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.table import Table

from dcut.cli.utils import dir_overrides
from dcut.core.config import load_config
from dcut.core.errors import DirectoryNotFoundError


def status(
    characters: Annotated[
        Optional[Path],
        typer.Option("--characters", "-c", help="Character video/image directory."),
    ] = None,
    meta: Annotated[
        Optional[Path],
        typer.Option("--meta", "-m", help="Meta video directory."),
    ] = None,
) -> None:
    """Show asset catalogs, credentials and tool availability."""
    from dcut.assets.resolver import AssetResolver
    from dcut.media.ffmpeg import check_ffmpeg
    from dcut.meta.resolver import CATEGORIES, MetaVideoResolver
    from dcut.utils.console import console as _console

    config = load_config(**dir_overrides(characters, meta))

    table = Table(title="dcut status")
    table.add_column("Item", style="bold")
    table.add_column("Value")

    try:
        resolver = AssetResolver(config.assets.characters_dir).initialize()
        names = ", ".join(a.canonical_name for a in resolver.assets) or "-"
        table.add_row("Characters", f"{len(resolver.assets)} ({names})")
    except DirectoryNotFoundError as e:
        table.add_row("Characters", f"[red]{e}[/red]")

    summary = MetaVideoResolver(config.assets.meta_dir).initialize().summary()
    for category in CATEGORIES:
        table.add_row(f"Meta {category}", str(summary[category]))

    def _present(value: str | None) -> str:
        return "[green]set[/green]" if value else "[yellow]missing[/yellow]"

    api_key = config.lipsync.api_key or os.environ.get("SYNC_API_KEY")
    token = config.staging.access_token or os.environ.get("DROPBOX_ACCESS_TOKEN")
    table.add_row("Lip-sync API key", _present(api_key))
    table.add_row("Dropbox token", _present(token))
    table.add_row("ffmpeg", "[green]found[/green]" if check_ffmpeg() else "[red]not found[/red]")
    table.add_row("Workspace", str(config.workspace_dir))

    _console.print(table)
