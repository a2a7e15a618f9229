"""Shared CLI utilities."""

from __future__ import annotations

from pathlib import Path

from rich.markup import escape
from rich.table import Table

from dcut.core.events import STAGES, PipelineEvent
from dcut.core.models import RunReport, Timeline
from dcut.utils.console import console


def dir_overrides(characters: Path | None, meta: Path | None) -> dict[str, object]:
    """Config overrides for the asset directory options."""
    return {
        "assets.characters_dir": characters,
        "assets.meta_dir": meta,
    }


def print_stage_events(event: PipelineEvent) -> None:
    """Print one line per finished pipeline stage."""
    if not event.finished:
        return
    counter = escape(f"[{event.step}/{len(STAGES)}]")
    console.print(f"[dim]{counter} {event.stage}: {event.message}[/dim]")


def report_table(report: RunReport) -> Table:
    table = Table(title="Generation Report")
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Segments", str(report.total))
    table.add_row("Succeeded", f"[green]{report.succeeded}[/green]")
    failed_style = "red" if report.failed_count else "dim"
    table.add_row("Failed", f"[{failed_style}]{report.failed_count}[/{failed_style}]")
    table.add_row("Duration", f"{report.duration:.1f}s")
    table.add_row("Output", str(report.output_path) if report.output_path else "-")
    for failure in report.failed:
        table.add_row(f"[red]{failure.segment_id}[/red]", failure.reason)
    return table


def timeline_table(timeline: Timeline) -> Table:
    """One row per planned segment, in timeline order."""
    table = Table(title=f"Timeline ({timeline.total_duration:g}s)")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Id")
    table.add_column("Asset")
    table.add_column("Start", justify="right")
    table.add_column("End", justify="right")
    table.add_column("Lane")
    table.add_column("Text", max_width=40)
    for i, segment in enumerate(timeline.segments, 1):
        if segment.overlay:
            lane = "[magenta]overlay[/magenta]"
        elif segment.requires_sync:
            lane = "[cyan]sync[/cyan]"
        else:
            lane = "plain"
        table.add_row(
            str(i),
            segment.id,
            segment.speaker_or_video,
            f"{segment.start_time:.2f}",
            f"{segment.end_time:.2f}",
            lane,
            segment.dialogue_text or "",
        )
    return table
