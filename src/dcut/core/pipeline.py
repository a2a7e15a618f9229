"""Generation orchestrator: script -> timeline -> clips -> final video."""

from __future__ import annotations

import shutil
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path

from dcut.assets.resolver import AssetResolver, MappingResult
from dcut.core.config import DCutConfig
from dcut.core.errors import (
    NoContentProducedError,
    ResolutionError,
    TimingError,
    UnsupportedFormatError,
)
from dcut.core.events import EventCallback, PipelineEvent
from dcut.core.models import ResolvedMetaPlacement, RunReport, Timeline
from dcut.lipsync.jobs import PollSettings
from dcut.media.ports import AssetStaging, LipSyncJobs, MediaOperations, OverlayClip
from dcut.meta.resolver import MetaVideoResolver
from dcut.processing.lanes import PlainLaneWorker, SyncLaneWorker
from dcut.script.parser import ScriptDocument, load_script, validate_segments
from dcut.timeline.compositor import compose
from dcut.timeline.scheduler import SegmentScheduler
from dcut.utils.console import console
from dcut.utils.paths import create_workspace, remove_temp, save_report, workspace_paths


@dataclass
class GenerationPlan:
    """Everything known about a run before any media is produced."""

    document: ScriptDocument
    resolver: AssetResolver
    mapping: MappingResult
    placements: list[ResolvedMetaPlacement] = field(default_factory=list)
    timeline: Timeline = field(default_factory=Timeline)

    @property
    def sync_count(self) -> int:
        return sum(1 for s in self.timeline.segments if s.requires_sync)


def _report_missing(resolver: AssetResolver, missing: list[str]) -> None:
    console.print(f"[red]{len(missing)} name(s) have no matching character file:[/red]")
    for name in missing:
        suggestions = resolver.suggest(name)[:3]
        hint = ", ".join(f"{s.name} ({s.score:.0%})" for s in suggestions)
        line = f"  [red]- {name}[/red]"
        if hint:
            line += f" [dim](did you mean: {hint})[/dim]"
        console.print(line)


def plan_generation(
    script_path: Path,
    config: DCutConfig,
    on_event: EventCallback | None = None,
) -> GenerationPlan:
    """Parse, validate, resolve and compose a script without touching media.

    Raises:
        FileNotFoundError: If the script doesn't exist.
        UnsupportedFormatError: If the script is malformed or empty.
        TimingError: If any segment has invalid timing.
        DirectoryNotFoundError: If the characters directory is missing.
        ResolutionError: If a segment name matches no character file.
        InternalConsistencyError: If composition breaks the timeline.
    """

    def emit(stage: str, progress: float, message: str, data: dict | None = None) -> None:
        if on_event:
            on_event(PipelineEvent(stage=stage, progress=progress, message=message, data=data))

    # Step 1: Parse and validate the script
    emit("parse", 0.0, f"Parsing script: {script_path}")
    document = load_script(Path(script_path))
    if not document.segments:
        raise UnsupportedFormatError(f"Script has no segments: {script_path}")
    violations = validate_segments(document.segments)
    if violations:
        raise TimingError("Invalid segment timing:\n  " + "\n  ".join(violations))
    console.print(
        f"[bold]Script:[/bold] {len(document.segments)} segments, "
        f"{document.total_duration:g}s, {len(document.meta)} meta entries"
    )
    emit("parse", 1.0, "Script parsed", data={"segments": len(document.segments)})

    # Step 2: Resolve character assets
    emit("resolve", 0.0, "Resolving assets...")
    resolver = AssetResolver(config.assets.characters_dir).initialize()
    mapping = resolver.validate_mapping(document.asset_names)
    if not mapping.ok:
        _report_missing(resolver, mapping.missing)
        first = mapping.missing[0]
        raise ResolutionError(first, resolver.suggest(first))

    # Step 3: Resolve meta placements
    placements: list[ResolvedMetaPlacement] = []
    if document.meta:
        meta_resolver = MetaVideoResolver(config.assets.meta_dir).initialize()
        placements = meta_resolver.resolve_all(document.meta, document.total_duration)
    emit("resolve", 1.0, "Assets resolved", data={"placements": len(placements)})

    # Step 4: Compose
    emit("compose", 0.0, "Composing timeline...")
    timeline = compose(document.segments, placements, document.total_duration)
    emit("compose", 1.0, "Timeline composed", data={"segments": len(timeline.segments)})

    return GenerationPlan(
        document=document,
        resolver=resolver,
        mapping=mapping,
        placements=placements,
        timeline=timeline,
    )


def run_generation(
    script_path: Path,
    audio_path: Path | None,
    config: DCutConfig,
    output_name: str | None = None,
    on_event: EventCallback | None = None,
    cancel_event: threading.Event | None = None,
    media: MediaOperations | None = None,
    jobs: LipSyncJobs | None = None,
    staging: AssetStaging | None = None,
) -> RunReport:
    """Run a full generation.

    Args:
        script_path: JSON script file.
        audio_path: Source dialogue audio. Without it segments keep the
            audio of their own clips and nothing can be lip-synced.
        config: Full application config.
        output_name: Workspace title; defaults to the script's stem.
        on_event: Optional callback for streaming progress events.
        cancel_event: Set it to stop starting new segments and abort polls.
        media: Media operations; defaults to ffmpeg.
        jobs: Lip-sync service; defaults to the sync.so client.
        staging: File staging; defaults to Dropbox.

    Returns:
        RunReport for the run. Per-segment failures are listed in it.

    Raises:
        DCutError: On structural errors (see ``plan_generation``), or
            NoContentProducedError when every segment failed.
    """

    def emit(stage: str, progress: float, message: str, data: dict | None = None) -> None:
        if on_event:
            on_event(PipelineEvent(stage=stage, progress=progress, message=message, data=data))

    started = time.monotonic()
    cancel = cancel_event or threading.Event()
    script_path = Path(script_path)
    if audio_path is not None and not Path(audio_path).is_file():
        raise FileNotFoundError(f"Audio not found: {audio_path}")

    plan = plan_generation(script_path, config, on_event=on_event)
    timeline = plan.timeline

    # Lip-sync adapters need credentials; build them only for sync segments
    owned: list = []
    if media is None:
        from dcut.media.ffmpeg import FFmpegMedia

        media = FFmpegMedia(config.render)
    if plan.sync_count and jobs is None:
        from dcut.lipsync.client import SyncLabsClient

        jobs = SyncLabsClient(config.lipsync)
        owned.append(jobs)
    if plan.sync_count and staging is None:
        from dcut.staging.dropbox import DropboxStaging

        staging = DropboxStaging(config.staging)
        owned.append(staging)

    workspace = create_workspace(output_name or script_path.stem, base_dir=config.workspace_dir)
    paths = workspace_paths(workspace)
    console.print(f"[bold]Workspace:[/bold] {workspace}")

    sync_worker: SyncLaneWorker | None = None
    try:
        # Step 5: Cut source audio per base segment, keyed by id so that
        # later time shifts don't matter
        audio_paths: dict[str, Path] = {}
        if audio_path is not None:
            to_cut = [s for s in plan.document.segments if s.requires_sync]
            emit("audio", 0.0, f"Extracting audio for {len(to_cut)} segments...")
            for i, segment in enumerate(to_cut):
                audio_paths[segment.id] = media.extract_audio(
                    Path(audio_path),
                    segment.start_time,
                    segment.end_time,
                    paths["audio"] / f"{segment.id}.wav",
                )
                emit("audio", (i + 1) / len(to_cut), f"Audio for {segment.id}")
            emit("audio", 1.0, "Audio ready")

        # Step 6: Process both lanes
        emit("process", 0.0, f"Processing {len(timeline.segments)} segments...")
        plain_worker = PlainLaneWorker(plan.resolver, media, paths["segments"])
        if plan.sync_count:
            sync_worker = SyncLaneWorker(
                plan.resolver,
                media,
                jobs,
                staging,
                audio_paths,
                paths["segments"],
                poll_settings=PollSettings.from_config(config.lipsync),
                cancel_event=cancel,
            )
        scheduler = SegmentScheduler(
            sync_concurrency=config.lipsync.concurrency,
            batch_pause=config.lipsync.batch_pause,
            plain_workers=config.plain_workers,
            cancel_event=cancel,
        )
        batch = scheduler.schedule(timeline, sync_worker or plain_worker, plain_worker)
        emit("process", 1.0, "Segments processed", data={"failed": len(batch.errors)})

        # Step 7: Concatenate, lay the source audio back, draw overlays
        emit("concat", 0.0, "Assembling final video...")
        base = [o.artifact for o in batch.successful if not o.overlay]
        overlays = [
            OverlayClip(path=o.artifact, start=o.start_time, end=o.end_time)
            for o in batch.successful
            if o.overlay
        ]
        if not base:
            raise NoContentProducedError(batch.errors)

        temp = paths["temp"]
        if audio_path is not None:
            video_only = media.concatenate(base, temp / "video_only.mp4", remove_audio=True)
            joined = media.overlay_audio(
                video_only, Path(audio_path), temp / "with_audio.mp4", delay=timeline.lead_in
            )
        else:
            joined = media.concatenate(base, temp / "joined.mp4")

        output = paths["output"]
        if overlays:
            media.apply_overlays(joined, overlays, output)
        else:
            shutil.move(str(joined), output)
        console.print(f"[green]Saved:[/green] {output}")
        emit("concat", 1.0, "Final video assembled", data={"output": str(output)})
    finally:
        emit("cleanup", 0.0, "Cleaning up...")
        if sync_worker is not None:
            removed = sync_worker.cleanup()
            if removed:
                console.print(f"[dim]Removed {removed} staged files[/dim]")
        for client in owned:
            client.close()

    report = RunReport(
        total=len(timeline.segments),
        succeeded=len(batch.successful),
        failed=batch.errors,
        output_path=output,
        duration=time.monotonic() - started,
        workspace=workspace,
    )
    save_report(
        workspace,
        report,
        script=script_path,
        audio=audio_path,
        lead_in=timeline.lead_in,
        placements=len(plan.placements),
    )
    if not config.keep_temp:
        remove_temp(workspace)
    emit("cleanup", 1.0, "Done", data={"workspace": str(workspace)})

    console.print(
        f"\n[bold green]Done![/bold green] {report.succeeded}/{report.total} segments "
        f"in {report.duration:.1f}s"
    )
    return report
