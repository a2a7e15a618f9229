"""Per-segment workers for the two scheduler lanes.

Each worker is a callable taking a ``Segment`` and returning the path of
a playable clip for it. Workers raise on failure; the scheduler turns
exceptions into per-segment failures.
"""

from __future__ import annotations

import threading
from pathlib import Path

from dcut.assets.resolver import AssetResolver
from dcut.core.errors import ExternalJobError, MediaOperationError, TimingError
from dcut.core.models import ClipWindow, Segment
from dcut.lipsync.jobs import PollSettings, poll_job
from dcut.media.ports import AssetStaging, LipSyncJobs, MediaOperations, StagedAsset
from dcut.utils.console import console


def fit_clip_to_window(
    clip: ClipWindow,
    source_duration: float,
    window_duration: float,
    category: str | None = None,
) -> ClipWindow:
    """Clamp a trim window to the source and to the timeline slot.

    When the clip is longer than its slot, outros keep their tail (trimmed
    from the start); everything else keeps its head (trimmed from the end).

    Raises:
        TimingError: If the clip starts at or past the end of the source.
    """
    end = source_duration if clip.end is None else min(clip.end, source_duration)
    start = max(0.0, clip.start)
    if end <= start:
        raise TimingError(
            f"Clip window {start:g}s-{end:g}s is outside a {source_duration:g}s source"
        )

    if end - start > window_duration:
        if category and category.rstrip("s") == "outro":
            start = end - window_duration
        else:
            end = start + window_duration
    return ClipWindow(start=start, end=end)


class SyncLaneWorker:
    """Produce lip-synced clips through the external generation service."""

    def __init__(
        self,
        resolver: AssetResolver,
        media: MediaOperations,
        jobs: LipSyncJobs,
        staging: AssetStaging,
        audio_paths: dict[str, Path],
        temp_dir: Path,
        poll_settings: PollSettings = PollSettings(),
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.resolver = resolver
        self.media = media
        self.jobs = jobs
        self.staging = staging
        self.audio_paths = audio_paths
        self.temp_dir = Path(temp_dir)
        self.poll_settings = poll_settings
        self.cancel_event = cancel_event
        self._staged: list[str] = []
        self._lock = threading.Lock()

    def _stage(self, path: Path) -> StagedAsset:
        staged = self.staging.stage(path)
        with self._lock:
            self._staged.append(staged.handle)
        return staged

    def __call__(self, segment: Segment) -> Path:
        asset = self.resolver.require(segment.speaker_or_video)
        audio = self.audio_paths.get(segment.id)
        if audio is None:
            raise MediaOperationError(f"No audio extracted for {segment.id}")

        video = self.temp_dir / f"{segment.id}_input.mp4"
        if asset.media_type == "image":
            self.media.still_to_clip(asset.file_path, segment.duration, video)
        else:
            self.media.normalize(asset.file_path, video)

        staged_video = self._stage(video)
        staged_audio = self._stage(audio)
        job_id = self.jobs.submit(staged_video.url, staged_audio.url)
        console.print(f"[dim]{segment.id}: submitted lip-sync job {job_id}[/dim]")

        status = poll_job(self.jobs, job_id, self.poll_settings, self.cancel_event)
        if not status.output_ref:
            raise ExternalJobError("completed without an output", job_id)
        output = self.jobs.fetch(status.output_ref, self.temp_dir / f"{segment.id}.mp4")
        console.print(f"[green]Lip-synced:[/green] {segment.id}")
        return output

    @property
    def staged_handles(self) -> list[str]:
        with self._lock:
            return list(self._staged)

    def cleanup(self) -> int:
        """Remove every staged upload. Failures are reported, not raised.

        Returns:
            Number of uploads removed.
        """
        with self._lock:
            handles, self._staged = self._staged, []
        removed = 0
        for handle in handles:
            try:
                self.staging.unstage(handle)
                removed += 1
            except Exception as e:
                console.print(f"[yellow]Could not remove staged file {handle}:[/yellow] {e}")
        return removed


class PlainLaneWorker:
    """Cut clips locally: meta videos, cutaways and non-synced dialogue."""

    def __init__(self, resolver: AssetResolver, media: MediaOperations, temp_dir: Path) -> None:
        self.resolver = resolver
        self.media = media
        self.temp_dir = Path(temp_dir)

    def __call__(self, segment: Segment) -> Path:
        output = self.temp_dir / f"{segment.id}.mp4"
        if segment.kind == "meta":
            return self._meta_clip(segment, output)

        asset = self.resolver.require(segment.speaker_or_video)
        if asset.media_type == "image":
            return self.media.still_to_clip(asset.file_path, segment.duration, output)
        return self.media.extract_segment(asset.file_path, 0.0, segment.duration, output)

    def _meta_clip(self, segment: Segment, output: Path) -> Path:
        if segment.source_path is None:
            raise MediaOperationError(f"Meta segment {segment.id} has no source file")
        clip = segment.clip or ClipWindow()
        # Open-ended clips run to the end of the source
        if clip.end is None:
            source_duration = self.media.probe_duration(segment.source_path)
        else:
            source_duration = clip.end
        window = fit_clip_to_window(clip, source_duration, segment.duration, segment.category)
        return self.media.extract_segment(segment.source_path, window.start, window.end, output)
