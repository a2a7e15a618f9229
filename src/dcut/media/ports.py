"""Collaborator interfaces the engine depends on.

Concrete adapters live in ``dcut.media.ffmpeg``, ``dcut.lipsync.client``
and ``dcut.staging.dropbox``; tests substitute in-memory fakes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

JobState = Literal["pending", "done", "failed"]

VERTICAL_MODES = ("crop", "fit", "fill", "auto")


@dataclass(frozen=True)
class JobStatus:
    status: JobState
    output_ref: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class StagedAsset:
    url: str
    handle: str  # opaque, passed back to unstage()


@dataclass(frozen=True)
class OverlayClip:
    """A clip to draw over the base video between ``start`` and ``end``."""

    path: Path
    start: float
    end: float


class MediaOperations(ABC):
    """Local media transformations (ffmpeg in production)."""

    @abstractmethod
    def extract_segment(self, source: Path, start: float, end: float, output: Path) -> Path:
        """Cut ``[start, end)`` of a video into a new file."""

    @abstractmethod
    def extract_audio(self, source: Path, start: float, end: float, output: Path) -> Path:
        """Cut ``[start, end)`` of an audio track into a WAV file."""

    @abstractmethod
    def still_to_clip(self, image: Path, duration: float, output: Path) -> Path:
        """Render a still image as a video clip of ``duration`` seconds."""

    @abstractmethod
    def normalize(self, source: Path, output: Path) -> Path:
        """Scale and pad a video to the configured frame size."""

    @abstractmethod
    def concatenate(self, paths: list[Path], output: Path, remove_audio: bool = False) -> Path:
        """Join clips in the given order."""

    @abstractmethod
    def overlay_audio(self, video: Path, audio: Path, output: Path, delay: float = 0.0) -> Path:
        """Replace the video's audio with ``audio`` starting ``delay`` seconds in."""

    @abstractmethod
    def apply_overlays(self, base: Path, overlays: list[OverlayClip], output: Path) -> Path:
        """Draw overlay clips over the base video at their windows."""

    @abstractmethod
    def to_vertical(
        self,
        source: Path,
        output: Path,
        mode: str = "crop",
        width: int = 1080,
        height: int = 1920,
    ) -> Path:
        """Reframe a video to a portrait frame (see ``VERTICAL_MODES``)."""

    @abstractmethod
    def probe_duration(self, path: Path) -> float:
        """Length of a media file in seconds."""

    @abstractmethod
    def probe_dimensions(self, path: Path) -> tuple[int, int]:
        """(width, height) of the first video stream."""


class LipSyncJobs(ABC):
    """Asynchronous lip-sync generation service."""

    @abstractmethod
    def submit(self, video_ref: str, audio_ref: str) -> str:
        """Start a job and return its id."""

    @abstractmethod
    def poll(self, job_id: str) -> JobStatus:
        """Return the job's current status."""

    @abstractmethod
    def fetch(self, output_ref: str, destination: Path) -> Path:
        """Download a finished job's output."""


class AssetStaging(ABC):
    """Makes local files reachable by URL for the lip-sync service."""

    @abstractmethod
    def stage(self, path: Path) -> StagedAsset:
        """Upload a file and return a shareable URL and cleanup handle."""

    @abstractmethod
    def unstage(self, handle: str) -> None:
        """Remove a previously staged file."""
