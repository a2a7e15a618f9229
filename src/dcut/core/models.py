"""Shared data models for dcut."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Literal

SegmentKind = Literal["dialogue", "cutaway", "meta"]
MediaType = Literal["video", "image"]
PlacementMode = Literal["replace", "before", "after", "overlay"]

PLACEMENT_MODES: tuple[str, ...] = ("replace", "before", "after", "overlay")


@dataclass(frozen=True)
class Segment:
    """A time-bounded unit of the output timeline."""

    id: str
    speaker_or_video: str
    start_time: float  # seconds
    end_time: float  # seconds
    requires_sync: bool = True
    kind: SegmentKind = "dialogue"
    dialogue_text: str | None = None
    speaker: str | None = None  # display label when it differs from the asset name
    confidence: float | None = None  # diarization only
    overlay: bool = False
    category: str | None = None  # meta segments only
    source_path: Path | None = None  # meta segments carry their resolved asset
    clip: ClipWindow | None = None

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    def shifted(self, seconds: float) -> Segment:
        """Return a copy moved forward by ``seconds``."""
        return replace(self, start_time=self.start_time + seconds, end_time=self.end_time + seconds)


@dataclass(frozen=True)
class Asset:
    """A media file found while scanning an asset directory."""

    canonical_name: str
    file_path: Path
    media_type: MediaType
    extension: str


@dataclass(frozen=True)
class TimingSpec:
    """Where a meta clip sits on the output timeline, as written in the script."""

    start: float | None = None
    end: float | None = None
    duration: float | None = None
    from_end: float | None = None
    before_end: float | None = None
    offset: float = 0.0


@dataclass(frozen=True)
class ClipSpec:
    """Trim window within the meta source clip, as written in the script."""

    start: float = 0.0
    end: float | None = None
    duration: float | None = None


@dataclass(frozen=True)
class MetaDefinition:
    """A request to insert an auxiliary clip (intro, outro, cutaway, overlay)."""

    category: str
    name: str
    timing: TimingSpec = field(default_factory=TimingSpec)
    clip: ClipSpec = field(default_factory=ClipSpec)
    placement_mode: PlacementMode = "replace"
    include: bool = True
    index: int = 0  # position in the script's meta array


@dataclass(frozen=True)
class TimeWindow:
    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass(frozen=True)
class ClipWindow:
    """Trim window in source time. ``end=None`` means "to the end of the source"."""

    start: float = 0.0
    end: float | None = None

    @property
    def duration(self) -> float | None:
        if self.end is None:
            return None
        return self.end - self.start


@dataclass(frozen=True)
class ResolvedMetaPlacement:
    """A meta definition with its asset found and its windows made absolute."""

    asset: Asset
    timing: TimeWindow
    clip: ClipWindow
    category: str
    name: str
    placement_mode: PlacementMode
    index: int = 0


@dataclass(frozen=True)
class Timeline:
    """Ordered segments covering the output video.

    Overlay entries may overlap anything; all other entries must not
    overlap each other (see ``overlap_violations``).
    """

    segments: tuple[Segment, ...] = ()
    lead_in: float = 0.0  # seconds inserted in front by "before" placements

    @property
    def base_segments(self) -> list[Segment]:
        return [s for s in self.segments if not s.overlay]

    @property
    def overlays(self) -> list[Segment]:
        return [s for s in self.segments if s.overlay]

    @property
    def total_duration(self) -> float:
        return max((s.end_time for s in self.segments), default=0.0)

    def overlap_violations(self) -> list[tuple[Segment, Segment]]:
        """Return consecutive non-overlay pairs that overlap, sorted by start."""
        ordered = sorted(self.base_segments, key=lambda s: s.start_time)
        return [
            (prev, cur)
            for prev, cur in zip(ordered, ordered[1:])
            if prev.end_time > cur.start_time
        ]


@dataclass
class SegmentOutput:
    """A playable clip produced for one segment."""

    segment_id: str
    artifact: Path
    start_time: float
    end_time: float
    kind: SegmentKind = "dialogue"
    overlay: bool = False


@dataclass
class SegmentFailure:
    segment_id: str
    reason: str


@dataclass
class BatchResult:
    """Outcome of processing a whole timeline: best effort, partial success."""

    successful: list[SegmentOutput] = field(default_factory=list)
    errors: list[SegmentFailure] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.successful) + len(self.errors)


@dataclass
class RunReport:
    """Structured result of one generation run."""

    total: int
    succeeded: int
    failed: list[SegmentFailure]
    output_path: Path | None
    duration: float = 0.0
    workspace: Path | None = None

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "failed_count": self.failed_count,
            "failed": [{"segment_id": f.segment_id, "reason": f.reason} for f in self.failed],
            "output_path": str(self.output_path) if self.output_path else None,
            "duration": self.duration,
        }
