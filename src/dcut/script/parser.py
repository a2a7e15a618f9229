"""Parse declarative scripts into canonical timeline segments.

Three input shapes are supported and detected once, at the boundary:

- explicit list: ``[{speaker|video, start?, end, dialogue?, sync?}, ...]``
  (or ``{"segments": [...], "meta": [...]}`` to carry meta clips)
- sequence: ``{"type": "sequence", "speakers": [...], "durations": [...]}``
- diarization: ``{"type": "diarization", "segments": [{speakerId, start, end}]}``

After detection everything downstream works on ``Segment`` only.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

from dcut.core.errors import UnsupportedFormatError
from dcut.core.models import (
    PLACEMENT_MODES,
    ClipSpec,
    MetaDefinition,
    Segment,
    TimingSpec,
)


def _number(value: Any, what: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise UnsupportedFormatError(f"{what} must be a number, got {value!r}")


def _optional_number(value: Any, what: str) -> float | None:
    return None if value is None else _number(value, what)


def _list(value: Any, what: str) -> list | None:
    if value is None:
        return None
    if not isinstance(value, list):
        raise UnsupportedFormatError(f"{what} must be a list, got {type(value).__name__}")
    return value


def _object(value: Any, what: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise UnsupportedFormatError(f"{what} must be an object, got {value!r}")
    return value


@dataclass(frozen=True)
class ExplicitListScript:
    entries: list[dict]

    def to_segments(self) -> list[Segment]:
        segments = []
        previous_end = 0.0
        for index, entry in enumerate(self.entries):
            if not isinstance(entry, dict):
                raise UnsupportedFormatError(f"Segment {index} must be an object")
            name = entry.get("video") or entry.get("speaker")
            if not name:
                raise UnsupportedFormatError(f"Segment {index} needs a 'speaker' or 'video'")
            if entry.get("end") is None:
                raise UnsupportedFormatError(f"Segment {index} is missing 'end'")

            end = _number(entry["end"], f"segment {index} end")
            if entry.get("start") is not None:
                start = _number(entry["start"], f"segment {index} start")
            else:
                start = previous_end

            sync = entry.get("sync", True) is not False
            segments.append(
                Segment(
                    id=f"segment_{index}",
                    speaker_or_video=name,
                    start_time=start,
                    end_time=end,
                    requires_sync=sync,
                    kind="dialogue" if sync else "cutaway",
                    dialogue_text=entry.get("dialogue") or entry.get("text"),
                    speaker=entry.get("speaker") or name,
                )
            )
            previous_end = end
        return segments


@dataclass(frozen=True)
class SequenceScript:
    speakers: list[str]
    durations: list[float] = field(default_factory=list)
    videos: list[str] | None = None
    dialogue: list[str] | None = None
    sync: list[bool] | None = None

    def to_segments(self) -> list[Segment]:
        segments = []
        current = 0.0
        for index, speaker in enumerate(self.speakers):
            raw = self.durations[index] if index < len(self.durations) else None
            duration = _number(raw, f"duration {index}") if raw else 1.0
            video = _pick(self.videos, index) or speaker
            sync = _pick(self.sync, index) is not False
            segments.append(
                Segment(
                    id=f"segment_{index}",
                    speaker_or_video=video,
                    start_time=current,
                    end_time=current + duration,
                    requires_sync=sync,
                    kind="dialogue" if sync else "cutaway",
                    dialogue_text=_pick(self.dialogue, index),
                    speaker=speaker,
                )
            )
            current += duration
        return segments


@dataclass(frozen=True)
class DiarizationScript:
    segments: list[dict]

    def to_segments(self) -> list[Segment]:
        # Speaker ids are kept as-is; mapping them to characters happens later
        result = []
        for index, entry in enumerate(self.segments):
            if not isinstance(entry, dict):
                raise UnsupportedFormatError(f"Segment {index} must be an object")
            result.append(
                Segment(
                    id=f"segment_{index}",
                    speaker_or_video=str(entry.get("speakerId", "")),
                    start_time=_number(entry.get("start"), f"segment {index} start"),
                    end_time=_number(entry.get("end"), f"segment {index} end"),
                    confidence=float(entry.get("confidence") or 1.0),
                )
            )
        return result


ScriptFormat = Union[ExplicitListScript, SequenceScript, DiarizationScript]


def detect_format(data: Any) -> ScriptFormat:
    """Classify raw script data into one of the three known shapes.

    Raises:
        UnsupportedFormatError: If the data matches none of them.
    """
    if isinstance(data, list):
        return ExplicitListScript(entries=data)

    if isinstance(data, dict):
        kind = data.get("type")
        if kind == "sequence":
            speakers = data.get("speakers")
            if not isinstance(speakers, list):
                raise UnsupportedFormatError("Sequence script needs a 'speakers' list")
            return SequenceScript(
                speakers=speakers,
                durations=_list(data.get("durations"), "'durations'") or [],
                videos=_list(data.get("videos"), "'videos'"),
                dialogue=_list(data.get("dialogue"), "'dialogue'"),
                sync=_list(data.get("sync"), "'sync'"),
            )
        if kind == "diarization":
            segments = _list(data.get("segments"), "Diarization 'segments'")
            return DiarizationScript(segments=segments or [])
        if kind is None and isinstance(data.get("segments"), list):
            return ExplicitListScript(entries=data["segments"])

    raise UnsupportedFormatError("Unsupported segmentation format")


def parse(data: Any) -> list[Segment]:
    """Convert raw script data to ordered segments with ids ``segment_<n>``."""
    return detect_format(data).to_segments()


def validate_segments(segments: list[Segment]) -> list[str]:
    """Return every timing violation, in appearance order.

    An empty list means the segments are valid.
    """
    errors = []
    for i, segment in enumerate(segments):
        if segment.start_time < 0:
            errors.append(f"Segment {segment.id}: Start time cannot be negative")
        if segment.end_time <= segment.start_time:
            errors.append(f"Segment {segment.id}: End time must be after start time")
        if i > 0 and segment.start_time < segments[i - 1].end_time:
            errors.append(f"Segment {segment.id}: Overlaps with previous segment")
    return errors


def _pick(values: list | None, index: int) -> Any:
    if values is None or index >= len(values):
        return None
    return values[index]


def _first(mapping: dict, *keys: str) -> Any:
    for key in keys:
        if mapping.get(key) is not None:
            return mapping[key]
    return None


def parse_meta_definition(raw: dict, index: int = 0) -> MetaDefinition:
    """Parse one entry of the script's ``meta`` array."""
    if not isinstance(raw, dict):
        raise UnsupportedFormatError(f"Meta entry {index} must be an object")

    category = _first(raw, "category", "type")
    name = raw.get("name")
    if not category or not name:
        raise UnsupportedFormatError(f"Meta entry {index} needs 'category' and 'name'")

    mode = _first(raw, "position", "placement", "placementMode") or "replace"
    if mode not in PLACEMENT_MODES:
        raise UnsupportedFormatError(f"Meta entry {index}: unknown placement mode {mode!r}")

    what = f"meta {index}"
    timing = _object(raw.get("timing"), f"{what} timing")
    clip = _object(raw.get("clip"), f"{what} clip")
    return MetaDefinition(
        category=str(category),
        name=str(name),
        timing=TimingSpec(
            start=_optional_number(timing.get("start"), f"{what} timing.start"),
            end=_optional_number(timing.get("end"), f"{what} timing.end"),
            duration=_optional_number(timing.get("duration"), f"{what} timing.duration"),
            from_end=_optional_number(_first(timing, "fromEnd", "from_end"), f"{what} fromEnd"),
            before_end=_optional_number(
                _first(timing, "beforeEnd", "before_end"), f"{what} beforeEnd"
            ),
            offset=_number(timing.get("offset", 0), f"{what} timing.offset"),
        ),
        clip=ClipSpec(
            start=_number(clip.get("start", 0), f"{what} clip.start"),
            end=_optional_number(clip.get("end"), f"{what} clip.end"),
            duration=_optional_number(clip.get("duration"), f"{what} clip.duration"),
        ),
        placement_mode=mode,
        include=raw.get("include", True) is not False,
        index=index,
    )


def parse_meta_definitions(raw: list | None) -> list[MetaDefinition]:
    if not raw:
        return []
    if not isinstance(raw, list):
        raise UnsupportedFormatError("'meta' must be a list")
    return [parse_meta_definition(entry, i) for i, entry in enumerate(raw)]


@dataclass
class ScriptDocument:
    """A parsed script: base segments plus meta clip requests."""

    segments: list[Segment]
    meta: list[MetaDefinition] = field(default_factory=list)

    @property
    def asset_names(self) -> list[str]:
        """Unique asset names in first-appearance order."""
        return list(dict.fromkeys(s.speaker_or_video for s in self.segments))

    @property
    def total_duration(self) -> float:
        return max((s.end_time for s in self.segments), default=0.0)


def parse_document(data: Any) -> ScriptDocument:
    meta = data.get("meta") if isinstance(data, dict) else None
    return ScriptDocument(segments=parse(data), meta=parse_meta_definitions(meta))


def load_script(path: Path) -> ScriptDocument:
    """Read and parse a JSON script file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        UnsupportedFormatError: If the JSON is invalid or of an unknown shape.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Script not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise UnsupportedFormatError(f"Invalid JSON in {path}: {e}")
    return parse_document(data)
