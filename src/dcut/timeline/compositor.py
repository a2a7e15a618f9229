"""Merge meta-video placements into the base segment timeline."""

from __future__ import annotations

import re

from dcut.core.errors import InternalConsistencyError
from dcut.core.models import ResolvedMetaPlacement, Segment, Timeline
from dcut.utils.console import console

_LABELS = {
    "replace": "{category}",
    "before": "INTRO",
    "after": "OUTRO",
    "overlay": "OVERLAY: {name}",
}


def _by_start(segments: list[Segment]) -> tuple[Segment, ...]:
    return tuple(sorted(segments, key=lambda s: s.start_time))


def meta_segment(placement: ResolvedMetaPlacement, start: float, end: float) -> Segment:
    """Build the timeline entry for a placement. Meta content is never lip-synced."""
    slug = re.sub(r"[^A-Za-z0-9]+", "_", placement.name).strip("_")
    label = _LABELS[placement.placement_mode].format(
        category=placement.category.upper(), name=placement.name
    )
    return Segment(
        id=f"meta_{placement.index}_{placement.category}_{slug}",
        speaker_or_video=placement.name,
        start_time=start,
        end_time=end,
        requires_sync=False,
        kind="meta",
        dialogue_text=f"[{label}]",
        overlay=placement.placement_mode == "overlay",
        category=placement.category,
        source_path=placement.asset.file_path,
        clip=placement.clip,
    )


def check_timeline(timeline: Timeline) -> Timeline:
    """Raise InternalConsistencyError if non-overlay entries overlap."""
    violations = timeline.overlap_violations()
    if violations:
        pairs = "; ".join(
            f"{a.id} [{a.start_time:g}-{a.end_time:g}] / {b.id} [{b.start_time:g}-{b.end_time:g}]"
            for a, b in violations
        )
        raise InternalConsistencyError(f"Composed timeline has overlapping segments: {pairs}")
    return timeline


def apply_placement(timeline: Timeline, placement: ResolvedMetaPlacement) -> Timeline:
    """Return a new timeline with one placement applied."""
    window = placement.timing
    mode = placement.placement_mode
    segments = list(timeline.segments)

    if mode == "replace":
        kept = [
            s for s in segments if not (s.end_time > window.start and s.start_time < window.end)
        ]
        kept.append(meta_segment(placement, window.start, window.end))
        return Timeline(segments=_by_start(kept), lead_in=timeline.lead_in)

    if mode == "overlay":
        segments.append(meta_segment(placement, window.start, window.end))
        return Timeline(segments=_by_start(segments), lead_in=timeline.lead_in)

    if mode == "before":
        shift = window.duration
        shifted = [meta_segment(placement, 0.0, shift)] + [s.shifted(shift) for s in segments]
        return Timeline(segments=_by_start(shifted), lead_in=timeline.lead_in + shift)

    if mode == "after":
        segments.append(meta_segment(placement, window.start, window.end))
        return Timeline(segments=_by_start(segments), lead_in=timeline.lead_in)

    raise InternalConsistencyError(f"Unknown placement mode: {mode}")


def compose(
    base_segments: list[Segment],
    placements: list[ResolvedMetaPlacement],
    total_duration: float,
) -> Timeline:
    """Apply meta placements to the base segments.

    Placements are applied in order of their start time, ties keeping
    script order. The non-overlap invariant is checked after every step.

    Args:
        base_segments: Parsed script segments.
        placements: Resolved meta placements.
        total_duration: Length of the base timeline, in seconds.

    Returns:
        The composed timeline.

    Raises:
        InternalConsistencyError: If any step leaves overlapping entries.
    """
    timeline = check_timeline(Timeline(segments=_by_start(base_segments)))
    ordered = sorted(placements, key=lambda p: p.timing.start)
    if ordered:
        console.print(
            f"[bold]Applying {len(ordered)} meta videos to a {total_duration:g}s timeline[/bold]"
        )

    for placement in ordered:
        console.print(
            f"  {placement.placement_mode} {placement.category}:{placement.name} "
            f"at {placement.timing.start:g}s-{placement.timing.end:g}s"
        )
        timeline = check_timeline(apply_placement(timeline, placement))
    return timeline
