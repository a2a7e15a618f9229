"""Tests for timeline composition."""

from pathlib import Path

import pytest

from dcut.core.errors import InternalConsistencyError
from dcut.core.models import (
    Asset,
    ClipWindow,
    ResolvedMetaPlacement,
    Segment,
    Timeline,
    TimeWindow,
)
from dcut.timeline.compositor import apply_placement, check_timeline, compose, meta_segment


def _base(*bounds: tuple[float, float]) -> list[Segment]:
    return [
        Segment(id=f"segment_{i}", speaker_or_video="host", start_time=s, end_time=e)
        for i, (s, e) in enumerate(bounds)
    ]


def _placement(
    mode: str, start: float, end: float, category: str = "cutaways", name: str = "crowd", index: int = 0
) -> ResolvedMetaPlacement:
    asset = Asset(
        canonical_name=name,
        file_path=Path(f"/meta/{category}/{name}.mp4"),
        media_type="video",
        extension=".mp4",
    )
    return ResolvedMetaPlacement(
        asset=asset,
        timing=TimeWindow(start, end),
        clip=ClipWindow(),
        category=category,
        name=name,
        placement_mode=mode,
        index=index,
    )


def test_meta_segment_fields():
    segment = meta_segment(_placement("replace", 1, 3, name="big crowd", index=2), 1, 3)
    assert segment.id == "meta_2_cutaways_big_crowd"
    assert segment.requires_sync is False
    assert segment.kind == "meta"
    assert segment.dialogue_text == "[CUTAWAYS]"
    assert segment.source_path == Path("/meta/cutaways/big crowd.mp4")
    assert segment.overlay is False


def test_meta_segment_labels():
    assert meta_segment(_placement("before", 0, 3), 0, 3).dialogue_text == "[INTRO]"
    assert meta_segment(_placement("after", 0, 3), 0, 3).dialogue_text == "[OUTRO]"
    assert meta_segment(_placement("overlay", 0, 3, name="logo"), 0, 3).dialogue_text == "[OVERLAY: logo]"


class TestApplyPlacement:
    def test_replace_drops_overlapping(self):
        timeline = Timeline(segments=tuple(_base((0, 4), (4, 8), (8, 12), (12, 16))))
        result = apply_placement(timeline, _placement("replace", 8, 12))
        assert [s.id for s in result.segments] == [
            "segment_0",
            "segment_1",
            "meta_0_cutaways_crowd",
            "segment_3",
        ]
        meta = result.segments[2]
        assert (meta.start_time, meta.end_time) == (8, 12)

    def test_replace_partial_overlap_drops_whole_segment(self):
        timeline = Timeline(segments=tuple(_base((0, 5), (5, 10))))
        result = apply_placement(timeline, _placement("replace", 4, 6))
        assert [s.id for s in result.segments] == ["meta_0_cutaways_crowd"]

    def test_replace_drops_meta_and_overlays_in_window(self):
        timeline = Timeline(segments=tuple(_base((0, 4), (4, 8))))
        timeline = apply_placement(timeline, _placement("overlay", 1, 2, category="overlays", name="logo"))
        timeline = apply_placement(timeline, _placement("replace", 4, 8, index=1))
        result = apply_placement(timeline, _placement("replace", 0, 6, name="wide", index=2))
        assert [s.id for s in result.segments] == ["meta_2_cutaways_wide"]

    def test_before_shifts_everything(self):
        timeline = Timeline(segments=tuple(_base((0, 10))))
        result = apply_placement(timeline, _placement("before", 0, 3, category="intros", name="opening"))
        intro, shifted = result.segments
        assert (intro.start_time, intro.end_time) == (0, 3)
        assert (shifted.start_time, shifted.end_time) == (3, 13)
        assert shifted.id == "segment_0"
        assert result.lead_in == 3

    def test_after_appends(self):
        timeline = Timeline(segments=tuple(_base((0, 10))))
        result = apply_placement(timeline, _placement("after", 10, 14, category="outros"))
        assert [(s.start_time, s.end_time) for s in result.segments] == [(0, 10), (10, 14)]

    def test_overlay_keeps_everything(self):
        timeline = Timeline(segments=tuple(_base((0, 4), (4, 8))))
        result = apply_placement(timeline, _placement("overlay", 2, 6, category="overlays", name="logo"))
        assert len(result.segments) == 3
        assert [s.id for s in result.overlays] == ["meta_0_overlays_logo"]
        check_timeline(result)

    def test_input_not_mutated(self):
        timeline = Timeline(segments=tuple(_base((0, 10))))
        apply_placement(timeline, _placement("before", 0, 3))
        assert timeline.segments[0].start_time == 0
        assert timeline.lead_in == 0


class TestCompose:
    def test_no_placements(self):
        base = _base((0, 4), (4, 8))
        timeline = compose(base, [], 8)
        assert list(timeline.segments) == base

    def test_overlapping_base_rejected(self):
        with pytest.raises(InternalConsistencyError):
            compose(_base((0, 5), (4, 8)), [], 8)

    def test_after_over_content_rejected(self):
        with pytest.raises(InternalConsistencyError, match="overlapping"):
            compose(_base((0, 10)), [_placement("after", 8, 12, category="outros")], 10)

    def test_placements_applied_in_start_order(self):
        placements = [
            _placement("overlay", 5, 7, category="overlays", name="logo", index=0),
            _placement("replace", 1, 3, index=1),
        ]
        timeline = compose(_base((0, 4), (4, 8)), placements, 8)
        assert [s.id for s in timeline.base_segments] == ["meta_1_cutaways_crowd", "segment_1"]
        assert [s.id for s in timeline.overlays] == ["meta_0_overlays_logo"]

    def test_intro_and_outro(self):
        placements = [
            _placement("before", 0, 3, category="intros", name="opening", index=0),
            _placement("after", 13, 17, category="outros", name="closing", index=1),
        ]
        timeline = compose(_base((0, 5), (5, 10)), placements, 10)
        assert [(s.id, s.start_time, s.end_time) for s in timeline.segments] == [
            ("meta_0_intros_opening", 0, 3),
            ("segment_0", 3, 8),
            ("segment_1", 8, 13),
            ("meta_1_outros_closing", 13, 17),
        ]
        assert timeline.lead_in == 3
