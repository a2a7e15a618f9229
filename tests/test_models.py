"""Tests for core data models."""

from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

from dcut.core.models import (
    BatchResult,
    ClipWindow,
    RunReport,
    Segment,
    SegmentFailure,
    SegmentOutput,
    Timeline,
    TimeWindow,
)


def _seg(id: str, start: float, end: float, **kwargs) -> Segment:
    return Segment(id=id, speaker_or_video="host", start_time=start, end_time=end, **kwargs)


def test_segment_defaults():
    seg = _seg("segment_0", 0.0, 2.5)
    assert seg.requires_sync is True
    assert seg.kind == "dialogue"
    assert seg.overlay is False
    assert seg.duration == 2.5


def test_segment_is_frozen():
    seg = _seg("segment_0", 0.0, 1.0)
    with pytest.raises(FrozenInstanceError):
        seg.start_time = 3.0


def test_segment_shifted_returns_copy():
    seg = _seg("segment_0", 1.0, 2.0)
    moved = seg.shifted(3.0)
    assert (moved.start_time, moved.end_time) == (4.0, 5.0)
    assert moved.id == seg.id
    assert seg.start_time == 1.0


def test_time_window_duration():
    assert TimeWindow(2.0, 5.5).duration == 3.5


def test_clip_window_open_end():
    assert ClipWindow().duration is None
    assert ClipWindow(start=1.0, end=4.0).duration == 3.0


class TestTimeline:
    def test_overlays_split_from_base(self):
        timeline = Timeline(
            segments=(_seg("a", 0, 5), _seg("logo", 1, 3, overlay=True), _seg("b", 5, 8))
        )
        assert [s.id for s in timeline.base_segments] == ["a", "b"]
        assert [s.id for s in timeline.overlays] == ["logo"]
        assert timeline.total_duration == 8

    def test_overlay_does_not_count_as_violation(self):
        timeline = Timeline(segments=(_seg("a", 0, 5), _seg("logo", 1, 3, overlay=True)))
        assert timeline.overlap_violations() == []

    def test_overlap_violation_detected(self):
        timeline = Timeline(segments=(_seg("a", 0, 5), _seg("b", 4, 8)))
        [(prev, cur)] = timeline.overlap_violations()
        assert (prev.id, cur.id) == ("a", "b")

    def test_touching_segments_are_fine(self):
        timeline = Timeline(segments=(_seg("a", 0, 5), _seg("b", 5, 8)))
        assert timeline.overlap_violations() == []

    def test_empty(self):
        assert Timeline().total_duration == 0.0


def test_batch_result_total():
    result = BatchResult(
        successful=[SegmentOutput("a", Path("a.mp4"), 0, 1)],
        errors=[SegmentFailure("b", "boom")],
    )
    assert result.total == 2


def test_run_report_to_dict():
    report = RunReport(
        total=3,
        succeeded=2,
        failed=[SegmentFailure("segment_1", "cancelled")],
        output_path=Path("/tmp/out.mp4"),
        duration=12.5,
    )
    data = report.to_dict()
    assert data["failed_count"] == 1
    assert data["failed"] == [{"segment_id": "segment_1", "reason": "cancelled"}]
    assert data["output_path"] == "/tmp/out.mp4"
    assert report.failed_count == 1
