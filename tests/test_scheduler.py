"""Tests for lane scheduling and result reassembly."""

import threading
import time
from pathlib import Path

import pytest

from dcut.core.errors import NoContentProducedError
from dcut.core.models import Segment, Timeline
from dcut.timeline.scheduler import SegmentScheduler


def _timeline(*specs: tuple[str, float, float, bool]) -> Timeline:
    return Timeline(
        segments=tuple(
            Segment(id=id, speaker_or_video="host", start_time=s, end_time=e, requires_sync=sync)
            for id, s, e, sync in specs
        )
    )


def _ok(segment: Segment) -> Path:
    return Path(f"/tmp/{segment.id}.mp4")


def test_partition_keeps_order():
    timeline = _timeline(("a", 0, 1, True), ("b", 1, 2, False), ("c", 2, 3, True))
    sync_lane, plain_lane = SegmentScheduler.partition(timeline)
    assert [s.id for s in sync_lane] == ["a", "c"]
    assert [s.id for s in plain_lane] == ["b"]


def test_partial_failure_keeps_siblings():
    timeline = _timeline(("a", 0, 1, True), ("b", 1, 2, True), ("c", 2, 3, True))

    def worker(segment: Segment) -> Path:
        if segment.id == "b":
            raise RuntimeError("face not detected")
        return _ok(segment)

    result = SegmentScheduler(batch_pause=0).schedule(timeline, worker, _ok)
    assert [o.segment_id for o in result.successful] == ["a", "c"]
    assert [(f.segment_id, f.reason) for f in result.errors] == [("b", "face not detected")]
    assert result.total == 3


def test_results_ordered_by_start_not_completion():
    timeline = _timeline(("a", 0, 1, False), ("b", 1, 2, False), ("c", 2, 3, True))

    def slow_first(segment: Segment) -> Path:
        if segment.id == "a":
            time.sleep(0.2)
        return _ok(segment)

    result = SegmentScheduler(plain_workers=4).schedule(timeline, _ok, slow_first)
    assert [o.segment_id for o in result.successful] == ["a", "b", "c"]
    assert result.successful[0].artifact == Path("/tmp/a.mp4")


def test_ties_keep_timeline_position():
    timeline = Timeline(
        segments=(
            Segment(id="base", speaker_or_video="host", start_time=0, end_time=4, requires_sync=False),
            Segment(
                id="logo",
                speaker_or_video="logo",
                start_time=0,
                end_time=2,
                requires_sync=False,
                kind="meta",
                overlay=True,
            ),
        )
    )
    result = SegmentScheduler().schedule(timeline, _ok, _ok)
    assert [o.segment_id for o in result.successful] == ["base", "logo"]
    assert result.successful[1].overlay is True


def test_sync_lane_respects_batch_width():
    timeline = _timeline(*[(f"s{i}", i, i + 1, True) for i in range(5)])
    lock = threading.Lock()
    active = 0
    peak = 0

    def worker(segment: Segment) -> Path:
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.05)
        with lock:
            active -= 1
        return _ok(segment)

    result = SegmentScheduler(sync_concurrency=2, batch_pause=0).schedule(timeline, worker, _ok)
    assert len(result.successful) == 5
    assert peak <= 2


def test_lanes_run_concurrently():
    timeline = _timeline(("sync", 0, 1, True), ("plain", 1, 2, False))
    plain_done = threading.Event()

    def sync_worker(segment: Segment) -> Path:
        # Blocks until the plain lane has made progress
        assert plain_done.wait(2.0)
        return _ok(segment)

    def plain_worker(segment: Segment) -> Path:
        plain_done.set()
        return _ok(segment)

    result = SegmentScheduler().schedule(timeline, sync_worker, plain_worker)
    assert len(result.successful) == 2


def test_all_failed_raises():
    timeline = _timeline(("a", 0, 1, True), ("b", 1, 2, False))

    def fail(segment: Segment) -> Path:
        raise RuntimeError("boom")

    with pytest.raises(NoContentProducedError) as exc:
        SegmentScheduler(batch_pause=0).schedule(timeline, fail, fail)
    assert [f.segment_id for f in exc.value.errors] == ["a", "b"]


def test_cancel_reports_unstarted_segments():
    timeline = _timeline(*[(f"s{i}", i, i + 1, True) for i in range(3)])
    cancel = threading.Event()

    def worker(segment: Segment) -> Path:
        cancel.set()
        return _ok(segment)

    scheduler = SegmentScheduler(sync_concurrency=1, batch_pause=0, cancel_event=cancel)
    result = scheduler.schedule(timeline, worker, _ok)
    assert [o.segment_id for o in result.successful] == ["s0"]
    assert [(f.segment_id, f.reason) for f in result.errors] == [
        ("s1", "cancelled"),
        ("s2", "cancelled"),
    ]


def test_cancel_cuts_batch_pause_short():
    timeline = _timeline(("a", 0, 1, True), ("b", 1, 2, True))
    cancel = threading.Event()

    def worker(segment: Segment) -> Path:
        cancel.set()
        return _ok(segment)

    started = time.monotonic()
    scheduler = SegmentScheduler(batch_pause=30, cancel_event=cancel)
    result = scheduler.schedule(timeline, worker, _ok)
    assert time.monotonic() - started < 5
    assert [f.reason for f in result.errors] == ["cancelled"]
