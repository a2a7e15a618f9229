"""Process a composed timeline in two independent lanes.

Segments that need lip-sync go through the sync lane in narrow batches
(the external service is rate limited); everything else goes through the
plain lane at full local parallelism. One segment failing never stops
its siblings. Results come back in timeline order, not completion order.
"""

from __future__ import annotations

import os
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable

from rich.progress import BarColumn, Progress, TaskID, TextColumn

from dcut.core.errors import NoContentProducedError
from dcut.core.models import BatchResult, Segment, SegmentFailure, SegmentOutput, Timeline
from dcut.utils.console import console

SegmentWorker = Callable[[Segment], Path]
Outcome = SegmentOutput | SegmentFailure

CANCELLED = "cancelled"


class SegmentScheduler:
    def __init__(
        self,
        sync_concurrency: int = 1,
        batch_pause: float = 1.0,
        plain_workers: int | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.sync_concurrency = max(1, sync_concurrency)
        self.batch_pause = batch_pause
        self.plain_workers = plain_workers or os.cpu_count() or 4
        self.cancel_event = cancel_event or threading.Event()
        self._progress: Progress | None = None
        self._task: TaskID | None = None

    @staticmethod
    def partition(timeline: Timeline) -> tuple[list[Segment], list[Segment]]:
        """Split into (sync lane, plain lane), keeping timeline order."""
        sync_lane = [s for s in timeline.segments if s.requires_sync]
        plain_lane = [s for s in timeline.segments if not s.requires_sync]
        return sync_lane, plain_lane

    def schedule(
        self,
        timeline: Timeline,
        sync_worker: SegmentWorker,
        plain_worker: SegmentWorker,
    ) -> BatchResult:
        """Run both lanes and merge their results.

        Args:
            timeline: Composed timeline.
            sync_worker: Produces a clip for a lip-sync segment.
            plain_worker: Produces a clip for any other segment.

        Returns:
            BatchResult with ``successful`` ordered by start time.

        Raises:
            NoContentProducedError: If no segment succeeded.
        """
        sync_lane, plain_lane = self.partition(timeline)
        console.print(
            f"[bold]Processing {len(sync_lane)} lip-sync and "
            f"{len(plain_lane)} plain segments[/bold]"
        )

        with Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total} segments"),
            console=console,
        ) as progress:
            self._progress = progress
            self._task = progress.add_task("Processing segments", total=len(timeline.segments))
            with ThreadPoolExecutor(max_workers=2, thread_name_prefix="lane") as lanes:
                sync_future = lanes.submit(self._run_sync_lane, sync_lane, sync_worker)
                plain_future = lanes.submit(self._run_plain_lane, plain_lane, plain_worker)
                outcomes = sync_future.result() + plain_future.result()
        self._progress = None

        return self._reassemble(timeline, outcomes)

    def _run_one(self, segment: Segment, worker: SegmentWorker) -> Outcome:
        if self.cancel_event.is_set():
            outcome: Outcome = SegmentFailure(segment.id, CANCELLED)
        else:
            try:
                artifact = worker(segment)
                outcome = SegmentOutput(
                    segment_id=segment.id,
                    artifact=Path(artifact),
                    start_time=segment.start_time,
                    end_time=segment.end_time,
                    kind=segment.kind,
                    overlay=segment.overlay,
                )
            except Exception as e:
                console.print(f"[red]Segment {segment.id} failed:[/red] {e}")
                outcome = SegmentFailure(segment.id, str(e) or type(e).__name__)
        if self._progress is not None and self._task is not None:
            self._progress.advance(self._task)
        return outcome

    def _run_sync_lane(self, segments: list[Segment], worker: SegmentWorker) -> list[Outcome]:
        outcomes: list[Outcome] = []
        width = self.sync_concurrency
        for i in range(0, len(segments), width):
            batch = segments[i : i + width]
            with ThreadPoolExecutor(max_workers=width, thread_name_prefix="sync") as pool:
                outcomes.extend(pool.map(lambda s: self._run_one(s, worker), batch))
            # Pause between batches; cancellation cuts it short
            if i + width < len(segments) and self.batch_pause > 0:
                self.cancel_event.wait(self.batch_pause)
        return outcomes

    def _run_plain_lane(self, segments: list[Segment], worker: SegmentWorker) -> list[Outcome]:
        if not segments:
            return []
        with ThreadPoolExecutor(max_workers=self.plain_workers, thread_name_prefix="plain") as pool:
            return list(pool.map(lambda s: self._run_one(s, worker), segments))

    def _reassemble(self, timeline: Timeline, outcomes: list[Outcome]) -> BatchResult:
        position = {s.id: i for i, s in enumerate(timeline.segments)}
        successful = [o for o in outcomes if isinstance(o, SegmentOutput)]
        errors = [o for o in outcomes if isinstance(o, SegmentFailure)]
        successful.sort(key=lambda o: (o.start_time, position.get(o.segment_id, 0)))
        errors.sort(key=lambda o: position.get(o.segment_id, 0))

        if not successful:
            raise NoContentProducedError(errors)
        result = BatchResult(successful=successful, errors=errors)
        if errors:
            console.print(f"[yellow]{len(errors)} of {result.total} segments failed:[/yellow]")
            for failure in errors:
                console.print(f"  [yellow]- {failure.segment_id}:[/yellow] {failure.reason}")
        return result
