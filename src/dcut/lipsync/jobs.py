"""Poll lip-sync jobs to completion with backoff and a bounded budget."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable

from dcut.core.config import LipSyncConfig
from dcut.core.errors import DCutError, ExternalJobError
from dcut.media.ports import JobStatus, LipSyncJobs
from dcut.utils.console import console


@dataclass(frozen=True)
class PollSettings:
    initial: float = 2.0
    step: float = 1.0
    maximum: float = 10.0
    max_attempts: int = 600
    timeout: float = 3600.0
    failure_budget: int = 5
    error_pause: float = 5.0

    @classmethod
    def from_config(cls, config: LipSyncConfig) -> PollSettings:
        return cls(
            initial=config.poll_initial,
            step=config.poll_step,
            maximum=config.poll_max,
            max_attempts=config.poll_max_attempts,
            timeout=config.poll_timeout,
            failure_budget=config.poll_failure_budget,
            error_pause=config.poll_error_pause,
        )


def backoff_delay(attempt: int, settings: PollSettings) -> float:
    """Seconds to wait after poll ``attempt`` (0-based)."""
    return min(settings.initial + settings.step * attempt, settings.maximum)


def poll_job(
    jobs: LipSyncJobs,
    job_id: str,
    settings: PollSettings = PollSettings(),
    cancel_event: threading.Event | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> JobStatus:
    """Wait for a job to finish.

    Transient poll errors are retried up to ``failure_budget`` times in a
    row; a terminal ``failed`` status is not retried.

    Args:
        jobs: Lip-sync service.
        job_id: Id returned by ``submit``.
        settings: Backoff and budget settings.
        cancel_event: When set, polling stops at the next wait.
        clock: Monotonic clock, injectable for tests.

    Returns:
        The final ``done`` status.

    Raises:
        ExternalJobError: On terminal failure, cancellation, exhausted
            failure budget, or attempt/time ceiling.
    """
    cancel = cancel_event or threading.Event()
    started = clock()
    failures = 0

    for attempt in range(settings.max_attempts):
        if cancel.is_set():
            raise ExternalJobError("cancelled", job_id)

        try:
            status = jobs.poll(job_id)
        except DCutError:
            raise
        except Exception as e:
            failures += 1
            if failures >= settings.failure_budget:
                raise ExternalJobError(f"polling failed {failures} times in a row: {e}", job_id)
            budget = f"{failures}/{settings.failure_budget}"
            console.print(f"[yellow]Poll error for {job_id} ({budget}):[/yellow] {e}")
            delay = settings.error_pause
        else:
            failures = 0
            if status.status == "done":
                return status
            if status.status == "failed":
                raise ExternalJobError(status.error or "generation failed", job_id)
            delay = backoff_delay(attempt, settings)
            if attempt % 10 == 0:
                elapsed = clock() - started
                console.print(f"[dim]{job_id}: {status.status} after {elapsed:.0f}s[/dim]")

        if clock() - started + delay > settings.timeout:
            raise ExternalJobError(f"did not complete within {settings.timeout:g}s", job_id)
        if cancel.wait(delay):
            raise ExternalJobError("cancelled", job_id)

    raise ExternalJobError(f"did not complete within {settings.max_attempts} polls", job_id)
