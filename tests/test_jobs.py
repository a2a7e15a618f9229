"""Tests for lip-sync job polling."""

import itertools
import threading

import pytest

from dcut.core.config import LipSyncConfig
from dcut.core.errors import ConfigurationError, ExternalJobError
from dcut.lipsync.jobs import PollSettings, backoff_delay, poll_job
from dcut.media.ports import JobStatus, LipSyncJobs

FAST = PollSettings(initial=0, step=0, maximum=0, error_pause=0)


class ScriptedJobs(LipSyncJobs):
    """Replays a list of statuses (or exceptions) for every poll."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.polls = 0

    def submit(self, video_ref, audio_ref):
        return "job-1"

    def poll(self, job_id):
        self.polls += 1
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    def fetch(self, output_ref, destination):
        return destination


PENDING = JobStatus(status="pending")
DONE = JobStatus(status="done", output_ref="https://cdn.test/out.mp4")


def test_backoff_schedule():
    settings = PollSettings()
    assert [backoff_delay(i, settings) for i in range(10)] == [2, 3, 4, 5, 6, 7, 8, 9, 10, 10]


def test_settings_from_config():
    settings = PollSettings.from_config(LipSyncConfig(poll_initial=1, poll_failure_budget=2))
    assert settings.initial == 1
    assert settings.failure_budget == 2
    assert settings.maximum == 10


def test_done_after_pending():
    jobs = ScriptedJobs([PENDING, PENDING, DONE])
    status = poll_job(jobs, "job-1", FAST)
    assert status.output_ref == "https://cdn.test/out.mp4"
    assert jobs.polls == 3


def test_terminal_failure_not_retried():
    jobs = ScriptedJobs([JobStatus(status="failed", error="no face found")])
    with pytest.raises(ExternalJobError) as exc:
        poll_job(jobs, "job-1", FAST)
    assert exc.value.reason == "no face found"
    assert exc.value.job_id == "job-1"
    assert jobs.polls == 1


def test_transient_errors_within_budget():
    jobs = ScriptedJobs([ConnectionError("reset"), ConnectionError("reset"), DONE])
    assert poll_job(jobs, "job-1", FAST) == DONE


def test_failure_budget_exhausted():
    jobs = ScriptedJobs([ConnectionError("reset")])
    with pytest.raises(ExternalJobError, match="5 times in a row"):
        poll_job(jobs, "job-1", FAST)
    assert jobs.polls == 5


def test_failure_budget_resets_on_success():
    err = ConnectionError("reset")
    jobs = ScriptedJobs([err, err, err, err, PENDING, err, err, err, err, DONE])
    assert poll_job(jobs, "job-1", FAST) == DONE


def test_attempt_ceiling():
    settings = PollSettings(initial=0, step=0, maximum=0, max_attempts=3)
    jobs = ScriptedJobs([PENDING])
    with pytest.raises(ExternalJobError, match="within 3 polls"):
        poll_job(jobs, "job-1", settings)
    assert jobs.polls == 3


def test_wall_clock_ceiling():
    settings = PollSettings(initial=0, step=0, maximum=0, timeout=10)
    ticks = itertools.count(0, 6)
    with pytest.raises(ExternalJobError, match="within 10s"):
        poll_job(ScriptedJobs([PENDING]), "job-1", settings, clock=lambda: next(ticks))


def test_cancelled_before_first_poll():
    cancel = threading.Event()
    cancel.set()
    jobs = ScriptedJobs([DONE])
    with pytest.raises(ExternalJobError, match="cancelled"):
        poll_job(jobs, "job-1", FAST, cancel_event=cancel)
    assert jobs.polls == 0


def test_cancel_interrupts_wait():
    cancel = threading.Event()
    threading.Timer(0.1, cancel.set).start()
    settings = PollSettings(initial=60, step=0, maximum=60)
    with pytest.raises(ExternalJobError, match="cancelled"):
        poll_job(ScriptedJobs([PENDING]), "job-1", settings, cancel_event=cancel)


def test_dcut_errors_propagate():
    jobs = ScriptedJobs([ConfigurationError("bad key")])
    with pytest.raises(ConfigurationError):
        poll_job(jobs, "job-1", FAST)
    assert jobs.polls == 1
