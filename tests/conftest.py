"""Shared test fixtures."""

from pathlib import Path

import pytest

from dcut.media.ports import (
    AssetStaging,
    JobStatus,
    LipSyncJobs,
    MediaOperations,
    OverlayClip,
    StagedAsset,
)


def _touch(path: Path, content: bytes = b"x") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


class FakeMedia(MediaOperations):
    """Writes placeholder files and records every call."""

    def __init__(self, probe: float = 30.0) -> None:
        self.calls: list[tuple] = []
        self.probe = probe

    def _out(self, name: str, output: Path, *args) -> Path:
        self.calls.append((name, *args, Path(output)))
        return _touch(Path(output), name.encode())

    def extract_segment(self, source, start, end, output):
        return self._out("extract_segment", output, Path(source), start, end)

    def extract_audio(self, source, start, end, output):
        return self._out("extract_audio", output, Path(source), start, end)

    def still_to_clip(self, image, duration, output):
        return self._out("still_to_clip", output, Path(image), duration)

    def normalize(self, source, output):
        return self._out("normalize", output, Path(source))

    def concatenate(self, paths, output, remove_audio=False):
        return self._out("concatenate", output, [Path(p) for p in paths], remove_audio)

    def overlay_audio(self, video, audio, output, delay=0.0):
        return self._out("overlay_audio", output, Path(video), Path(audio), delay)

    def apply_overlays(self, base, overlays: list[OverlayClip], output):
        return self._out("apply_overlays", output, Path(base), list(overlays))

    def to_vertical(self, source, output, mode="crop", width=1080, height=1920):
        return self._out("to_vertical", output, Path(source), mode, width, height)

    def probe_duration(self, path):
        self.calls.append(("probe_duration", Path(path)))
        return self.probe

    def probe_dimensions(self, path):
        return (1920, 1080)

    def named(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]


class FakeJobs(LipSyncJobs):
    """Completes every job on the first poll unless told otherwise."""

    def __init__(self, fail_for: tuple[str, ...] = ()) -> None:
        self.submitted: list[tuple[str, str]] = []
        self.fail_for = fail_for

    def submit(self, video_ref, audio_ref):
        self.submitted.append((video_ref, audio_ref))
        return f"job-{len(self.submitted)}"

    def poll(self, job_id):
        video_ref, _ = self.submitted[int(job_id.split("-")[1]) - 1]
        if any(key in video_ref for key in self.fail_for):
            return JobStatus(status="failed", error="face not detected")
        return JobStatus(status="done", output_ref=f"https://cdn.test/{job_id}.mp4")

    def fetch(self, output_ref, destination):
        return _touch(Path(destination), b"synced")


class FakeStaging(AssetStaging):
    def __init__(self) -> None:
        self.staged: list[str] = []
        self.unstaged: list[str] = []

    def stage(self, path):
        handle = f"/sync-temp/{Path(path).name}"
        self.staged.append(handle)
        return StagedAsset(url=f"https://dl.test{handle}", handle=handle)

    def unstage(self, handle):
        self.unstaged.append(handle)


@pytest.fixture
def characters_dir(tmp_path: Path) -> Path:
    """Character directory with videos, an image, a duplicate and junk."""
    directory = tmp_path / "characters"
    for name in (
        "host.mp4",
        "guest.mov",
        "guest.webm",
        "The Etsy Queen - v2.png",
        "audience.jpg",
        "High Priestess (final).mp4",
        "notes.txt",
    ):
        _touch(directory / name)
    return directory


@pytest.fixture
def meta_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "meta-videos"
    _touch(directory / "intros" / "opening.mp4")
    _touch(directory / "outros" / "closing.mp4")
    _touch(directory / "cutaways" / "crowd.mov")
    _touch(directory / "overlays" / "logo.mov")
    _touch(directory / "overlays" / "readme.txt")
    return directory


@pytest.fixture
def fake_media() -> FakeMedia:
    return FakeMedia()


@pytest.fixture
def fake_jobs() -> FakeJobs:
    return FakeJobs()


@pytest.fixture
def fake_staging() -> FakeStaging:
    return FakeStaging()
