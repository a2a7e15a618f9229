"""Integration tests requiring a real ffmpeg/ffprobe.

Run with: pytest -m integration
"""

import subprocess
from pathlib import Path

import pytest

from dcut.core.config import RenderConfig
from dcut.media.ffmpeg import FFmpegMedia, check_ffmpeg

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not check_ffmpeg(), reason="ffmpeg not installed"),
]

SMALL = RenderConfig(width=320, height=240, fps=10, preset="ultrafast")


@pytest.fixture
def source_clip(tmp_path: Path) -> Path:
    path = tmp_path / "source.mp4"
    subprocess.run(
        [
            "ffmpeg",
            "-f", "lavfi", "-i", "testsrc=duration=4:size=160x120:rate=10",
            "-f", "lavfi", "-i", "sine=frequency=440:duration=4",
            "-shortest", "-y", str(path),
        ],
        check=True,
        capture_output=True,
    )
    return path


def test_cut_and_join(source_clip: Path, tmp_path: Path):
    media = FFmpegMedia(SMALL)
    first = media.extract_segment(source_clip, 0, 1.5, tmp_path / "a.mp4")
    second = media.extract_segment(source_clip, 2, 3, tmp_path / "b.mp4")
    assert media.probe_dimensions(first) == (320, 240)

    joined = media.concatenate([first, second], tmp_path / "joined.mp4", remove_audio=True)
    assert media.probe_duration(joined) == pytest.approx(2.5, abs=0.3)

    audio = media.extract_audio(source_clip, 0, 2.5, tmp_path / "a.wav")
    final = media.overlay_audio(joined, audio, tmp_path / "final.mp4", delay=0.5)
    assert final.is_file()
