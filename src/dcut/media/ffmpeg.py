"""Media operations using ffmpeg and ffprobe."""

from __future__ import annotations

import json
import shutil
import subprocess
from pathlib import Path

from dcut.core.config import RenderConfig
from dcut.core.errors import MediaOperationError
from dcut.media.ports import MediaOperations, OverlayClip


def check_ffmpeg() -> bool:
    """Check if ffmpeg and ffprobe are available on the system."""
    return shutil.which("ffmpeg") is not None and shutil.which("ffprobe") is not None


def _concat_line(path: Path) -> str:
    # concat demuxer quoting: close quote, escaped quote, reopen
    escaped = str(Path(path).resolve()).replace("'", "'\\''")
    return f"file '{escaped}'"


def _fmt(seconds: float) -> str:
    return f"{seconds:.3f}"


def _fit_filter(width: int, height: int) -> str:
    return (
        f"scale={width}:{height}:force_original_aspect_ratio=decrease,"
        f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2:black"
    )


def vertical_filter(
    mode: str, width: int, height: int, source_size: tuple[int, int] | None = None
) -> str:
    """Build the filter chain that reframes a video to ``width`` x ``height``.

    Modes:
        crop: centre crop to the target aspect ratio, then scale. Needs
            ``source_size``.
        fill: scale up until the frame is covered, crop the overflow.
        fit, auto: scale down to fit, pad with black bars.

    Raises:
        MediaOperationError: On an unknown mode or missing source size.
    """
    if mode == "crop":
        if source_size is None:
            raise MediaOperationError("crop mode needs the source dimensions")
        src_w, src_h = source_size
        crop_w = min(src_w, round(src_h * width / height))
        crop_h = min(src_h, round(crop_w * height / width))
        # yuv420p needs even dimensions
        crop_w -= crop_w % 2
        crop_h -= crop_h % 2
        x, y = (src_w - crop_w) // 2, (src_h - crop_h) // 2
        return f"crop={crop_w}:{crop_h}:{x}:{y},scale={width}:{height}"
    if mode == "fill":
        return (
            f"scale={width}:{height}:force_original_aspect_ratio=increase,"
            f"crop={width}:{height}"
        )
    if mode in ("fit", "auto"):
        return _fit_filter(width, height)
    raise MediaOperationError(f"Unknown vertical mode: {mode!r}")


class FFmpegMedia(MediaOperations):
    """Runs one ffmpeg process per operation; safe to share across threads."""

    def __init__(self, render: RenderConfig | None = None) -> None:
        self.render = render or RenderConfig()

    def _run(self, cmd: list[str]) -> subprocess.CompletedProcess:
        if not check_ffmpeg():
            raise MediaOperationError("ffmpeg not found. Install it with: brew install ffmpeg")
        result = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
        if result.returncode != 0:
            stderr_msg = result.stderr.decode(errors="replace").strip()
            tail = "\n".join(stderr_msg.splitlines()[-5:])
            raise MediaOperationError(f"{cmd[0]} exited with {result.returncode}: {tail}")
        return result

    def _encode_args(self, use_quality: bool = False) -> list[str]:
        r = self.render
        rate = ["-crf", str(r.crf)]
        if use_quality and r.bitrates:
            rate = ["-b:v", r.bitrates[0]]
        return [
            "-c:v", r.video_codec,
            "-preset", r.preset,
            *rate,
            "-pix_fmt", "yuv420p",
            "-r", str(r.fps),
        ]

    def _frame_filter(self) -> str:
        return _fit_filter(self.render.width, self.render.height)

    @staticmethod
    def _prepare(output: Path) -> Path:
        output = Path(output)
        output.parent.mkdir(parents=True, exist_ok=True)
        return output

    def extract_segment(self, source: Path, start: float, end: float, output: Path) -> Path:
        output = self._prepare(output)
        cmd = [
            "ffmpeg",
            "-ss", _fmt(start),
            "-i", str(source),
            "-t", _fmt(end - start),
            "-vf", self._frame_filter(),
            *self._encode_args(),
            "-c:a", self.render.audio_codec,
            "-avoid_negative_ts", "make_zero",
            "-y", str(output),
        ]
        self._run(cmd)
        return output

    def extract_audio(self, source: Path, start: float, end: float, output: Path) -> Path:
        output = self._prepare(output)
        cmd = [
            "ffmpeg",
            "-ss", _fmt(start),
            "-i", str(source),
            "-t", _fmt(end - start),
            "-vn",  # no video
            "-acodec", "pcm_s16le",
            "-map_metadata", "-1",  # strip source metadata
            "-y", str(output),
        ]
        self._run(cmd)
        return output

    def still_to_clip(self, image: Path, duration: float, output: Path) -> Path:
        output = self._prepare(output)
        cmd = [
            "ffmpeg",
            "-loop", "1",
            "-i", str(image),
            "-t", _fmt(duration),
            "-vf", self._frame_filter(),
            *self._encode_args(),
            "-y", str(output),
        ]
        self._run(cmd)
        return output

    def normalize(self, source: Path, output: Path) -> Path:
        output = self._prepare(output)
        cmd = [
            "ffmpeg",
            "-i", str(source),
            "-vf", self._frame_filter(),
            *self._encode_args(),
            "-c:a", self.render.audio_codec,  # the sync service reads the clip's audio
            "-y", str(output),
        ]
        self._run(cmd)
        return output

    def concatenate(self, paths: list[Path], output: Path, remove_audio: bool = False) -> Path:
        if not paths:
            raise MediaOperationError("No clips to concatenate")
        output = self._prepare(output)
        if len(paths) == 1 and not remove_audio:
            shutil.copy2(paths[0], output)
            return output

        list_file = output.with_name(f"{output.stem}_concat.txt")
        list_file.write_text("\n".join(_concat_line(p) for p in paths) + "\n", encoding="utf-8")
        cmd = [
            "ffmpeg",
            "-f", "concat",
            "-safe", "0",
            "-i", str(list_file),
            *self._encode_args(use_quality=True),
        ]
        if remove_audio:
            cmd += ["-an"]
        else:
            cmd += ["-c:a", self.render.audio_codec]
            if self.render.bitrates:
                cmd += ["-b:a", self.render.bitrates[1]]
        cmd += [
            "-avoid_negative_ts", "make_zero",
            "-fflags", "+genpts",
            "-y", str(output),
        ]
        try:
            self._run(cmd)
        finally:
            list_file.unlink(missing_ok=True)
        return output

    def overlay_audio(self, video: Path, audio: Path, output: Path, delay: float = 0.0) -> Path:
        output = self._prepare(output)
        cmd = ["ffmpeg", "-i", str(video), "-i", str(audio)]
        if delay > 0:
            cmd += ["-af", f"adelay={int(round(delay * 1000))}:all=1"]
        cmd += [
            "-map", "0:v:0",
            "-map", "1:a:0",
            "-c:v", "copy",
            "-c:a", self.render.audio_codec,
            "-shortest",
            "-y", str(output),
        ]
        self._run(cmd)
        return output

    def apply_overlays(self, base: Path, overlays: list[OverlayClip], output: Path) -> Path:
        output = self._prepare(output)
        if not overlays:
            shutil.copy2(base, output)
            return output

        cmd = ["ffmpeg", "-i", str(base)]
        filters = []
        current = "0:v"
        for i, clip in enumerate(overlays, 1):
            cmd += ["-i", str(clip.path)]
            start, end = _fmt(clip.start), _fmt(clip.end)
            label = "final" if i == len(overlays) else f"v{i}"
            # Shift the overlay so its first frame lands on the window start
            filters.append(f"[{i}:v]setpts=PTS-STARTPTS+{start}/TB[o{i}]")
            enable = f"between(t,{start},{end})"
            filters.append(f"[{current}][o{i}]overlay=enable='{enable}':eof_action=pass[{label}]")
            current = label

        cmd += [
            "-filter_complex", ";".join(filters),
            "-map", "[final]",
            "-map", "0:a?",  # keep the base audio when there is one
            *self._encode_args(),
            "-c:a", self.render.audio_codec,
            "-y", str(output),
        ]
        self._run(cmd)
        return output

    def to_vertical(
        self,
        source: Path,
        output: Path,
        mode: str = "crop",
        width: int = 1080,
        height: int = 1920,
    ) -> Path:
        source_size = self.probe_dimensions(source) if mode == "crop" else None
        video_filter = vertical_filter(mode, width, height, source_size)
        output = self._prepare(output)
        cmd = [
            "ffmpeg",
            "-i", str(source),
            "-vf", video_filter,
            *self._encode_args(),
            "-c:a", self.render.audio_codec,
            "-movflags", "+faststart",
            "-y", str(output),
        ]
        self._run(cmd)
        return output

    def _probe(self, path: Path, *args: str) -> dict:
        cmd = ["ffprobe", "-v", "error", *args, "-of", "json", str(path)]
        result = self._run(cmd)
        return json.loads(result.stdout.decode(errors="replace") or "{}")

    def probe_duration(self, path: Path) -> float:
        data = self._probe(path, "-show_entries", "format=duration")
        try:
            return float(data["format"]["duration"])
        except (KeyError, TypeError, ValueError):
            raise MediaOperationError(f"Could not read duration of {path}")

    def probe_dimensions(self, path: Path) -> tuple[int, int]:
        data = self._probe(path, "-select_streams", "v:0", "-show_entries", "stream=width,height")
        streams = data.get("streams") or []
        if not streams:
            raise MediaOperationError(f"No video stream found in {path}")
        return int(streams[0]["width"]), int(streams[0]["height"])
