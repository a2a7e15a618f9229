"""Run workspace management."""

from __future__ import annotations

import json
import re
import shutil
from datetime import datetime, timezone
from pathlib import Path

from dcut.core.models import RunReport


def slugify(text: str) -> str:
    """Convert text to a filesystem-safe slug."""
    text = text.lower().strip()
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[\s_]+", "-", text)
    text = re.sub(r"-+", "-", text)
    return text[:80].strip("-")


def create_workspace(
    title: str,
    base_dir: Path = Path("./dcut_workspace"),
) -> Path:
    """Create a timestamped workspace directory for a run.

    Structure: <base_dir>/<slug>/<YYYYMMDD_HHMMSS>/
    Groups repeated runs of the same script under one parent slug dir.
    """
    slug = slugify(title) or "untitled"
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    workspace = Path(base_dir) / slug / timestamp
    workspace.mkdir(parents=True, exist_ok=True)
    return workspace


def workspace_paths(workspace: Path, output_name: str = "output.mp4") -> dict:
    """Standard paths inside a workspace.

    Returns a dict with keys: temp, audio, segments, output, report.
    ``temp`` and its subdirectories are created.
    """
    temp = workspace / "temp"
    paths = {
        "temp": temp,
        "audio": temp / "audio",
        "segments": temp / "segments",
        "output": workspace / output_name,
        "report": workspace / "report.json",
    }
    for key in ("temp", "audio", "segments"):
        paths[key].mkdir(parents=True, exist_ok=True)
    return paths


def remove_temp(workspace: Path) -> None:
    shutil.rmtree(workspace / "temp", ignore_errors=True)


def save_report(workspace: Path, report: RunReport, **kwargs: object) -> Path:
    """Write ``report.json`` with the run outcome plus any extra fields."""
    report_path = workspace / "report.json"
    data = {"created_at": datetime.now(timezone.utc).isoformat(), **report.to_dict()}
    data.update({k: str(v) if isinstance(v, Path) else v for k, v in kwargs.items()})
    report_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    return report_path
