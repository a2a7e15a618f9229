"""sync.so lip-sync generation client.

Implements the ``LipSyncJobs`` port over the sync.so v2 HTTP API:
submit a video+audio pair by URL, poll the generation, download the
result.
"""

from __future__ import annotations

from pathlib import Path

import httpx

from dcut.core.config import LipSyncConfig
from dcut.core.errors import ConfigurationError
from dcut.media.ports import JobStatus, LipSyncJobs

_DONE = {"COMPLETED"}
_FAILED = {"FAILED", "REJECTED", "CANCELED", "CANCELLED"}


def _map_status(payload: dict) -> JobStatus:
    raw = str(payload.get("status", "")).upper()
    if raw in _DONE:
        return JobStatus(status="done", output_ref=payload.get("outputUrl"))
    if raw in _FAILED:
        return JobStatus(status="failed", error=payload.get("error") or raw.lower())
    return JobStatus(status="pending")


class SyncLabsClient(LipSyncJobs):
    """Blocking client; one instance is shared by all sync-lane threads."""

    def __init__(self, config: LipSyncConfig, transport: httpx.BaseTransport | None = None) -> None:
        if not config.api_key:
            raise ConfigurationError(
                "No lip-sync API key. Set SYNC_API_KEY or DCUT_LIPSYNC__API_KEY."
            )
        self.config = config
        self._http = httpx.Client(
            base_url=config.api_base.rstrip("/"),
            headers={"x-api-key": config.api_key},
            timeout=config.request_timeout,
            transport=transport,
        )
        # Output URLs are pre-signed; downloads go without the API key
        self._download = httpx.Client(
            timeout=config.request_timeout, follow_redirects=True, transport=transport
        )

    def submit(self, video_ref: str, audio_ref: str) -> str:
        response = self._http.post(
            "/generate",
            json={
                "model": self.config.model,
                "input": [
                    {"type": "video", "url": video_ref},
                    {"type": "audio", "url": audio_ref},
                ],
                "options": {"sync_mode": self.config.sync_mode},
            },
        )
        response.raise_for_status()
        return response.json()["id"]

    def poll(self, job_id: str) -> JobStatus:
        response = self._http.get(f"/generate/{job_id}")
        response.raise_for_status()
        return _map_status(response.json())

    def fetch(self, output_ref: str, destination: Path) -> Path:
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        with self._download.stream("GET", output_ref) as response:
            response.raise_for_status()
            with open(destination, "wb") as f:
                for chunk in response.iter_bytes():
                    f.write(chunk)
        return destination

    def close(self) -> None:
        self._http.close()
        self._download.close()
