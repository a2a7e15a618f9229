"""Stage local files on Dropbox so the lip-sync service can fetch them.

Uploads go to a scratch folder and are shared through temporary
(4 hour) direct-download links. ``unstage`` deletes the upload.
"""

from __future__ import annotations

import json
import uuid
from pathlib import Path

import httpx

from dcut.core.config import StagingConfig
from dcut.core.errors import ConfigurationError
from dcut.media.ports import AssetStaging, StagedAsset
from dcut.utils.console import console

_CONTENT_API = "https://content.dropboxapi.com/2"
_RPC_API = "https://api.dropboxapi.com/2"


def direct_download_url(url: str) -> str:
    """Force a Dropbox link to download instead of rendering a preview page."""
    if "dl=1" in url:
        return url
    if "dl=0" in url:
        return url.replace("dl=0", "dl=1")
    return url + ("&dl=1" if "?" in url else "?dl=1")


class DropboxStaging(AssetStaging):
    def __init__(self, config: StagingConfig, transport: httpx.BaseTransport | None = None) -> None:
        if not config.access_token:
            raise ConfigurationError(
                "No Dropbox token. Set DROPBOX_ACCESS_TOKEN or DCUT_STAGING__ACCESS_TOKEN."
            )
        self.folder = "/" + config.folder.strip("/")
        self._http = httpx.Client(
            headers={"Authorization": f"Bearer {config.access_token}"},
            timeout=300.0,
            transport=transport,
        )

    def stage(self, path: Path) -> StagedAsset:
        path = Path(path)
        remote = f"{self.folder}/{uuid.uuid4().hex[:8]}_{path.name}"
        console.print(f"[dim]Uploading to Dropbox: {path.name}[/dim]")

        upload = self._http.post(
            f"{_CONTENT_API}/files/upload",
            headers={
                "Content-Type": "application/octet-stream",
                "Dropbox-API-Arg": json.dumps(
                    {"path": remote, "mode": "overwrite", "autorename": True}
                ),
            },
            content=path.read_bytes(),
        )
        upload.raise_for_status()
        remote_path = upload.json()["path_lower"]

        link = self._http.post(f"{_RPC_API}/files/get_temporary_link", json={"path": remote_path})
        link.raise_for_status()
        return StagedAsset(url=direct_download_url(link.json()["link"]), handle=remote_path)

    def unstage(self, handle: str) -> None:
        response = self._http.post(f"{_RPC_API}/files/delete_v2", json={"path": handle})
        response.raise_for_status()

    def close(self) -> None:
        self._http.close()
