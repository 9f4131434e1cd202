"""Remote operations of the asset/task API.

Each method is exactly one request/response exchange. Nothing here retries;
waiting on tasks is the poller's job.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from . import transport
from .config import Settings
from .errors import DecodeError, TaskNotFound
from .models import Asset, Task, UploadTarget

logger = logging.getLogger(__name__)

DRUM_STEM = "drum-stem"
OTHER_STEM = "other-stem"


def _field(payload, key: str, context: str):
    if not isinstance(payload, dict) or key not in payload:
        raise DecodeError(f"{context}: response has no '{key}'")
    return payload[key]


class AssetGateway:
    def __init__(self, client: transport.ApiClient):
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "AssetGateway":
        return cls(transport.ApiClient(settings.api_key, settings.api_url))

    # ── Upload ─────────────────────────────────────────────────────────────

    def get_upload_url(self, name: str, extension: str) -> UploadTarget:
        context = "Failed to get upload URL"
        data = self.client.post("assets/upload2", {"name": name, "extension": extension}, context=context)
        return UploadTarget.from_payload(data)

    def upload_file(self, url: str, local_path: Path, mime_type: str) -> None:
        transport.put_file(url, Path(local_path), mime_type)

    # ── Assets ─────────────────────────────────────────────────────────────

    def create_asset(self, name: str, extension: str, s3_path: str, group: Optional[str] = None) -> Asset:
        context = "Failed to create asset"
        data = self.client.post(
            "assets",
            {"name": name, "extension": extension, "group": group or f"{name}-group", "s3Path": s3_path},
            context=context,
        )
        return Asset.from_payload(_field(data, "asset", context))

    def get_asset(self, asset_id: str) -> Asset:
        context = "Failed to get asset"
        data = self.client.get(f"assets/{quote(asset_id, safe='')}", context=context)
        return Asset.from_payload(_field(data, "asset", context))

    def get_download_url(self, asset_id: str, quality: str = "hq") -> str:
        context = "Failed to get download URL"
        data = self.client.get(f"assets/download/{quote(asset_id, safe='')}/{quality}", context=context)
        url = _field(data, "url", context)
        if not isinstance(url, str):
            raise DecodeError(f"{context}: 'url' is not a string")
        return url

    def download_file(self, url: str, dest: Path) -> Path:
        return transport.stream_to_file(url, Path(dest))

    # ── Tasks ──────────────────────────────────────────────────────────────

    def create_task(self, asset_id: str, task_type: str = "stem", stem_type: Optional[str] = None) -> Task:
        label = f"{stem_type.split('-')[0]} stem" if stem_type else task_type
        context = f"Failed to create {label} task"
        payload = {"_id": asset_id}
        if stem_type:
            payload["stemType"] = stem_type
        data = self.client.post(f"assets/analyze/{task_type}", payload, context=context)
        task = Task.from_payload(_field(data, "task", context))
        logger.info("created %s task %s for asset %s", label, task.id, asset_id)
        return task

    def create_stem_task(self, asset_id: str) -> Task:
        return self.create_task(asset_id)

    def create_drum_stem_task(self, drum_asset_id: str) -> Task:
        return self.create_task(drum_asset_id, stem_type=DRUM_STEM)

    def create_other_stem_task(self, other_asset_id: str) -> Task:
        return self.create_task(other_asset_id, stem_type=OTHER_STEM)

    def query_task(self, task_id: str) -> Task:
        context = "Failed to query task"
        data = self.client.post("tasks/query", {"_ids": [task_id]}, context=context)
        tasks = data.get("tasks") if isinstance(data, dict) else None
        if not tasks:
            raise TaskNotFound(task_id)
        return Task.from_payload(tasks[0])
