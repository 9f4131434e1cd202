"""Typed views of the JSON records returned by the remote API.

Payloads are decoded once, at the gateway boundary, so a missing field fails
with a :class:`DecodeError` there instead of somewhere deep in the pipeline.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .errors import DecodeError

FAILED_STATUSES = {"error", "failed"}


def _require_mapping(payload: Any, what: str) -> dict:
    if not isinstance(payload, dict):
        raise DecodeError(f"Malformed {what}: expected an object, got {type(payload).__name__}")
    return payload


def _id_list(payload: dict, key: str, what: str) -> list[str]:
    value = payload.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise DecodeError(f"Malformed {what}: '{key}' must be a list of ids")
    return list(value)


@dataclass
class Asset:
    id: str
    name: Optional[str] = None
    extension: Optional[str] = None
    s3_path: Optional[str] = None
    group: Optional[str] = None
    stems: list[str] = field(default_factory=list)
    midi: list[str] = field(default_factory=list)
    meta_data: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_payload(cls, payload: Any) -> "Asset":
        data = _require_mapping(payload, "asset")
        asset_id = data.get("_id")
        if not isinstance(asset_id, str) or not asset_id:
            raise DecodeError("Malformed asset: missing '_id'")
        meta = data.get("metaData") or {}
        if not isinstance(meta, dict):
            raise DecodeError(f"Malformed asset {asset_id}: 'metaData' must be an object")
        return cls(
            id=asset_id,
            name=data.get("name"),
            extension=data.get("extension"),
            s3_path=data.get("s3Path"),
            group=data.get("group"),
            stems=_id_list(data, "stems", f"asset {asset_id}"),
            midi=_id_list(data, "midi", f"asset {asset_id}"),
            meta_data=meta,
            raw=data,
        )

    @property
    def stem_type(self) -> str:
        stem_type = self.meta_data.get("stemType")
        if not isinstance(stem_type, str) or not stem_type:
            raise DecodeError(f"Asset {self.id} has no metaData.stemType")
        return stem_type

    @property
    def midi_type(self) -> str:
        return self.meta_data.get("midiType") or self.meta_data.get("stemType") or "unknown"


@dataclass
class Task:
    id: str
    status: str = "pending"
    asset: Optional[Asset] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "Task":
        data = _require_mapping(payload, "task")
        task_id = data.get("_id")
        if not isinstance(task_id, str) or not task_id:
            raise DecodeError("Malformed task: missing '_id'")
        asset = data.get("asset")
        return cls(
            id=task_id,
            status=str(data.get("status") or "pending"),
            asset=Asset.from_payload(asset) if asset is not None else None,
        )

    @property
    def failed(self) -> bool:
        return self.status in FAILED_STATUSES


@dataclass
class UploadTarget:
    url: str
    s3_path: str

    @classmethod
    def from_payload(cls, payload: Any) -> "UploadTarget":
        data = _require_mapping(payload, "upload URL response")
        url, s3_path = data.get("url"), data.get("s3Path")
        if not isinstance(url, str) or not isinstance(s3_path, str):
            raise DecodeError("Malformed upload URL response: missing 'url' or 's3Path'")
        return cls(url=url, s3_path=s3_path)


@dataclass
class ArtifactResult:
    type: str
    path: str
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "path": self.path, "metadata": self.metadata}


@dataclass
class RunResult:
    success: bool
    error: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
    metadata_file: Optional[str] = None
    initial_metadata_file: Optional[str] = None
    stems: list[ArtifactResult] = field(default_factory=list)
    midi: list[ArtifactResult] = field(default_factory=list)
    output_directory: Optional[str] = None

    @classmethod
    def failure(cls, error: str) -> "RunResult":
        return cls(success=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error}
        out: dict[str, Any] = {
            "success": True,
            "metadata": self.metadata,
            "metadata_file": self.metadata_file,
            "initial_metadata_file": self.initial_metadata_file,
            "stems": [s.to_dict() for s in self.stems],
            "midi": [m.to_dict() for m in self.midi],
            "output_directory": self.output_directory,
        }
        return {k: v for k, v in out.items() if v is not None}
