"""Re-download the artifacts of an asset created by an earlier run.

Only stems and MIDI listed on the asset itself can be recovered. Drum/other
components come from second-stage tasks whose ids are never attached to the
top-level asset, so they are out of reach here.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional, Union

from .config import METADATA_FILE, Settings
from .gateway import AssetGateway
from .models import ArtifactResult, RunResult
from .pipeline import ProgressCallback, download_asset
from .validator import ensure_directory, save_metadata

logger = logging.getLogger(__name__)

# The upload extension is not stored on the asset.
# TODO: read the extension from metaData.name once wav uploads can be told apart from mp3.
RECOVERED_STEM_EXT = "mp3"


def _download_each(
    gateway: AssetGateway,
    ids: list[str],
    kind: str,
    name_for: Callable,
    type_for: Callable,
    out_dir: Path,
    cb: Callable[[str], None],
) -> list[ArtifactResult]:
    results: list[ArtifactResult] = []
    for asset_id in ids:
        try:
            asset = gateway.get_asset(asset_id)
            artifact_type = type_for(asset)
            cb(f"Downloading {artifact_type} {kind}...")
            out_path = out_dir / name_for(artifact_type)
            download_asset(gateway, asset, out_path)
            results.append(ArtifactResult(artifact_type, str(out_path), asset.meta_data))
        except Exception as exc:
            logger.warning("Error downloading %s %s: %s", kind, asset_id, exc)
            cb(f"Warning: {kind} {asset_id} download failed: {exc}")
    return results


def download_files_from_asset_id(
    asset_id: str,
    output_dir: Union[str, Path],
    progress_cb: Optional[ProgressCallback] = None,
    gateway: Optional[AssetGateway] = None,
) -> RunResult:
    """Fetch ``asset_id`` and download every stem and MIDI file it lists."""
    cb = progress_cb or (lambda message, pct: logger.info("%s (%s%%)", message, pct))
    try:
        cb("Starting recovery process...", 0)
        out_dir = ensure_directory(output_dir)
        if gateway is None:
            gateway = AssetGateway.from_settings(Settings.from_env())

        cb("Retrieving asset information...", 10)
        asset = gateway.get_asset(asset_id)

        cb("Saving metadata...", 20)
        metadata_file = save_metadata(asset, out_dir, METADATA_FILE)

        name = asset.meta_data.get("name")
        base_name = Path(name).stem if name else asset_id

        stems: list[ArtifactResult] = []
        if asset.stems:
            cb(f"Found {len(asset.stems)} stems to download", 30)
            stems = _download_each(
                gateway,
                asset.stems,
                "stem",
                lambda stem_type: f"{base_name}_{stem_type}.{RECOVERED_STEM_EXT}",
                lambda a: a.stem_type,
                out_dir,
                lambda message: cb(message, 50),
            )

        midi: list[ArtifactResult] = []
        if asset.midi:
            cb(f"Found {len(asset.midi)} MIDI files to download", 70)
            midi = _download_each(
                gateway,
                asset.midi,
                "MIDI",
                lambda midi_type: f"{midi_type}.mid",
                lambda a: a.midi_type,
                out_dir,
                lambda message: cb(message, 85),
            )
        else:
            cb("No MIDI files found in asset", 85)

        cb("Recovery process complete!", 100)
        return RunResult(
            success=True,
            metadata=asset.raw,
            metadata_file=str(metadata_file),
            stems=stems,
            midi=midi,
            output_directory=str(out_dir),
        )
    except Exception as exc:
        logger.exception("Recovery failed")
        return RunResult.failure(str(exc))
