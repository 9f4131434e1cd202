"""Upload → stem task → poll → download pipeline for a single audio file."""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Optional, Union

from .config import (
    DRUM_COMPONENTS_DIR,
    INITIAL_METADATA_FILE,
    METADATA_FILE,
    OTHER_COMPONENTS_DIR,
    OUTPUT_PREFIX,
    Settings,
    SUB_STEM_POLL_ATTEMPTS,
)
from .gateway import AssetGateway
from .models import ArtifactResult, Asset, RunResult
from .poller import poll_task
from .validator import ensure_directory, save_metadata, validate_input_file, validate_output_directory

ProgressCallback = Callable[[str, int], None]

logger = logging.getLogger(__name__)

# kind -> (sub directory, gateway method that starts the second-stage split)
SUB_SPLITS = {
    "drum": (DRUM_COMPONENTS_DIR, "create_drum_stem_task"),
    "other": (OTHER_COMPONENTS_DIR, "create_other_stem_task"),
}


def _log_progress(message: str, pct: int) -> None:
    logger.info("%s (%s%%)", message, pct)


def download_asset(gateway: AssetGateway, asset: Asset, dest: Path) -> Path:
    url = gateway.get_download_url(asset.id)
    return gateway.download_file(url, dest)


def is_drum_stem(stem_type: str) -> bool:
    return stem_type == "drums"


def is_other_stem(stem_type: str) -> bool:
    return stem_type.lower() in {"other", "others"}


def process_sub_stems(
    gateway: AssetGateway,
    kind: str,
    source_asset_id: str,
    run_dir: Path,
    file_ext: str,
    base_name: str,
    cb: ProgressCallback,
    sleep: Callable[[float], None] = time.sleep,
) -> list[ArtifactResult]:
    """Split an already separated drum/other stem and download its components."""
    sub_dir_name, create_method = SUB_SPLITS[kind]
    sub_dir = ensure_directory(run_dir / sub_dir_name)
    cb(f"Starting {kind} stem separation...", 85)

    task = getattr(gateway, create_method)(source_asset_id)
    completed = poll_task(
        gateway,
        task.id,
        lambda attempt, max_attempts: cb(f"Waiting for {kind} stems (attempt {attempt}/{max_attempts})...", 85),
        max_attempts=SUB_STEM_POLL_ATTEMPTS,
        sleep=sleep,
    )

    results: list[ArtifactResult] = []
    for stem_id in completed.asset.stems:
        stem_asset = gateway.get_asset(stem_id)
        stem_type = stem_asset.stem_type
        cb(f"Downloading {stem_type} {kind} component...", 90)
        out_path = sub_dir / f"{base_name}_{stem_type}.{file_ext}"
        download_asset(gateway, stem_asset, out_path)
        results.append(ArtifactResult(f"{kind}/{stem_type}", str(out_path), stem_asset.meta_data))
    return results


def download_midi(gateway: AssetGateway, midi_ids: list[str], run_dir: Path, cb: ProgressCallback) -> list[ArtifactResult]:
    """Fetch every MIDI asset. A failed file is reported and skipped."""
    results: list[ArtifactResult] = []
    if not midi_ids:
        cb("No MIDI files found in asset", 87)
        return results

    cb(f"Found {len(midi_ids)} MIDI files to download", 86)
    for midi_id in midi_ids:
        try:
            midi_asset = gateway.get_asset(midi_id)
            midi_type = midi_asset.midi_type
            cb(f"Downloading {midi_type} MIDI...", 87)
            midi_path = run_dir / f"{midi_type}.mid"
            download_asset(gateway, midi_asset, midi_path)
            results.append(ArtifactResult(midi_type, str(midi_path), midi_asset.meta_data))
            cb(f"MIDI {midi_type} downloaded successfully", 88)
        except Exception as exc:
            logger.warning("Error downloading MIDI %s: %s", midi_id, exc)
            cb(f"Warning: MIDI download failed: {exc}", 88)
    return results


def process_file(
    input_path: Union[str, Path],
    output_dir: Union[str, Path],
    progress_cb: Optional[ProgressCallback] = None,
    gateway: Optional[AssetGateway] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RunResult:
    """Run the whole remote separation for ``input_path``.

    Never raises: any failure on the mandatory path comes back as
    ``RunResult(success=False, error=...)``. Files already written stay on disk.
    """
    cb = progress_cb or _log_progress
    try:
        cb("Validating input and output...", 0)
        source = validate_input_file(input_path)
        out_root = validate_output_directory(output_dir)
        if gateway is None:
            gateway = AssetGateway.from_settings(Settings.from_env())

        file_name = source.name
        file_ext = source.suffix[1:]
        base_name = source.stem
        run_dir = ensure_directory(out_root / f"{OUTPUT_PREFIX}{base_name}")

        cb("Getting upload URL...", 5)
        target = gateway.get_upload_url(file_name, file_ext)

        cb("Uploading file...", 10)
        gateway.upload_file(target.url, source, f"audio/{file_ext}")

        cb("Creating asset...", 20)
        asset = gateway.create_asset(file_name, file_ext, target.s3_path, f"{file_name}-stems")

        cb("Saving initial metadata...", 22)
        initial_metadata_file = save_metadata(asset, run_dir, INITIAL_METADATA_FILE)
        cb(f"Metadata saved to: {initial_metadata_file}", 24)
        cb(f"Use asset ID: {asset.id} for recovery if needed", 25)

        cb("Starting stem extraction...", 25)
        task = gateway.create_stem_task(asset.id)

        cb("Processing stems...", 30)

        def on_attempt(attempt: int, max_attempts: int) -> None:
            pct = 30 + min(40, int(attempt / max_attempts * 40))
            cb(f"Waiting for stems (attempt {attempt}/{max_attempts})...", pct)

        completed = poll_task(gateway, task.id, on_attempt, sleep=sleep)

        cb("Retrieving stem information...", 70)
        final_asset = gateway.get_asset(asset.id)

        stems: list[ArtifactResult] = []
        sub_sources: dict[str, str] = {}
        for stem_id in completed.asset.stems:
            stem_asset = gateway.get_asset(stem_id)
            stem_type = stem_asset.stem_type
            cb(f"Downloading {stem_type} stem...", 75)
            out_path = run_dir / f"{base_name}_{stem_type}.{file_ext}"
            download_asset(gateway, stem_asset, out_path)
            stems.append(ArtifactResult(stem_type, str(out_path), stem_asset.meta_data))
            if is_drum_stem(stem_type):
                sub_sources["drum"] = stem_asset.id
            if is_other_stem(stem_type):
                sub_sources["other"] = stem_asset.id

        for kind in ("drum", "other"):
            if kind not in sub_sources:
                continue
            try:
                stems.extend(
                    process_sub_stems(gateway, kind, sub_sources[kind], run_dir, file_ext, base_name, cb, sleep)
                )
            except Exception as exc:
                logger.warning("Error processing %s stems: %s", kind, exc)
                cb(f"Warning: {kind.capitalize()} stem processing failed: {exc}", 85)

        cb("Processing MIDI files...", 85)
        midi = download_midi(gateway, final_asset.midi, run_dir, cb)

        cb("Updating metadata file...", 98)
        metadata_file = save_metadata(final_asset, run_dir, METADATA_FILE)

        cb("Processing complete!", 100)
        return RunResult(
            success=True,
            metadata=final_asset.raw,
            metadata_file=str(metadata_file),
            initial_metadata_file=str(initial_metadata_file),
            stems=stems,
            midi=midi,
            output_directory=str(run_dir),
        )
    except Exception as exc:
        logger.exception("Processing failed")
        return RunResult.failure(str(exc))
