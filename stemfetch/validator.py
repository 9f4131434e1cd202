from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Union

from .config import MAX_INPUT_MB, METADATA_FILE, SUPPORTED_EXTENSIONS
from .errors import ErrorCode, InvalidInput, LocalIOError
from .models import Asset

PathLike = Union[str, Path]

logger = logging.getLogger(__name__)


def validate_input_file(path: PathLike) -> Path:
    """Check that ``path`` is an existing mp3/wav file of at most 100 MB."""
    file_path = Path(path)
    if not file_path.is_file():
        raise InvalidInput(f"Input file does not exist: {file_path}")
    ext = file_path.suffix.lower()
    if ext not in SUPPORTED_EXTENSIONS:
        raise InvalidInput(f"Unsupported file format: {ext or '(none)'}. Only .mp3 and .wav files are supported.")
    size_mb = file_path.stat().st_size / (1024 * 1024)
    if size_mb > MAX_INPUT_MB:
        raise InvalidInput(f"File too large: {size_mb:.2f}MB. Maximum allowed is {MAX_INPUT_MB}MB.")
    return file_path


def ensure_directory(path: PathLike) -> Path:
    dir_path = Path(path)
    try:
        dir_path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise LocalIOError(f"Cannot create directory: {exc}") from exc
    return dir_path


def validate_output_directory(path: PathLike) -> Path:
    """Create ``path`` if needed and prove it is writable with a probe file."""
    dir_path = ensure_directory(path)
    probe = dir_path / ".test-write-access"
    try:
        probe.write_text("test")
        probe.unlink()
    except OSError as exc:
        raise LocalIOError(f"Cannot write to output directory: {exc}") from exc
    return dir_path


def save_metadata(asset: Asset, directory: PathLike, file_name: str = METADATA_FILE) -> Path:
    file_path = Path(directory) / file_name
    try:
        file_path.write_text(json.dumps(asset.raw, indent=2), encoding="utf-8")
    except OSError as exc:
        logger.error("Error saving metadata: %s", exc)
        raise LocalIOError(f"Failed to save metadata: {exc}", ErrorCode.METADATA_WRITE_FAILED) from exc
    return file_path
