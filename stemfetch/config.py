from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .errors import AppError, ErrorCode

DEFAULT_API_URL = "https://api.fadr.com"

# Per-call timeouts (seconds)
REQUEST_TIMEOUT = 30
UPLOAD_TIMEOUT = 120
DOWNLOAD_TIMEOUT = 60

CHUNK_SIZE = 8 * 1024 * 1024  # 8 MB

POLL_INTERVAL = 5
STEM_POLL_ATTEMPTS = 60
SUB_STEM_POLL_ATTEMPTS = 30
# MIDI shows up before the stems are done; only trust MIDI-only readiness after this many attempts.
MIDI_WARMUP_ATTEMPTS = 12

SUPPORTED_EXTENSIONS = {".mp3", ".wav"}
MAX_INPUT_MB = 100

OUTPUT_PREFIX = "[Processed] - "
DRUM_COMPONENTS_DIR = "drum-components"
OTHER_COMPONENTS_DIR = "other-components"
INITIAL_METADATA_FILE = "initial_metadata.json"
METADATA_FILE = "metadata.json"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d %(message)s"


@dataclass
class Settings:
    api_key: str
    api_url: str = DEFAULT_API_URL

    @classmethod
    def from_env(cls) -> "Settings":
        """Read ``FADR_API_KEY`` / ``API_URL`` from the environment or a ``.env`` file."""
        load_dotenv()
        api_key = os.getenv("FADR_API_KEY")
        if not api_key:
            raise AppError(ErrorCode.API_KEY_MISSING, "API key not found in environment variables (FADR_API_KEY)")
        return cls(api_key=api_key, api_url=os.getenv("API_URL") or DEFAULT_API_URL)


def configure_logging(level: int = logging.INFO, log_file: Optional[Path] = None) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    log_file = log_file or (Path(os.environ["STEMFETCH_LOG_FILE"]) if os.getenv("STEMFETCH_LOG_FILE") else None)
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)
