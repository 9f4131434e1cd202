"""Unified entrypoint for stemfetch.

Processes local audio files through the remote separation service, recovers
artifacts from a known asset id, or starts the local progress service.
"""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional

from stemfetch.config import configure_logging
from stemfetch.models import RunResult
from stemfetch.pipeline import process_file
from stemfetch.recovery import download_files_from_asset_id


def _cb(stage: str, pct: int) -> None:
    logging.info("%s: %s%%", stage, pct)


def _report(result: RunResult) -> bool:
    if not result.success:
        logging.error("failed: %s", result.error)
        return False
    for artifact in [*result.stems, *result.midi]:
        print(artifact.path)
    print(result.metadata_file)
    return True


def cli_main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Split audio into stems with the remote service, or recover a past run")
    parser.add_argument("--serve", action="store_true", help="Start the FastAPI progress service with uvicorn")
    parser.add_argument("--recover", metavar="ASSET_ID", help="Re-download the stems and MIDI of an existing asset")
    parser.add_argument("--out", default=".", help="Output directory")
    parser.add_argument("--port", type=int, default=8000, help="Port for --serve")
    parser.add_argument("files", nargs="*", help="mp3/wav files to process")
    args = parser.parse_args(argv)

    configure_logging()

    if args.serve:
        import uvicorn

        uvicorn.run("stemfetch.server:app", host="127.0.0.1", port=args.port, reload=False)
        return 0

    if args.recover:
        result = download_files_from_asset_id(args.recover.strip(), Path(args.out), _cb)
        return 0 if _report(result) else 1

    if not args.files:
        parser.error("No files provided and neither --serve nor --recover set")

    ok = True
    for file_path in args.files:
        result = process_file(Path(file_path), Path(args.out), _cb)
        ok = _report(result) and ok
    return 0 if ok else 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(cli_main())
