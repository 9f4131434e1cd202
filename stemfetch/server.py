from __future__ import annotations

import asyncio
import json
import logging
import os
import queue
import threading
import uuid
from typing import Callable

from dotenv import load_dotenv
from fastapi import FastAPI
from pydantic import BaseModel
from sse_starlette.sse import EventSourceResponse

from .config import DEFAULT_API_URL
from .errors import AppError, ErrorCode
from .models import RunResult
from .pipeline import process_file
from .recovery import download_files_from_asset_id

logger = logging.getLogger(__name__)

app = FastAPI(title="stemfetch")

progress: dict[str, dict[str, int | str]] = {}
errors: dict[str, str] = {}
results: dict[str, dict] = {}
process_queue: queue.Queue[Callable[[], None]] = queue.Queue()


def _worker() -> None:
    while True:
        fn = process_queue.get()
        try:
            fn()
        finally:
            process_queue.task_done()


threading.Thread(target=_worker, daemon=True).start()


class ProcessRequest(BaseModel):
    input_path: str
    output_dir: str


class RecoverRequest(BaseModel):
    asset_id: str
    output_dir: str


def _enqueue(job: Callable[[Callable[[str, int], None]], RunResult]) -> str:
    job_id = str(uuid.uuid4())

    def cb(stage: str, pct: int) -> None:
        # 100 is reserved until the result is stored
        progress[job_id] = {"stage": stage, "pct": min(int(pct), 99)}

    def run() -> None:
        try:
            result = job(cb)
        except Exception as exc:  # pragma: no cover - pipelines return failures instead of raising
            logger.exception("job %s crashed", job_id)
            result = RunResult.failure(str(exc))
        results[job_id] = result.to_dict()
        if result.success:
            progress[job_id] = {"stage": "done", "pct": 100}
        else:
            progress[job_id] = {"stage": "error", "pct": -1}
            errors[job_id] = json.dumps({"message": result.error})

    progress[job_id] = {"stage": "queued", "pct": 0}
    process_queue.put(run)
    return job_id


@app.post("/process")
async def process(req: ProcessRequest):
    logger.info("Processing file: %s to %s", req.input_path, req.output_dir)
    job_id = _enqueue(lambda cb: process_file(req.input_path, req.output_dir, cb))
    return {"job_id": job_id}


@app.post("/recover")
async def recover(req: RecoverRequest):
    asset_id = req.asset_id.strip()
    if not asset_id:
        raise AppError(ErrorCode.INVALID_REQUEST, "Asset ID is required").to_http()
    logger.info("Recovering asset %s to %s", asset_id, req.output_dir)
    job_id = _enqueue(lambda cb: download_files_from_asset_id(asset_id, req.output_dir, cb))
    return {"job_id": job_id}


@app.get("/progress/{job_id}")
async def progress_stream(job_id: str):
    if job_id not in progress:
        raise AppError(ErrorCode.JOB_NOT_FOUND, "Invalid job id").to_http(404)

    async def event_generator():
        last = None
        while True:
            info = progress.get(job_id, {"stage": "queued", "pct": 0})
            current = (info["stage"], info["pct"])
            if current != last:
                if info["pct"] < 0:
                    yield {"event": "error", "data": errors.get(job_id, "processing failed")}
                else:
                    yield {"event": "message", "data": json.dumps({"stage": info["stage"], "pct": info["pct"]})}
                last = current
                if info["pct"] >= 100 or info["pct"] < 0:
                    break
            await asyncio.sleep(0.5)

    return EventSourceResponse(event_generator())


@app.get("/result/{job_id}")
async def result(job_id: str):
    if job_id not in progress:
        raise AppError(ErrorCode.JOB_NOT_FOUND, "Invalid job id").to_http(404)
    if job_id not in results:
        raise AppError(ErrorCode.INVALID_REQUEST, "Job still running").to_http(409)
    return results[job_id]


@app.get("/config")
async def config():
    load_dotenv()
    return {
        "api_url": os.getenv("API_URL") or DEFAULT_API_URL,
        "api_key_configured": bool(os.getenv("FADR_API_KEY")),
    }
