from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from .config import MIDI_WARMUP_ATTEMPTS, POLL_INTERVAL, STEM_POLL_ATTEMPTS
from .errors import AttemptsExhausted, DecodeError, RequestTimeout, StatusQueryTimeout, TaskFailed
from .models import Task

logger = logging.getLogger(__name__)

AttemptCallback = Callable[[int, int], None]


def is_ready(task: Task, attempt: int) -> bool:
    if task.asset is None:
        raise DecodeError(f"Task {task.id} status response has no asset")
    if task.asset.stems:
        return True
    return bool(task.asset.midi) and attempt > MIDI_WARMUP_ATTEMPTS


def poll_task(
    gateway,
    task_id: str,
    on_progress: Optional[AttemptCallback] = None,
    max_attempts: int = STEM_POLL_ATTEMPTS,
    interval: float = POLL_INTERVAL,
    sleep: Callable[[float], None] = time.sleep,
) -> Task:
    """Re-query ``task_id`` until its asset lists results.

    Raises :class:`TaskFailed` on an ``error``/``failed`` status,
    :class:`StatusQueryTimeout` if a status request times out and
    :class:`AttemptsExhausted` after ``max_attempts`` unfinished polls.
    """
    for attempt in range(1, max_attempts + 1):
        try:
            task = gateway.query_task(task_id)
        except RequestTimeout as exc:
            raise StatusQueryTimeout() from exc

        if task.failed:
            logger.error("task %s failed with status %s", task_id, task.status)
            raise TaskFailed(task.status)
        if is_ready(task, attempt):
            logger.info("task %s ready after %d attempt(s)", task_id, attempt)
            return task

        logger.debug("task %s status=%s attempt %d/%d", task_id, task.status, attempt, max_attempts)
        if on_progress:
            on_progress(attempt, max_attempts)
        if attempt < max_attempts:
            sleep(interval)

    raise AttemptsExhausted(max_attempts, interval)
