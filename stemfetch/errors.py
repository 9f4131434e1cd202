"""Error codes and exception types shared by the transport, pipeline and service."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from fastapi import HTTPException


class ErrorCode(str, Enum):
    INVALID_INPUT = "E001"
    OUTPUT_DIR_UNWRITABLE = "E002"
    API_KEY_MISSING = "E003"
    REMOTE_ERROR = "E004"
    NETWORK_ERROR = "E005"
    CLIENT_ERROR = "E006"
    REQUEST_TIMEOUT = "E007"
    DOWNLOAD_FAILED = "E008"
    DECODE_FAILED = "E009"
    TASK_FAILED = "E010"
    TASK_NOT_FOUND = "E011"
    POLL_TIMEOUT = "E012"
    METADATA_WRITE_FAILED = "E013"
    JOB_NOT_FOUND = "E014"
    INVALID_REQUEST = "E015"


@dataclass
class AppError(Exception):
    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return self.message

    def to_http(self, status: int = 400) -> HTTPException:
        return HTTPException(status_code=status, detail={"code": self.code, "message": self.message})


class InvalidInput(AppError):
    def __init__(self, message: str):
        super().__init__(ErrorCode.INVALID_INPUT, message)


class LocalIOError(AppError):
    def __init__(self, message: str, code: ErrorCode = ErrorCode.OUTPUT_DIR_UNWRITABLE):
        super().__init__(code, message)


class RemoteError(AppError):
    """The server answered with an error body."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(ErrorCode.REMOTE_ERROR, message)
        self.status = status


class NetworkError(AppError):
    def __init__(self, message: str):
        super().__init__(ErrorCode.NETWORK_ERROR, message)


class ClientError(AppError):
    def __init__(self, message: str):
        super().__init__(ErrorCode.CLIENT_ERROR, message)


class RequestTimeout(AppError):
    def __init__(self, message: str):
        super().__init__(ErrorCode.REQUEST_TIMEOUT, message)


class DownloadError(AppError):
    def __init__(self, message: str):
        super().__init__(ErrorCode.DOWNLOAD_FAILED, message)


class DecodeError(AppError):
    def __init__(self, message: str):
        super().__init__(ErrorCode.DECODE_FAILED, message)


class TaskNotFound(AppError):
    def __init__(self, task_id: str):
        super().__init__(ErrorCode.TASK_NOT_FOUND, f"Task not found: {task_id}")
        self.task_id = task_id


class TaskFailed(AppError):
    def __init__(self, status: str):
        super().__init__(ErrorCode.TASK_FAILED, f"Task failed with status: {status}")
        self.status = status


class PollTimeout(AppError):
    def __init__(self, message: str):
        super().__init__(ErrorCode.POLL_TIMEOUT, message)


class StatusQueryTimeout(PollTimeout):
    """The status endpoint itself did not answer in time."""

    def __init__(self):
        super().__init__("API request timed out while checking task status")


class AttemptsExhausted(PollTimeout):
    """The task never became ready within ``max_attempts`` polls."""

    def __init__(self, max_attempts: int, interval: float):
        minutes = max_attempts * interval / 60
        super().__init__(
            f"Task processing timed out after {max_attempts} attempts ({minutes:g} minutes)"
        )
        self.max_attempts = max_attempts
