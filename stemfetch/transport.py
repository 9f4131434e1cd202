"""Thin HTTP layer over urllib: bearer auth, fixed timeouts, uniform errors."""
from __future__ import annotations

import json
import logging
import os
import ssl
from pathlib import Path
from typing import Any, Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

import certifi

from .config import CHUNK_SIZE, DOWNLOAD_TIMEOUT, REQUEST_TIMEOUT, UPLOAD_TIMEOUT
from .errors import (
    AppError,
    ClientError,
    DecodeError,
    DownloadError,
    NetworkError,
    RemoteError,
    RequestTimeout,
)

SSL_CONTEXT = ssl.create_default_context(cafile=certifi.where())
USER_AGENT = "stemfetch"

logger = logging.getLogger(__name__)


def _error_body_message(exc: HTTPError) -> str:
    try:
        body = exc.read().decode("utf-8", errors="replace")
    except Exception:  # pragma: no cover - body already consumed / socket gone
        return exc.reason or "Unknown error"
    try:
        data = json.loads(body)
    except ValueError:
        return body or str(exc.reason)
    if isinstance(data, dict):
        return data.get("message") or data.get("error") or json.dumps(data)
    return json.dumps(data)


def _is_timeout(exc: BaseException) -> bool:
    if isinstance(exc, TimeoutError):
        return True
    return isinstance(exc, URLError) and isinstance(exc.reason, TimeoutError)


def translate_error(exc: BaseException, context: str, timeout_message: Optional[str] = None) -> AppError:
    """Map a urllib/socket failure onto the shared error taxonomy."""
    if isinstance(exc, AppError):
        return exc
    if isinstance(exc, HTTPError):
        return RemoteError(f"{context}: {_error_body_message(exc)} (Status {exc.code})", status=exc.code)
    if _is_timeout(exc):
        return RequestTimeout(timeout_message or f"{context}: request timed out")
    if isinstance(exc, (URLError, ConnectionError)):
        return NetworkError(f"{context}: No response received")
    return ClientError(f"{context}: {exc}")


class ApiClient:
    def __init__(self, api_key: str, api_url: str, timeout: float = REQUEST_TIMEOUT):
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }

    def request_json(self, method: str, path: str, payload: Optional[dict] = None, *, context: str) -> Any:
        """Send one JSON request to the API and return the decoded body."""
        headers = self._headers()
        data = None
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")
            headers["Content-Type"] = "application/json"
        url = f"{self.api_url}/{path.lstrip('/')}"
        logger.debug("%s %s", method, url)
        try:
            req = Request(url, data=data, headers=headers, method=method)
            with urlopen(req, timeout=self.timeout, context=SSL_CONTEXT) as resp:
                body = resp.read()
        except Exception as exc:
            raise translate_error(exc, context) from exc
        try:
            return json.loads(body.decode("utf-8"))
        except ValueError as exc:
            raise DecodeError(f"{context}: response is not valid JSON") from exc

    def get(self, path: str, *, context: str) -> Any:
        return self.request_json("GET", path, context=context)

    def post(self, path: str, payload: dict, *, context: str) -> Any:
        return self.request_json("POST", path, payload, context=context)


def put_file(url: str, local_path: Path, content_type: str, timeout: float = UPLOAD_TIMEOUT) -> None:
    """Stream ``local_path`` to a pre-signed URL. No auth header is sent."""
    context = "Upload failed"
    try:
        size = local_path.stat().st_size
        with open(local_path, "rb") as fh:
            req = Request(
                url,
                data=fh,
                headers={"Content-Type": content_type, "Content-Length": str(size), "User-Agent": USER_AGENT},
                method="PUT",
            )
            with urlopen(req, timeout=timeout, context=SSL_CONTEXT) as resp:
                resp.read()
    except Exception as exc:
        raise translate_error(
            exc, context, "Upload timed out. File may be too large or your connection is slow."
        ) from exc


def stream_to_file(url: str, dest: Path, timeout: float = DOWNLOAD_TIMEOUT) -> Path:
    """Write the response body of ``url`` to ``dest`` chunk by chunk."""
    tmp = dest.with_name(dest.name + ".part")
    try:
        req = Request(url, headers={"User-Agent": USER_AGENT})
        with urlopen(req, timeout=timeout, context=SSL_CONTEXT) as r:
            with open(tmp, "wb") as f:
                while True:
                    chunk = r.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    f.write(chunk)
        os.replace(tmp, dest)
    except Exception as exc:
        if _is_timeout(exc):
            raise RequestTimeout("Download timed out") from exc
        raise DownloadError(f"Download failed: {exc}") from exc
    return dest
