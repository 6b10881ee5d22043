from __future__ import annotations

import asyncio
import json
import socket
import time
from http.client import HTTPException
from urllib.error import HTTPError, URLError
from urllib.parse import urlsplit
from urllib.request import Request, urlopen

import structlog

from app.schemas.provider import FetchResult

logger = structlog.get_logger()

_READ_CHUNK_BYTES = 64 * 1024


def _is_timeout(exc: BaseException) -> bool:
    if isinstance(exc, (TimeoutError, socket.timeout)):
        return True
    return isinstance(exc, URLError) and isinstance(exc.reason, (TimeoutError, socket.timeout))


def _read_body(response, deadline: float) -> bytes:
    # read1 returns whatever has arrived, so a trickling body still hits the deadline.
    chunks: list[bytes] = []
    while True:
        if time.monotonic() >= deadline:
            raise TimeoutError("response body exceeded the request deadline")
        chunk = response.read1(_READ_CHUNK_BYTES)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


def _fetch_sync(url: str, timeout: float) -> FetchResult:
    # The query string carries the API key, so only the path is logged.
    path = urlsplit(url).path
    request = Request(url, headers={"Accept": "application/json"})
    deadline = time.monotonic() + timeout
    try:
        with urlopen(request, timeout=timeout) as response:
            body = _read_body(response, deadline)
    except HTTPError as exc:
        if exc.code == 429:
            logger.warning("upstream_rate_limited", path=path)
            return FetchResult(status="rate_limited", status_code=429)
        logger.warning("upstream_error", path=path, status_code=exc.code)
        return FetchResult(status="upstream_error", status_code=exc.code)
    except (OSError, HTTPException) as exc:
        if _is_timeout(exc):
            logger.warning("upstream_timeout", path=path, timeout=timeout)
            return FetchResult(status="timeout")
        logger.warning("upstream_unreachable", path=path, error=str(exc))
        return FetchResult(status="transport_error")

    try:
        payload = json.loads(body)
    except ValueError:
        logger.warning("upstream_invalid_json", path=path)
        return FetchResult(status="invalid_payload")
    if not isinstance(payload, dict):
        logger.warning("upstream_invalid_payload", path=path)
        return FetchResult(status="invalid_payload")
    return FetchResult(status="ok", payload=payload, status_code=200)


class Fetcher:
    """Single-attempt JSON GET bounded by one overall deadline.

    The timeout covers connecting and reading the whole body. Retrying is
    left to callers so a slow upstream never costs more than one timeout per
    call.
    """

    def __init__(self, timeout: float = 10.0) -> None:
        self.timeout = timeout

    async def fetch(self, url: str) -> FetchResult:
        return await asyncio.to_thread(_fetch_sync, url, self.timeout)
