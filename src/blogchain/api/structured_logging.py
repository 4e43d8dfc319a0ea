# src/blogchain/api/structured_logging.py
from __future__ import annotations

import logging
import os
import time
import uuid
from typing import Any, Dict, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from blogchain.runtime.runtime_logging import log_event

Json = Dict[str, Any]

_ON = {"1", "true", "yes", "y", "on"}
_OFF = {"0", "false", "no", "n", "off"}

# Only these request headers are ever copied into the log line.
_LOGGED_HEADERS = ("user-agent", "content-type", "content-length", "x-forwarded-for")


def _env_flag(name: str, default: bool) -> bool:
    raw = (os.environ.get(name) or "").strip().lower()
    if raw in _ON:
        return True
    if raw in _OFF:
        return False
    return default


class RequestLogMiddleware(BaseHTTPMiddleware):
    """One `http_request` JSON line per request on the blogchain.http logger.

    BLOGCHAIN_LOG_REQUESTS=0 turns it off. BLOGCHAIN_LOG_REQUEST_HEADERS=1 adds
    the _LOGGED_HEADERS subset. The x-request-id header is echoed back, or a
    fresh one is minted, so clients can match a tx submit to its log line.
    """

    def __init__(self, app) -> None:
        super().__init__(app)
        self._enabled = _env_flag("BLOGCHAIN_LOG_REQUESTS", True)
        self._with_headers = _env_flag("BLOGCHAIN_LOG_REQUEST_HEADERS", False)
        self._logger = logging.getLogger("blogchain.http")

    def _headers(self, request: Request) -> Json:
        if not self._with_headers:
            return {}
        return {k: request.headers[k] for k in _LOGGED_HEADERS if request.headers.get(k)}

    async def dispatch(self, request: Request, call_next):
        if not self._enabled:
            return await call_next(request)

        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.request_id = request_id
        t0 = time.monotonic()
        status = 500
        error: Optional[str] = None

        try:
            response = await call_next(request)
        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            raise
        else:
            status = int(response.status_code)
            response.headers.setdefault("x-request-id", request_id)
            return response
        finally:
            log_event(
                self._logger,
                "http_request",
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                status=status,
                duration_ms=int((time.monotonic() - t0) * 1000),
                client=request.client.host if request.client else "",
                headers=self._headers(request),
                error=error,
            )
