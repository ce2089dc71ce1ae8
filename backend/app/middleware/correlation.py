"""
Request correlation and access logging.

Every request gets an X-Correlation-ID (taken from the client or generated)
that is stored on ``request.state`` and echoed in the response. X-Tab-ID is
echoed when present. One access line is logged per request with its status
and duration; unhandled errors are logged with the same IDs and re-raised.
"""
from __future__ import annotations

import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.core.logger import logger

# Probes hit these constantly; only log them at DEBUG
QUIET_PATHS = ("/health", "/api/v1/health/")


class CorrelationMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        tab_id = request.headers.get("X-Tab-ID") or None

        request.state.correlation_id = correlation_id
        request.state.tab_id = tab_id

        extra = {
            "correlation_id": correlation_id,
            "tab_id": tab_id,
            "method": request.method,
            "path": request.url.path,
        }
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            extra["duration_ms"] = round((time.perf_counter() - started) * 1000, 1)
            logger.exception(f"{request.method} {request.url.path} failed", extra=extra)
            raise

        extra["status_code"] = response.status_code
        extra["duration_ms"] = round((time.perf_counter() - started) * 1000, 1)
        log = logger.debug if request.url.path in QUIET_PATHS else logger.info
        log(
            f"{request.method} {request.url.path} -> {response.status_code} ({extra['duration_ms']}ms)",
            extra=extra,
        )

        response.headers["X-Correlation-ID"] = correlation_id
        if tab_id:
            response.headers["X-Tab-ID"] = tab_id
        return response
