"""
Request logging middleware.

Every response carries `X-Request-ID` (taken from the caller or generated)
and `X-Response-Time`. One log line is written per request, at a level
picked from the status; the root page and health checks are logged only
when they fail.
"""

import logging
import time
import uuid
from typing import Callable, FrozenSet

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from src.utils.logging import clear_request_context, set_request_context

from .rate_limiter import get_request_ip

logger = logging.getLogger(__name__)

SKIPPED_PATHS: FrozenSet[str] = frozenset({"/docs", "/redoc", "/openapi.json", "/favicon.ico"})
FAILURES_ONLY_PATHS: FrozenSet[str] = frozenset({"/", "/health", "/health/db"})


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        set_request_context(request_id=request_id)

        path = request.url.path
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.exception(f"{request.method} {path} raised after {elapsed_ms:.2f}ms")
            clear_request_context()
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{elapsed_ms:.2f}ms"

        status_code = response.status_code
        quiet = path in SKIPPED_PATHS or (path in FAILURES_ONLY_PATHS and status_code < 400)
        if not quiet:
            set_request_context(user_id=getattr(request.state, "user_id", None))
            logger.log(
                _level_for(status_code),
                f"{request.method} {path} {status_code} ({elapsed_ms:.2f}ms)",
                extra={
                    "status_code": status_code,
                    "duration_ms": round(elapsed_ms, 2),
                    "client_ip": get_request_ip(request),
                },
            )

        clear_request_context()
        return response
