"""
Request logging middleware.

Every request gets a short id, taken from ``X-Request-ID`` when the caller
sends one. The id is bound into the structlog context for the duration of
the request, so ledger writes and conflict retries logged deep inside a use
case can be matched to the request that caused them.
"""

import re
import time
import uuid
from collections.abc import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from estoque.config import bind_operation, clear_operation, get_logger

logger = get_logger(__name__)

_REQUEST_ID = re.compile(r"[A-Za-z0-9._-]{1,64}")

# Requests slower than this are logged at warning level.
SLOW_REQUEST_MS = 1000.0


def request_id_for(request: Request) -> str:
    """Caller's id when it is a safe token, otherwise a fresh one."""
    supplied = request.headers.get("X-Request-ID", "")
    if _REQUEST_ID.fullmatch(supplied):
        return supplied
    return uuid.uuid4().hex[:8]


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log request start, completion and failure with timing."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        request_id = request_id_for(request)
        request.state.request_id = request_id

        clear_operation()
        bind_operation(request_id=request_id, method=request.method, path=request.url.path)

        start = time.perf_counter()
        logger.info(
            "request_started",
            client=request.client.host if request.client else "unknown",
        )

        try:
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start) * 1000
            log = logger.warning if duration_ms >= SLOW_REQUEST_MS else logger.info
            log("request_completed", status=response.status_code, duration_ms=round(duration_ms, 2))
        except Exception as e:
            logger.error(
                "request_failed",
                error=str(e),
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            raise
        finally:
            clear_operation()

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
        return response
