"""
Observability middleware and logging setup.

Every request gets a correlation ID (taken from ``X-Correlation-ID`` or
generated). It is echoed on the response and kept in a context variable so
audit events raised while pricing can be tied back to the request.
"""

import time
import uuid
import logging
from contextvars import ContextVar
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("cpq.http")

CORRELATION_HEADER = "X-Correlation-ID"
PROCESS_TIME_HEADER = "X-Process-Time"

_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def current_correlation_id() -> Optional[str]:
    """Correlation ID of the request being served, if any."""
    return _correlation_id.get()


def configure_logging(level: str = "INFO") -> None:
    """Attach a stream handler to the ``cpq`` logger hierarchy once."""
    root = logging.getLogger("cpq")
    root.setLevel(level.upper())
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s [%(name)s] %(message)s"
        ))
        root.addHandler(handler)


def _log_level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex
        request.state.correlation_id = correlation_id
        token = _correlation_id.set(correlation_id)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            _correlation_id.reset(token)
        elapsed_ms = (time.perf_counter() - started) * 1000

        response.headers[CORRELATION_HEADER] = correlation_id
        response.headers[PROCESS_TIME_HEADER] = f"{elapsed_ms:.2f}"

        logger.log(
            _log_level_for(response.status_code),
            "%s %s -> %d (%.2f ms)",
            request.method, request.url.path, response.status_code, elapsed_ms,
            extra={
                "correlation_id": correlation_id,
                "status_code": response.status_code,
                "duration_ms": round(elapsed_ms, 2),
                "client": request.client.host if request.client else None,
            },
        )
        return response
