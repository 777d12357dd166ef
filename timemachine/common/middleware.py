"""HTTP middleware: request ID tracing, request logging and metrics.

Usage:
    from timemachine.common.middleware import request_id_var
    rid = request_id_var.get("")
"""

from __future__ import annotations

import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from timemachine.common.logging import get_logger
from timemachine.common.metrics import HTTP_REQUEST_DURATION_SECONDS, HTTP_REQUESTS_TOTAL

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

logger = get_logger("SYSTEM")

# Probe traffic is neither logged nor counted
_SKIP_PATHS = frozenset({"/health", "/metrics"})


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tag each request with an ID, log it, and record HTTP metrics.

    - Reuses ``X-Request-ID`` from the caller or generates a UUID4 hex.
    - Echoes the ID back in the ``X-Request-ID`` response header.
    - Records count and duration per method/path in Prometheus.
    """

    async def dispatch(self, request: Request, call_next) -> Response:  # noqa: ANN001
        rid = request.headers.get("x-request-id") or uuid.uuid4().hex
        request_id_var.set(rid)

        path = request.url.path
        if path in _SKIP_PATHS:
            response = await call_next(request)
            response.headers["X-Request-ID"] = rid
            return response

        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            duration = time.perf_counter() - start
            HTTP_REQUESTS_TOTAL.labels(
                method=request.method, path=path, status_code=str(status_code)
            ).inc()
            HTTP_REQUEST_DURATION_SECONDS.labels(method=request.method, path=path).observe(
                duration
            )

        logger.info(
            f"{request.method} {path} {status_code}",
            extra={
                "data": {
                    "method": request.method,
                    "path": path,
                    "status": status_code,
                    "duration_ms": round(duration * 1000, 1),
                }
            },
        )
        response.headers["X-Request-ID"] = rid
        return response
