"""
Placemarks Backend: Request Logging Middleware
================================================

What:  One access-log line per HTTP request: method, path, status, duration,
       request ID and client IP.
How:   Times the downstream call with perf_counter and picks the log level
       from the status code (5xx ERROR, 4xx WARNING, else INFO).
When:  After RequestIDMiddleware, so the request ID is already set.

Query strings are not logged: photo references and OAuth codes travel in
them.

Typical durations:
    GET /health                   1-5ms
    GET /api/places/search        150-600ms (Google round trip)
    GET /api/monitoring/indexes   20-200ms  (catalog queries)
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from placemarks.middleware.request_id import request_id_var

logger = logging.getLogger("placemarks.access")

# Probed by the orchestrator every few seconds.
_SKIP_PATHS = frozenset({"/health"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access logging with request-ID correlation."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in _SKIP_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
