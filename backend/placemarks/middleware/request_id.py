"""
Placemarks Backend: Request ID Middleware
===========================================

What:  Assigns every request a correlation ID and echoes it in the
       X-Request-ID response header.
How:   Reuses a client-supplied X-Request-ID, otherwise generates a short
       UUID. The ID is stored in a ContextVar (for loggers and exception
       handlers) and on request.state (for route handlers).
When:  Runs before RequestLoggingMiddleware so access lines carry the ID.

Error envelopes include `request_id`, so a user reporting a failed place
lookup can hand over the ID and support can find the matching log lines.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own ID.
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Propagate or generate X-Request-ID."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)

        response.headers["X-Request-ID"] = rid
        return response
