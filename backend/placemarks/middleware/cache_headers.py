"""
Placemarks Backend: API Cache Headers Middleware
==================================================

What:  Keeps browsers and CDNs from caching API responses, and adds the
       basic security headers to them.
How:   For paths under /api/, any response that did not choose its own
       Cache-Control gets the no-cache set. Routes that want caching (the
       place photo proxy) set Cache-Control themselves and are left alone.

Headers added to uncached /api/ responses:
    Cache-Control           no-cache, no-store, must-revalidate, max-age=0
    Pragma                  no-cache
    Expires                 0
    X-Frame-Options         DENY
    X-XSS-Protection        1; mode=block
    X-Content-Type-Options  nosniff
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
}

SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "X-Content-Type-Options": "nosniff",
}


class CacheHeadersMiddleware(BaseHTTPMiddleware):
    """No-cache and security headers for /api/ responses."""

    def __init__(self, app, path_prefix: str = "/api/"):
        super().__init__(app)
        self.path_prefix = path_prefix

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)

        if not request.url.path.startswith(self.path_prefix):
            return response
        if "cache-control" in response.headers:
            return response

        for name, value in {**NO_CACHE_HEADERS, **SECURITY_HEADERS}.items():
            response.headers.setdefault(name, value)
        return response
