"""
Placemarks Backend: Custom Exception Hierarchy
================================================

What:  Application-specific exceptions for the different failure classes.
How:   Each exception carries a message and an optional context dict.
       Global exception handlers (registered in main.py) render them as JSON
       error envelopes with the right status code.
Who:   Raised by route handlers and collaborator services.

Exception Hierarchy:
    PlacemarksError (base)
    ├── ValidationError        → 400 Bad Request (missing/invalid parameter)
    ├── UpstreamServiceError   → 500 (collaborator failed; route-shaped body)
    ├── PlacesAPIError         → raised by PlacesClient, caught by routes
    ├── AuthExchangeError      → raised by SupabaseAuthService, becomes a redirect
    └── DatabaseError          → raised by monitoring services, caught by routes

Collaborator errors (PlacesAPIError, AuthExchangeError, DatabaseError) never
reach the client directly. Route handlers catch them at the boundary and
either redirect or re-raise an UpstreamServiceError.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class PlacemarksError(Exception):
    """
    Base exception for all Placemarks application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(PlacemarksError):
    """
    Raised when a required query parameter is missing or malformed.

    HTTP:    400 Bad Request

    Example response:
        {
            "error": "placeId parameter is required",
            "details": {"field": "placeId"},
            "request_id": "a1b2c3d4"
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class UpstreamServiceError(PlacemarksError):
    """
    Raised by a route handler after its collaborator failed.

    HTTP:    500 Internal Server Error

    The body shape depends on the route, so the handler describes it here:
        envelope=True   adds "success": false (JSON envelope routes)
        details         optional detail string (e.g. the failure message)
        timestamp       set when include_timestamp=True (ISO 8601, UTC)

    The message is what the client sees. Whatever went wrong underneath is
    logged by the route before this is raised.
    """

    def __init__(
        self,
        message: str = "An upstream service failed",
        details: Optional[str] = None,
        envelope: bool = False,
        include_timestamp: bool = False,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.details = details
        self.envelope = envelope
        self.timestamp = (
            datetime.now(timezone.utc).isoformat() if include_timestamp else None
        )


class PlacesAPIError(PlacemarksError):
    """
    Raised by PlacesClient when Google Places cannot be reached or answers
    with an HTTP error status.

    Attributes:
        status_code: Upstream HTTP status, None for transport failures.
    """

    def __init__(
        self,
        message: str = "Google Places request failed",
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if status_code is not None:
            ctx["status_code"] = status_code
        super().__init__(message=message, context=ctx)
        self.status_code = status_code


class AuthExchangeError(PlacemarksError):
    """
    Raised when the OAuth code could not be exchanged for a session.

    The message is the provider's own error text; the callback route puts it
    (URL-encoded) into the error page redirect.
    """

    def __init__(
        self,
        message: str = "Failed to exchange authorization code",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(PlacemarksError):
    """
    Raised when a monitoring query or maintenance write fails.

    The message names the operation that failed (e.g. "Failed to analyze
    index usage: ..."); monitoring routes expose it in their error envelope.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


def error_message(exc: BaseException) -> str:
    """
    Client-facing text for an exception caught at a route boundary.

    Application errors carry a curated `message`; anything else falls back
    to str(exc), or "Unknown error" when that is empty.
    """
    if isinstance(exc, PlacemarksError):
        return exc.message
    return str(exc) or "Unknown error"
