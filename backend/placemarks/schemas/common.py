"""
Placemarks Backend: Shared Response Schemas
=============================================

What:  Error, health, version and auth-session models shared across routes.
Who:   Route handlers (as response_model / OpenAPI docs) and the auth service.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Error envelope for every non-redirect failure.

    `error` always carries a human-readable message. Envelope routes
    (maintenance, monitoring) add `success: false`; the maintenance report
    route also adds `details` and `timestamp`.

    Example:
        {
            "error": "Query parameter is required",
            "details": {"field": "query"},
            "request_id": "a1b2c3d4"
        }
    """
    success: Optional[bool] = Field(default=None, description="Present on envelope routes")
    error: str = Field(description="Human-readable error message")
    details: Optional[Any] = Field(default=None, description="Additional error context")
    timestamp: Optional[str] = Field(default=None, description="UTC ISO 8601")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Process health returned by GET /health."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    places: str = Field(description="Places client: configured, unconfigured")
    uptime_seconds: float = Field(description="Seconds since service started")


class VersionResponse(BaseModel):
    """Returned by GET /api/version for client-side version checks."""
    version: str
    buildTime: str
    gitHash: Optional[str] = None
    environment: str
    serverTime: str
    endpoint: str = "/api/version"


class AuthSession(BaseModel):
    """
    The parts of a Supabase session the callback needs.

    Everything else about the session belongs to the provider.
    """
    user_id: str
    access_token: str
    refresh_token: str
    expires_in: Optional[int] = None
