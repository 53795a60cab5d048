"""
Placemarks Backend: OAuth Callback Routes
===========================================

What:  GET /auth/callback  OAuth redirect target (Google via Supabase)
       GET /auth/error     human-readable sign-in failure page
How:   The callback only ever redirects:

           ?error=...   → /auth/error?message=<error>
           ?code=...    → exchange code for session
                              ok     → /lists  (session cookies set)
                              empty  → /lists  (no cookies)
                              failed → /auth/error?message=<provider message>
           neither      → /lists  (no provider call)

       Messages are percent-encoded the way browsers' encodeURIComponent
       does it, so the error page receives the provider text verbatim.
"""

import html
import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from placemarks.config import Settings
from placemarks.dependencies import get_auth_service, get_settings
from placemarks.exceptions import AuthExchangeError
from placemarks.schemas.common import AuthSession
from placemarks.services.auth_service import SupabaseAuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])

GENERIC_EXCHANGE_ERROR = "Failed to exchange authorization code"
DEFAULT_ERROR_MESSAGE = "An authentication error occurred"

# Characters encodeURIComponent leaves alone besides alphanumerics and "-_.~".
_URI_COMPONENT_SAFE = "!*'()"


def error_redirect_url(settings: Settings, message: str) -> str:
    return f"{settings.auth_error_path}?message={quote(message, safe=_URI_COMPONENT_SAFE)}"


@router.get("/callback", response_class=RedirectResponse, status_code=302)
async def auth_callback(
    request: Request,
    code: str | None = Query(default=None),
    error: str | None = Query(default=None),
    settings: Settings = Depends(get_settings),
    auth: SupabaseAuthService = Depends(get_auth_service),
) -> RedirectResponse:
    if error:
        logger.warning("OAuth provider returned error: %s", error)
        return RedirectResponse(error_redirect_url(settings, error), status_code=302)

    if not code:
        return RedirectResponse(settings.auth_landing_path, status_code=302)

    verifier = request.cookies.get(f"{settings.auth_cookie_prefix}-code-verifier")
    try:
        session = await auth.exchange_code_for_session(code, verifier)
    except AuthExchangeError as e:
        logger.warning("Code exchange failed: %s", e.message)
        return RedirectResponse(error_redirect_url(settings, e.message), status_code=302)
    except Exception:
        logger.error("Unexpected error during code exchange", exc_info=True)
        return RedirectResponse(
            error_redirect_url(settings, GENERIC_EXCHANGE_ERROR), status_code=302
        )

    response = RedirectResponse(settings.auth_landing_path, status_code=302)
    if session is None:
        return response

    logger.info("Session established for user %s", session.user_id)
    _set_session_cookies(response, settings, session)
    return response


def _set_session_cookies(
    response: RedirectResponse, settings: Settings, session: AuthSession
) -> None:
    prefix = settings.auth_cookie_prefix
    cookie_args = {
        "httponly": True,
        "secure": settings.auth_cookie_secure,
        "samesite": "lax",
        "path": "/",
    }
    response.set_cookie(
        f"{prefix}-access-token",
        session.access_token,
        max_age=session.expires_in,
        **cookie_args,
    )
    response.set_cookie(f"{prefix}-refresh-token", session.refresh_token, **cookie_args)
    response.delete_cookie(f"{prefix}-code-verifier", path="/")


# ── Error page ────────────────────────────────────────────────────────────

_KNOWN_ERRORS = [
    (
        "redirect_uri_mismatch",
        "OAuth Configuration Error",
        "There's a configuration issue with Google OAuth. Please contact support.",
        "This usually happens when the OAuth redirect URLs are not properly configured.",
    ),
    (
        "access_denied",
        "Access Denied",
        "You denied access to your Google account.",
        "To sign in with Google, you need to allow access to your basic profile information.",
    ),
    (
        "invalid_grant",
        "Invalid Authorization",
        "The authorization code has expired or is invalid.",
        "Please try signing in again.",
    ),
]


def describe_auth_error(message: str) -> tuple[str, str, str]:
    """(title, description, suggestion) for an auth error message."""
    for marker, title, description, suggestion in _KNOWN_ERRORS:
        if marker in message:
            return title, description, suggestion
    return (
        "Authentication Error",
        message,
        "Please try signing in again. If the problem persists, contact support.",
    )


_ERROR_PAGE = """<!DOCTYPE html>
<html lang="en">
<head><meta charset="utf-8"><title>{title}</title></head>
<body>
  <main>
    <h1>{title}</h1>
    <p>{description}</p>
    <p>{suggestion}</p>
    <p><a href="/login">Try Again</a> <a href="/signup">Create New Account</a></p>
    <p><small>Error details: {message}</small></p>
  </main>
</body>
</html>
"""


@router.get("/error", response_class=HTMLResponse)
async def auth_error_page(message: str | None = Query(default=None)) -> HTMLResponse:
    message = message or DEFAULT_ERROR_MESSAGE
    title, description, suggestion = describe_auth_error(message)
    return HTMLResponse(_ERROR_PAGE.format(
        title=html.escape(title),
        description=html.escape(description),
        suggestion=html.escape(suggestion),
        message=html.escape(message),
    ))
