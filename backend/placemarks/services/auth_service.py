"""
Placemarks Backend: Supabase Auth Exchange
============================================

What:  Exchanges an OAuth authorization code for a Supabase session.
How:   Builds a short-lived async Supabase client per exchange (PKCE flow,
       no session persistence, no token refresh), calls
       `auth.exchange_code_for_session` and closes the client's HTTP pool.
Who:   Used only by GET /auth/callback.

The service owns no state between requests: every call gets a fresh
client, so one user's PKCE verifier or session can never leak into another
request.
"""

import logging
from typing import Optional

from supabase import AsyncClientOptions, AuthError, acreate_client

from placemarks.config import Settings
from placemarks.exceptions import AuthExchangeError
from placemarks.schemas.common import AuthSession

logger = logging.getLogger(__name__)


class SupabaseAuthService:
    """Code-for-session exchange against the configured Supabase project."""

    def __init__(self, settings: Settings):
        self.supabase_url = settings.supabase_url
        self.supabase_key = settings.supabase_anon_key

    @property
    def is_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    async def exchange_code_for_session(
        self,
        code: str,
        code_verifier: Optional[str] = None,
    ) -> Optional[AuthSession]:
        """
        Exchange `code` for a session.

        Args:
            code:           Authorization code from the OAuth redirect.
            code_verifier:  PKCE verifier stored by the login page, if any.

        Returns:
            AuthSession with the user id and tokens, or None when the
            provider accepted the code but returned no session.

        Raises:
            AuthExchangeError: Supabase is not configured, or the provider
                rejected the code. The message is the provider's error text.
        """
        if not self.is_configured:
            raise AuthExchangeError("Supabase is not configured")

        client = await acreate_client(
            self.supabase_url,
            self.supabase_key,
            options=AsyncClientOptions(
                flow_type="pkce",
                auto_refresh_token=False,
                persist_session=False,
            ),
        )
        params = {"auth_code": code}
        if code_verifier:
            params["code_verifier"] = code_verifier
        try:
            response = await client.auth.exchange_code_for_session(params)
        except AuthError as e:
            logger.error("Supabase rejected code exchange: %s", e.message)
            raise AuthExchangeError(message=e.message, context={"provider": "supabase"}) from e
        finally:
            await client.auth.close()

        if response.session is None or response.session.user is None:
            logger.warning("Code exchange returned no session")
            return None

        session = response.session
        return AuthSession(
            user_id=str(session.user.id),
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            expires_in=session.expires_in,
        )
