"""
Placemarks Backend: OAuth Callback Tests
==========================================

What we test:
    ✅ error param → /auth/error with the encoded message, no exchange
    ✅ code param → exchange; success lands on /lists with session cookies
    ✅ exchange failure → /auth/error with the provider message
    ✅ neither param → /lists without contacting the provider
    ✅ error page maps known provider errors to friendly copy
"""

from urllib.parse import parse_qs, urlsplit

import pytest

from placemarks.exceptions import AuthExchangeError
from placemarks.routes.auth import describe_auth_error, error_redirect_url
from placemarks.schemas.common import AuthSession


def error_page_message(location: str) -> str:
    parts = urlsplit(location)
    assert parts.path == "/auth/error"
    return parse_qs(parts.query)["message"][0]


class TestAuthCallback:

    @pytest.mark.asyncio
    async def test_error_param_redirects_to_error_page(self, test_client, mock_auth):
        response = await test_client.get(
            "/auth/callback", params={"error": "access_denied", "code": "ignored"}
        )

        assert response.status_code == 302
        assert error_page_message(response.headers["location"]) == "access_denied"
        mock_auth.exchange_code_for_session.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_params_redirects_to_lists_without_exchange(self, test_client, mock_auth):
        response = await test_client.get("/auth/callback")

        assert response.status_code == 302
        assert response.headers["location"] == "/lists"
        mock_auth.exchange_code_for_session.assert_not_called()

    @pytest.mark.asyncio
    async def test_successful_exchange_sets_session_cookies(self, test_client, mock_auth):
        mock_auth.exchange_code_for_session.return_value = AuthSession(
            user_id="user-1",
            access_token="access-abc",
            refresh_token="refresh-xyz",
            expires_in=3600,
        )

        test_client.cookies.set("sb-auth-token-code-verifier", "verifier-1")
        response = await test_client.get("/auth/callback", params={"code": "auth-code-1"})

        assert response.status_code == 302
        assert response.headers["location"] == "/lists"
        mock_auth.exchange_code_for_session.assert_awaited_once_with("auth-code-1", "verifier-1")

        set_cookies = response.headers.get_list("set-cookie")
        access = next(c for c in set_cookies if c.startswith("sb-auth-token-access-token="))
        assert "access-abc" in access
        assert "HttpOnly" in access
        assert any(c.startswith("sb-auth-token-refresh-token=refresh-xyz") for c in set_cookies)

    @pytest.mark.asyncio
    async def test_exchange_without_verifier_cookie(self, test_client, mock_auth):
        mock_auth.exchange_code_for_session.return_value = AuthSession(
            user_id="u", access_token="a", refresh_token="r"
        )

        await test_client.get("/auth/callback", params={"code": "c"})

        mock_auth.exchange_code_for_session.assert_awaited_once_with("c", None)

    @pytest.mark.asyncio
    async def test_exchange_failure_redirects_with_provider_message(self, test_client, mock_auth):
        mock_auth.exchange_code_for_session.side_effect = AuthExchangeError(
            "invalid_grant: code verifier does not match"
        )

        response = await test_client.get("/auth/callback", params={"code": "stale"})

        assert response.status_code == 302
        assert error_page_message(response.headers["location"]) == (
            "invalid_grant: code verifier does not match"
        )
        assert "set-cookie" not in response.headers

    @pytest.mark.asyncio
    async def test_exchange_without_session_lands_without_cookies(self, test_client, mock_auth):
        mock_auth.exchange_code_for_session.return_value = None

        response = await test_client.get("/auth/callback", params={"code": "c"})

        assert response.status_code == 302
        assert response.headers["location"] == "/lists"
        assert "set-cookie" not in response.headers

    @pytest.mark.asyncio
    async def test_unexpected_failure_still_redirects(self, test_client, mock_auth):
        mock_auth.exchange_code_for_session.side_effect = RuntimeError("socket closed")

        response = await test_client.get("/auth/callback", params={"code": "c"})

        assert response.status_code == 302
        message = error_page_message(response.headers["location"])
        assert message == "Failed to exchange authorization code"


class TestErrorRedirectUrl:

    def test_encodes_like_encode_uri_component(self, test_settings):
        url = error_redirect_url(test_settings, "bad code/verifier & (retry)!")
        assert url == "/auth/error?message=bad%20code%2Fverifier%20%26%20(retry)!"


class TestAuthErrorPage:

    @pytest.mark.parametrize("message,title", [
        ("redirect_uri_mismatch", "OAuth Configuration Error"),
        ("access_denied", "Access Denied"),
        ("error: invalid_grant", "Invalid Authorization"),
        ("something else", "Authentication Error"),
    ])
    def test_describe_auth_error(self, message, title):
        assert describe_auth_error(message)[0] == title

    @pytest.mark.asyncio
    async def test_page_escapes_message(self, test_client):
        response = await test_client.get(
            "/auth/error", params={"message": "<script>alert(1)</script>"}
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "<script>" not in response.text
        assert "&lt;script&gt;" in response.text

    @pytest.mark.asyncio
    async def test_page_without_message(self, test_client):
        response = await test_client.get("/auth/error")

        assert "An authentication error occurred" in response.text
