"""
OAuth2 authorization-code client for the Xero identity service.

Builds consent URLs, exchanges authorization codes and refresh tokens at
the token endpoint, and parses the resulting token set. Tokens live only
in the caller's session; nothing is written to disk.
"""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

import httpx

from xeroshowcase.errors import AuthorizationError

logger = logging.getLogger("xeroshowcase.auth.oauth2")

# Seconds before expiry at which a token is treated as expired
EXPIRY_BUFFER = 300


def generate_state() -> str:
    """Generate an unguessable CSRF state value for the consent URL."""
    return secrets.token_urlsafe(32)


@dataclass
class TokenSet:
    """Holds an OAuth2 token set with expiry tracking."""

    access_token: str
    refresh_token: str = ""
    id_token: str = ""
    token_type: str = "Bearer"
    expires_in: int = 1800
    expires_at: float = 0.0
    scope: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def is_expired(self) -> bool:
        """Check if the access token is expired (with a 5-minute buffer)."""
        return time.time() > (self.expires_at - EXPIRY_BUFFER)

    @classmethod
    def from_oauth_response(cls, data: dict[str, Any]) -> TokenSet:
        """Parse a standard OAuth2 token response."""
        expires_in = int(data.get("expires_in", 1800))
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token", ""),
            id_token=data.get("id_token", ""),
            token_type=data.get("token_type", "Bearer"),
            expires_in=expires_in,
            expires_at=time.time() + expires_in,
            scope=data.get("scope", ""),
            extra={k: v for k, v in data.items() if k not in {
                "access_token", "refresh_token", "id_token", "token_type", "expires_in", "scope",
            }},
        )


class OAuth2Client:
    """Confidential OAuth2 client for the authorization-code flow.

    Usage::

        oauth = OAuth2Client(
            client_id="...",
            client_secret="...",
            redirect_uri="http://localhost:5000/callback",
            scopes=["openid", "offline_access"],
            authorize_url="https://login.xero.com/identity/connect/authorize",
            token_url="https://identity.xero.com/connect/token",
        )
        url = oauth.get_authorization_url(state=generate_state())
        # ... user consents, provider redirects back with ?code=...
        async with httpx.AsyncClient() as http:
            token_set = await oauth.exchange_code(http, code)

    The caller owns the httpx client so that every exchange is scoped to
    one request. The client secret travels only in the Basic auth header
    of token-endpoint calls.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        *,
        scopes: list[str],
        authorize_url: str,
        token_url: str,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.scopes = scopes
        self.authorize_url = authorize_url
        self.token_url = token_url

    def get_authorization_url(self, state: str = "") -> str:
        """Build the consent URL for the OAuth2 login flow.

        Args:
            state: CSRF protection state parameter.

        Returns:
            The full URL to redirect the user to for authorization.
        """
        params: dict[str, str] = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": " ".join(self.scopes),
        }

        if state:
            params["state"] = state

        return f"{self.authorize_url}?{urlencode(params)}"

    async def exchange_code(self, http: httpx.AsyncClient, code: str) -> TokenSet:
        """Exchange an authorization code for a token set.

        Codes are single-use: a second exchange of the same code is
        rejected by the provider and surfaces as AuthorizationError.
        """
        payload = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.redirect_uri,
        }
        data = await self._token_request(http, payload, action="authorization code exchange")
        logger.info("Exchanged authorization code for a token set")
        return TokenSet.from_oauth_response(data)

    async def refresh(self, http: httpx.AsyncClient, refresh_token: str) -> TokenSet:
        """Exchange a refresh token for a new token set."""
        payload = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        }
        data = await self._token_request(http, payload, action="token refresh")
        token_set = TokenSet.from_oauth_response(data)

        # Keep the old refresh token if the provider did not rotate it
        if not token_set.refresh_token:
            token_set.refresh_token = refresh_token

        logger.info("Refreshed access token (expires in %ds)", token_set.expires_in)
        return token_set

    async def _token_request(
        self, http: httpx.AsyncClient, payload: dict[str, str], *, action: str
    ) -> dict[str, Any]:
        try:
            resp = await http.post(
                self.token_url,
                data=payload,
                auth=(self.client_id, self.client_secret),
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            logger.warning("Token endpoint unreachable during %s: %s", action, type(e).__name__)
            raise AuthorizationError(f"{action.capitalize()} failed: token endpoint unreachable") from e

        if resp.status_code >= 400:
            reason = _oauth_error(resp)
            logger.warning("Token endpoint rejected %s (%d %s)", action, resp.status_code, reason)
            raise AuthorizationError(f"{action.capitalize()} rejected by provider: {reason}")

        try:
            data = resp.json()
        except ValueError as e:
            raise AuthorizationError(f"{action.capitalize()} returned an unreadable token response") from e
        if not isinstance(data, dict) or not data.get("access_token"):
            raise AuthorizationError(f"{action.capitalize()} returned no access token")
        return data


def _oauth_error(resp: httpx.Response) -> str:
    """Extract the RFC 6749 error code from a token-endpoint response."""
    try:
        body = resp.json()
    except ValueError:
        return f"HTTP {resp.status_code}"
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"HTTP {resp.status_code}"
