"""
Authorization session manager — drives the OAuth2 authorization-code flow
and keeps exactly one active token set per browser session.

Per session:

    Anonymous --begin_authorization--> PendingConsent
    PendingConsent --complete_authorization--> Authorized
    Authorized --logout / token expiry--> Anonymous

Authorization codes are single-use, so nothing here retries an exchange.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx
from jose import jwt
from jose.exceptions import JOSEError

from xeroshowcase.auth.oauth2 import OAuth2Client, TokenSet, generate_state
from xeroshowcase.auth.session import SessionData
from xeroshowcase.config import ShowcaseConfig
from xeroshowcase.connectors.xero_client import XeroApiClient
from xeroshowcase.errors import AuthorizationError, UnauthenticatedError

logger = logging.getLogger("xeroshowcase.auth.manager")


def decode_claims(token: str) -> dict[str, Any]:
    """Read a JWT's claims for display. The signature is not verified."""
    if not token:
        return {}
    try:
        return jwt.get_unverified_claims(token)
    except JOSEError:
        logger.debug("Token is not a decodable JWT; no claims shown")
        return {}


class AuthorizationSessionManager:
    """Owns the consent/callback handshake and session-bound tokens.

    Every upstream call gets its own ``httpx.AsyncClient``; pass
    ``transport`` to route them somewhere other than the network.
    """

    def __init__(
        self,
        config: ShowcaseConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._transport = transport

    def _oauth(self) -> OAuth2Client:
        xero = self.config.require_credentials()
        return OAuth2Client(
            client_id=xero.client_id,  # type: ignore[arg-type]
            client_secret=xero.client_secret,  # type: ignore[arg-type]
            redirect_uri=xero.redirect_uri,  # type: ignore[arg-type]
            scopes=xero.scopes,
            authorize_url=xero.authorize_url,
            token_url=xero.token_url,
        )

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.config.http_timeout, transport=self._transport)

    def _api_client(self, access_token: str, tenant_id: str | None) -> XeroApiClient:
        return XeroApiClient(
            access_token,
            tenant_id,
            api_url=self.config.xero.api_url,
            connections_url=self.config.xero.connections_url,
            http=self._http(),
        )

    # ------------------------------------------------------------------
    # Consent / callback
    # ------------------------------------------------------------------

    def begin_authorization(self, session: SessionData) -> str:
        """Return the consent URL for the session's current consent cycle.

        A state value is issued once per cycle and reused until a callback
        completes, so every consent link rendered in the meantime (other
        tabs, error pages) stays valid.
        """
        oauth = self._oauth()
        if session.pending_state is None:
            session.pending_state = generate_state()
            logger.debug("Issued new consent state for session")
        return oauth.get_authorization_url(state=session.pending_state)

    async def complete_authorization(
        self, session: SessionData, query: Mapping[str, str]
    ) -> SessionData:
        """Exchange the redirect's code and store the new token set.

        ``query`` is the provider's redirect query exactly as received.
        All local checks run before the token endpoint is called, and the
        session only changes once the exchange and tenant lookup succeed.
        """
        oauth = self._oauth()

        error = query.get("error")
        if error:
            description = query.get("error_description", "")
            raise AuthorizationError(
                f"Authorization was not granted: {error}" + (f" ({description})" if description else "")
            )

        code = query.get("code")
        if not code:
            raise AuthorizationError("Authorization code missing from redirect")

        if session.pending_state is not None and query.get("state") != session.pending_state:
            logger.warning("State mismatch on callback; rejecting")
            raise AuthorizationError("State mismatch - possible CSRF attack")

        async with self._http() as http:
            token_set = await oauth.exchange_code(http, code)

        async with self._api_client(token_set.access_token, None) as xero:
            tenants = await xero.get_connections()

        session.token_set = token_set
        session.tenants = tenants
        session.active_tenant = session.tenant_ids[0] if session.tenant_ids else None
        session.id_claims = decode_claims(token_set.id_token)
        session.access_claims = decode_claims(token_set.access_token)
        session.pending_state = None

        logger.info("Authorization complete (%d tenant(s))", len(tenants))
        return session

    # ------------------------------------------------------------------
    # Token use
    # ------------------------------------------------------------------

    def apply_token(self, session: SessionData) -> XeroApiClient:
        """Return an API client bound to the session's token set.

        Raises UnauthenticatedError without constructing anything when the
        session cannot make API calls.
        """
        token_set = session.token_set
        if token_set is None or not token_set.access_token:
            raise UnauthenticatedError("Not connected to Xero - authorize first")
        if token_set.is_expired:
            raise UnauthenticatedError("Access token expired - refresh the token or authorize again")
        if not session.active_tenant:
            raise UnauthenticatedError("No Xero organisation selected for this session")
        return self._api_client(token_set.access_token, session.active_tenant)

    async def refresh_token(self, session: SessionData) -> TokenSet:
        """Swap the session's refresh token for a new token set."""
        if session.token_set is None or not session.token_set.refresh_token:
            raise UnauthenticatedError("No refresh token in session - authorize first")

        oauth = self._oauth()
        async with self._http() as http:
            token_set = await oauth.refresh(http, session.token_set.refresh_token)

        session.token_set = token_set
        session.id_claims = decode_claims(token_set.id_token) or session.id_claims
        session.access_claims = decode_claims(token_set.access_token)
        return token_set

    def change_organisation(self, session: SessionData, tenant_id: str) -> None:
        if tenant_id not in session.tenant_ids:
            raise AuthorizationError("Organisation is not among the authorized tenants")
        session.active_tenant = tenant_id
        logger.info("Active organisation changed")

    def logout(self, session: SessionData) -> None:
        session.clear()
        logger.info("Session logged out")
