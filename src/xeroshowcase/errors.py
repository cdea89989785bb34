"""
Error taxonomy for the showcase app.

Every failure a route can hit is one of these. The web layer renders all
of them as an error page, so the messages must be safe to show: never put
a client secret, an authorization code or a token into one.
"""

from __future__ import annotations


class ShowcaseError(Exception):
    """Base class for all application errors."""

    status_code: int = 500


class ConfigurationError(ShowcaseError):
    """Client credentials or redirect URI are missing or invalid."""


class AuthorizationError(ShowcaseError):
    """The authorization-code exchange was rejected.

    Raised for a missing, expired or already consumed code, a state
    mismatch, or a provider-reported error on the redirect.
    """


class UnauthenticatedError(ShowcaseError):
    """A resource was requested without a usable token set in the session."""


class UpstreamApiError(ShowcaseError):
    """The accounting API rejected a call or could not be reached."""

    def __init__(
        self,
        message: str,
        *,
        endpoint: str = "",
        upstream_status: int | None = None,
        body: str = "",
    ) -> None:
        super().__init__(message)
        self.endpoint = endpoint
        self.upstream_status = upstream_status
        self.body = body
