"""
Showcase authentication and session management.

Provides the OAuth2 authorization-code flow against Xero and the
server-side session slot holding the resulting token set and tenants.
"""

from xeroshowcase.auth.manager import AuthorizationSessionManager
from xeroshowcase.auth.oauth2 import OAuth2Client, TokenSet, generate_state
from xeroshowcase.auth.session import SessionData, SessionStore

__all__ = [
    "AuthorizationSessionManager",
    "OAuth2Client",
    "SessionData",
    "SessionStore",
    "TokenSet",
    "generate_state",
]
