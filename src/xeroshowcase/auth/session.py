"""
Server-side session storage.

The browser only carries an opaque session id (in a signed cookie); the
token set and tenant list stay in process memory and are lost on restart.
"""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass, field
from typing import Any

from xeroshowcase.auth.oauth2 import TokenSet

logger = logging.getLogger("xeroshowcase.auth.session")


@dataclass
class SessionData:
    """Authorization state of one browser session."""

    session_id: str
    token_set: TokenSet | None = None
    tenants: list[dict[str, Any]] = field(default_factory=list)
    active_tenant: str | None = None
    pending_state: str | None = None
    id_claims: dict[str, Any] = field(default_factory=dict)
    access_claims: dict[str, Any] = field(default_factory=dict)
    last_seen: float = field(default_factory=time.time)

    @property
    def is_authorized(self) -> bool:
        return self.token_set is not None and bool(self.token_set.access_token)

    @property
    def tenant_ids(self) -> list[str]:
        return [t["tenantId"] for t in self.tenants if t.get("tenantId")]

    def clear(self) -> None:
        """Drop every credential; the session becomes anonymous."""
        self.token_set = None
        self.tenants = []
        self.active_tenant = None
        self.id_claims = {}
        self.access_claims = {}

    def authentication_data(self) -> dict[str, Any]:
        """Values the templates show about the signed-in user."""
        return {
            "id_claims": self.id_claims,
            "access_claims": self.access_claims,
            "tenants": self.tenants,
            "active_tenant": self.active_tenant,
        }


class SessionStore:
    """In-memory session store keyed by opaque session id.

    A session idle for longer than ``max_age`` seconds is dropped, matching
    the lifetime of the signed cookie that carries its id.
    """

    def __init__(self, max_age: int = 14 * 24 * 60 * 60) -> None:
        self.max_age = max_age
        self._sessions: dict[str, SessionData] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self) -> SessionData:
        self.evict_expired()
        session = SessionData(session_id=secrets.token_urlsafe(24))
        self._sessions[session.session_id] = session
        logger.debug("Created session (%d active)", len(self._sessions))
        return session

    def get(self, session_id: str | None) -> SessionData | None:
        if not session_id:
            return None
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if self._is_stale(session):
            self.delete(session_id)
            return None
        session.last_seen = time.time()
        return session

    def get_or_create(self, session_id: str | None) -> SessionData:
        return self.get(session_id) or self.create()

    def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def evict_expired(self) -> int:
        """Drop every session idle for longer than ``max_age``."""
        stale = [sid for sid, session in self._sessions.items() if self._is_stale(session)]
        for sid in stale:
            self.delete(sid)
        if stale:
            logger.debug("Evicted %d idle session(s)", len(stale))
        return len(stale)

    def _is_stale(self, session: SessionData) -> bool:
        return time.time() - session.last_seen > self.max_age
