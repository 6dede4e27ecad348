"""
Session store access.

Sessions are created by the login flow, which lives outside this service.
The gateway only looks a session up by the id in the session cookie and
reads three fields from it: the authenticated flag, the tenant and the
display name.

The in-memory store is used for local development and tests, and as the
reference for what a store backed by a shared database has to provide.
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionData:
    """The slice of server-side session state the gateway reads."""
    authenticated: bool = False
    tenant_id: Optional[str] = None
    name: Optional[str] = None


class SessionStore(Protocol):
    """Protocol for session lookups."""

    async def get(self, session_id: str) -> Optional[SessionData]:
        """Return the session, or None if it does not exist or has ended."""
        ...


class InMemorySessionStore:
    """Sessions held in a dictionary, keyed by random session id."""

    def __init__(self) -> None:
        self._sessions: dict[str, SessionData] = {}
        logger.info("Initialized in-memory session store")

    async def get(self, session_id: str) -> Optional[SessionData]:
        return self._sessions.get(session_id)

    def create(
        self,
        tenant_id: Optional[str] = None,
        name: Optional[str] = None,
        authenticated: bool = True,
    ) -> str:
        """Start a session and return its id."""
        session_id = secrets.token_urlsafe(32)
        self._sessions[session_id] = SessionData(
            authenticated=authenticated,
            tenant_id=tenant_id,
            name=name,
        )
        logger.debug("Created session", extra={"tenant_id": tenant_id})
        return session_id

    def destroy(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None
