"""
WebShield - Session Identity
=============================
Maps opaque session tokens onto user ids.
"""

import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional

import structlog

from webshield.db.records import utcnow
from webshield.db.storage import Clock

logger = structlog.get_logger(__name__)


class IdentityProvider(ABC):
    """Issues, resolves and revokes session tokens."""

    @abstractmethod
    async def create_session(self, user_id: int) -> str:
        ...

    @abstractmethod
    async def resolve(self, token: Optional[str]) -> Optional[int]:
        """User id for a live token, otherwise None."""

    @abstractmethod
    async def destroy(self, token: Optional[str]) -> None:
        ...


@dataclass
class _Session:
    user_id: int
    expires_at: datetime


class SessionIdentityProvider(IdentityProvider):
    """Server-side sessions held in process memory with a fixed lifetime."""

    def __init__(self, ttl: timedelta = timedelta(hours=24), clock: Optional[Clock] = None):
        self.ttl = ttl
        self.clock = clock or utcnow
        self._sessions: Dict[str, _Session] = {}

    async def create_session(self, user_id: int) -> str:
        self._purge_expired()
        token = secrets.token_urlsafe(32)
        self._sessions[token] = _Session(user_id=user_id, expires_at=self.clock() + self.ttl)
        logger.debug("session_created", user_id=user_id)
        return token

    async def resolve(self, token: Optional[str]) -> Optional[int]:
        if not token:
            return None
        session = self._sessions.get(token)
        if session is None:
            return None
        if session.expires_at <= self.clock():
            self._sessions.pop(token, None)
            return None
        return session.user_id

    async def destroy(self, token: Optional[str]) -> None:
        if token and self._sessions.pop(token, None) is not None:
            logger.debug("session_destroyed")

    def _purge_expired(self) -> None:
        now = self.clock()
        for token in [t for t, s in self._sessions.items() if s.expires_at <= now]:
            del self._sessions[token]
