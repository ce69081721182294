from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from persona_chat.sessions.models import ConversationSession


class SessionNotFound(KeyError):
    """Raised when a turn or lookup targets a session that was never created."""

    def __init__(self, session_id: str) -> None:
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"Session not found: {self.session_id}"


class SessionStore(ABC):
    """Keyed storage for conversation sessions."""

    @abstractmethod
    async def get(self, session_id: str) -> Optional[ConversationSession]:
        """Return the session for ``session_id`` or None."""

    @abstractmethod
    async def save(self, session: ConversationSession) -> None:
        """Insert or replace a session under its identifier."""

    @abstractmethod
    async def delete(self, session_id: str) -> bool:
        """Drop a session; return True when one existed."""

    @abstractmethod
    async def session_ids(self) -> list[str]:
        """List identifiers of stored sessions."""


class InMemorySessionStore(SessionStore):
    """Process-local session store backed by a dict."""

    def __init__(self) -> None:
        self._sessions: dict[str, ConversationSession] = {}

    async def get(self, session_id: str) -> Optional[ConversationSession]:
        return self._sessions.get(session_id)

    async def save(self, session: ConversationSession) -> None:
        self._sessions[session.session_id] = session

    async def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    async def session_ids(self) -> list[str]:
        return list(self._sessions)
