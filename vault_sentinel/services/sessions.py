"""In-memory chat session store."""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from ..models import ChatSession, ChatTurn

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SessionStore:
    """Sessions keyed by id. Turns are kept in append order; sessions never merge."""

    def __init__(self) -> None:
        self._sessions: dict[str, ChatSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def get(self, session_id: str) -> ChatSession | None:
        return self._sessions.get(session_id)

    def get_or_create(self, session_id: str) -> ChatSession:
        session = self._sessions.get(session_id)
        if session is None:
            now = _now_iso()
            session = ChatSession(id=session_id, created_at=now, updated_at=now)
            self._sessions[session_id] = session
            logger.debug("Created session %s", session_id)
        return session

    def append(self, session_id: str, role: str, content: str) -> ChatSession:
        session = self.get_or_create(session_id)
        session.history.append(ChatTurn(role=role, content=content))
        session.updated_at = _now_iso()
        return session

    def reset(self, session_id: str) -> ChatSession:
        """Clear history but keep the id; an unknown id is created empty."""
        session = self.get_or_create(session_id)
        session.history.clear()
        session.updated_at = _now_iso()
        logger.info("Session %s reset", session_id)
        return session
