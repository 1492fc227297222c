"""Keyed store of every tracked session.

The registry lock only guards structural insert/remove. Per-session
mutations are serialized by each session's own lock, so operations on
different bots never wait on each other.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterator

from botfleet.supervisor.session import Session

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Ordered map of session id -> Session (registration order)."""

    def __init__(self):
        self._sessions: dict[str, Session] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __iter__(self) -> Iterator[Session]:
        return iter(list(self._sessions.values()))

    def get(self, session_id: str) -> Session | None:
        """Lock-free lookup; callers re-check ``session.removed`` under its lock."""
        return self._sessions.get(session_id)

    async def get_or_create(
        self,
        session_id: str,
        factory: Callable[[], Session],
    ) -> tuple[Session, bool]:
        """Return the session for an id, creating it if absent.

        Returns:
            (session, created)
        """
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is not None and not session.removed:
                return session, False

            session = factory()
            self._sessions[session_id] = session
            logger.debug(f"[REGISTRY] Registered {session_id} (total: {len(self._sessions)})")
            return session, True

    async def remove(self, session: Session) -> bool:
        """Remove a session if it is still the registered one for its id."""
        async with self._lock:
            if self._sessions.get(session.id) is not session:
                return False
            del self._sessions[session.id]
            logger.debug(f"[REGISTRY] Removed {session.id} (total: {len(self._sessions)})")
            return True

    async def clear(self) -> int:
        async with self._lock:
            count = len(self._sessions)
            self._sessions.clear()
            return count
