"""In-memory chat log store."""

from __future__ import annotations

import logging
from collections import deque

from botfleet.supervisor.models import ChatEvent

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100


class ChatLogStore:
    """Append-only per-session chat history with bounded retention.

    Logs are kept after a session is removed so its history stays readable.
    """

    def __init__(self, retention: int = 500):
        if retention <= 0:
            raise ValueError("retention must be positive")
        self._retention = retention
        self._logs: dict[str, deque[ChatEvent]] = {}

    def append(self, event: ChatEvent) -> None:
        log = self._logs.get(event.session_id)
        if log is None:
            log = self._logs[event.session_id] = deque(maxlen=self._retention)
        log.append(event)

    def recent(self, session_id: str, limit: int = DEFAULT_LIMIT) -> list[ChatEvent]:
        """Return up to ``limit`` most recent events, oldest first."""
        if limit <= 0:
            return []
        log = self._logs.get(session_id)
        if not log:
            return []
        return list(log)[-limit:]

    def count(self, session_id: str) -> int:
        return len(self._logs.get(session_id, ()))

    def clear(self, session_id: str | None = None) -> None:
        if session_id is None:
            self._logs.clear()
        else:
            self._logs.pop(session_id, None)
