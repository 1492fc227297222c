"""Reconnect timers keyed by session id.

At most one timer exists per id. A timer that has fired still has to
``claim`` its slot, under the session lock, before it may dial. Any
cancel that got there first wins, so a cancelled timer never re-dials.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Awaitable, Callable

from botfleet.utils.async_utils import create_safe_task

logger = logging.getLogger(__name__)

ReconnectCallback = Callable[[str, int], Awaitable[None]]


class ReconnectScheduler:
    """Cancellable, per-id delayed re-dial."""

    def __init__(self, delay: float):
        self.delay = delay
        self._timers: dict[str, tuple[int, asyncio.Task]] = {}
        self._generations = itertools.count(1)

    @property
    def pending_count(self) -> int:
        return len(self._timers)

    def is_pending(self, session_id: str) -> bool:
        return session_id in self._timers

    def schedule(self, session_id: str, callback: ReconnectCallback) -> int:
        """Start (or restart) the timer for a session.

        Any earlier timer for the same id is cancelled first.

        Returns:
            Generation token the callback receives and must claim
        """
        self.cancel(session_id)

        generation = next(self._generations)
        task = create_safe_task(
            self._run(session_id, generation, callback),
            name=f"reconnect:{session_id}",
        )
        self._timers[session_id] = (generation, task)
        logger.debug(
            f"[RECONNECT] Timer #{generation} for {session_id} in {self.delay:g}s"
        )
        return generation

    def claim(self, session_id: str, generation: int) -> bool:
        """Consume a fired timer. False means it was cancelled or superseded."""
        entry = self._timers.get(session_id)
        if entry is None or entry[0] != generation:
            return False
        del self._timers[session_id]
        return True

    def cancel(self, session_id: str) -> bool:
        """Cancel the pending timer for a session, if any."""
        entry = self._timers.pop(session_id, None)
        if entry is None:
            return False

        generation, task = entry
        if task is not asyncio.current_task():
            task.cancel()
        logger.debug(f"[RECONNECT] Cancelled timer #{generation} for {session_id}")
        return True

    def cancel_all(self) -> int:
        count = 0
        for session_id in list(self._timers):
            if self.cancel(session_id):
                count += 1
        return count

    async def _run(
        self,
        session_id: str,
        generation: int,
        callback: ReconnectCallback,
    ) -> None:
        await asyncio.sleep(self.delay)
        await callback(session_id, generation)
