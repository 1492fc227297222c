"""Fan-out of session updates to observers.

``publish`` is synchronous: it drops the frame into every observer's
outbox in call order, and one writer task per observer drains it.
An outbox may pass ``queue_size`` only while its writer is ready to run;
an observer whose writer is stuck in ``send`` with a full outbox is
evicted, so it never delays the supervisor or other observers.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from botfleet.middleware.prometheus import record_observer, record_observer_evicted
from botfleet.utils.async_utils import cancel_task_safe, cancel_tasks, create_safe_task

logger = logging.getLogger(__name__)

# "Try again later": the observer fell behind and must reattach
CLOSE_CODE_LAGGING = 1013


class Observer(Protocol):
    connection_id: str

    async def send(self, message: dict[str, Any]) -> bool:
        ...

    async def close(self, code: int = 1000, reason: str = "") -> None:
        ...


@dataclass(eq=False)
class _Outbox:
    observer: Observer
    queue: asyncio.Queue
    task: asyncio.Task | None = None
    # True while the writer is awaiting observer.send
    sending: bool = False


class EventBroadcaster:
    """Delivers status and chat frames to every attached observer."""

    def __init__(self, queue_size: int = 256):
        self._queue_size = queue_size
        self._outboxes: dict[str, _Outbox] = {}
        self._closers: set[asyncio.Task] = set()

    @property
    def observer_count(self) -> int:
        return len(self._outboxes)

    def is_attached(self, connection_id: str) -> bool:
        return connection_id in self._outboxes

    # =========================================================================
    # Observer Lifecycle
    # =========================================================================

    def attach(self, observer: Observer, initial: dict[str, Any] | None = None) -> None:
        """Register an observer.

        ``initial`` is queued before the observer becomes visible to
        ``publish``, so it is always the first frame the observer sees.

        Raises:
            ValueError: If the connection id is already attached
        """
        connection_id = observer.connection_id
        if connection_id in self._outboxes:
            raise ValueError(f"Observer already attached: {connection_id}")

        outbox = _Outbox(observer=observer, queue=asyncio.Queue())
        if initial is not None:
            outbox.queue.put_nowait(initial)

        outbox.task = create_safe_task(self._drain(outbox), name=f"observer:{connection_id}")
        self._outboxes[connection_id] = outbox
        record_observer(True)

        logger.info(f"[FANOUT] Observer attached: {connection_id} (total: {len(self._outboxes)})")

    async def detach(self, connection_id: str) -> bool:
        """Remove an observer and stop its writer. Unknown ids are ignored."""
        outbox = self._forget(connection_id)
        if outbox is None:
            return False

        await cancel_task_safe(outbox.task)
        logger.info(f"[FANOUT] Observer detached: {connection_id} (total: {len(self._outboxes)})")
        return True

    async def stop(self) -> None:
        """Drop every observer and wait for writers and pending closes."""
        outboxes = list(self._outboxes.values())
        for outbox in outboxes:
            self._forget(outbox.observer.connection_id)

        cancel_tasks(outbox.task for outbox in outboxes)
        pending = [o.task for o in outboxes if o.task is not None] + list(self._closers)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        logger.info(f"[FANOUT] Stopped ({len(outboxes)} observers dropped)")

    # =========================================================================
    # Publishing
    # =========================================================================

    def publish(self, message: dict[str, Any]) -> int:
        """Queue a frame for every observer.

        A full outbox only counts against its observer when the writer is
        blocked in ``send``. A writer that is merely waiting for its turn on
        the loop keeps accepting frames and catches up once it runs.

        Returns:
            Number of observers the frame was queued for
        """
        delivered = 0
        for outbox in list(self._outboxes.values()):
            if outbox.sending and outbox.queue.qsize() >= self._queue_size:
                self._evict(outbox)
                continue
            outbox.queue.put_nowait(message)
            delivered += 1
        return delivered

    # =========================================================================
    # Internals
    # =========================================================================

    def _forget(self, connection_id: str, outbox: _Outbox | None = None) -> _Outbox | None:
        current = self._outboxes.get(connection_id)
        if current is None or (outbox is not None and current is not outbox):
            return None
        del self._outboxes[connection_id]
        record_observer(False)
        return current

    def _evict(self, outbox: _Outbox) -> None:
        connection_id = outbox.observer.connection_id
        if self._forget(connection_id, outbox) is None:
            return

        cancel_tasks([outbox.task])
        record_observer_evicted()
        logger.warning(
            f"[FANOUT] Observer {connection_id} stalled with "
            f"{outbox.queue.qsize()} frames queued, evicting"
        )

        closer = create_safe_task(
            outbox.observer.close(CLOSE_CODE_LAGGING, "Observer lagging, reattach"),
            name=f"observer-close:{connection_id}",
        )
        self._closers.add(closer)
        closer.add_done_callback(self._closers.discard)

    async def _drain(self, outbox: _Outbox) -> None:
        observer = outbox.observer
        while True:
            message = await outbox.queue.get()
            outbox.sending = True
            try:
                ok = await observer.send(message)
            finally:
                outbox.sending = False
            if not ok:
                if self._forget(observer.connection_id, outbox) is not None:
                    logger.info(f"[FANOUT] Send to {observer.connection_id} failed, detached")
                return
