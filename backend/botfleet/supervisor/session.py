"""Per-session runtime record.

Holds the session's config and state, its live handle (if any), and the
background tasks that act on it. Every field is mutated only while
``lock`` is held, except the event queue, which the protocol layer feeds
through ``offer``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from botfleet.protocol.base import LIFECYCLE_EVENTS, TERMINAL_EVENTS, ProtocolEvent, SessionHandle
from botfleet.supervisor.models import SessionConfig, SessionState
from botfleet.utils.async_utils import cancel_tasks, create_safe_task

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Session:
    """One supervised bot identity."""

    config: SessionConfig
    state: SessionState
    events: asyncio.Queue
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    handle: SessionHandle | None = None
    # Bumped whenever a connection is started or torn down. Events carry
    # the epoch of the connection that produced them.
    epoch: int = 0
    removed: bool = False

    pump_task: asyncio.Task | None = None
    dial_task: asyncio.Task | None = None
    login_task: asyncio.Task | None = None
    reply_tasks: set[asyncio.Task] = field(default_factory=set)
    _overflow_tasks: set[asyncio.Task] = field(default_factory=set)

    dropped_events: int = 0

    @classmethod
    def create(cls, config: SessionConfig, queue_size: int) -> Session:
        return cls(
            config=config,
            state=SessionState.for_config(config),
            events=asyncio.Queue(maxsize=queue_size),
        )

    @property
    def id(self) -> str:
        return self.config.id

    @property
    def dialing(self) -> bool:
        return self.dial_task is not None and not self.dial_task.done()

    @property
    def is_live(self) -> bool:
        """A connection exists or is being established."""
        return self.handle is not None or self.dialing

    def next_epoch(self) -> int:
        self.epoch += 1
        return self.epoch

    def offer(self, epoch: int, event: ProtocolEvent) -> bool:
        """Queue a protocol event without blocking the caller.

        When the queue is full, vitals, position and chat events are
        dropped and counted. Lifecycle events (spawn, kick, failure, end)
        are parked in a task that waits for room, so a status transition
        is never lost. While anything is parked, later events queue behind
        it. A connection emits few lifecycle events, which bounds the
        parked backlog.

        Returns:
            False if the event was dropped
        """
        if not self._overflow_tasks:
            try:
                self.events.put_nowait((epoch, event))
                return True
            except asyncio.QueueFull:
                pass

        if not isinstance(event, LIFECYCLE_EVENTS):
            self.dropped_events += 1
            if self.dropped_events == 1 or self.dropped_events % 100 == 0:
                logger.warning(
                    f"[SESSION] {self.id} event queue full, "
                    f"dropped {self.dropped_events} events"
                )
            return False

        if isinstance(event, TERMINAL_EVENTS):
            logger.warning(f"[SESSION] {self.id} event queue full, deferring {type(event).__name__}")

        task = create_safe_task(
            self.events.put((epoch, event)),
            name=f"session-overflow:{self.id}",
        )
        self._overflow_tasks.add(task)
        task.add_done_callback(self._overflow_tasks.discard)
        return True

    def track_reply(self, task: asyncio.Task) -> None:
        self.reply_tasks.add(task)
        task.add_done_callback(self.reply_tasks.discard)

    def cancel_side_tasks(self) -> int:
        """Cancel login and auto-responder tasks tied to the current connection."""
        tasks = [self.login_task, *self.reply_tasks]
        self.login_task = None
        return cancel_tasks(tasks)

    def detach_handle(self) -> SessionHandle | None:
        """Forget the current connection (or pending dial) and bump the epoch.

        Returns the previous handle so the caller can quit it.
        """
        cancel_tasks([self.dial_task])
        self.dial_task = None
        self.cancel_side_tasks()

        handle, self.handle = self.handle, None
        self.next_epoch()
        return handle

    def cancel_all_tasks(self) -> int:
        tasks = [self.pump_task, self.dial_task, *self._overflow_tasks]
        self.pump_task = None
        self.dial_task = None
        return cancel_tasks(tasks) + self.cancel_side_tasks()
