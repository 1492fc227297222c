"""Background task helpers.

Every supervisor side effect (dial, reconnect timer, login, auto-reply,
observer writer) runs as its own task. These helpers make sure a failure in
one of them is logged and that teardown never waits on a lock holder.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine, Iterable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _log_task_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(
            f"[TASK] {task.get_name()} crashed: {type(exc).__name__}: {exc}",
            exc_info=exc,
        )


def create_safe_task(coro: Coroutine[Any, Any, T], *, name: str | None = None) -> asyncio.Task[T]:
    """Start ``coro`` as a task whose exception is logged rather than lost.

    Cancellation is expected during teardown and is not logged.
    """
    task = asyncio.create_task(coro, name=name)
    task.add_done_callback(_log_task_failure)
    return task


def cancel_tasks(tasks: Iterable[asyncio.Task | None]) -> int:
    """Request cancellation of every pending task without waiting.

    Nothing is awaited, so this is safe under a session lock.

    Returns:
        Number of tasks that were still pending
    """
    pending = [t for t in tasks if t is not None and not t.done()]
    for task in pending:
        task.cancel()
    return len(pending)


async def cancel_task_safe(task: asyncio.Task | None, timeout: float = 5.0) -> bool:
    """Cancel a task and wait (bounded) for it to unwind.

    Returns:
        False if the task was still running after ``timeout``
    """
    if task is None or task.done():
        return True

    task.cancel()
    done, _ = await asyncio.wait({task}, timeout=timeout)
    if not done:
        logger.warning(f"[TASK] {task.get_name()} ignored cancellation for {timeout}s")
        return False
    return True
