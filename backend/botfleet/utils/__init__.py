"""Utility modules."""

from botfleet.utils.async_utils import cancel_task_safe, cancel_tasks, create_safe_task
from botfleet.utils.errors import ErrorCode, SupervisorError

__all__ = [
    "cancel_task_safe",
    "cancel_tasks",
    "create_safe_task",
    "ErrorCode",
    "SupervisorError",
]
