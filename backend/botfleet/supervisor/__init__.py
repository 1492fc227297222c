"""Session supervision core.

Only the data model is re-exported here. Import the supervisor itself from
``botfleet.supervisor.supervisor``.
"""

from botfleet.supervisor.models import (
    ChatEvent,
    ChatKind,
    Credentials,
    Endpoint,
    Position,
    SessionConfig,
    SessionState,
    SessionStatus,
    Vitals,
)

__all__ = [
    "ChatEvent",
    "ChatKind",
    "Credentials",
    "Endpoint",
    "Position",
    "SessionConfig",
    "SessionState",
    "SessionStatus",
    "Vitals",
]
