"""Protocol-layer interfaces consumed by the supervisor."""

from botfleet.protocol.base import (
    ChatReceived,
    Ended,
    EventSink,
    HealthChanged,
    Kicked,
    Moved,
    ProtocolConnector,
    ProtocolEvent,
    ProtocolFailure,
    SessionHandle,
    Spawned,
    WhisperReceived,
)
from botfleet.protocol.loader import UnavailableConnector, load_connector

__all__ = [
    "ChatReceived",
    "Ended",
    "EventSink",
    "HealthChanged",
    "Kicked",
    "Moved",
    "ProtocolConnector",
    "ProtocolEvent",
    "ProtocolFailure",
    "SessionHandle",
    "Spawned",
    "WhisperReceived",
    "UnavailableConnector",
    "load_connector",
]
