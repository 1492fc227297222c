"""Protocol-layer seam.

The wire protocol client is an external collaborator. The supervisor only
needs a connector that dials and returns a handle, plus a stream of typed
events pushed through the ``on_event`` callback it passes in.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol, Union, runtime_checkable

from botfleet.supervisor.models import Credentials, Endpoint, Position


@dataclass(frozen=True)
class Spawned:
    """The bot entered the world. Vitals/position may be unknown yet."""

    health: float | None = None
    food: float | None = None
    position: Position | None = None


@dataclass(frozen=True)
class HealthChanged:
    health: float
    food: float


@dataclass(frozen=True)
class Moved:
    position: Position


@dataclass(frozen=True)
class ChatReceived:
    sender: str
    text: str


@dataclass(frozen=True)
class WhisperReceived:
    sender: str
    text: str


@dataclass(frozen=True)
class Kicked:
    reason: str


@dataclass(frozen=True)
class ProtocolFailure:
    """In-session error reported by the protocol client."""

    message: str


@dataclass(frozen=True)
class Ended:
    reason: str | None = None


ProtocolEvent = Union[
    Spawned,
    HealthChanged,
    Moved,
    ChatReceived,
    WhisperReceived,
    Kicked,
    ProtocolFailure,
    Ended,
]

# Events after which the connection is gone
TERMINAL_EVENTS = (Kicked, ProtocolFailure, Ended)

# Events that change session status; never dropped under pressure.
# Everything else (vitals, position, chat) may be.
LIFECYCLE_EVENTS = (Spawned, *TERMINAL_EVENTS)

EventSink = Callable[[ProtocolEvent], None]


@runtime_checkable
class SessionHandle(Protocol):
    """A live protocol connection."""

    async def send_chat(self, text: str) -> None:
        ...

    async def quit(self) -> None:
        ...


@runtime_checkable
class ProtocolConnector(Protocol):
    """Dials the remote server.

    ``connect`` raises ``TransportError`` when the dial fails. After it
    returns, events for this connection are pushed to ``on_event``;
    ``on_event`` never blocks.
    """

    async def connect(
        self,
        endpoint: Endpoint,
        credentials: Credentials,
        on_event: EventSink,
    ) -> SessionHandle:
        ...
