"""Session and chat data model.

SessionConfig is what the operator asked for, SessionState is what the
supervisor currently knows, and ChatEvent is an append-only log record.
"""

from __future__ import annotations

import math
import time
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

# Vitals reported before the protocol layer tells us otherwise
MAX_HEALTH = 20.0
MAX_FOOD = 20.0


class SessionStatus(str, Enum):
    """Lifecycle status of a supervised session."""

    CONNECTING = "connecting"
    ONLINE = "online"
    RECONNECTING = "reconnecting"
    OFFLINE = "offline"
    ERROR = "error"


class ChatKind(str, Enum):
    """Kind of a chat log record."""

    CHAT = "chat"
    WHISPER = "whisper"
    SYSTEM = "system"


@dataclass(frozen=True)
class Endpoint:
    """Remote game server address."""

    host: str
    port: int = 25565

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class Credentials:
    """Account identity used to join the server.

    ``password`` is the server-side /login password, not an account secret.
    """

    username: str
    password: str | None = field(default=None, repr=False)


@dataclass(frozen=True)
class SessionConfig:
    """Everything needed to (re)dial one identity.

    Immutable; the supervisor flips ``auto_reconnect`` by replacing the config.
    """

    id: str
    credentials: Credentials
    endpoint: Endpoint
    display_name: str
    auto_reconnect: bool = True

    def with_auto_reconnect(self, enabled: bool) -> SessionConfig:
        return replace(self, auto_reconnect=enabled)


@dataclass(frozen=True)
class Vitals:
    health: float = MAX_HEALTH
    food: float = MAX_FOOD


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class Position:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def rounded(self) -> dict[str, int]:
        """Whole-block coordinates, halves rounded up (2.5 -> 3, -2.5 -> -2)."""
        return {"x": _round_half_up(self.x), "y": _round_half_up(self.y), "z": _round_half_up(self.z)}


@dataclass
class SessionState:
    """Current known state of one session.

    Only the supervisor mutates it, and only while holding the session lock.
    Callers outside the supervisor receive copies.
    """

    id: str
    display_name: str
    endpoint: Endpoint
    status: SessionStatus = SessionStatus.CONNECTING
    vitals: Vitals = field(default_factory=Vitals)
    position: Position = field(default_factory=Position)
    last_error: str | None = None
    auto_reconnect: bool = True

    @classmethod
    def for_config(cls, config: SessionConfig) -> SessionState:
        return cls(
            id=config.id,
            display_name=config.display_name,
            endpoint=config.endpoint,
            auto_reconnect=config.auto_reconnect,
        )

    def copy(self) -> SessionState:
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        """Wire shape used by both the push channel and the REST API."""
        result: dict[str, Any] = {
            "id": self.id,
            "nickname": self.display_name,
            "serverIp": self.endpoint.host,
            "port": self.endpoint.port,
            "status": self.status.value,
            "health": self.vitals.health,
            "food": self.vitals.food,
            "position": self.position.rounded(),
            "autoReconnect": self.auto_reconnect,
        }
        if self.last_error:
            result["error"] = self.last_error
        return result


@dataclass(frozen=True)
class ChatEvent:
    """Immutable chat log record."""

    session_id: str
    sender: str
    content: str
    kind: ChatKind
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "botId": self.session_id,
            "sender": self.sender,
            "content": self.content,
            "timestamp": self.timestamp,
            "type": self.kind.value,
        }
