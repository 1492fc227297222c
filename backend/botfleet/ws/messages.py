"""Builders and parsers for push channel frames.

Frames are flat JSON objects keyed by ``type``, matching what the
dashboard already consumes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from botfleet.supervisor.models import ChatEvent, SessionState
from botfleet.ws.events import CLIENT_TO_SERVER_EVENTS, EventType


def initial_status_message(states: Iterable[SessionState]) -> dict[str, Any]:
    return {
        "type": EventType.INITIAL_STATUS.value,
        "bots": [state.to_dict() for state in states],
    }


def bot_status_message(state: SessionState) -> dict[str, Any]:
    return {"type": EventType.BOT_STATUS.value, "bot": state.to_dict()}


def chat_log_message(event: ChatEvent) -> dict[str, Any]:
    return {"type": EventType.CHAT_LOG.value, "log": event.to_dict()}


def create_error_message(code: str, message: str) -> dict[str, Any]:
    """Reply to a bad inbound frame."""
    return {"type": EventType.ERROR.value, "code": code, "message": message}


class UnknownMessageType(ValueError):
    """Inbound frame whose type the server does not accept."""


@dataclass(frozen=True)
class SendChatCommand:
    """Parsed ``send_chat`` frame."""

    session_id: str
    content: str


def parse_client_message(data: Any) -> SendChatCommand:
    """Validate an inbound frame.

    Accepts ``sessionId`` or the dashboard's legacy ``botId`` key.

    Raises:
        UnknownMessageType: If the type is not one observers may send
        ValueError: If the frame is malformed
    """
    if not isinstance(data, dict):
        raise ValueError("Message must be a JSON object")

    raw_type = data.get("type")
    try:
        event_type = EventType(raw_type)
    except ValueError:
        raise UnknownMessageType(f"Unknown message type: {raw_type}") from None

    if event_type not in CLIENT_TO_SERVER_EVENTS:
        raise UnknownMessageType(f"Unsupported message type: {raw_type}")

    session_id = data.get("sessionId") or data.get("botId")
    content = data.get("content")
    if not isinstance(session_id, str) or not session_id:
        raise ValueError("send_chat requires sessionId")
    if not isinstance(content, str) or not content.strip():
        raise ValueError("send_chat requires non-empty content")

    return SendChatCommand(session_id=session_id, content=content)
