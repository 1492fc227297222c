"""Push channel message types."""

from enum import Enum


class EventType(str, Enum):
    """Message ``type`` values on the observer WebSocket."""

    # Server -> observer
    INITIAL_STATUS = "initial_status"
    BOT_STATUS = "bot_status"
    CHAT_LOG = "chat_log"
    ERROR = "error"

    # Observer -> server
    SEND_CHAT = "send_chat"


CLIENT_TO_SERVER_EVENTS = frozenset({EventType.SEND_CHAT})

SERVER_TO_CLIENT_EVENTS = frozenset({
    EventType.INITIAL_STATUS,
    EventType.BOT_STATUS,
    EventType.CHAT_LOG,
    EventType.ERROR,
})
