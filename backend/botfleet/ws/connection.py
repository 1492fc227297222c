"""Observer connection model."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from fastapi import WebSocket

from botfleet.utils.json_utils import json_dumps

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class ObserverConnection:
    """One dashboard attached to the push channel."""

    websocket: WebSocket
    connection_id: str
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    closed: bool = False

    async def send(self, message: dict[str, Any]) -> bool:
        """Send a frame. Returns False if the socket is gone."""
        if self.closed:
            return False
        try:
            await self.websocket.send_text(json_dumps(message))
            return True
        except Exception as e:
            logger.warning(f"Failed to send message to {self.connection_id}: {e}")
            return False

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if self.closed:
            return
        self.closed = True
        try:
            await self.websocket.close(code, reason)
        except Exception as e:
            logger.debug(f"Error closing connection {self.connection_id}: {e}")
