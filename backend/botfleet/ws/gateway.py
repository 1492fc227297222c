"""WebSocket gateway endpoint.

Observers connect to ``/ws``. The first frame they receive is the
``initial_status`` snapshot; afterwards they get ``bot_status`` and
``chat_log`` frames and may send ``send_chat`` requests.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import uuid4

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from botfleet.logging_config import bind_context, clear_context
from botfleet.middleware.prometheus import record_ws_message
from botfleet.supervisor.supervisor import Supervisor, get_supervisor
from botfleet.utils.errors import ErrorCode
from botfleet.utils.json_utils import json_loads
from botfleet.ws.connection import ObserverConnection
from botfleet.ws.messages import UnknownMessageType, create_error_message, parse_client_message

logger = logging.getLogger(__name__)
router = APIRouter(tags=["WebSocket"])


async def handle_client_frame(
    conn: ObserverConnection,
    supervisor: Supervisor,
    raw: str,
) -> None:
    """Process one inbound text frame. Bad input gets an ``error`` reply."""
    try:
        data = json_loads(raw)
    except ValueError as e:
        logger.warning(f"Invalid JSON from {conn.connection_id}: {e}")
        await conn.send(create_error_message(ErrorCode.INVALID_MESSAGE.value, "Invalid JSON"))
        return

    try:
        command = parse_client_message(data)
    except UnknownMessageType as e:
        logger.warning(f"Unknown event from {conn.connection_id}: {e}")
        await conn.send(create_error_message(ErrorCode.UNKNOWN_EVENT.value, str(e)))
        return
    except ValueError as e:
        logger.warning(f"Invalid message format: {e}")
        await conn.send(create_error_message(ErrorCode.INVALID_MESSAGE.value, str(e)))
        return

    record_ws_message(data["type"])
    await supervisor.send_chat(command.session_id, command.content)


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    supervisor: Supervisor = Depends(get_supervisor),
):
    """Observer push channel."""
    await websocket.accept()

    connection_id = str(uuid4())
    conn = ObserverConnection(websocket=websocket, connection_id=connection_id)
    bind_context(observer_id=connection_id)

    supervisor.attach_observer(conn)
    logger.info(f"WebSocket connected: conn={connection_id}")

    try:
        while True:
            raw = await websocket.receive_text()
            await handle_client_frame(conn, supervisor, raw)

    except WebSocketDisconnect as e:
        logger.info(f"WebSocket disconnected: conn={connection_id}, code={e.code}")

    except RuntimeError as e:
        # Socket closed from our side (observer evicted)
        logger.info(f"WebSocket closed: conn={connection_id} ({e})")

    finally:
        conn.closed = True
        await supervisor.detach_observer(connection_id)
        clear_context()
        logger.info(f"WebSocket cleanup complete: conn={connection_id}")


@router.get("/ws/stats")
async def websocket_stats(supervisor: Supervisor = Depends(get_supervisor)) -> dict[str, Any]:
    """Observer and session counts (for monitoring)."""
    return {
        "observers": supervisor.broadcaster.observer_count,
        "sessions": supervisor.session_count,
        "status": "running" if supervisor.is_running else "stopped",
    }
