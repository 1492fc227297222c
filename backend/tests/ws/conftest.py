"""WebSocket test fixtures and utilities."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from botfleet.utils.json_utils import json_loads


class MockWebSocket:
    """Mock WebSocket for testing."""

    def __init__(self):
        self.accepted = False
        self.closed = False
        self.close_code: int | None = None
        self.close_reason: str | None = None
        self.sent_text: list[str] = []
        self.receive_queue: asyncio.Queue[str] = asyncio.Queue()

    @property
    def sent_messages(self) -> list[dict[str, Any]]:
        return [json_loads(text) for text in self.sent_text]

    async def accept(self) -> None:
        self.accepted = True

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if self.closed:
            raise RuntimeError("WebSocket already closed")
        self.closed = True
        self.close_code = code
        self.close_reason = reason

    async def send_text(self, data: str) -> None:
        if self.closed:
            raise RuntimeError("WebSocket closed")
        self.sent_text.append(data)

    async def receive_text(self) -> str:
        if self.closed:
            raise RuntimeError("WebSocket closed")
        return await self.receive_queue.get()


@pytest.fixture
def mock_websocket() -> MockWebSocket:
    return MockWebSocket()
