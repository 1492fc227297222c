"""Shared test fixtures: a scriptable protocol layer and a fast supervisor."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import pytest
import pytest_asyncio

from botfleet.config import Settings
from botfleet.protocol.base import EventSink, ProtocolEvent, Spawned
from botfleet.supervisor.models import Credentials, Endpoint, SessionConfig
from botfleet.supervisor.supervisor import Supervisor


# =============================================================================
# Fake Protocol Layer
# =============================================================================


class FakeHandle:
    """In-memory stand-in for a live protocol connection."""

    def __init__(self, endpoint: Endpoint, credentials: Credentials, on_event: EventSink):
        self.endpoint = endpoint
        self.credentials = credentials
        self.on_event = on_event
        self.sent: list[str] = []
        self.quit_calls = 0
        self.send_error: Exception | None = None

    @property
    def closed(self) -> bool:
        return self.quit_calls > 0

    async def send_chat(self, text: str) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(text)

    async def quit(self) -> None:
        self.quit_calls += 1

    def emit(self, event: ProtocolEvent) -> None:
        """Push an event as the protocol client would."""
        self.on_event(event)


class FakeConnector:
    """Scriptable connector.

    - ``failures``: exceptions raised by the next dials, in order
    - ``gate``: when set, dials block until the event is set
    - ``auto_spawn``: emit ``Spawned`` before ``connect`` returns
    """

    def __init__(self):
        self.handles: list[FakeHandle] = []
        self.dial_count = 0
        self.failures: list[Exception] = []
        self.gate: asyncio.Event | None = None
        self.auto_spawn = True

    @property
    def last(self) -> FakeHandle:
        return self.handles[-1]

    @property
    def open_handles(self) -> list[FakeHandle]:
        return [h for h in self.handles if not h.closed]

    async def connect(
        self,
        endpoint: Endpoint,
        credentials: Credentials,
        on_event: EventSink,
    ) -> FakeHandle:
        self.dial_count += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.failures:
            raise self.failures.pop(0)

        handle = FakeHandle(endpoint, credentials, on_event)
        self.handles.append(handle)
        if self.auto_spawn:
            on_event(Spawned(health=20.0, food=20.0))
        return handle


class RecordingObserver:
    """Observer that keeps every frame it is sent."""

    def __init__(self, connection_id: str = "observer-1"):
        self.connection_id = connection_id
        self.frames: list[dict[str, Any]] = []
        self.fail_sends = False
        self.gate: asyncio.Event | None = None
        self.close_code: int | None = None
        self.close_reason: str | None = None

    async def send(self, message: dict[str, Any]) -> bool:
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_sends:
            return False
        self.frames.append(message)
        return True

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.close_code = code
        self.close_reason = reason

    def of_type(self, frame_type: str) -> list[dict[str, Any]]:
        return [f for f in self.frames if f["type"] == frame_type]

    def statuses(self, bot_id: str) -> list[str]:
        """Status sequence announced for one bot, consecutive repeats collapsed."""
        result: list[str] = []
        for frame in self.of_type("bot_status"):
            if frame["bot"]["id"] != bot_id:
                continue
            status = frame["bot"]["status"]
            if not result or result[-1] != status:
                result.append(status)
        return result

    def log_lines(self, bot_id: str) -> list[str]:
        return [f["log"]["content"] for f in self.of_type("chat_log") if f["log"]["botId"] == bot_id]


# =============================================================================
# Fixtures
# =============================================================================


RECONNECT_DELAY = 0.05


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with delays short enough for tests."""
    return Settings(
        app_env="test",
        log_level="WARNING",
        reconnect_delay_seconds=RECONNECT_DELAY,
        login_delay_seconds=0.01,
        responder_delay_seconds=0.01,
        observer_queue_size=64,
        session_event_queue_size=64,
    )


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def make_config() -> Callable[..., SessionConfig]:
    def _make(
        session_id: str = "bot-1",
        *,
        username: str = "Steve",
        password: str | None = None,
        host: str = "mc.example.net",
        port: int = 25565,
        auto_reconnect: bool = True,
    ) -> SessionConfig:
        return SessionConfig(
            id=session_id,
            credentials=Credentials(username=username, password=password),
            endpoint=Endpoint(host=host, port=port),
            display_name=f"{username} ({session_id})",
            auto_reconnect=auto_reconnect,
        )

    return _make


@pytest_asyncio.fixture
async def supervisor(connector: FakeConnector, fast_settings: Settings):
    sup = Supervisor(connector, settings=fast_settings)
    await sup.start()
    yield sup
    await sup.stop()


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def observer_factory() -> Callable[[str], RecordingObserver]:
    return RecordingObserver


@pytest.fixture
def eventually() -> Callable[..., Awaitable[None]]:
    """Wait until a predicate holds, failing the test after ``timeout``."""

    async def _wait(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(0.005)

    return _wait
