"""Session registry and session record tests."""

import asyncio

import pytest

from botfleet.protocol.base import (
    ChatReceived,
    Ended,
    HealthChanged,
    Moved,
    Spawned,
    WhisperReceived,
)
from botfleet.supervisor.models import Position, SessionStatus
from botfleet.supervisor.registry import SessionRegistry
from botfleet.supervisor.session import Session


class TestSessionRegistry:

    @pytest.mark.asyncio
    async def test_get_or_create_is_idempotent(self, make_config):
        registry = SessionRegistry()
        config = make_config()

        first, created_first = await registry.get_or_create("bot-1", lambda: Session.create(config, 8))
        second, created_second = await registry.get_or_create("bot-1", lambda: Session.create(config, 8))

        assert created_first is True
        assert created_second is False
        assert first is second
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_concurrent_get_or_create_builds_once(self, make_config):
        registry = SessionRegistry()
        built = []

        def factory():
            session = Session.create(make_config(), 8)
            built.append(session)
            return session

        results = await asyncio.gather(*(registry.get_or_create("bot-1", factory) for _ in range(10)))

        assert len(built) == 1
        assert sum(created for _, created in results) == 1

    @pytest.mark.asyncio
    async def test_removed_session_is_replaced(self, make_config):
        registry = SessionRegistry()
        old, _ = await registry.get_or_create("bot-1", lambda: Session.create(make_config(), 8))
        old.removed = True

        new, created = await registry.get_or_create("bot-1", lambda: Session.create(make_config(), 8))

        assert created is True
        assert new is not old

    @pytest.mark.asyncio
    async def test_remove_only_current_instance(self, make_config):
        registry = SessionRegistry()
        session, _ = await registry.get_or_create("bot-1", lambda: Session.create(make_config(), 8))
        stranger = Session.create(make_config(), 8)

        assert await registry.remove(stranger) is False
        assert await registry.remove(session) is True
        assert "bot-1" not in registry

    @pytest.mark.asyncio
    async def test_iteration_keeps_registration_order(self, make_config):
        registry = SessionRegistry()
        for sid in ("z", "m", "a"):
            await registry.get_or_create(sid, lambda sid=sid: Session.create(make_config(sid), 8))

        assert [s.id for s in registry] == ["z", "m", "a"]


class TestSessionQueue:
    """The per-session event queue never blocks the protocol layer."""

    @pytest.mark.asyncio
    async def test_new_session_starts_connecting(self, make_config):
        session = Session.create(make_config(), 8)

        assert session.state.status == SessionStatus.CONNECTING
        assert session.is_live is False

    @pytest.mark.asyncio
    async def test_refresh_events_dropped_on_overflow(self, make_config):
        session = Session.create(make_config(), 2)

        assert session.offer(1, HealthChanged(health=1, food=1)) is True
        assert session.offer(1, Moved(position=Position())) is True
        assert session.offer(1, HealthChanged(health=2, food=2)) is False

        assert session.dropped_events == 1
        assert session.events.qsize() == 2

    @pytest.mark.asyncio
    async def test_terminal_event_survives_overflow_in_order(self, make_config):
        session = Session.create(make_config(), 1)
        session.offer(1, HealthChanged(health=1, food=1))

        assert session.offer(1, Ended(reason="bye")) is True

        received = [await session.events.get()]
        received.append(await asyncio.wait_for(session.events.get(), timeout=1))
        assert [type(event) for _, event in received] == [HealthChanged, Ended]

    @pytest.mark.asyncio
    async def test_chat_flood_on_full_queue_parks_nothing(self, make_config):
        session = Session.create(make_config(), 2)
        session.offer(1, ChatReceived(sender="peer", text="first"))
        session.offer(1, WhisperReceived(sender="peer", text="second"))

        results = [session.offer(1, ChatReceived(sender="spam", text=str(i))) for i in range(500)]
        results.append(session.offer(1, WhisperReceived(sender="spam", text="psst")))

        assert not any(results)
        assert session.dropped_events == 501
        assert session._overflow_tasks == set()
        assert session.events.qsize() == 2

    @pytest.mark.asyncio
    async def test_spawn_survives_chat_flood(self, make_config):
        session = Session.create(make_config(), 1)
        session.offer(1, ChatReceived(sender="peer", text="hi"))

        assert session.offer(1, Spawned()) is True
        for i in range(10):
            session.offer(1, ChatReceived(sender="spam", text=str(i)))
        assert len(session._overflow_tasks) == 1

        received = [await session.events.get()]
        received.append(await asyncio.wait_for(session.events.get(), timeout=1))
        assert [type(event) for _, event in received] == [ChatReceived, Spawned]
        assert session.dropped_events == 10

    @pytest.mark.asyncio
    async def test_detach_handle_bumps_epoch(self, make_config):
        session = Session.create(make_config(), 8)
        session.handle = object()
        epoch = session.epoch

        previous = session.detach_handle()

        assert previous is not None
        assert session.handle is None
        assert session.epoch == epoch + 1
