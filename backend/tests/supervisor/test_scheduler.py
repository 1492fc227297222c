"""Reconnect scheduler tests."""

import asyncio

import pytest

from botfleet.supervisor.scheduler import ReconnectScheduler


class Recorder:
    """Timer callback that claims its slot the way the supervisor does."""

    def __init__(self, scheduler: ReconnectScheduler):
        self.scheduler = scheduler
        self.fired: list[tuple[str, int]] = []
        self.claimed: list[tuple[str, int]] = []

    async def __call__(self, session_id: str, generation: int) -> None:
        self.fired.append((session_id, generation))
        if self.scheduler.claim(session_id, generation):
            self.claimed.append((session_id, generation))


class TestReconnectScheduler:

    @pytest.mark.asyncio
    async def test_timer_fires_after_delay(self):
        scheduler = ReconnectScheduler(delay=0.01)
        recorder = Recorder(scheduler)

        generation = scheduler.schedule("bot-1", recorder)

        assert scheduler.is_pending("bot-1")
        await asyncio.sleep(0.05)
        assert recorder.claimed == [("bot-1", generation)]
        assert not scheduler.is_pending("bot-1")

    @pytest.mark.asyncio
    async def test_cancelled_timer_never_fires(self):
        scheduler = ReconnectScheduler(delay=0.01)
        recorder = Recorder(scheduler)
        scheduler.schedule("bot-1", recorder)

        assert scheduler.cancel("bot-1") is True
        await asyncio.sleep(0.05)

        assert recorder.fired == []
        assert scheduler.cancel("bot-1") is False

    @pytest.mark.asyncio
    async def test_reschedule_replaces_previous_timer(self):
        """Only one timer per id: the newest generation is the one claimed."""
        scheduler = ReconnectScheduler(delay=0.01)
        recorder = Recorder(scheduler)

        first = scheduler.schedule("bot-1", recorder)
        second = scheduler.schedule("bot-1", recorder)
        await asyncio.sleep(0.05)

        assert second > first
        assert recorder.claimed == [("bot-1", second)]
        assert scheduler.pending_count == 0

    @pytest.mark.asyncio
    async def test_stale_generation_cannot_claim(self):
        scheduler = ReconnectScheduler(delay=10)
        recorder = Recorder(scheduler)
        old = scheduler.schedule("bot-1", recorder)
        scheduler.schedule("bot-1", recorder)

        assert scheduler.claim("bot-1", old) is False
        assert scheduler.is_pending("bot-1")
        scheduler.cancel_all()

    @pytest.mark.asyncio
    async def test_timers_are_independent_per_id(self):
        scheduler = ReconnectScheduler(delay=0.01)
        recorder = Recorder(scheduler)
        scheduler.schedule("a", recorder)
        scheduler.schedule("b", recorder)

        scheduler.cancel("a")
        await asyncio.sleep(0.05)

        assert [sid for sid, _ in recorder.claimed] == ["b"]

    @pytest.mark.asyncio
    async def test_cancel_all(self):
        scheduler = ReconnectScheduler(delay=0.01)
        recorder = Recorder(scheduler)
        for sid in ("a", "b", "c"):
            scheduler.schedule(sid, recorder)

        assert scheduler.cancel_all() == 3
        await asyncio.sleep(0.05)
        assert recorder.fired == []
