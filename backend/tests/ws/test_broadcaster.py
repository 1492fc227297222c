"""Event fan-out tests."""

import asyncio

import pytest

from botfleet.ws.broadcaster import CLOSE_CODE_LAGGING, EventBroadcaster


def frame(n: int) -> dict:
    return {"type": "chat_log", "log": {"content": str(n)}}


class TestAttachDetach:

    @pytest.mark.asyncio
    async def test_initial_frame_comes_first(self, observer, eventually):
        broadcaster = EventBroadcaster(queue_size=8)

        broadcaster.attach(observer, initial={"type": "initial_status", "bots": []})
        broadcaster.publish(frame(1))

        await eventually(lambda: len(observer.frames) == 2)
        assert [f["type"] for f in observer.frames] == ["initial_status", "chat_log"]
        await broadcaster.stop()

    @pytest.mark.asyncio
    async def test_duplicate_attach_rejected(self, observer):
        broadcaster = EventBroadcaster()
        broadcaster.attach(observer)

        with pytest.raises(ValueError):
            broadcaster.attach(observer)
        await broadcaster.stop()

    @pytest.mark.asyncio
    async def test_detach_leaves_others_untouched(self, observer_factory, eventually):
        broadcaster = EventBroadcaster()
        first, second = observer_factory("one"), observer_factory("two")
        broadcaster.attach(first)
        broadcaster.attach(second)

        assert await broadcaster.detach("one") is True
        assert await broadcaster.detach("one") is False
        broadcaster.publish(frame(1))

        await eventually(lambda: len(second.frames) == 1)
        assert first.frames == []
        assert broadcaster.observer_count == 1
        await broadcaster.stop()


class TestPublish:

    @pytest.mark.asyncio
    async def test_order_preserved_per_observer(self, observer_factory, eventually):
        broadcaster = EventBroadcaster(queue_size=128)
        observers = [observer_factory(f"o{i}") for i in range(3)]
        for o in observers:
            broadcaster.attach(o)

        for n in range(100):
            broadcaster.publish(frame(n))

        for o in observers:
            await eventually(lambda o=o: len(o.frames) == 100)
            assert [f["log"]["content"] for f in o.frames] == [str(n) for n in range(100)]
        await broadcaster.stop()

    @pytest.mark.asyncio
    async def test_slow_observer_is_evicted_without_blocking_others(
        self, observer_factory, eventually
    ):
        broadcaster = EventBroadcaster(queue_size=2)
        slow, fast = observer_factory("slow"), observer_factory("fast")
        slow.gate = asyncio.Event()
        broadcaster.attach(slow)
        broadcaster.attach(fast)

        broadcaster.publish(frame(0))
        await asyncio.sleep(0)
        for n in range(1, 5):
            broadcaster.publish(frame(n))

        await eventually(lambda: slow.close_code == CLOSE_CODE_LAGGING)
        assert not broadcaster.is_attached("slow")
        await eventually(lambda: len(fast.frames) == 5)
        await broadcaster.stop()

    @pytest.mark.asyncio
    async def test_ready_writer_absorbs_burst_past_outbox_size(self, observer, eventually):
        broadcaster = EventBroadcaster(queue_size=4)
        broadcaster.attach(observer)

        for n in range(50):
            broadcaster.publish(frame(n))

        await eventually(lambda: len(observer.frames) == 50)
        assert broadcaster.is_attached(observer.connection_id)
        assert observer.close_code is None
        await broadcaster.stop()

    @pytest.mark.asyncio
    async def test_blocked_writer_kept_until_outbox_fills(self, observer, eventually):
        broadcaster = EventBroadcaster(queue_size=3)
        observer.gate = asyncio.Event()
        broadcaster.attach(observer)
        broadcaster.publish(frame(0))
        await asyncio.sleep(0)

        for n in range(1, 4):
            assert broadcaster.publish(frame(n)) == 1
        assert broadcaster.is_attached(observer.connection_id)

        observer.gate.set()
        await eventually(lambda: len(observer.frames) == 4)
        assert observer.close_code is None
        await broadcaster.stop()

    @pytest.mark.asyncio
    async def test_failed_send_detaches_silently(self, observer, eventually):
        broadcaster = EventBroadcaster()
        observer.fail_sends = True
        broadcaster.attach(observer)

        assert broadcaster.publish(frame(1)) == 1

        await eventually(lambda: not broadcaster.is_attached(observer.connection_id))
        assert observer.close_code is None
        assert broadcaster.publish(frame(2)) == 0
        await broadcaster.stop()

    @pytest.mark.asyncio
    async def test_publish_without_observers(self):
        assert EventBroadcaster().publish(frame(1)) == 0
