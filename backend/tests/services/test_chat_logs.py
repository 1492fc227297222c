"""Chat log store tests."""

import pytest
from hypothesis import given, strategies as st

from botfleet.services.chat_logs import ChatLogStore
from botfleet.supervisor.models import ChatEvent, ChatKind


def make_event(session_id: str, n: int) -> ChatEvent:
    return ChatEvent(
        id=f"{session_id}-{n}",
        session_id=session_id,
        sender="peer",
        content=f"line {n}",
        timestamp=1_700_000_000_000 + n,
        kind=ChatKind.CHAT,
    )


class TestChatLogStore:

    def test_recent_oldest_first(self):
        store = ChatLogStore()
        for n in range(5):
            store.append(make_event("a", n))

        assert [e.content for e in store.recent("a", limit=3)] == ["line 2", "line 3", "line 4"]

    def test_sessions_are_separate(self):
        store = ChatLogStore()
        store.append(make_event("a", 1))
        store.append(make_event("b", 2))

        assert store.count("a") == 1
        assert store.recent("b")[0].content == "line 2"
        assert store.recent("missing") == []

    def test_non_positive_limit(self):
        store = ChatLogStore()
        store.append(make_event("a", 1))

        assert store.recent("a", limit=0) == []

    def test_clear_one_and_all(self):
        store = ChatLogStore()
        store.append(make_event("a", 1))
        store.append(make_event("b", 1))

        store.clear("a")
        assert store.count("a") == 0
        assert store.count("b") == 1

        store.clear()
        assert store.count("b") == 0

    def test_retention_must_be_positive(self):
        with pytest.raises(ValueError):
            ChatLogStore(retention=0)

    @given(
        retention=st.integers(min_value=1, max_value=50),
        appended=st.integers(min_value=0, max_value=120),
    )
    def test_retention_keeps_newest(self, retention, appended):
        store = ChatLogStore(retention=retention)
        for n in range(appended):
            store.append(make_event("a", n))

        kept = store.recent("a", limit=1000)

        assert len(kept) == min(retention, appended)
        assert [e.content for e in kept] == [
            f"line {n}" for n in range(max(0, appended - retention), appended)
        ]
