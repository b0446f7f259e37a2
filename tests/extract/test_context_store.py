"""Tests for the cross-episode context store."""

import pytest

from extract.context_store import ContextStore


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


class TestContextStore:
    """Tests for ContextStore."""

    def test_set_and_get(self, clock):
        store = ContextStore(ttl_seconds=60, clock=clock)
        store.set("ep-1", "  Apple's early years  ")
        assert store.get("ep-1") == "Apple's early years"
        assert "ep-1" in store

    def test_blank_context_ignored(self, clock):
        store = ContextStore(ttl_seconds=60, clock=clock)
        store.set("ep-1", "   ")
        assert len(store) == 0

    def test_entries_expire(self, clock):
        store = ContextStore(ttl_seconds=60, clock=clock)
        store.set("ep-1", "Apple's early years")
        clock.now += 60
        assert store.get("ep-1") is None
        assert len(store) == 0

    def test_oldest_entry_evicted(self, clock):
        store = ContextStore(ttl_seconds=60, max_entries=2, clock=clock)
        store.set("ep-1", "one")
        store.set("ep-2", "two")
        store.set("ep-3", "three")
        assert store.get("ep-1") is None
        assert len(store) == 2

    def test_overwrite_marks_most_recent(self, clock):
        store = ContextStore(ttl_seconds=60, max_entries=2, clock=clock)
        store.set("ep-1", "one")
        store.set("ep-2", "two")
        store.set("ep-1", "one again")
        store.set("ep-3", "three")
        assert store.get("ep-1") == "one again"
        assert store.get("ep-2") is None

    def test_latest_excludes_current_episode(self, clock):
        store = ContextStore(ttl_seconds=60, clock=clock)
        store.set("ep-1", "one")
        store.set("ep-2", "two")
        assert store.latest(exclude="ep-2") == "one"
        assert store.latest() == "two"

    def test_latest_empty(self, clock):
        assert ContextStore(ttl_seconds=60, clock=clock).latest() is None

    def test_invalid_max_entries(self):
        with pytest.raises(ValueError, match="max_entries"):
            ContextStore(ttl_seconds=60, max_entries=0)
