"""
Tests for Idempotency Store

Tests TTL expiry, check-and-mark and JSON persistence across restarts.
"""

import json

import pytest


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class TestMemoryIdempotencyStore:
    """Tests for MemoryIdempotencyStore"""

    def test_mark_and_seen(self):
        from bridges.common.idempotency import MemoryIdempotencyStore

        store = MemoryIdempotencyStore()

        assert store.seen("event-1") is False
        store.mark("event-1")
        assert store.seen("event-1") is True

    def test_ttl_expiry(self):
        from bridges.common.idempotency import MemoryIdempotencyStore

        clock = FakeClock()
        store = MemoryIdempotencyStore(clock=clock)
        store.mark("k", ttl=60)

        clock.now += 59
        assert store.seen("k") is True
        clock.now += 1
        assert store.seen("k") is False
        assert len(store) == 0

    def test_default_ttl(self):
        from bridges.common.idempotency import MemoryIdempotencyStore

        clock = FakeClock()
        store = MemoryIdempotencyStore(default_ttl=10, clock=clock)
        store.mark("k")

        clock.now += 11
        assert store.seen("k") is False

    def test_no_ttl_never_expires(self):
        from bridges.common.idempotency import MemoryIdempotencyStore

        clock = FakeClock()
        store = MemoryIdempotencyStore(clock=clock)
        store.mark("k")

        clock.now += 10 ** 9
        assert store.seen("k") is True

    def test_check_and_mark(self):
        from bridges.common.idempotency import MemoryIdempotencyStore

        store = MemoryIdempotencyStore()

        assert store.check_and_mark("reminder-1") is True
        assert store.check_and_mark("reminder-1") is False

    def test_purge_expired(self):
        from bridges.common.idempotency import MemoryIdempotencyStore

        clock = FakeClock()
        store = MemoryIdempotencyStore(clock=clock)
        store.mark("short", ttl=5)
        store.mark("long", ttl=500)
        store.mark("forever")

        clock.now += 100
        assert store.purge_expired() == 1
        assert len(store) == 2


class TestJsonFileIdempotencyStore:
    """Tests for JsonFileIdempotencyStore"""

    def test_survives_restart(self, tmp_path):
        from bridges.common.idempotency import JsonFileIdempotencyStore

        path = tmp_path / "state.json"
        JsonFileIdempotencyStore(path).mark("event-1")

        assert JsonFileIdempotencyStore(path).seen("event-1") is True

    def test_file_format(self, tmp_path):
        from bridges.common.idempotency import JsonFileIdempotencyStore

        path = tmp_path / "state.json"
        store = JsonFileIdempotencyStore(path, clock=FakeClock(100.0))
        store.mark("forever")
        store.mark("ttl", ttl=50)

        assert json.loads(path.read_text()) == {"forever": None, "ttl": 150.0}

    def test_expired_entries_removed_from_file(self, tmp_path):
        from bridges.common.idempotency import JsonFileIdempotencyStore

        path = tmp_path / "state.json"
        clock = FakeClock()
        store = JsonFileIdempotencyStore(path, clock=clock)
        store.mark("k", ttl=1)

        clock.now += 2
        assert store.seen("k") is False
        assert json.loads(path.read_text()) == {}

    def test_corrupt_file_starts_empty(self, tmp_path):
        from bridges.common.idempotency import JsonFileIdempotencyStore

        path = tmp_path / "state.json"
        path.write_text("[1, 2")

        store = JsonFileIdempotencyStore(path)

        assert len(store) == 0
        store.mark("k")
        assert store.seen("k") is True

    def test_creates_parent_directory(self, tmp_path):
        from bridges.common.idempotency import JsonFileIdempotencyStore

        path = tmp_path / "nested" / "state.json"
        JsonFileIdempotencyStore(path).mark("k")

        assert path.exists()

    def test_shared_file_keeps_other_writers_keys(self, tmp_path):
        from bridges.common.idempotency import JsonFileIdempotencyStore

        path = tmp_path / "state.json"
        archive = JsonFileIdempotencyStore(path)
        calendar = JsonFileIdempotencyStore(path)

        archive.mark("conversation-1")
        calendar.mark("calendar-new-e1")
        archive.mark("conversation-2")

        assert set(json.loads(path.read_text())) == {"conversation-1", "conversation-2", "calendar-new-e1"}
        assert JsonFileIdempotencyStore(path).seen("calendar-new-e1")

    def test_delete_not_undone_by_other_writer(self, tmp_path):
        from bridges.common.idempotency import JsonFileIdempotencyStore

        path = tmp_path / "state.json"
        clock = FakeClock()
        first = JsonFileIdempotencyStore(path, clock=clock)
        first.mark("old", ttl=1)
        second = JsonFileIdempotencyStore(path, clock=clock)

        clock.now += 2
        assert first.seen("old") is False
        second.mark("other")

        assert "old" not in json.loads(path.read_text())

    def test_purge_expired_shrinks_file(self, tmp_path):
        from bridges.common.idempotency import JsonFileIdempotencyStore

        path = tmp_path / "state.json"
        clock = FakeClock()
        writer = JsonFileIdempotencyStore(path, clock=clock)
        for i in range(5):
            writer.mark(f"old-{i}", ttl=10)
        writer.mark("keep", ttl=1000)

        clock.now += 60
        purged = JsonFileIdempotencyStore(path, clock=clock).purge_expired()

        assert purged == 5
        assert list(json.loads(path.read_text())) == ["keep"]
