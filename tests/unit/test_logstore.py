"""Tests for the log store."""

from datetime import datetime, timedelta, timezone

from devrelay_mcp.core.logstore import LogStore
from devrelay_mcp.models.logs import LogLevel


class TestLogStore:
    """Tests for LogStore class."""

    def test_retention_evicts_oldest(self) -> None:
        """Test that the store never grows past its retention."""
        store = LogStore(retention=5)
        for i in range(6):
            store.add(LogLevel.INFO, "test", f"message {i}")

        entries = store.query()

        assert len(store) == 5
        assert [e.message for e in entries] == [f"message {i}" for i in range(5, 0, -1)]

    def test_eviction_ignores_level(self) -> None:
        store = LogStore(retention=2)
        store.add(LogLevel.ERROR, "test", "important")
        store.add(LogLevel.DEBUG, "test", "noise 1")
        store.add(LogLevel.DEBUG, "test", "noise 2")

        assert [e.message for e in store.query()] == ["noise 2", "noise 1"]

    def test_query_newest_first_with_limit(self, log_store: LogStore) -> None:
        for i in range(10):
            log_store.add(LogLevel.INFO, "test", f"message {i}")

        entries = log_store.query(limit=3)

        assert [e.message for e in entries] == ["message 9", "message 8", "message 7"]

    def test_filter_by_level_and_source(self, log_store: LogStore) -> None:
        log_store.add(LogLevel.INFO, "git", "status")
        log_store.add(LogLevel.WARN, "git", "dirty")
        log_store.add(LogLevel.WARN, "test:abc", "slow")

        assert [e.message for e in log_store.query(level="warn")] == ["slow", "dirty"]
        assert [e.message for e in log_store.query(source="git")] == ["dirty", "status"]

    def test_contains_is_case_insensitive_and_searches_data(self, log_store: LogStore) -> None:
        log_store.add(LogLevel.INFO, "test", "Breakpoint SET", {"file": "main.py"})
        log_store.add(LogLevel.INFO, "test", "other")

        assert len(log_store.query(contains="breakpoint set")) == 1
        assert len(log_store.query(contains="MAIN.PY")) == 1
        assert log_store.query(contains="missing") == []

    def test_time_window(self, log_store: LogStore) -> None:
        entry = log_store.add(LogLevel.INFO, "test", "now")
        before = entry.timestamp - timedelta(seconds=1)
        after = entry.timestamp + timedelta(seconds=1)

        assert log_store.query(since=before, until=after) == [entry]
        assert log_store.query(since=after) == []
        assert log_store.query(until=before) == []

    def test_entry_fields(self, log_store: LogStore) -> None:
        entry = log_store.add("error", "server", "failed", {"code": 1})

        assert entry.id.startswith("log_")
        assert entry.level == LogLevel.ERROR
        assert entry.timestamp.tzinfo is not None
        assert entry.timestamp <= datetime.now(timezone.utc)

    def test_source_helpers(self, log_store: LogStore) -> None:
        log_store.log_session_event("debug_1", "started")
        log_store.log_test_event("test_1", "ran")
        log_store.log_lint_event("lint_1", "ran")
        log_store.log_patch_event("patch_1", "applied")
        log_store.log_git_event("committed")
        log_store.log_command_event("cmd_1", "dangerous", level=LogLevel.WARN)

        sources = {e.source for e in log_store.query()}

        assert sources == {
            "debug:debug_1",
            "test:test_1",
            "lint:lint_1",
            "patch:patch_1",
            "git",
            "command:cmd_1",
        }
        assert log_store.query(source="command:cmd_1")[0].level == LogLevel.WARN

    def test_clear(self, log_store: LogStore) -> None:
        log_store.add(LogLevel.INFO, "test", "x")

        assert log_store.clear() == 1
        assert len(log_store) == 0
