"""Bounded, queryable store of structured log entries."""

import json
import logging
import uuid
from collections import deque
from datetime import datetime
from typing import Any

from devrelay_mcp.models.logs import LogEntry, LogLevel

logger = logging.getLogger("devrelay_mcp.logstore")

DEFAULT_RETENTION = 10_000

_PY_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class LogStore:
    """FIFO ring buffer of log entries.

    The store never holds more than ``retention`` entries; the oldest entry
    is evicted first regardless of its level. Every entry is also mirrored
    to the ``devrelay_mcp.logstore`` logger.
    """

    def __init__(self, retention: int = DEFAULT_RETENTION):
        self.retention = retention
        self._entries: deque[LogEntry] = deque(maxlen=retention)

    def add(
        self,
        level: LogLevel | str,
        source: str,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> LogEntry:
        entry = LogEntry(
            id=f"log_{uuid.uuid4().hex[:12]}",
            level=LogLevel(level),
            source=source,
            message=message,
            data=data,
        )
        self._entries.append(entry)
        logger.log(_PY_LEVELS[entry.level], f"[{source}] {message}")
        return entry

    def query(
        self,
        level: LogLevel | str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
        contains: str | None = None,
        source: str | None = None,
        limit: int | None = None,
    ) -> list[LogEntry]:
        """Filter entries, newest first.

        ``contains`` is case-insensitive and also matches the serialized
        payload.
        """
        wanted_level = LogLevel(level) if level is not None else None
        needle = contains.lower() if contains else None

        results: list[LogEntry] = []
        for entry in reversed(self._entries):
            if wanted_level is not None and entry.level != wanted_level:
                continue
            if since is not None and entry.timestamp < since:
                continue
            if until is not None and entry.timestamp > until:
                continue
            if source is not None and entry.source != source:
                continue
            if needle is not None and not self._matches(entry, needle):
                continue
            results.append(entry)
            if limit is not None and len(results) >= limit:
                break
        return results

    @staticmethod
    def _matches(entry: LogEntry, needle: str) -> bool:
        if needle in entry.message.lower():
            return True
        if entry.data:
            return needle in json.dumps(entry.data, default=str).lower()
        return False

    def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        return count

    def __len__(self) -> int:
        return len(self._entries)

    # Source-tagged helpers

    def log_session_event(
        self, session_id: str, message: str, data: dict[str, Any] | None = None
    ) -> LogEntry:
        return self.add(LogLevel.INFO, f"debug:{session_id}", message, data)

    def log_test_event(
        self, report_id: str, message: str, data: dict[str, Any] | None = None
    ) -> LogEntry:
        return self.add(LogLevel.INFO, f"test:{report_id}", message, data)

    def log_lint_event(
        self, report_id: str, message: str, data: dict[str, Any] | None = None
    ) -> LogEntry:
        return self.add(LogLevel.INFO, f"lint:{report_id}", message, data)

    def log_command_event(
        self,
        execution_id: str,
        message: str,
        data: dict[str, Any] | None = None,
        level: LogLevel = LogLevel.INFO,
    ) -> LogEntry:
        return self.add(level, f"command:{execution_id}", message, data)

    def log_patch_event(
        self, patch_id: str, message: str, data: dict[str, Any] | None = None
    ) -> LogEntry:
        return self.add(LogLevel.INFO, f"patch:{patch_id}", message, data)

    def log_git_event(self, message: str, data: dict[str, Any] | None = None) -> LogEntry:
        return self.add(LogLevel.INFO, "git", message, data)
