"""Read-only workspace and log resources."""

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from devrelay_mcp.core.exceptions import FileAccessDeniedError, InvalidArgumentError
from devrelay_mcp.core.logstore import LogStore
from devrelay_mcp.core.results import operation
from devrelay_mcp.core.sandbox import SandboxPolicy, mime_type_for
from devrelay_mcp.models.logs import LogLevel
from devrelay_mcp.utils.files import read_text

logger = logging.getLogger(__name__)

# Directories never listed
SKIPPED_DIRS = frozenset(
    {".git", "node_modules", "__pycache__", ".venv", "venv", "dist", "build", "target"}
)
MAX_LISTED_FILES = 1000
MAX_LOG_QUERY = 1000


def parse_timestamp(name: str, value: str | None) -> datetime | None:
    """ISO-8601 timestamp; naive values are taken as UTC."""
    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise InvalidArgumentError(name, f"not an ISO-8601 timestamp: {value}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class ResourceOrchestrator:
    """Serves workspace files, workspace status and log queries."""

    def __init__(
        self,
        sandbox: SandboxPolicy,
        logs: LogStore,
        status_provider: Callable[[], dict[str, Any]],
    ):
        self.sandbox = sandbox
        self.logs = logs
        self._status_provider = status_provider

    @operation("read_workspace_file")
    async def read_file(
        self,
        path: str,
        start_line: int | None = None,
        end_line: int | None = None,
    ) -> dict[str, Any]:
        """Read a workspace file, optionally a 1-based inclusive line range."""
        resolved = self.sandbox.resolve_path(path)
        if not resolved.is_file():
            raise FileAccessDeniedError(path, "not a regular file")
        size = self.sandbox.check_file_size(resolved)
        content = await read_text(resolved)

        lines = content.splitlines(keepends=True)
        total = len(lines)
        if start_line is not None or end_line is not None:
            start = start_line or 1
            end = end_line or total
            if start < 1 or end < start:
                raise InvalidArgumentError("start_line/end_line", f"invalid range {start}-{end}")
            content = "".join(lines[start - 1 : end])
        else:
            start, end = 1, total

        return {
            "path": self.sandbox.relative(resolved),
            "mime_type": mime_type_for(resolved),
            "size": size,
            "total_lines": total,
            "start_line": start,
            "end_line": min(end, total),
            "content": content,
        }

    @operation("list_workspace_files")
    async def list_files(
        self,
        pattern: str = "*",
        recursive: bool = True,
        directory: str | None = None,
    ) -> dict[str, Any]:
        if Path(pattern).is_absolute() or ".." in Path(pattern).parts:
            raise FileAccessDeniedError(pattern, "pattern must stay inside the workspace")
        base = self.sandbox.resolve_directory(directory)
        matches = base.rglob(pattern) if recursive else base.glob(pattern)

        files: list[dict[str, Any]] = []
        truncated = False
        for candidate in sorted(matches):
            rel_parts = candidate.relative_to(base).parts
            if any(part in SKIPPED_DIRS for part in rel_parts[:-1]):
                continue
            if not candidate.is_file() or not self.sandbox.contains(candidate.resolve()):
                continue
            if len(files) >= MAX_LISTED_FILES:
                truncated = True
                break
            files.append(
                {
                    "path": self.sandbox.relative(candidate),
                    "size": candidate.stat().st_size,
                    "mime_type": mime_type_for(candidate),
                }
            )
        return {
            "directory": self.sandbox.relative(base) or ".",
            "pattern": pattern,
            "recursive": recursive,
            "files": files,
            "total": len(files),
            "truncated": truncated,
        }

    @operation("workspace_status")
    async def workspace_status(self) -> dict[str, Any]:
        return self._status_provider()

    @operation("query_logs")
    async def query_logs(
        self,
        level: str | None = None,
        since: str | None = None,
        until: str | None = None,
        contains: str | None = None,
        source: str | None = None,
        limit: int = 100,
    ) -> dict[str, Any]:
        if level is not None and level not in {lvl.value for lvl in LogLevel}:
            raise InvalidArgumentError("level", f"must be one of {[lvl.value for lvl in LogLevel]}")
        if limit < 1:
            raise InvalidArgumentError("limit", "must be at least 1")

        entries = self.logs.query(
            level=level,
            since=parse_timestamp("since", since),
            until=parse_timestamp("until", until),
            contains=contains,
            source=source,
            limit=min(limit, MAX_LOG_QUERY),
        )
        return {
            "logs": [e.model_dump(mode="json") for e in entries],
            "total": len(entries),
            "retained": len(self.logs),
        }
