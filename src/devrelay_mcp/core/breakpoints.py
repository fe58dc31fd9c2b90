"""Breakpoint management for debug sessions."""

import logging
import uuid
from typing import Any

from devrelay_mcp.core.exceptions import InvalidArgumentError
from devrelay_mcp.core.logstore import LogStore
from devrelay_mcp.core.registry import Registry
from devrelay_mcp.core.results import operation
from devrelay_mcp.core.sandbox import SandboxPolicy
from devrelay_mcp.core.session import DebugSession
from devrelay_mcp.models.session import Breakpoint
from devrelay_mcp.utils.files import read_text

logger = logging.getLogger(__name__)


class BreakpointOrchestrator:
    """Set, clear, list and toggle breakpoints.

    Breakpoints live on their session record; ids are unique within a
    session only.
    """

    def __init__(self, sessions: Registry[DebugSession], logs: LogStore, sandbox: SandboxPolicy):
        self.sessions = sessions
        self.logs = logs
        self.sandbox = sandbox

    @operation("set_breakpoint")
    async def set(
        self,
        session_id: str,
        file: str,
        line: int,
        condition: str | None = None,
    ) -> dict[str, Any]:
        """Add a line breakpoint after validating file, line and condition.

        The session is left untouched when any check fails.
        """
        session = self.sessions.require(session_id)
        if line < 1:
            raise InvalidArgumentError("line", "line numbers start at 1")

        path = self.sandbox.resolve_path(file, base=session.cwd)
        self.sandbox.check_file_size(path)
        line_count = len((await read_text(path)).splitlines())
        if line > line_count:
            raise InvalidArgumentError(
                "line", f"line number {line} exceeds file length ({line_count})"
            )

        if condition is not None:
            problem = session.adapter.check_condition_syntax(condition)
            if problem is not None:
                raise InvalidArgumentError(
                    "condition", f"invalid condition expression '{condition}': {problem}"
                )

        bp = Breakpoint(
            id=f"bp_{uuid.uuid4()}",
            file=self.sandbox.relative(path),
            line=line,
            condition=condition,
        )
        session.breakpoints.append(bp)
        session.touch()

        self.logs.log_session_event(
            session.id,
            "Breakpoint set",
            {"breakpoint_id": bp.id, "file": bp.file, "line": line, "condition": condition},
        )
        return {
            "session_id": session.id,
            "breakpoint": bp.model_dump(mode="json"),
            "message": f"Breakpoint set at {bp.file}:{line}",
        }

    @operation("clear_breakpoint")
    async def clear(self, session_id: str, breakpoint_id: str) -> dict[str, Any]:
        session = self.sessions.require(session_id)
        bp = session.find_breakpoint(breakpoint_id)
        session.breakpoints.remove(bp)
        session.touch()

        self.logs.log_session_event(
            session.id,
            "Breakpoint cleared",
            {"breakpoint_id": bp.id, "file": bp.file, "line": bp.line},
        )
        return {
            "session_id": session.id,
            "breakpoint_id": bp.id,
            "message": f"Breakpoint removed from {bp.file}:{bp.line}",
        }

    @operation("list_breakpoints")
    async def list_breakpoints(self, session_id: str, enabled_only: bool = False) -> dict[str, Any]:
        session = self.sessions.require(session_id)
        breakpoints = [bp for bp in session.breakpoints if bp.enabled or not enabled_only]
        return {
            "session_id": session.id,
            "breakpoints": [bp.model_dump(mode="json") for bp in breakpoints],
            "total": len(breakpoints),
            "enabled_only": enabled_only,
        }

    @operation("toggle_breakpoint")
    async def toggle(
        self,
        session_id: str,
        breakpoint_id: str,
        enabled: bool | None = None,
    ) -> dict[str, Any]:
        """Set the enabled flag, or flip it when ``enabled`` is omitted."""
        session = self.sessions.require(session_id)
        bp = session.find_breakpoint(breakpoint_id)

        previous = bp.enabled
        bp.enabled = (not previous) if enabled is None else enabled
        session.touch()

        self.logs.log_session_event(
            session.id,
            "Breakpoint toggled",
            {"breakpoint_id": bp.id, "previous": previous, "enabled": bp.enabled},
        )
        state = "enabled" if bp.enabled else "disabled"
        return {
            "session_id": session.id,
            "breakpoint_id": bp.id,
            "previous": previous,
            "enabled": bp.enabled,
            "message": f"Breakpoint {state} at {bp.file}:{bp.line}",
        }
