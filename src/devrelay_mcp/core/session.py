"""Debug session lifecycle management."""

import asyncio
import contextlib
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from devrelay_mcp.adapters import AdapterFactory, DebugAdapter, create_adapter
from devrelay_mcp.core.exceptions import (
    BreakpointNotFoundError,
    InvalidArgumentError,
    InvalidSessionStateError,
    LaunchError,
    ProcessSpawnError,
    SessionLimitError,
)
from devrelay_mcp.core.logstore import LogStore
from devrelay_mcp.core.process import ManagedProcess, ProcessRunner
from devrelay_mcp.core.registry import Registry
from devrelay_mcp.core.results import operation
from devrelay_mcp.core.sandbox import SandboxPolicy
from devrelay_mcp.models.logs import LogLevel
from devrelay_mcp.models.session import (
    Breakpoint,
    SessionDetail,
    SessionFilter,
    SessionInfo,
    SessionStatus,
    StackFrame,
    ThreadInfo,
    WatchExpression,
)
from devrelay_mcp.utils.capture import STREAMS, ChunkLog

logger = logging.getLogger(__name__)

VALID_TRANSITIONS: dict[SessionStatus, set[SessionStatus]] = {
    SessionStatus.STARTING: {SessionStatus.RUNNING, SessionStatus.STOPPED, SessionStatus.ERROR},
    SessionStatus.RUNNING: {SessionStatus.PAUSED, SessionStatus.STOPPED, SessionStatus.ERROR},
    SessionStatus.PAUSED: {SessionStatus.RUNNING, SessionStatus.STOPPED, SessionStatus.ERROR},
    SessionStatus.STOPPED: set(),
    SessionStatus.ERROR: set(),
}

READY_POLL_INTERVAL = 0.05
OUTPUT_TAIL_CHARS = 4000


def _kill_orphan(spawn: "asyncio.Future[ManagedProcess]") -> None:
    """Kill a process whose spawn finished after its caller stopped waiting."""
    if spawn.cancelled() or spawn.exception() is not None:
        return
    process = spawn.result()
    logger.warning(f"Killing process {process.pid} spawned after startup was abandoned")
    process.kill()


class DebugSession:
    """A logical debugging attempt and, while it lives, its process."""

    def __init__(
        self,
        session_id: str,
        adapter: DebugAdapter,
        cwd: Path,
        entry_point: str,
        args: list[str] | None = None,
        env: dict[str, str] | None = None,
        output_max_bytes: int = 1024 * 1024,
    ):
        self.id = session_id
        self.adapter = adapter
        self.cwd = cwd
        self.entry_point = entry_point
        self.args = list(args or [])
        self.env = dict(env or {})

        self._status = SessionStatus.STARTING
        # Bumped on every transition; deferred work checks it to detect preemption
        self.epoch = 0
        self.created_at = datetime.now(timezone.utc)
        self.last_activity = self.created_at

        self.output = ChunkLog(max_bytes=output_max_bytes)
        self.process: ManagedProcess | None = None
        self.exit_code: int | None = None
        self.error: str | None = None

        # Debug state
        self.current_frame: StackFrame | None = None
        self.threads: list[ThreadInfo] = []
        self.breakpoints: list[Breakpoint] = []
        self.watches: list[WatchExpression] = []

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def runtime(self) -> str:
        return self.adapter.kind.value

    @property
    def is_terminal(self) -> bool:
        return not VALID_TRANSITIONS[self._status]

    def transition_to(self, new_status: SessionStatus) -> None:
        """Move along the status graph; anything else is rejected."""
        allowed = VALID_TRANSITIONS[self._status]
        if new_status not in allowed:
            raise InvalidSessionStateError(
                self.id,
                self._status.value,
                [s.value for s in allowed],
                message=f"Session '{self.id}' cannot move from "
                f"'{self._status.value}' to '{new_status.value}'",
            )
        self._status = new_status
        self.epoch += 1
        self.touch()
        logger.info(f"Session {self.id}: state -> {new_status.value}")

    def require_status(self, *statuses: SessionStatus, action: str | None = None) -> None:
        """Raise if not in one of the required states."""
        if self._status in statuses:
            return
        message = None
        if action is not None:
            expected = " or ".join(s.value for s in statuses)
            message = (
                f"Session {self.id} is not {expected} (current status: "
                f"{self._status.value}). Can only {action} from {expected} state."
            )
        raise InvalidSessionStateError(
            self.id, self._status.value, [s.value for s in statuses], message=message
        )

    def touch(self) -> None:
        """Update last activity timestamp."""
        self.last_activity = datetime.now(timezone.utc)

    def attach_process(self, process: ManagedProcess) -> None:
        self.process = process
        self.touch()

    def handle_output(self, category: str, text: str) -> None:
        self.output.record(category, text)
        self.touch()

    def handle_exit(self, exit_code: int) -> None:
        """Process death is a valid terminal transition from any live state."""
        self.process = None
        self.exit_code = exit_code
        if not self.is_terminal:
            self.transition_to(SessionStatus.STOPPED)
        else:
            self.touch()

    def find_breakpoint(self, breakpoint_id: str) -> Breakpoint:
        for bp in self.breakpoints:
            if bp.id == breakpoint_id:
                return bp
        raise BreakpointNotFoundError(self.id, breakpoint_id)

    def to_info(self) -> SessionInfo:
        return SessionInfo(
            id=self.id,
            runtime=self.runtime,
            cwd=str(self.cwd),
            entry_point=self.entry_point,
            status=self._status,
            created_at=self.created_at,
            last_activity=self.last_activity,
            pid=self.process.pid if self.process else None,
            exit_code=self.exit_code,
            current_frame=self.current_frame,
            breakpoint_count=len(self.breakpoints),
        )

    def to_detail(self) -> SessionDetail:
        return SessionDetail(
            **self.to_info().model_dump(),
            args=self.args,
            env=self.env,
            breakpoints=list(self.breakpoints),
            threads=list(self.threads),
            watches=list(self.watches),
            stdout=self.output.tail("stdout", OUTPUT_TAIL_CHARS),
            stderr=self.output.tail("stderr", OUTPUT_TAIL_CHARS),
        )


class DebugSessionOrchestrator:
    """Opens, tracks and closes debug sessions."""

    def __init__(
        self,
        sessions: Registry[DebugSession],
        logs: LogStore,
        sandbox: SandboxPolicy,
        runner: ProcessRunner,
        adapter_factory: AdapterFactory = create_adapter,
        *,
        max_sessions: int = 10,
        startup_timeout: float = 10.0,
        ready_delay: float = 2.0,
        close_grace: float = 5.0,
        output_max_bytes: int = 1024 * 1024,
    ):
        self.sessions = sessions
        self.logs = logs
        self.sandbox = sandbox
        self.runner = runner
        self._adapter_factory = adapter_factory
        self.max_sessions = max_sessions
        self.startup_timeout = startup_timeout
        self.ready_delay = ready_delay
        self.close_grace = close_grace
        self.output_max_bytes = output_max_bytes
        # Opens that passed the limit check but are not registered yet
        self._launching = 0

    @property
    def active_count(self) -> int:
        return self.sessions.count(lambda s: not s.is_terminal) + self._launching

    @operation("open_debug_session")
    async def open(
        self,
        kind: str,
        entry: str,
        cwd: str | None = None,
        args: list[str] | None = None,
        env: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Launch an entry point under the runtime's debugger.

        Nothing is registered unless the process survives its readiness
        window.
        """
        if not entry:
            raise InvalidArgumentError("entry", "entry point is required")
        adapter = self._adapter_factory(kind)
        work_dir = self.sandbox.resolve_directory(cwd)
        entry_path = self.sandbox.resolve_path(entry, base=work_dir, check_extension=False)

        if self.active_count >= self.max_sessions:
            raise SessionLimitError(self.max_sessions)
        self._launching += 1
        try:
            return await self._open(adapter, kind, entry, work_dir, entry_path, args, env)
        finally:
            self._launching -= 1

    async def _open(
        self,
        adapter: DebugAdapter,
        kind: str,
        entry: str,
        work_dir: Path,
        entry_path: Path,
        args: list[str] | None,
        env: dict[str, str] | None,
    ) -> dict[str, Any]:
        session = DebugSession(
            session_id=f"debug_{uuid.uuid4().hex[:12]}",
            adapter=adapter,
            cwd=work_dir,
            entry_point=entry,
            args=args,
            env=env,
            output_max_bytes=self.output_max_bytes,
        )
        launch = adapter.build_launch(entry_path, session.args)

        try:
            process = await self._launch(
                session, launch.command, launch.args, {**launch.env, **session.env}
            )
        except asyncio.TimeoutError:
            await self._abort(session)
            raise LaunchError(
                f"startup timed out after {self.startup_timeout:g}s",
                {"kind": kind, "entry": entry},
            )
        except (LaunchError, ProcessSpawnError):
            await self._abort(session)
            raise

        session.transition_to(SessionStatus.RUNNING)
        session.threads = adapter.threads()
        self.sessions.add(session)
        process.on_exit(lambda code: self._on_process_exit(session, code))

        self.logs.log_session_event(
            session.id,
            "Debug session started",
            {"kind": kind, "entry": entry, "command": launch.command, "pid": process.pid},
        )
        logger.info(f"Opened {kind} session {session.id} for {entry}")
        return {
            "session_id": session.id,
            "kind": kind,
            "entry": entry,
            "cwd": str(work_dir),
            "status": session.status.value,
            "pid": process.pid,
            "message": f"Debug session started for {kind} with entry {entry}",
        }

    async def _launch(
        self,
        session: DebugSession,
        command: str,
        args: list[str],
        env: dict[str, str],
    ) -> ManagedProcess:
        """Spawn and wait for readiness, both within ``startup_timeout``.

        The spawn is shielded from the timeout so a process that appears
        after the caller gave up is still reaped instead of leaking.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.startup_timeout
        spawn = asyncio.ensure_future(
            self.runner.spawn(
                command,
                args,
                session.cwd,
                env=env or None,
                output_callback=session.handle_output,
            )
        )
        try:
            process = await asyncio.wait_for(asyncio.shield(spawn), timeout=self.startup_timeout)
        except BaseException:
            spawn.add_done_callback(_kill_orphan)
            raise
        session.attach_process(process)
        await asyncio.wait_for(
            self._await_ready(session, process), timeout=max(0.0, deadline - loop.time())
        )
        return process

    async def _await_ready(self, session: DebugSession, process: ManagedProcess) -> None:
        """Wait out the readiness window, failing if the process dies in it.

        An adapter ready marker in the output ends the window early.
        """
        marker = session.adapter.ready_marker
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.ready_delay
        while True:
            if not process.is_alive:
                await process.wait()
                raise LaunchError(
                    "debug process exited during startup",
                    {
                        "exit_code": process.returncode,
                        "stderr": process.stderr.text(),
                    },
                )
            if marker and (marker in process.stdout.text() or marker in process.stderr.text()):
                return
            remaining = deadline - loop.time()
            if remaining <= 0:
                return
            await asyncio.sleep(min(READY_POLL_INTERVAL, remaining))

    async def _abort(self, session: DebugSession) -> None:
        process = session.process
        if process is not None:
            process.kill()
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(process.wait(), timeout=self.close_grace)
        self.logs.log_session_event(
            session.id, "Debug session failed to start", {"entry": session.entry_point}
        )

    def _on_process_exit(self, session: DebugSession, exit_code: int) -> None:
        was_live = not session.is_terminal
        session.handle_exit(exit_code)
        if was_live and session.id in self.sessions:
            self.logs.log_session_event(
                session.id, "Debug process exited", {"exit_code": exit_code}
            )

    @operation("close_debug_session")
    async def close(self, session_id: str) -> dict[str, Any]:
        """Stop the process with the terminate/kill ladder; keep the record."""
        session = self.sessions.require(session_id)
        if session.is_terminal:
            return {
                "session_id": session.id,
                "status": session.status.value,
                "exit_code": session.exit_code,
                "message": f"Session already {session.status.value}",
            }

        process = session.process
        if process is not None:
            session.exit_code = await process.stop(self.close_grace)
        session.process = None
        if not session.is_terminal:
            session.transition_to(SessionStatus.STOPPED)

        self.logs.log_session_event(session.id, "Session closed", {"exit_code": session.exit_code})
        logger.info(f"Closed session {session.id} (exit code {session.exit_code})")
        return {
            "session_id": session.id,
            "status": session.status.value,
            "exit_code": session.exit_code,
            "message": "Debug session closed",
        }

    @operation("list_debug_sessions")
    async def list_sessions(self, status: str = "all") -> dict[str, Any]:
        try:
            category = SessionFilter(status)
        except ValueError:
            raise InvalidArgumentError(
                "status", f"must be one of {[f.value for f in SessionFilter]}"
            )
        sessions = self.sessions.select(lambda s: category.matches(s.status))
        return {
            "sessions": [s.to_info().model_dump(mode="json") for s in sessions],
            "total": len(sessions),
            "filter": category.value,
        }

    @operation("get_debug_session")
    async def get(self, session_id: str) -> dict[str, Any]:
        session = self.sessions.require(session_id)
        return session.to_detail().model_dump(mode="json")

    @operation("get_session_output")
    async def get_output(
        self,
        session_id: str,
        offset: int = 0,
        limit: int = 100,
        category: str | None = None,
        since: int | None = None,
    ) -> dict[str, Any]:
        """Page through captured output; ``since`` is a sequence cursor."""
        session = self.sessions.require(session_id)
        if offset < 0 or limit < 1:
            raise InvalidArgumentError("offset/limit", "offset must be >= 0 and limit >= 1")
        if category is not None and category not in STREAMS:
            raise InvalidArgumentError("category", f"must be one of {list(STREAMS)}")
        window = session.output.read(offset=offset, limit=limit, stream=category, after=since)
        return {
            "session_id": session.id,
            "chunks": [c.to_dict() for c in window.chunks],
            "offset": 0 if since is not None else offset,
            "limit": limit,
            "total": window.total,
            "has_more": window.has_more,
            "truncated": session.output.evicted > 0,
            "missed": window.missed,
            "last_sequence": session.output.last_sequence,
        }

    @operation("remove_debug_session")
    async def remove(self, session_id: str) -> dict[str, Any]:
        """Delete a stopped or failed session record."""
        session = self.sessions.require(session_id)
        if not session.is_terminal:
            session.require_status(
                SessionStatus.STOPPED, SessionStatus.ERROR, action="remove a session"
            )
        self.sessions.remove(session_id)
        self.logs.log_session_event(session_id, "Session removed")
        return {"session_id": session_id, "removed": True}

    async def shutdown(self) -> None:
        """Stop every live session process."""
        live = [s for s in self.sessions if not s.is_terminal]
        await asyncio.gather(*(self._stop_quietly(s) for s in live))
        if live:
            logger.info(f"Stopped {len(live)} debug session(s) on shutdown")

    async def _stop_quietly(self, session: DebugSession) -> None:
        try:
            if session.process is not None:
                session.exit_code = await session.process.stop(self.close_grace)
            if not session.is_terminal:
                session.transition_to(SessionStatus.STOPPED)
        except Exception:
            logger.exception(f"Failed to stop session {session.id}")
            self.logs.add(LogLevel.ERROR, f"debug:{session.id}", "Failed to stop on shutdown")
