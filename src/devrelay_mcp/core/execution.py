"""Execution control for debug sessions.

Every operation is a guarded transition: it checks the session is in the
state it expects and fails without touching the session otherwise.
Steps move the session to ``running`` immediately and back to ``paused``
once the adapter reports where the step landed.
"""

import asyncio
import contextlib
import logging
from typing import Any

from devrelay_mcp.adapters import StepMode
from devrelay_mcp.core.logstore import LogStore
from devrelay_mcp.core.registry import Registry
from devrelay_mcp.core.results import OperationResult, operation
from devrelay_mcp.core.session import DebugSession
from devrelay_mcp.models.session import SessionStatus

logger = logging.getLogger(__name__)


class ExecutionOrchestrator:
    """Continue, pause and step operations."""

    def __init__(self, sessions: Registry[DebugSession], logs: LogStore):
        self.sessions = sessions
        self.logs = logs
        self._steps: set[asyncio.Task[None]] = set()

    @operation("continue_execution")
    async def continue_execution(self, session_id: str) -> dict[str, Any]:
        session = self.sessions.require(session_id)
        session.require_status(SessionStatus.PAUSED, action="continue")

        session.transition_to(SessionStatus.RUNNING)
        await session.adapter.continue_execution(session)

        self.logs.log_session_event(session.id, "Execution continued")
        return {
            "session_id": session.id,
            "action": "continue",
            "status": session.status.value,
            "message": "Execution continued from breakpoint",
        }

    @operation("pause_execution")
    async def pause(self, session_id: str) -> dict[str, Any]:
        session = self.sessions.require(session_id)
        session.require_status(SessionStatus.RUNNING, action="pause")

        frame = await session.adapter.pause(session)
        # The process may have exited while the adapter was suspending it.
        session.require_status(SessionStatus.RUNNING, action="pause")
        session.current_frame = frame
        session.threads = session.adapter.threads()
        session.transition_to(SessionStatus.PAUSED)

        self.logs.log_session_event(session.id, "Execution paused", {"line": frame.line})
        return {
            "session_id": session.id,
            "action": "pause",
            "status": session.status.value,
            "current_frame": frame.model_dump(),
        }

    async def step_into(self, session_id: str) -> OperationResult:
        return await self.step(session_id, StepMode.INTO)

    async def step_over(self, session_id: str) -> OperationResult:
        return await self.step(session_id, StepMode.OVER)

    async def step_out(self, session_id: str) -> OperationResult:
        return await self.step(session_id, StepMode.OUT)

    @operation("step")
    async def step(self, session_id: str, mode: StepMode) -> dict[str, Any]:
        session = self.sessions.require(session_id)
        session.require_status(SessionStatus.PAUSED, action="step")

        if session.current_frame is None:
            session.current_frame = session.adapter.initial_frame(session.entry_point)
        session.transition_to(SessionStatus.RUNNING)

        task = asyncio.create_task(self._complete_step(session, mode, session.epoch))
        self._steps.add(task)
        task.add_done_callback(self._steps.discard)

        action = f"step_{mode.value}"
        self.logs.log_session_event(session.id, f"Step {mode.value} started")
        return {
            "session_id": session.id,
            "action": action,
            "status": "stepping",
            "message": f"Step {mode.value} in progress",
        }

    async def _complete_step(self, session: DebugSession, mode: StepMode, epoch: int) -> None:
        try:
            line = await session.adapter.step(session, mode)
        except Exception as e:
            logger.warning(f"Step {mode.value} failed for session {session.id}: {e}")
            self.logs.log_session_event(session.id, "Step failed", {"error": str(e)})
            return

        # Any transition since the step began (pause, resume, close, exit) wins
        if session.epoch != epoch or session.status != SessionStatus.RUNNING:
            return
        session.transition_to(SessionStatus.PAUSED)
        if session.current_frame is not None:
            session.current_frame = session.current_frame.model_copy(update={"line": line})
        self.logs.log_session_event(session.id, f"Step {mode.value} completed", {"line": line})

    async def wait_for_steps(self) -> None:
        """Let in-flight steps settle."""
        if self._steps:
            await asyncio.gather(*list(self._steps), return_exceptions=True)

    async def shutdown(self) -> None:
        for task in list(self._steps):
            task.cancel()
        for task in list(self._steps):
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._steps.clear()
