"""Expression evaluation and watch expressions."""

import logging
import uuid
from typing import Any

from devrelay_mcp.core.exceptions import InvalidArgumentError, WatchNotFoundError
from devrelay_mcp.core.logstore import LogStore
from devrelay_mcp.core.registry import Registry
from devrelay_mcp.core.results import operation
from devrelay_mcp.core.session import DebugSession
from devrelay_mcp.models.session import SessionStatus, WatchExpression

logger = logging.getLogger(__name__)


class EvaluationOrchestrator:
    """Delegates evaluation to the session's adapter and keeps watches."""

    def __init__(self, sessions: Registry[DebugSession], logs: LogStore):
        self.sessions = sessions
        self.logs = logs

    @operation("evaluate_expression")
    async def evaluate(
        self,
        session_id: str,
        expression: str,
        frame_id: int | None = None,
    ) -> dict[str, Any]:
        session = self.sessions.require(session_id)
        session.require_status(
            SessionStatus.PAUSED, SessionStatus.RUNNING, action="evaluate expressions"
        )
        if not expression.strip():
            raise InvalidArgumentError("expression", "expression cannot be empty")

        result = await session.adapter.evaluate(session, expression)
        session.touch()

        self.logs.log_session_event(
            session.id, "Expression evaluated", {"expression": expression[:50]}
        )
        return {
            "session_id": session.id,
            "expression": expression,
            "frame_id": frame_id,
            **result,
        }

    @operation("watch_expression")
    async def add_watch(
        self,
        session_id: str,
        expression: str,
        name: str | None = None,
    ) -> dict[str, Any]:
        session = self.sessions.require(session_id)
        if not expression.strip():
            raise InvalidArgumentError("expression", "expression cannot be empty")

        watch_id = f"watch_{uuid.uuid4().hex[:12]}"
        watch = WatchExpression(
            id=watch_id,
            expression=expression,
            name=name or f"Watch {watch_id[6:14]}",
        )
        session.watches.append(watch)
        session.touch()

        self.logs.log_session_event(
            session.id, "Watch expression added", {"watch_id": watch_id, "expression": expression}
        )
        return {"session_id": session.id, "watch": watch.model_dump(mode="json")}

    @operation("list_watch_expressions")
    async def list_watches(self, session_id: str) -> dict[str, Any]:
        session = self.sessions.require(session_id)
        return {
            "session_id": session.id,
            "watches": [w.model_dump(mode="json") for w in session.watches],
            "total": len(session.watches),
        }

    @operation("clear_watch_expression")
    async def clear_watch(self, session_id: str, watch_id: str) -> dict[str, Any]:
        session = self.sessions.require(session_id)
        for index, watch in enumerate(session.watches):
            if watch.id == watch_id:
                del session.watches[index]
                session.touch()
                self.logs.log_session_event(
                    session.id, "Watch expression removed", {"watch_id": watch_id}
                )
                return {"session_id": session.id, "watch_id": watch_id, "removed": True}
        raise WatchNotFoundError(session.id, watch_id)
