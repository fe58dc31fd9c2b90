"""Sandboxed shell command execution."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from devrelay_mcp.core.exceptions import (
    CommandNotAllowedError,
    FeatureDisabledError,
    InvalidArgumentError,
    ProcessSpawnError,
    ProcessTimeoutError,
)
from devrelay_mcp.core.logstore import LogStore
from devrelay_mcp.core.process import ProcessRunner
from devrelay_mcp.core.registry import Registry
from devrelay_mcp.core.results import operation
from devrelay_mcp.core.sandbox import SandboxPolicy
from devrelay_mcp.models.commands import CommandExecution, CommandStatus
from devrelay_mcp.models.logs import LogLevel

logger = logging.getLogger(__name__)


class CommandOrchestrator:
    """Runs allow-listed commands and keeps their execution history.

    A non-zero exit is reported as a successful call with status
    ``failed``; timeouts and spawn errors are error results that still
    leave an execution record behind.
    """

    def __init__(
        self,
        executions: Registry[CommandExecution],
        logs: LogStore,
        sandbox: SandboxPolicy,
        runner: ProcessRunner,
        *,
        enabled: bool = False,
        default_timeout_ms: int = 30_000,
    ):
        self.executions = executions
        self.logs = logs
        self.sandbox = sandbox
        self.runner = runner
        self.enabled = enabled
        self.default_timeout_ms = default_timeout_ms

    def _check_command(self, command: str) -> bool:
        """Enforce the allow-list; returns whether the command is dangerous.

        A dangerous command only runs when it is explicitly allow-listed too.
        """
        dangerous = self.sandbox.is_command_dangerous(command)
        if not self.sandbox.is_command_allowed(command):
            reason = "dangerous command" if dangerous else "not in allowed commands"
            raise CommandNotAllowedError(command, reason)
        if dangerous:
            logger.warning(f"Running dangerous command '{command}' (explicitly allowed)")
        return dangerous

    @operation("run_command")
    async def run(
        self,
        command: str,
        args: list[str] | None = None,
        cwd: str | None = None,
        timeout_ms: int | None = None,
    ) -> dict[str, Any]:
        if not self.enabled:
            raise FeatureDisabledError("Command execution")
        if not command or not command.strip():
            raise InvalidArgumentError("command", "command is required")
        dangerous = self._check_command(command)
        work_dir = self.sandbox.resolve_directory(cwd)
        timeout_ms = timeout_ms or self.default_timeout_ms
        if timeout_ms <= 0:
            raise InvalidArgumentError("timeout_ms", "must be positive")

        execution = CommandExecution(
            id=f"cmd_{uuid.uuid4().hex[:12]}",
            command=command,
            args=list(args or []),
            cwd=str(work_dir),
            timeout_ms=timeout_ms,
            dangerous=dangerous,
        )
        self.executions.add(execution)
        self.logs.log_command_event(
            execution.id,
            "Command execution started",
            {"command": command, "args": execution.args, "cwd": execution.cwd},
            level=LogLevel.WARN if dangerous else LogLevel.INFO,
        )

        try:
            result = await self.runner.run(command, execution.args, work_dir, timeout_ms / 1000)
        except ProcessTimeoutError as e:
            self._finish(execution, CommandStatus.TIMEOUT, error=e.message)
            execution.stdout = e.details.get("stdout", "")
            execution.stderr = e.details.get("stderr", "")
            e.details = {"execution_id": execution.id, "command": command, "timeout_ms": timeout_ms}
            raise
        except ProcessSpawnError as e:
            self._finish(execution, CommandStatus.FAILED, error=e.message)
            e.details["execution_id"] = execution.id
            raise

        if execution.status == CommandStatus.CANCELLED:
            return self._summary(execution)

        execution.stdout = result.stdout
        execution.stderr = result.stderr
        execution.exit_code = result.exit_code
        status = CommandStatus.COMPLETED if result.exit_code == 0 else CommandStatus.FAILED
        self._finish(execution, status)
        return self._summary(execution) | {"truncated": result.truncated}

    def _finish(
        self,
        execution: CommandExecution,
        status: CommandStatus,
        error: str | None = None,
    ) -> None:
        execution.status = status
        execution.end_time = datetime.now(timezone.utc)
        execution.error = error
        level = LogLevel.INFO if status == CommandStatus.COMPLETED else LogLevel.WARN
        self.logs.log_command_event(
            execution.id,
            f"Command execution {status.value}",
            {"exit_code": execution.exit_code, "error": error},
            level=level,
        )

    @staticmethod
    def _summary(execution: CommandExecution) -> dict[str, Any]:
        return {
            "execution_id": execution.id,
            "command": execution.command,
            "args": execution.args,
            "status": execution.status.value,
            "exit_code": execution.exit_code,
            "stdout": execution.stdout,
            "stderr": execution.stderr,
            "duration_ms": execution.duration_ms,
            "dangerous": execution.dangerous,
        }

    @operation("get_command_execution")
    async def get(self, execution_id: str) -> dict[str, Any]:
        execution = self.executions.require(execution_id)
        return execution.model_dump(mode="json") | {"duration_ms": execution.duration_ms}

    @operation("list_command_executions")
    async def list_executions(
        self,
        status: str | None = None,
        limit: int = 50,
    ) -> dict[str, Any]:
        try:
            wanted = CommandStatus(status) if status else None
        except ValueError:
            raise InvalidArgumentError(
                "status", f"must be one of {[s.value for s in CommandStatus]}"
            )
        executions = self.executions.newest(lambda e: wanted is None or e.status == wanted)
        return {
            "executions": [
                {
                    "execution_id": e.id,
                    "command": e.command,
                    "args": e.args,
                    "status": e.status.value,
                    "exit_code": e.exit_code,
                    "start_time": e.start_time.isoformat(),
                    "duration_ms": e.duration_ms,
                }
                for e in executions[:limit]
            ],
            "total": len(executions),
        }

    def cancel_running(self) -> int:
        """Mark every running execution cancelled; their processes are killed by the runner."""
        running = self.executions.select(lambda e: e.status == CommandStatus.RUNNING)
        for execution in running:
            self._finish(execution, CommandStatus.CANCELLED, error="server shutdown")
        return len(running)
