"""The relay facade.

``DevRelay`` owns every piece of shared state: the registries, the log
store, the sandbox and the process runner. It builds them once, hands
them to the orchestrators by reference and tears them down in ``stop``.
Protocol layers talk only to the facade.
"""

import functools
import logging
from typing import Any

from devrelay_mcp import __version__
from devrelay_mcp.adapters import AdapterFactory, create_adapter, get_supported_runtimes
from devrelay_mcp.config import Settings, settings as default_settings
from devrelay_mcp.core.breakpoints import BreakpointOrchestrator
from devrelay_mcp.core.commands import CommandOrchestrator
from devrelay_mcp.core.evaluation import EvaluationOrchestrator
from devrelay_mcp.core.exceptions import (
    PendingActionNotFoundError,
    ReportNotFoundError,
    SessionNotFoundError,
)
from devrelay_mcp.core.execution import ExecutionOrchestrator
from devrelay_mcp.core.git import GitOrchestrator
from devrelay_mcp.core.lint import LintOrchestrator
from devrelay_mcp.core.logstore import LogStore
from devrelay_mcp.core.patches import PatchOrchestrator
from devrelay_mcp.core.process import ProcessRunner
from devrelay_mcp.core.registry import Registry, describe
from devrelay_mcp.core.resources import ResourceOrchestrator
from devrelay_mcp.core.sandbox import SandboxPolicy
from devrelay_mcp.core.session import DebugSession, DebugSessionOrchestrator
from devrelay_mcp.core.testrun import TestOrchestrator
from devrelay_mcp.models.commands import CommandExecution, CommandStatus
from devrelay_mcp.models.git import PendingCommit
from devrelay_mcp.models.logs import LogLevel
from devrelay_mcp.models.patches import ConfirmationStatus, PendingPatch
from devrelay_mcp.models.reports import LintReport, ReportStatus, TestReport
from devrelay_mcp.utils.git_client import GitCli

logger = logging.getLogger(__name__)


class DevRelay:
    """Composition root and lifecycle owner."""

    def __init__(
        self,
        config: Settings | None = None,
        adapter_factory: AdapterFactory | None = None,
    ):
        self.settings = config or default_settings
        cfg = self.settings

        self.logs = LogStore(retention=cfg.log_retention)
        self.sandbox = SandboxPolicy(
            cfg.workspace_dir,
            allowed_extensions=cfg.allowed_file_extensions,
            allowed_commands=cfg.allowed_commands,
            dangerous_commands=cfg.dangerous_commands,
            max_file_size=cfg.max_file_size_bytes,
        )
        self.runner = ProcessRunner(cfg.max_output_bytes, kill_delay=cfg.kill_delay_seconds)

        # Live sessions, running jobs and undecided confirmations are never evicted
        self.sessions: Registry[DebugSession] = Registry("session", SessionNotFoundError)
        self.test_reports: Registry[TestReport] = Registry(
            "test report",
            lambda report_id: ReportNotFoundError("test report", report_id),
            max_size=cfg.report_retention,
            evictable=lambda r: r.status != ReportStatus.RUNNING,
        )
        self.lint_reports: Registry[LintReport] = Registry(
            "lint report",
            lambda report_id: ReportNotFoundError("lint report", report_id),
            max_size=cfg.report_retention,
            evictable=lambda r: r.status != ReportStatus.RUNNING,
        )
        self.executions: Registry[CommandExecution] = Registry(
            "command execution",
            lambda execution_id: ReportNotFoundError("command execution", execution_id),
            max_size=cfg.report_retention,
            evictable=lambda e: e.status != CommandStatus.RUNNING,
        )
        self.patches: Registry[PendingPatch] = Registry(
            "patch",
            lambda patch_id: PendingActionNotFoundError("patch", patch_id),
            max_size=cfg.report_retention,
            evictable=lambda p: p.status != ConfirmationStatus.PENDING,
        )
        self.commits: Registry[PendingCommit] = Registry(
            "commit",
            lambda commit_id: PendingActionNotFoundError("commit", commit_id),
            max_size=cfg.report_retention,
            evictable=lambda c: c.status != ConfirmationStatus.PENDING,
        )

        factory = adapter_factory or functools.partial(
            create_adapter, step_delay=cfg.step_delay_seconds
        )
        self.debug = DebugSessionOrchestrator(
            self.sessions,
            self.logs,
            self.sandbox,
            self.runner,
            factory,
            max_sessions=cfg.max_sessions,
            startup_timeout=cfg.session_startup_timeout_seconds,
            ready_delay=cfg.session_ready_delay_seconds,
            close_grace=cfg.close_grace_seconds,
            output_max_bytes=cfg.max_output_bytes,
        )
        self.breakpoints = BreakpointOrchestrator(self.sessions, self.logs, self.sandbox)
        self.execution = ExecutionOrchestrator(self.sessions, self.logs)
        self.evaluation = EvaluationOrchestrator(self.sessions, self.logs)
        self.patching = PatchOrchestrator(
            self.patches, self.logs, self.sandbox, enabled=cfg.allow_file_patches
        )
        self.commands = CommandOrchestrator(
            self.executions,
            self.logs,
            self.sandbox,
            self.runner,
            enabled=cfg.allow_command_execution,
            default_timeout_ms=cfg.default_timeout_ms,
        )
        self.tests = TestOrchestrator(
            self.test_reports,
            self.logs,
            self.sandbox,
            self.runner,
            default_timeout_ms=cfg.test_timeout_ms,
        )
        self.lint = LintOrchestrator(
            self.lint_reports,
            self.logs,
            self.sandbox,
            self.runner,
            default_timeout_ms=cfg.lint_timeout_ms,
        )
        self.git = GitOrchestrator(
            self.commits,
            self.logs,
            self.sandbox,
            GitCli(self.runner, self.sandbox.workspace_root, cfg.default_timeout_seconds),
        )
        self.resources = ResourceOrchestrator(self.sandbox, self.logs, self.status)
        self._started = False

    @property
    def registries(self) -> dict[str, Registry[Any]]:
        return {
            "sessions": self.sessions,
            "test_reports": self.test_reports,
            "lint_reports": self.lint_reports,
            "command_executions": self.executions,
            "patches": self.patches,
            "commits": self.commits,
        }

    async def start(self) -> None:
        if self._started:
            return
        self._started = True
        self.logs.add(
            LogLevel.INFO,
            "server",
            "DevRelay started",
            {"workspace": str(self.sandbox.workspace_root), "version": __version__},
        )
        logger.info(f"DevRelay {__version__} started (workspace: {self.sandbox.workspace_root})")

    async def stop(self) -> None:
        """Stop sessions and processes, then clear every registry.

        Nothing is persisted: undecided patches and commits are discarded.
        """
        if not self._started:
            return
        cancelled = self.commands.cancel_running()
        await self.execution.shutdown()
        await self.debug.shutdown()
        await self.runner.shutdown()

        discarded = len(self.patching.gate.pending()) + len(self.git.gate.pending())
        if discarded:
            logger.warning(f"Discarding {discarded} pending confirmation(s) on shutdown")
        if cancelled:
            logger.info(f"Cancelled {cancelled} running command(s) on shutdown")

        for registry in self.registries.values():
            registry.clear()
        self.logs.clear()
        self._started = False
        logger.info("DevRelay stopped")

    def status(self) -> dict[str, Any]:
        """Workspace and server overview."""
        cfg = self.settings
        return {
            "version": __version__,
            "workspace": str(self.sandbox.workspace_root),
            "features": {
                "file_patches": self.patching.enabled,
                "command_execution": self.commands.enabled,
            },
            "supported_runtimes": get_supported_runtimes(),
            "test_runners": TestOrchestrator.supported_runners(),
            "lint_tools": LintOrchestrator.supported_tools(),
            "allowed_commands": sorted(self.sandbox.allowed_commands),
            "limits": {
                "max_sessions": cfg.max_sessions,
                "default_timeout_ms": cfg.default_timeout_ms,
                "max_output_bytes": cfg.max_output_bytes,
                "max_file_size_bytes": cfg.max_file_size_bytes,
            },
            "active_sessions": self.debug.active_count,
            "live_processes": self.runner.live_count,
            "records": describe(self.registries),
            "log_entries": len(self.logs),
        }
