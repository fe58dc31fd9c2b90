"""Shared machinery for test and lint runs.

A tool is a data-table entry: the executable, its fixed leading
arguments and how the caller's target is passed. Runs go through the
process runner and end up as frozen reports in a registry.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Generic, Protocol, TypeVar

from devrelay_mcp.core.exceptions import InvalidArgumentError, UnsupportedToolError
from devrelay_mcp.core.logstore import LogStore
from devrelay_mcp.core.process import ProcessRunner
from devrelay_mcp.core.registry import Registry
from devrelay_mcp.core.sandbox import SandboxPolicy
from devrelay_mcp.models.reports import ReportStatus

logger = logging.getLogger(__name__)


class StoredReport(Protocol):
    @property
    def id(self) -> str: ...

    @property
    def status(self) -> ReportStatus: ...

    def model_copy(self, *, update: dict[str, Any] | None = None, deep: bool = False) -> Any: ...


ReportT = TypeVar("ReportT", bound=StoredReport)


@dataclass(frozen=True)
class ToolCommand:
    """How to invoke one external tool.

    Attributes:
        command: Executable name
        base_args: Arguments that always come first
        target_flag: Flag placed before the target (``go test -run``)
        accepts_targets: Whether targets/paths are passed at all
    """

    command: str
    base_args: tuple[str, ...] = ()
    target_flag: str | None = None
    accepts_targets: bool = True

    def build(self, targets: list[str], extra_args: list[str] | None = None) -> list[str]:
        args = list(self.base_args)
        if self.accepts_targets:
            for target in targets:
                if self.target_flag:
                    args.append(self.target_flag)
                args.append(target)
        return args + list(extra_args or [])


def lookup_tool(kind: str, table: dict[str, ToolCommand], name: str) -> ToolCommand:
    try:
        return table[name]
    except KeyError:
        raise UnsupportedToolError(kind, name, sorted(table))


def parse_report_status(status: str | None) -> ReportStatus | None:
    if status is None:
        return None
    try:
        return ReportStatus(status)
    except ValueError:
        raise InvalidArgumentError("status", f"must be one of {[s.value for s in ReportStatus]}")


class ReportOrchestrator(Generic[ReportT]):
    """Base for orchestrators that store frozen reports."""

    def __init__(
        self,
        reports: Registry[ReportT],
        logs: LogStore,
        sandbox: SandboxPolicy,
        runner: ProcessRunner,
        *,
        default_timeout_ms: int,
    ):
        self.reports = reports
        self.logs = logs
        self.sandbox = sandbox
        self.runner = runner
        self.default_timeout_ms = default_timeout_ms

    def _timeout_seconds(self, timeout_ms: int | None) -> float:
        timeout_ms = timeout_ms or self.default_timeout_ms
        if timeout_ms <= 0:
            raise InvalidArgumentError("timeout_ms", "must be positive")
        return timeout_ms / 1000

    def _update(self, report: ReportT, **changes: Any) -> ReportT:
        """Replace the stored report with an updated copy."""
        return self.reports.replace(report.model_copy(update=changes))

    @staticmethod
    def _finished(status: ReportStatus, **changes: Any) -> dict[str, Any]:
        return {"status": status, "end_time": datetime.now(timezone.utc), **changes}

    def _select(
        self,
        status: str | None,
        tool_field: str,
        tool: str | None,
    ) -> list[ReportT]:
        wanted = parse_report_status(status)
        return self.reports.newest(
            lambda r: (wanted is None or r.status == wanted)
            and (tool is None or getattr(r, tool_field) == tool)
        )
