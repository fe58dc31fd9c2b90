"""Linter execution and lint reports."""

import logging
import uuid
from typing import Any

from devrelay_mcp.core.exceptions import DevRelayError
from devrelay_mcp.core.parsers import LINT_PARSERS
from devrelay_mcp.core.results import operation
from devrelay_mcp.core.toolrun import ReportOrchestrator, ToolCommand, lookup_tool
from devrelay_mcp.models.reports import LintReport, ReportStatus

logger = logging.getLogger(__name__)

LINT_TOOLS: dict[str, ToolCommand] = {
    "eslint": ToolCommand("npx", ("eslint", "--format", "unix")),
    "tsc": ToolCommand("npx", ("tsc", "--noEmit", "--pretty", "false"), accepts_targets=False),
    "pylint": ToolCommand("python", ("-m", "pylint")),
    "flake8": ToolCommand("python", ("-m", "flake8")),
    "checkstyle": ToolCommand("java", ("-jar", "checkstyle.jar", "-c", "checkstyle.xml")),
    "golint": ToolCommand("golint"),
    "clippy": ToolCommand("cargo", ("clippy",), accepts_targets=False),
}

INLINE_ISSUES = 20


class LintOrchestrator(ReportOrchestrator[LintReport]):
    """Runs linters and parses their diagnostics into issues."""

    @operation("run_lint")
    async def run(
        self,
        tool: str = "eslint",
        paths: list[str] | None = None,
        args: list[str] | None = None,
        timeout_ms: int | None = None,
    ) -> dict[str, Any]:
        command = lookup_tool("lint tool", LINT_TOOLS, tool)
        timeout = self._timeout_seconds(timeout_ms)
        paths = paths or ["."]
        # Lint targets must stay inside the workspace
        for path in paths:
            self.sandbox.resolve_path(path, check_extension=False)
        command_args = command.build(paths, args)

        report = LintReport(id=f"lint_{uuid.uuid4().hex[:12]}", tool=tool, paths=tuple(paths))
        self.reports.add(report)
        self.logs.log_lint_event(
            report.id, "Lint execution started", {"tool": tool, "paths": paths}
        )
        logger.info(f"Running {tool}: {command.command} {' '.join(command_args)}")

        try:
            result = await self.runner.run(
                command.command, command_args, self.sandbox.workspace_root, timeout
            )
        except DevRelayError as e:
            self._update(
                report,
                **self._finished(
                    ReportStatus.FAILED,
                    output=e.details.get("stdout", ""),
                    error_output=e.message,
                ),
            )
            self.logs.log_lint_event(report.id, "Lint execution failed", {"error": e.message})
            e.details = {"report_id": report.id, "tool": tool, "reason": e.message}
            raise

        issues = LINT_PARSERS[tool](result.output)
        # Linters exit non-zero when they find issues; that is still a completed run
        status = (
            ReportStatus.COMPLETED if result.exit_code == 0 or issues else ReportStatus.FAILED
        )
        report = self._update(
            report,
            **self._finished(
                status,
                issues=tuple(issues),
                exit_code=result.exit_code,
                output=result.stdout,
                error_output=result.stderr,
            ),
        )

        counts = report.severity_counts()
        self.logs.log_lint_event(
            report.id,
            "Lint execution completed",
            {"exit_code": result.exit_code, "issue_count": len(issues), **counts},
        )
        return {
            "report_id": report.id,
            "tool": tool,
            "status": report.status.value,
            "exit_code": report.exit_code,
            "total_issues": len(issues),
            "severity_counts": counts,
            "issues": [i.model_dump(mode="json") for i in issues[:INLINE_ISSUES]],
            "truncated": result.truncated,
        }

    @operation("get_lint_report")
    async def get(self, report_id: str) -> dict[str, Any]:
        report = self.reports.require(report_id)
        return report.model_dump(mode="json") | {"severity_counts": report.severity_counts()}

    @operation("get_latest_lint_report")
    async def latest(self, tool: str | None = None) -> dict[str, Any]:
        reports = self._select(None, "tool", tool)
        if not reports:
            return {"report": None, "message": "No lint reports available"}
        return {"report": reports[0].model_dump(mode="json")}

    @operation("list_lint_reports")
    async def list_reports(
        self,
        status: str | None = None,
        tool: str | None = None,
        limit: int = 20,
    ) -> dict[str, Any]:
        reports = self._select(status, "tool", tool)
        return {
            "reports": [
                {
                    "report_id": r.id,
                    "tool": r.tool,
                    "paths": list(r.paths),
                    "status": r.status.value,
                    "start_time": r.start_time.isoformat(),
                    "end_time": r.end_time.isoformat() if r.end_time else None,
                    "issue_count": len(r.issues),
                    "severity_counts": r.severity_counts(),
                }
                for r in reports[:limit]
            ],
            "total": len(reports),
        }

    @staticmethod
    def supported_tools() -> list[str]:
        return list(LINT_TOOLS)
