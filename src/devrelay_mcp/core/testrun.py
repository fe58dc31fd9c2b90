"""Test suite execution and test reports."""

import logging
import uuid
from typing import Any

from devrelay_mcp.core.exceptions import DevRelayError
from devrelay_mcp.core.parsers import TEST_SUMMARY_PARSERS, extract_failures
from devrelay_mcp.core.results import operation
from devrelay_mcp.core.toolrun import ReportOrchestrator, ToolCommand, lookup_tool
from devrelay_mcp.models.reports import ReportStatus, TestReport

logger = logging.getLogger(__name__)

TEST_RUNNERS: dict[str, ToolCommand] = {
    "npm": ToolCommand("npm", ("test",)),
    "yarn": ToolCommand("yarn", ("test",)),
    "jest": ToolCommand("npx", ("jest",)),
    "mocha": ToolCommand("npx", ("mocha",)),
    "vitest": ToolCommand("npx", ("vitest", "run")),
    "pytest": ToolCommand("python", ("-m", "pytest")),
    "phpunit": ToolCommand("vendor/bin/phpunit"),
    "rspec": ToolCommand("bundle", ("exec", "rspec")),
    "go test": ToolCommand("go", ("test", "-v"), target_flag="-run"),
}

# Failures returned inline by run_tests; the stored report keeps them all
INLINE_FAILURES = 10


class TestOrchestrator(ReportOrchestrator[TestReport]):
    """Runs test suites through the process runner.

    The stored report always carries the raw output; the parsed summary
    is best effort and may be all zeros.
    """

    __test__ = False

    @operation("run_tests")
    async def run(
        self,
        runner: str = "npm",
        target: str | None = None,
        args: list[str] | None = None,
        timeout_ms: int | None = None,
        cwd: str | None = None,
    ) -> dict[str, Any]:
        tool = lookup_tool("test runner", TEST_RUNNERS, runner)
        timeout = self._timeout_seconds(timeout_ms)
        work_dir = self.sandbox.resolve_directory(cwd)
        command_args = tool.build([target] if target else [], args)

        report = TestReport(
            id=f"test_{uuid.uuid4().hex[:12]}",
            runner=runner,
            target=target,
        )
        self.reports.add(report)
        self.logs.log_test_event(
            report.id, "Test execution started", {"runner": runner, "target": target}
        )
        logger.info(f"Running tests with {runner}: {tool.command} {' '.join(command_args)}")

        try:
            result = await self.runner.run(tool.command, command_args, work_dir, timeout)
        except DevRelayError as e:
            self._update(
                report,
                **self._finished(
                    ReportStatus.FAILED,
                    output=e.details.get("stdout", ""),
                    error_output=e.message,
                ),
            )
            self.logs.log_test_event(report.id, "Test execution failed", {"error": e.message})
            e.details = {"report_id": report.id, "runner": runner, "reason": e.message}
            raise

        summary = TEST_SUMMARY_PARSERS[runner](result.output)
        failures = extract_failures(runner, result.output)
        status = ReportStatus.COMPLETED if result.exit_code == 0 else ReportStatus.FAILED
        report = self._update(
            report,
            **self._finished(
                status,
                summary=summary,
                failures=tuple(failures),
                exit_code=result.exit_code,
                output=result.stdout,
                error_output=result.stderr,
            ),
        )

        self.logs.log_test_event(
            report.id,
            "Test execution completed",
            {"exit_code": result.exit_code, "summary": summary.model_dump()},
        )
        return {
            "report_id": report.id,
            "runner": runner,
            "status": report.status.value,
            "exit_code": report.exit_code,
            "summary": summary.model_dump(),
            "failures": [f.model_dump() for f in failures[:INLINE_FAILURES]],
            "output_length": len(report.output),
            "error_length": len(report.error_output),
            "truncated": result.truncated,
        }

    @operation("get_test_report")
    async def get(self, report_id: str) -> dict[str, Any]:
        return self.reports.require(report_id).model_dump(mode="json")

    @operation("get_latest_test_report")
    async def latest(self, runner: str | None = None) -> dict[str, Any]:
        reports = self._select(None, "runner", runner)
        if not reports:
            return {"report": None, "message": "No test reports available"}
        return {"report": reports[0].model_dump(mode="json")}

    @operation("list_test_reports")
    async def list_reports(
        self,
        status: str | None = None,
        runner: str | None = None,
        limit: int = 20,
    ) -> dict[str, Any]:
        reports = self._select(status, "runner", runner)
        return {
            "reports": [
                {
                    "report_id": r.id,
                    "runner": r.runner,
                    "target": r.target,
                    "status": r.status.value,
                    "start_time": r.start_time.isoformat(),
                    "end_time": r.end_time.isoformat() if r.end_time else None,
                    "summary": r.summary.model_dump(),
                    "failure_count": len(r.failures),
                }
                for r in reports[:limit]
            ],
            "total": len(reports),
        }

    @staticmethod
    def supported_runners() -> list[str]:
        return list(TEST_RUNNERS)
