"""Integration tests for test and lint runs.

The tool tables are pointed at the current interpreter so the runs do
not depend on node or a project-level test runner being installed.
"""

import sys

import pytest

from devrelay_mcp.core.lint import LINT_TOOLS
from devrelay_mcp.core.testrun import TEST_RUNNERS
from devrelay_mcp.core.toolrun import ToolCommand
from devrelay_mcp.relay import DevRelay

PYTHON = sys.executable


def script(source: str) -> ToolCommand:
    return ToolCommand(PYTHON, ("-c", source), accepts_targets=False)


PYTEST_PASSING = script("print('========== 2 passed, 1 skipped in 0.50s ==========')")
JEST_FAILING = script(
    "import sys\n"
    "print('Tests:       1 failed, 2 passed, 3 total')\n"
    "sys.exit(1)"
)
ESLINT_FINDINGS = script(
    "import sys\n"
    "print('src/index.js:1:18: Missing semicolon. [Error/semi]')\n"
    "print('src/index.js:2:1: Unexpected console statement. [Warning/no-console]')\n"
    "sys.exit(1)"
)
SLOW = script("import time; time.sleep(30)")


@pytest.fixture
def fake_tools(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(TEST_RUNNERS, "pytest", PYTEST_PASSING)
    monkeypatch.setitem(TEST_RUNNERS, "jest", JEST_FAILING)
    monkeypatch.setitem(TEST_RUNNERS, "mocha", SLOW)
    monkeypatch.setitem(TEST_RUNNERS, "vitest", ToolCommand("devrelay-no-such-binary"))
    monkeypatch.setitem(LINT_TOOLS, "eslint", ESLINT_FINDINGS)
    monkeypatch.setitem(LINT_TOOLS, "flake8", script("pass"))


@pytest.mark.usefixtures("fake_tools")
class TestRunTests:
    """Tests for TestOrchestrator."""

    @pytest.mark.asyncio
    async def test_passing_run(self, relay: DevRelay) -> None:
        result = await relay.tests.run("pytest")

        assert result.success
        assert result.data["status"] == "completed"
        assert result.data["exit_code"] == 0
        assert result.data["summary"]["passed"] == 2
        assert result.data["summary"]["skipped"] == 1
        assert result.data["summary"]["duration_ms"] == 500

        report = await relay.tests.get(result.data["report_id"])
        assert "2 passed" in report.data["output"]
        assert report.data["end_time"] is not None

    @pytest.mark.asyncio
    async def test_failing_run_is_still_a_report(self, relay: DevRelay) -> None:
        result = await relay.tests.run("jest")

        assert result.success
        assert result.data["status"] == "failed"
        assert result.data["exit_code"] == 1
        assert result.data["summary"] == {
            "total": 3,
            "passed": 2,
            "failed": 1,
            "skipped": 0,
            "duration_ms": 0,
        }

    @pytest.mark.asyncio
    async def test_unsupported_runner(self, relay: DevRelay) -> None:
        result = await relay.tests.run("nose")

        assert result.error.code == "UNSUPPORTED_TOOL"
        assert "pytest" in result.error.details["supported"]
        assert len(relay.test_reports) == 0

    @pytest.mark.asyncio
    async def test_timeout_marks_report_failed(self, relay: DevRelay) -> None:
        result = await relay.tests.run("mocha", timeout_ms=300)

        assert result.error.code == "TIMEOUT"
        report = await relay.tests.get(result.error.details["report_id"])
        assert report.data["status"] == "failed"

    @pytest.mark.asyncio
    async def test_missing_binary(self, relay: DevRelay) -> None:
        result = await relay.tests.run("vitest")

        assert result.error.code == "PROCESS_SPAWN_FAILED"
        report = await relay.tests.get(result.error.details["report_id"])
        assert report.data["status"] == "failed"

    @pytest.mark.asyncio
    async def test_cwd_is_sandboxed(self, relay: DevRelay) -> None:
        result = await relay.tests.run("pytest", cwd="../..")

        assert result.error.code == "FILE_ACCESS_DENIED"

    @pytest.mark.asyncio
    async def test_latest_and_listing(self, relay: DevRelay) -> None:
        empty = await relay.tests.latest()
        assert empty.data["report"] is None

        await relay.tests.run("pytest")
        await relay.tests.run("jest")

        latest = await relay.tests.latest()
        latest_pytest = await relay.tests.latest(runner="pytest")
        failed = await relay.tests.list_reports(status="failed")
        limited = await relay.tests.list_reports(limit=1)

        assert latest.data["report"]["runner"] == "jest"
        assert latest_pytest.data["report"]["runner"] == "pytest"
        assert failed.data["total"] == 1
        assert limited.data["total"] == 2
        assert len(limited.data["reports"]) == 1

    @pytest.mark.asyncio
    async def test_unknown_report(self, relay: DevRelay) -> None:
        result = await relay.tests.get("test_missing")

        assert result.error.code == "REPORT_NOT_FOUND"
        assert result.error.details == {"id": "test_missing", "kind": "test report"}


@pytest.mark.usefixtures("fake_tools")
class TestRunLint:
    """Tests for LintOrchestrator."""

    @pytest.mark.asyncio
    async def test_findings_complete_the_run(self, relay: DevRelay) -> None:
        result = await relay.lint.run("eslint", paths=["src"])

        assert result.success
        assert result.data["status"] == "completed"
        assert result.data["exit_code"] == 1
        assert result.data["total_issues"] == 2
        assert result.data["severity_counts"] == {"error": 1, "warning": 1, "info": 0}
        issue = result.data["issues"][0]
        assert (issue["file"], issue["line"], issue["column"]) == ("src/index.js", 1, 18)
        assert issue["rule"] == "semi"

    @pytest.mark.asyncio
    async def test_clean_run(self, relay: DevRelay) -> None:
        result = await relay.lint.run("flake8")

        assert result.data["status"] == "completed"
        assert result.data["total_issues"] == 0

    @pytest.mark.asyncio
    async def test_paths_are_sandboxed(self, relay: DevRelay) -> None:
        result = await relay.lint.run("eslint", paths=["../elsewhere"])

        assert result.error.code == "FILE_ACCESS_DENIED"
        assert len(relay.lint_reports) == 0

    @pytest.mark.asyncio
    async def test_unsupported_tool(self, relay: DevRelay) -> None:
        result = await relay.lint.run("prettier")

        assert result.error.code == "UNSUPPORTED_TOOL"

    @pytest.mark.asyncio
    async def test_report_queries(self, relay: DevRelay) -> None:
        first = await relay.lint.run("eslint")
        await relay.lint.run("flake8")

        report = await relay.lint.get(first.data["report_id"])
        latest_eslint = await relay.lint.latest(tool="eslint")
        listed = await relay.lint.list_reports()

        assert report.data["severity_counts"]["error"] == 1
        assert len(report.data["issues"]) == 2
        assert latest_eslint.data["report"]["id"] == first.data["report_id"]
        assert listed.data["total"] == 2
        assert listed.data["reports"][0]["tool"] == "flake8"
