"""Tests for sandboxed command execution."""

import sys
from pathlib import Path

import pytest

from devrelay_mcp.relay import DevRelay

PYTHON = sys.executable


class TestRunCommand:
    """Tests for CommandOrchestrator.run."""

    @pytest.mark.asyncio
    async def test_allowed_command(self, relay: DevRelay) -> None:
        result = await relay.commands.run(PYTHON, ["-c", "print('hi')"])

        assert result.success
        assert result.data["status"] == "completed"
        assert result.data["exit_code"] == 0
        assert result.data["stdout"].strip() == "hi"
        assert result.data["dangerous"] is False
        assert result.data["execution_id"] in relay.executions

    @pytest.mark.asyncio
    async def test_non_zero_exit_is_failed_status(self, relay: DevRelay) -> None:
        result = await relay.commands.run(PYTHON, ["-c", "import sys; sys.exit(5)"])

        assert result.success
        assert result.data["status"] == "failed"
        assert result.data["exit_code"] == 5

    @pytest.mark.asyncio
    async def test_not_allowed(self, relay: DevRelay) -> None:
        result = await relay.commands.run("curl", ["http://example.com"])

        assert not result.success
        assert result.error.code == "COMMAND_NOT_ALLOWED"
        assert len(relay.executions) == 0

    @pytest.mark.asyncio
    async def test_dangerous_without_allow_listing_is_rejected(self, relay: DevRelay) -> None:
        result = await relay.commands.run("sudo", ["ls"])

        assert result.error.code == "COMMAND_NOT_ALLOWED"
        assert result.error.details["reason"] == "dangerous command"

    @pytest.mark.asyncio
    async def test_dangerous_allow_listed_runs_flagged(
        self, relay: DevRelay, workspace: Path
    ) -> None:
        (workspace / "scratch.txt").write_text("x")

        result = await relay.commands.run("rm", ["scratch.txt"])

        assert result.success
        assert result.data["dangerous"] is True
        assert not (workspace / "scratch.txt").exists()
        warnings = await relay.resources.query_logs(level="warn")
        assert warnings.data["total"] >= 1

    @pytest.mark.asyncio
    async def test_timeout_leaves_record(self, relay: DevRelay) -> None:
        result = await relay.commands.run(
            PYTHON, ["-c", "import time; time.sleep(30)"], timeout_ms=300
        )

        assert result.error.code == "TIMEOUT"
        execution_id = result.error.details["execution_id"]
        record = await relay.commands.get(execution_id)
        assert record.data["status"] == "timeout"

    @pytest.mark.asyncio
    async def test_cwd_must_stay_inside(self, relay: DevRelay) -> None:
        result = await relay.commands.run("echo", ["x"], cwd="..")

        assert result.error.code == "FILE_ACCESS_DENIED"

    @pytest.mark.asyncio
    async def test_cwd_subdirectory(self, relay: DevRelay) -> None:
        code = "import os; print(os.path.basename(os.getcwd()))"

        result = await relay.commands.run(PYTHON, ["-c", code], cwd="src")

        assert result.data["stdout"].strip() == "src"

    @pytest.mark.asyncio
    async def test_empty_command(self, relay: DevRelay) -> None:
        result = await relay.commands.run("  ")

        assert result.error.code == "INVALID_ARGUMENT"

    @pytest.mark.asyncio
    async def test_disabled(self, relay: DevRelay) -> None:
        relay.commands.enabled = False

        result = await relay.commands.run("echo", ["x"])

        assert result.error.code == "FEATURE_DISABLED"


class TestExecutionHistory:
    @pytest.mark.asyncio
    async def test_list_newest_first_with_status_filter(self, relay: DevRelay) -> None:
        await relay.commands.run(PYTHON, ["-c", "pass"])
        await relay.commands.run(PYTHON, ["-c", "import sys; sys.exit(1)"])

        listed = await relay.commands.list_executions()
        failed = await relay.commands.list_executions(status="failed")

        assert listed.data["total"] == 2
        assert listed.data["executions"][0]["status"] == "failed"
        assert failed.data["total"] == 1

    @pytest.mark.asyncio
    async def test_invalid_status_filter(self, relay: DevRelay) -> None:
        result = await relay.commands.list_executions(status="bogus")

        assert result.error.code == "INVALID_ARGUMENT"

    @pytest.mark.asyncio
    async def test_get_unknown(self, relay: DevRelay) -> None:
        result = await relay.commands.get("cmd_missing")

        assert result.error.code == "REPORT_NOT_FOUND"
        assert result.error.category.value == "not_found"
