"""Integration tests for the HTTP API."""

import sys

import pytest
from httpx import AsyncClient

from devrelay_mcp.api.errors import status_for
from devrelay_mcp.core.exceptions import SessionLimitError
from devrelay_mcp.core.results import OperationResult
from devrelay_mcp.core.testrun import TEST_RUNNERS
from devrelay_mcp.core.toolrun import ToolCommand
from devrelay_mcp.relay import DevRelay


class TestServerEndpoints:
    """Tests for /health and /info."""

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["active_sessions"] == 0
        assert "version" in data

    @pytest.mark.asyncio
    async def test_info(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/info")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "DevRelay"
        assert data["max_sessions"] == 3
        assert data["features"] == {"file_patches": True, "command_execution": True}
        assert "python" in data["supported_runtimes"]
        assert "eslint" in data["lint_tools"]
        assert data["records"]["sessions"] == 0


class TestSessionEndpoints:
    @pytest.mark.asyncio
    async def test_session_views(self, client: AsyncClient, relay: DevRelay) -> None:
        opened = await relay.debug.open("python", "app.py")
        session_id = opened.data["session_id"]
        await relay.breakpoints.set(session_id, "app.py", 4)

        listed = await client.get("/api/v1/sessions", params={"status": "active"})
        detail = await client.get(f"/api/v1/sessions/{session_id}")
        breakpoints = await client.get(f"/api/v1/sessions/{session_id}/breakpoints")
        watches = await client.get(f"/api/v1/sessions/{session_id}/watches")
        output = await client.get(f"/api/v1/sessions/{session_id}/output")

        assert listed.status_code == 200
        body = listed.json()
        assert body["success"] is True
        assert body["data"]["total"] == 1
        assert "request_id" in body["meta"]
        assert detail.json()["data"]["status"] == "running"
        assert breakpoints.json()["data"]["breakpoints"][0]["line"] == 4
        assert watches.json()["data"]["total"] == 0
        assert output.status_code == 200

    @pytest.mark.asyncio
    async def test_unknown_session_is_404(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/sessions/debug_missing")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "SESSION_NOT_FOUND"
        assert body["error"]["category"] == "not_found"

    @pytest.mark.asyncio
    async def test_bad_filter_is_400(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/sessions", params={"status": "sleeping"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_ARGUMENT"


class TestLogEndpoint:
    @pytest.mark.asyncio
    async def test_query_logs(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/logs", params={"source": "server"})

        assert response.status_code == 200
        assert response.json()["data"]["logs"][0]["message"] == "DevRelay started"

    @pytest.mark.asyncio
    async def test_invalid_level(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/logs", params={"level": "loud"})

        assert response.status_code == 400


class TestReportEndpoints:
    @pytest.mark.asyncio
    async def test_test_reports(
        self, client: AsyncClient, relay: DevRelay, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setitem(
            TEST_RUNNERS,
            "pytest",
            ToolCommand(
                sys.executable, ("-c", "print('1 passed in 0.01s')"), accepts_targets=False
            ),
        )
        run = await relay.tests.run("pytest")
        report_id = run.data["report_id"]

        listed = await client.get("/api/v1/reports/tests")
        latest = await client.get("/api/v1/reports/tests/latest", params={"runner": "pytest"})
        single = await client.get(f"/api/v1/reports/tests/{report_id}")

        assert listed.json()["data"]["total"] == 1
        assert latest.json()["data"]["report"]["id"] == report_id
        assert single.json()["data"]["summary"]["passed"] == 1

    @pytest.mark.asyncio
    async def test_missing_reports(self, client: AsyncClient) -> None:
        test_report = await client.get("/api/v1/reports/tests/test_missing")
        lint_report = await client.get("/api/v1/reports/lint/lint_missing")
        latest_lint = await client.get("/api/v1/reports/lint/latest")

        assert test_report.status_code == 404
        assert lint_report.json()["error"]["code"] == "REPORT_NOT_FOUND"
        assert latest_lint.json()["data"]["report"] is None

    @pytest.mark.asyncio
    async def test_command_history(self, client: AsyncClient, relay: DevRelay) -> None:
        run = await relay.commands.run(sys.executable, ["-c", "print('ok')"])

        listed = await client.get("/api/v1/commands")
        single = await client.get(f"/api/v1/commands/{run.data['execution_id']}")
        invalid = await client.get("/api/v1/commands", params={"status": "bogus"})

        assert listed.json()["data"]["total"] == 1
        assert single.json()["data"]["exit_code"] == 0
        assert invalid.status_code == 400


class TestPendingEndpoints:
    @pytest.mark.asyncio
    async def test_pending_patches(self, client: AsyncClient, relay: DevRelay) -> None:
        proposed = await relay.patching.propose("twenty.txt", start=1, end=1, replacement="x")
        patch_id = proposed.data["patch_id"]

        listed = await client.get("/api/v1/pending/patches")
        single = await client.get(f"/api/v1/pending/patches/{patch_id}")
        missing = await client.get("/api/v1/pending/patches/patch_missing")

        assert listed.json()["data"]["total"] == 1
        assert single.json()["data"]["status"] == "pending"
        assert missing.status_code == 404
        assert missing.json()["error"]["code"] == "PATCH_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_pending_commits(self, client: AsyncClient, relay: DevRelay) -> None:
        await relay.git.commit("Message")

        response = await client.get("/api/v1/pending/commits")

        assert response.status_code == 200
        assert response.json()["data"]["total"] == 1


class TestStatusMapping:
    def test_failure_without_error_info_is_500(self) -> None:
        result = OperationResult(success=False)

        assert status_for(result) == 500
        assert result.payload() == {}

    def test_error_code_overrides_category(self) -> None:
        result = OperationResult.fail(SessionLimitError(3))

        assert status_for(result) == 429
        assert result.payload()["code"] == "SESSION_LIMIT_REACHED"
