"""Test report, lint report and command execution views."""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from devrelay_mcp.api.deps import RelayDep
from devrelay_mcp.api.errors import result_response

router = APIRouter(tags=["Reports"])


@router.get("/reports/tests")
async def list_test_reports(
    relay: RelayDep,
    status: str | None = None,
    runner: str | None = None,
    limit: int = Query(20, ge=1),
) -> JSONResponse:
    return result_response(await relay.tests.list_reports(status, runner, limit))


@router.get("/reports/tests/latest")
async def latest_test_report(relay: RelayDep, runner: str | None = None) -> JSONResponse:
    return result_response(await relay.tests.latest(runner))


@router.get("/reports/tests/{report_id}")
async def get_test_report(report_id: str, relay: RelayDep) -> JSONResponse:
    return result_response(await relay.tests.get(report_id))


@router.get("/reports/lint")
async def list_lint_reports(
    relay: RelayDep,
    status: str | None = None,
    tool: str | None = None,
    limit: int = Query(20, ge=1),
) -> JSONResponse:
    return result_response(await relay.lint.list_reports(status, tool, limit))


@router.get("/reports/lint/latest")
async def latest_lint_report(relay: RelayDep, tool: str | None = None) -> JSONResponse:
    return result_response(await relay.lint.latest(tool))


@router.get("/reports/lint/{report_id}")
async def get_lint_report(report_id: str, relay: RelayDep) -> JSONResponse:
    return result_response(await relay.lint.get(report_id))


@router.get("/commands")
async def list_command_executions(
    relay: RelayDep,
    status: str | None = None,
    limit: int = Query(50, ge=1),
) -> JSONResponse:
    return result_response(await relay.commands.list_executions(status, limit))


@router.get("/commands/{execution_id}")
async def get_command_execution(execution_id: str, relay: RelayDep) -> JSONResponse:
    return result_response(await relay.commands.get(execution_id))
