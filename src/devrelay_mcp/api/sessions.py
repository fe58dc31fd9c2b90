"""Debug session views."""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from devrelay_mcp.api.deps import RelayDep
from devrelay_mcp.api.errors import result_response

router = APIRouter(prefix="/sessions", tags=["Sessions"])


@router.get("")
async def list_sessions(
    relay: RelayDep,
    status: str = Query("all", description="all, active, paused or stopped"),
) -> JSONResponse:
    """List debug sessions."""
    return result_response(await relay.debug.list_sessions(status))


@router.get("/{session_id}")
async def get_session(session_id: str, relay: RelayDep) -> JSONResponse:
    """Get a session's full record."""
    return result_response(await relay.debug.get(session_id))


@router.get("/{session_id}/breakpoints")
async def list_breakpoints(
    session_id: str,
    relay: RelayDep,
    enabled_only: bool = False,
) -> JSONResponse:
    """List a session's breakpoints."""
    return result_response(await relay.breakpoints.list_breakpoints(session_id, enabled_only))


@router.get("/{session_id}/watches")
async def list_watches(session_id: str, relay: RelayDep) -> JSONResponse:
    """List a session's watch expressions."""
    return result_response(await relay.evaluation.list_watches(session_id))


@router.get("/{session_id}/output")
async def get_output(
    session_id: str,
    relay: RelayDep,
    offset: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    category: str | None = None,
    since: int | None = None,
) -> JSONResponse:
    """Page through a session's captured output."""
    return result_response(await relay.debug.get_output(session_id, offset, limit, category, since))
