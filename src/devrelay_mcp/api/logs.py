"""Log query endpoint."""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from devrelay_mcp.api.deps import RelayDep
from devrelay_mcp.api.errors import result_response

router = APIRouter(prefix="/logs", tags=["Logs"])


@router.get("")
async def query_logs(
    relay: RelayDep,
    level: str | None = None,
    since: str | None = Query(None, description="ISO-8601 lower bound"),
    until: str | None = Query(None, description="ISO-8601 upper bound"),
    contains: str | None = None,
    source: str | None = None,
    limit: int = Query(100, ge=1),
) -> JSONResponse:
    """Query stored log entries, newest first."""
    return result_response(
        await relay.resources.query_logs(level, since, until, contains, source, limit)
    )
