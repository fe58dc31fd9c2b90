"""Server endpoints - health and info."""

import sys

from fastapi import APIRouter

from devrelay_mcp import __version__
from devrelay_mcp.api.deps import RelayDep
from devrelay_mcp.models.responses import HealthResponse, InfoResponse

router = APIRouter(tags=["Server"])


@router.get("/health", response_model=HealthResponse)
async def health_check(relay: RelayDep) -> HealthResponse:
    """Check server health status."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        active_sessions=relay.debug.active_count,
        live_processes=relay.runner.live_count,
    )


@router.get("/info", response_model=InfoResponse)
async def server_info(relay: RelayDep) -> InfoResponse:
    """Get server information."""
    status = relay.status()
    return InfoResponse(
        name="DevRelay",
        version=__version__,
        python_version=sys.version.split()[0],
        workspace=status["workspace"],
        features=status["features"],
        supported_runtimes=status["supported_runtimes"],
        test_runners=status["test_runners"],
        lint_tools=status["lint_tools"],
        max_sessions=relay.settings.max_sessions,
        active_sessions=status["active_sessions"],
        records=status["records"],
    )
