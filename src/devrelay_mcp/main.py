"""HTTP relay entry point.

Serves read-only views of sessions, logs, reports and pending actions for
dashboards and operators. Agents use the MCP server in ``mcp_server``.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from devrelay_mcp import __version__
from devrelay_mcp.api.errors import register_error_handlers
from devrelay_mcp.api.router import api_router
from devrelay_mcp.config import settings
from devrelay_mcp.relay import DevRelay

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    logger.info(f"Starting DevRelay v{__version__}")
    logger.info(f"Workspace: {settings.workspace_dir}")
    logger.info(f"Max sessions: {settings.max_sessions}")

    relay = DevRelay(settings)
    await relay.start()
    app.state.relay = relay

    yield

    # Shutdown
    logger.info("Shutting down...")
    await relay.stop()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="DevRelay",
        description="Read-only HTTP views of the DevRelay MCP server state",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Register routers
    app.include_router(api_router)

    # Register error handlers
    register_error_handlers(app)

    return app


# Create app instance
app = create_app()


def main() -> None:
    """Run the server."""
    uvicorn.run(
        "devrelay_mcp.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
