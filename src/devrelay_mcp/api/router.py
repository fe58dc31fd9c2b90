"""Main API router aggregator."""

from fastapi import APIRouter

from devrelay_mcp.api import logs, pending, reports, server, sessions

# Create main router with API version prefix
api_router = APIRouter(prefix="/api/v1")

# Include all sub-routers
api_router.include_router(server.router)
api_router.include_router(sessions.router)
api_router.include_router(logs.router)
api_router.include_router(reports.router)
api_router.include_router(pending.router)
