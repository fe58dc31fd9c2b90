"""API dependencies."""

from typing import Annotated

from fastapi import Depends, Request

from devrelay_mcp.relay import DevRelay


async def get_relay(request: Request) -> DevRelay:
    """Get the relay from app state."""
    relay: DevRelay = request.app.state.relay
    return relay


RelayDep = Annotated[DevRelay, Depends(get_relay)]
