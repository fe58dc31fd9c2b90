"""Actions awaiting confirmation."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from devrelay_mcp.api.deps import RelayDep
from devrelay_mcp.api.errors import result_response

router = APIRouter(prefix="/pending", tags=["Pending"])


@router.get("/patches")
async def list_pending_patches(relay: RelayDep) -> JSONResponse:
    """Patches waiting for confirm_patch."""
    return result_response(await relay.patching.list_pending())


@router.get("/patches/{patch_id}")
async def get_patch(patch_id: str, relay: RelayDep) -> JSONResponse:
    return result_response(await relay.patching.get(patch_id))


@router.get("/commits")
async def list_pending_commits(relay: RelayDep) -> JSONResponse:
    """Commits waiting for confirm_commit."""
    return result_response(await relay.git.list_pending())
