"""Error handling for the HTTP API."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from devrelay_mcp.core.exceptions import ErrorCategory
from devrelay_mcp.core.results import OperationResult

logger = logging.getLogger(__name__)

# Status by error category; codes below override
CATEGORY_STATUS_MAP = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.EXTERNAL_PROCESS: 502,
    ErrorCategory.UNSUPPORTED: 501,
    ErrorCategory.INTERNAL: 500,
}

CODE_STATUS_MAP = {
    "INVALID_SESSION_STATE": 409,
    "INVALID_CONFIRMATION_STATE": 409,
    "FILE_ACCESS_DENIED": 403,
    "COMMAND_NOT_ALLOWED": 403,
    "FEATURE_DISABLED": 403,
    "SESSION_LIMIT_REACHED": 429,
    "TIMEOUT": 504,
}


def status_for(result: OperationResult) -> int:
    if result.success:
        return 200
    if result.error is None:
        return 500
    return CODE_STATUS_MAP.get(
        result.error.code, CATEGORY_STATUS_MAP.get(result.error.category, 500)
    )


def _meta() -> dict[str, Any]:
    return {
        "request_id": str(uuid.uuid4()),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def result_response(result: OperationResult) -> JSONResponse:
    """Render an operation result with the matching status code."""
    return JSONResponse(
        status_code=status_for(result),
        content={**result.model_dump(mode="json"), "meta": _meta()},
    )


def make_error_response(
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
    status_code: int = 500,
) -> JSONResponse:
    """Create a standard error response."""
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "data": None,
            "error": {
                "code": code,
                "category": ErrorCategory.INTERNAL.value,
                "message": message,
                "details": details or {},
            },
            "meta": _meta(),
        },
    )


async def generic_error_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle unexpected errors."""
    logger.exception(f"Unexpected error: {exc}")
    return make_error_response(
        code="INTERNAL_ERROR",
        message="An unexpected error occurred",
        details={"error": str(exc)},
        status_code=500,
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register all error handlers with the app."""
    app.add_exception_handler(Exception, generic_error_handler)
