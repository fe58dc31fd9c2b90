"""Structured operation results.

Every public orchestrator operation returns an ``OperationResult``. Failures
are converted here so that nothing below the facade raises across the
protocol boundary.
"""

import functools
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, ParamSpec

from pydantic import BaseModel, Field

from devrelay_mcp.core.exceptions import DevRelayError, ErrorCategory, InternalError

logger = logging.getLogger(__name__)

P = ParamSpec("P")


class ErrorInfo(BaseModel):
    """Error details carried by a failed result."""

    code: str
    category: ErrorCategory
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class OperationResult(BaseModel):
    """Outcome of a single operation."""

    success: bool
    data: dict[str, Any] | None = None
    error: ErrorInfo | None = None

    @classmethod
    def ok(cls, data: dict[str, Any] | None = None) -> "OperationResult":
        return cls(success=True, data=data or {})

    @classmethod
    def fail(cls, exc: DevRelayError) -> "OperationResult":
        return cls(
            success=False,
            error=ErrorInfo(
                code=exc.code,
                category=exc.category,
                message=exc.message,
                details=exc.details,
            ),
        )

    @property
    def is_error(self) -> bool:
        return not self.success

    def payload(self) -> dict[str, Any]:
        """JSON-ready payload for the protocol layer."""
        if self.success or self.error is None:
            return self.data or {}
        return {
            "error": self.error.message,
            "code": self.error.code,
            "category": self.error.category.value,
            "details": self.error.details,
        }

    def to_text(self) -> str:
        return json.dumps(self.payload(), indent=2, default=str)


def operation(
    name: str,
) -> Callable[
    [Callable[P, Awaitable[dict[str, Any]]]],
    Callable[P, Awaitable[OperationResult]],
]:
    """Wrap an async operation so it always returns an ``OperationResult``."""

    def decorator(
        fn: Callable[P, Awaitable[dict[str, Any]]],
    ) -> Callable[P, Awaitable[OperationResult]]:
        @functools.wraps(fn)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> OperationResult:
            try:
                data = await fn(*args, **kwargs)
            except DevRelayError as e:
                logger.warning(f"{name} failed: {e.code} - {e.message}")
                return OperationResult.fail(e)
            except Exception as e:
                logger.exception(f"Unexpected error in {name}: {e}")
                return OperationResult.fail(InternalError(str(e)))
            return OperationResult.ok(data)

        return wrapper

    return decorator
