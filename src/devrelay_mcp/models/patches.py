"""Pending patch models."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class PatchType(str, Enum):
    RANGE = "range"
    DIFF = "diff"


class ConfirmationStatus(str, Enum):
    """Lifecycle of an action behind the confirmation gate.

    ``pending -> confirmed -> applied|failed`` or ``pending -> rejected``.
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    APPLIED = "applied"
    REJECTED = "rejected"
    FAILED = "failed"


class PendingPatch(BaseModel):
    """A proposed file modification."""

    id: str
    file: str  # workspace-relative
    patch_type: PatchType
    content: str
    start_line: int | None = None
    end_line: int | None = None
    requires_confirmation: bool = True
    status: ConfirmationStatus = ConfirmationStatus.PENDING
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    confirmed_by: str | None = None
    confirmed_at: datetime | None = None
    backup: str | None = None
    error: str | None = None

    @property
    def applied(self) -> bool:
        return self.status == ConfirmationStatus.APPLIED
