"""Two-phase confirmation gate shared by patches and commits."""

import logging
from datetime import datetime, timezone
from typing import Generic, Protocol, TypeVar

from devrelay_mcp.core.exceptions import InvalidConfirmationStateError
from devrelay_mcp.core.registry import Registry
from devrelay_mcp.models.patches import ConfirmationStatus

logger = logging.getLogger(__name__)


class Confirmable(Protocol):
    id: str
    status: ConfirmationStatus
    confirmed_by: str | None
    confirmed_at: datetime | None
    error: str | None


R = TypeVar("R", bound=Confirmable)


class ConfirmationGate(Generic[R]):
    """Tracks pending actions through ``pending -> confirmed -> applied``.

    ``begin_confirm`` moves a record out of ``pending`` before the caller
    performs any I/O, so a second confirm of the same id fails instead of
    applying the action twice.
    """

    def __init__(self, kind: str, registry: Registry[R]):
        self.kind = kind
        self.registry = registry

    def submit(self, record: R) -> R:
        self.registry.add(record)
        logger.info(f"{self.kind.capitalize()} {record.id} awaiting confirmation")
        return record

    def get(self, action_id: str) -> R:
        return self.registry.require(action_id)

    def begin_confirm(self, action_id: str, actor: str | None = None) -> R:
        """Claim a pending record for application.

        Raises:
            PendingActionNotFoundError: Unknown id
            InvalidConfirmationStateError: Record already confirmed, applied,
                rejected or failed
        """
        record = self.registry.require(action_id)
        if record.status != ConfirmationStatus.PENDING:
            raise InvalidConfirmationStateError(self.kind, action_id, record.status.value)
        record.status = ConfirmationStatus.CONFIRMED
        record.confirmed_by = actor
        record.confirmed_at = datetime.now(timezone.utc)
        return record

    def mark_applied(self, record: R) -> None:
        record.status = ConfirmationStatus.APPLIED

    def mark_failed(self, record: R, error: str) -> None:
        record.status = ConfirmationStatus.FAILED
        record.error = error

    def reject(self, action_id: str) -> bool:
        """Reject a pending record; False when unknown or no longer pending."""
        record = self.registry.get(action_id)
        if record is None or record.status != ConfirmationStatus.PENDING:
            return False
        record.status = ConfirmationStatus.REJECTED
        logger.info(f"{self.kind.capitalize()} {action_id} rejected")
        return True

    def pending(self) -> list[R]:
        return self.registry.select(lambda r: r.status == ConfirmationStatus.PENDING)
