"""Command execution models."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class CommandStatus(str, Enum):
    """Lifecycle of a command execution."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    TIMEOUT = "timeout"


class CommandExecution(BaseModel):
    """Record of one shell command run."""

    id: str
    command: str
    args: list[str] = Field(default_factory=list)
    cwd: str
    status: CommandStatus = CommandStatus.RUNNING
    start_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    end_time: datetime | None = None
    exit_code: int | None = None
    stdout: str = ""
    stderr: str = ""
    timeout_ms: int | None = None
    dangerous: bool = False
    error: str | None = None

    @property
    def duration_ms(self) -> int | None:
        if self.end_time is None:
            return None
        return int((self.end_time - self.start_time).total_seconds() * 1000)
