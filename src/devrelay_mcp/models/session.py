"""Debug session models."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class SessionStatus(str, Enum):
    """Possible debug session states."""

    STARTING = "starting"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"
    ERROR = "error"


ACTIVE_STATUSES = frozenset({SessionStatus.STARTING, SessionStatus.RUNNING, SessionStatus.PAUSED})
TERMINAL_STATUSES = frozenset({SessionStatus.STOPPED, SessionStatus.ERROR})


class SessionFilter(str, Enum):
    """Status categories accepted by session listing."""

    ALL = "all"
    ACTIVE = "active"
    PAUSED = "paused"
    STOPPED = "stopped"

    def matches(self, status: SessionStatus) -> bool:
        if self is SessionFilter.ALL:
            return True
        if self is SessionFilter.ACTIVE:
            return status in ACTIVE_STATUSES
        if self is SessionFilter.PAUSED:
            return status == SessionStatus.PAUSED
        return status == SessionStatus.STOPPED


class Breakpoint(BaseModel):
    """A line breakpoint owned by one session."""

    id: str
    file: str  # workspace-relative
    line: int = Field(ge=1)
    condition: str | None = None
    enabled: bool = True
    hit_count: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class StackFrame(BaseModel):
    id: int
    name: str
    file: str
    line: int
    column: int = 1


class ThreadInfo(BaseModel):
    id: int
    name: str


class WatchExpression(BaseModel):
    """An expression re-evaluated on demand while the session is paused."""

    id: str
    expression: str
    name: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SessionInfo(BaseModel):
    """Session summary for listings."""

    id: str
    runtime: str
    cwd: str
    entry_point: str
    status: SessionStatus
    created_at: datetime
    last_activity: datetime
    pid: int | None = None
    exit_code: int | None = None
    current_frame: StackFrame | None = None
    breakpoint_count: int = 0


class SessionDetail(SessionInfo):
    """Full session record including output tail."""

    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    breakpoints: list[Breakpoint] = Field(default_factory=list)
    threads: list[ThreadInfo] = Field(default_factory=list)
    watches: list[WatchExpression] = Field(default_factory=list)
    stdout: str = ""
    stderr: str = ""
