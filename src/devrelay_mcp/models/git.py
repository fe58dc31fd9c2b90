"""Git models."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from devrelay_mcp.models.patches import ConfirmationStatus


class GitFileStatus(BaseModel):
    """One entry of ``git status --porcelain``."""

    path: str
    index: str
    worktree: str
    original_path: str | None = None

    @property
    def staged(self) -> bool:
        return self.index not in (" ", "?", "!")

    @property
    def conflicted(self) -> bool:
        return "U" in (self.index, self.worktree) or (self.index, self.worktree) in (
            ("A", "A"),
            ("D", "D"),
        )


class GitStatus(BaseModel):
    branch: str | None = None
    upstream: str | None = None
    ahead: int = 0
    behind: int = 0
    files: list[GitFileStatus] = Field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.files

    def grouped(self) -> dict[str, list[str]]:
        """Paths grouped the way ``git status`` reports them."""
        groups: dict[str, list[str]] = {
            "staged": [],
            "modified": [],
            "created": [],
            "deleted": [],
            "renamed": [],
            "conflicted": [],
            "untracked": [],
        }
        for f in self.files:
            if f.conflicted:
                groups["conflicted"].append(f.path)
                continue
            if f.index == "?":
                groups["untracked"].append(f.path)
                continue
            if f.staged:
                groups["staged"].append(f.path)
            if f.index == "A":
                groups["created"].append(f.path)
            if "D" in (f.index, f.worktree):
                groups["deleted"].append(f.path)
            if f.index == "R":
                groups["renamed"].append(f.path)
            if "M" in (f.index, f.worktree):
                groups["modified"].append(f.path)
        return groups


class PendingCommit(BaseModel):
    """A commit waiting for confirmation."""

    id: str
    message: str
    files: list[str] = Field(default_factory=list)
    requires_confirmation: bool = True
    status: ConfirmationStatus = ConfirmationStatus.PENDING
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    confirmed_by: str | None = None
    confirmed_at: datetime | None = None
    commit_hash: str | None = None
    error: str | None = None
