"""Version control operations on the workspace repository."""

import logging
import uuid
from typing import Any

from devrelay_mcp.core.confirmation import ConfirmationGate
from devrelay_mcp.core.exceptions import DevRelayError, InvalidArgumentError, NotARepositoryError
from devrelay_mcp.core.logstore import LogStore
from devrelay_mcp.core.registry import Registry
from devrelay_mcp.core.results import operation
from devrelay_mcp.core.sandbox import SandboxPolicy
from devrelay_mcp.models.git import PendingCommit
from devrelay_mcp.utils.git_client import GitCli

logger = logging.getLogger(__name__)


class GitOrchestrator:
    """Status, diff and confirmed commits.

    A workspace that is not a repository is a normal answer for status
    and diff (``not_git_repo: true``), not an error.
    """

    def __init__(
        self,
        commits: Registry[PendingCommit],
        logs: LogStore,
        sandbox: SandboxPolicy,
        git: GitCli,
    ):
        self.gate = ConfirmationGate("commit", commits)
        self.logs = logs
        self.sandbox = sandbox
        self.git = git

    def _checked_paths(self, paths: list[str] | None) -> list[str]:
        checked = []
        for path in paths or []:
            resolved = self.sandbox.resolve_path(path, must_exist=False, check_extension=False)
            checked.append(self.sandbox.relative(resolved))
        return checked

    def _not_a_repo(self, e: NotARepositoryError) -> dict[str, Any]:
        return {"not_git_repo": True, "message": e.message}

    @operation("git_status")
    async def status(self) -> dict[str, Any]:
        try:
            status = await self.git.status()
        except NotARepositoryError as e:
            return self._not_a_repo(e)
        return {
            "branch": status.branch,
            "upstream": status.upstream,
            "ahead": status.ahead,
            "behind": status.behind,
            "is_clean": status.clean,
            "files": status.grouped(),
        }

    @operation("git_diff")
    async def diff(self, staged: bool = False, paths: list[str] | None = None) -> dict[str, Any]:
        checked = self._checked_paths(paths)
        try:
            diff = await self.git.diff(staged=staged, paths=checked)
        except NotARepositoryError as e:
            return self._not_a_repo(e)
        return {"staged": staged, "paths": checked, "diff": diff}

    @operation("git_commit")
    async def commit(
        self,
        message: str,
        files: list[str] | None = None,
        require_confirmation: bool = True,
    ) -> dict[str, Any]:
        if not message or not message.strip():
            raise InvalidArgumentError("message", "commit message cannot be empty")

        pending = PendingCommit(
            id=f"commit_{uuid.uuid4().hex[:12]}",
            message=message,
            files=self._checked_paths(files),
            requires_confirmation=require_confirmation,
        )
        self.gate.submit(pending)
        self.logs.log_git_event(
            "Commit proposed", {"commit_id": pending.id, "files": pending.files}
        )

        if require_confirmation:
            return {
                "commit_id": pending.id,
                "status": "pending_confirmation",
                "message": message,
                "files": pending.files,
                "requires_confirmation": True,
            }

        self.gate.begin_confirm(pending.id, actor=None)
        return await self._apply(pending)

    @operation("confirm_commit")
    async def confirm(self, commit_id: str, confirmed_by: str | None = None) -> dict[str, Any]:
        pending = self.gate.begin_confirm(commit_id, confirmed_by)
        return await self._apply(pending)

    @operation("reject_commit")
    async def reject(self, commit_id: str) -> dict[str, Any]:
        rejected = self.gate.reject(commit_id)
        if rejected:
            self.logs.log_git_event("Commit rejected", {"commit_id": commit_id})
        return {"commit_id": commit_id, "rejected": rejected}

    @operation("list_pending_commits")
    async def list_pending(self) -> dict[str, Any]:
        pending = self.gate.pending()
        return {
            "commits": [
                {
                    "commit_id": c.id,
                    "message": c.message,
                    "files": c.files,
                    "created_at": c.created_at.isoformat(),
                }
                for c in pending
            ],
            "total": len(pending),
        }

    async def _apply(self, pending: PendingCommit) -> dict[str, Any]:
        try:
            await self.git.add(pending.files or None)
            commit_hash, summary = await self.git.commit(pending.message)
        except Exception as e:
            reason = e.message if isinstance(e, DevRelayError) else str(e)
            self.gate.mark_failed(pending, reason)
            self.logs.log_git_event("Commit failed", {"commit_id": pending.id, "error": reason})
            raise

        pending.commit_hash = commit_hash
        self.gate.mark_applied(pending)
        self.logs.log_git_event(
            "Commit created",
            {"commit_id": pending.id, "commit": commit_hash, "confirmed_by": pending.confirmed_by},
        )
        return {
            "commit_id": pending.id,
            "status": pending.status.value,
            "commit": commit_hash,
            "summary": summary,
            "message": pending.message,
            "files": pending.files,
        }
