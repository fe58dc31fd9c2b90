"""Thin async wrapper around the git CLI."""

import logging
import re
from pathlib import Path

from devrelay_mcp.core.exceptions import GitCommandError, NotARepositoryError
from devrelay_mcp.core.process import ProcessResult, ProcessRunner
from devrelay_mcp.models.git import GitFileStatus, GitStatus

logger = logging.getLogger(__name__)


def _parse_branch_line(line: str, status: GitStatus) -> None:
    head = line[3:]
    for prefix in ("No commits yet on ", "Initial commit on "):
        head = head.removeprefix(prefix)
    if head.startswith("HEAD (no branch)"):
        return
    if " [" in head:
        head, tracking = head.split(" [", 1)
        ahead = re.search(r"ahead (\d+)", tracking)
        behind = re.search(r"behind (\d+)", tracking)
        status.ahead = int(ahead.group(1)) if ahead else 0
        status.behind = int(behind.group(1)) if behind else 0
    if "..." in head:
        head, status.upstream = head.split("...", 1)
    status.branch = head


def parse_porcelain(output: str) -> GitStatus:
    """Parse ``git status --porcelain=v1 --branch`` output."""
    status = GitStatus()
    for line in output.splitlines():
        if line.startswith("## "):
            _parse_branch_line(line, status)
            continue
        if len(line) < 4:
            continue
        index, worktree, path = line[0], line[1], line[3:]
        original = None
        if " -> " in path:
            original, path = path.split(" -> ", 1)
        status.files.append(
            GitFileStatus(path=path, index=index, worktree=worktree, original_path=original)
        )
    return status


class GitCli:
    """Runs git commands in the workspace through the process runner."""

    def __init__(self, runner: ProcessRunner, repo_dir: Path, timeout: float = 30.0):
        self.runner = runner
        self.repo_dir = repo_dir
        self.timeout = timeout

    async def _git(self, operation: str, *args: str) -> ProcessResult:
        result = await self.runner.run("git", list(args), self.repo_dir, self.timeout)
        if result.exit_code != 0:
            stderr = result.stderr.strip()
            if "not a git repository" in stderr.lower():
                raise NotARepositoryError(str(self.repo_dir))
            raise GitCommandError(operation, stderr or f"exit code {result.exit_code}")
        return result

    async def status(self) -> GitStatus:
        result = await self._git("status", "status", "--porcelain=v1", "--branch")
        return parse_porcelain(result.stdout)

    async def diff(self, staged: bool = False, paths: list[str] | None = None) -> str:
        args = ["diff"]
        if staged:
            args.append("--staged")
        if paths:
            args += ["--", *paths]
        result = await self._git("diff", *args)
        return result.stdout

    async def add(self, paths: list[str] | None = None) -> None:
        if paths:
            await self._git("add", "add", "--", *paths)
        else:
            await self._git("add", "add", ".")

    async def commit(self, message: str) -> tuple[str, str]:
        """Commit the index; returns ``(commit_hash, summary_line)``."""
        result = await self._git("commit", "commit", "-m", message)
        head = await self._git("rev-parse", "rev-parse", "HEAD")
        summary = next((line for line in result.stdout.splitlines() if line.strip()), "")
        logger.info(f"Created commit {head.stdout.strip()[:12]}")
        return head.stdout.strip(), summary.strip()
