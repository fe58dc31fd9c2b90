"""Workspace sandbox policy.

Validates file paths against the workspace root and extension allow-list,
and commands against the command allow-list. Pure validation against the
current filesystem state; no side effects.
"""

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from devrelay_mcp.core.exceptions import (
    FileAccessDeniedError,
    FileTooLargeError,
    WorkspaceFileNotFoundError,
)

logger = logging.getLogger(__name__)

MIME_TYPES: dict[str, str] = {
    ".js": "application/javascript",
    ".ts": "application/typescript",
    ".json": "application/json",
    ".html": "text/html",
    ".css": "text/css",
    ".md": "text/markdown",
    ".txt": "text/plain",
    ".py": "text/x-python",
    ".java": "text/x-java-source",
    ".cpp": "text/x-c++src",
    ".c": "text/x-csrc",
    ".php": "application/x-php",
    ".rb": "text/x-ruby",
    ".go": "text/x-go",
    ".rs": "text/x-rust",
    ".swift": "text/x-swift",
    ".kt": "text/x-kotlin",
    ".scala": "text/x-scala",
    ".cs": "text/x-csharp",
    ".fs": "text/x-fsharp",
    ".xml": "application/xml",
    ".yaml": "application/x-yaml",
    ".yml": "application/x-yaml",
    ".toml": "application/toml",
    ".ini": "text/plain",
    ".cfg": "text/plain",
    ".sh": "application/x-shellscript",
    ".bash": "application/x-shellscript",
    ".zsh": "application/x-shellscript",
    ".ps1": "application/x-powershell",
    ".sql": "application/sql",
}


def mime_type_for(path: str | Path) -> str:
    """MIME type by extension, ``text/plain`` when unknown."""
    return MIME_TYPES.get(Path(path).suffix.lower(), "text/plain")


class SandboxPolicy:
    """Path and command restrictions for a single workspace."""

    def __init__(
        self,
        workspace_root: Path,
        allowed_extensions: Iterable[str] | None = None,
        allowed_commands: Iterable[str] = (),
        dangerous_commands: Iterable[str] = (),
        max_file_size: int | None = None,
    ):
        self.workspace_root = Path(workspace_root).resolve()
        self.allowed_extensions = (
            {ext.lower() for ext in allowed_extensions} if allowed_extensions is not None else None
        )
        self.allowed_commands = frozenset(allowed_commands)
        self.dangerous_commands = frozenset(dangerous_commands)
        self.max_file_size = max_file_size

    def contains(self, path: Path) -> bool:
        """Whether an absolute, resolved path lies inside the workspace."""
        return path == self.workspace_root or path.is_relative_to(self.workspace_root)

    def resolve_path(
        self,
        relative: str | Path,
        base: str | Path | None = None,
        *,
        must_exist: bool = True,
        check_extension: bool = True,
    ) -> Path:
        """Resolve a file path and enforce the sandbox.

        Args:
            relative: Path as supplied by the caller
            base: Directory to resolve against (defaults to the workspace root)
            must_exist: Reject paths that do not exist
            check_extension: Enforce the extension allow-list

        Returns:
            Absolute resolved path inside the workspace

        Raises:
            FileAccessDeniedError: Path escapes the workspace or the extension is
                not allowed
            WorkspaceFileNotFoundError: Target does not exist
        """
        base_dir = Path(base) if base is not None else self.workspace_root
        if not base_dir.is_absolute():
            base_dir = self.workspace_root / base_dir
        resolved = (base_dir / relative).resolve()

        if self._escapes_lexically(base_dir, relative) or not self.contains(resolved):
            logger.warning(f"Rejected path outside workspace: {relative}")
            raise FileAccessDeniedError(str(relative), "outside workspace")

        if must_exist and not resolved.exists():
            raise WorkspaceFileNotFoundError(str(relative))

        if check_extension and self.allowed_extensions is not None:
            if resolved.suffix.lower() not in self.allowed_extensions:
                raise FileAccessDeniedError(
                    str(relative), f"extension '{resolved.suffix}' not allowed"
                )

        return resolved

    def resolve_directory(self, relative: str | Path | None) -> Path:
        """Resolve a working directory inside the workspace."""
        if relative is None:
            return self.workspace_root
        resolved = self.resolve_path(relative, must_exist=True, check_extension=False)
        if not resolved.is_dir():
            raise FileAccessDeniedError(str(relative), "not a directory")
        return resolved

    def check_file_size(self, path: Path) -> int:
        """Return the file size, raising if it exceeds the limit."""
        size = path.stat().st_size
        if self.max_file_size is not None and size > self.max_file_size:
            raise FileTooLargeError(self.relative(path), size, self.max_file_size)
        return size

    def relative(self, path: Path) -> str:
        """Workspace-relative form of an absolute path."""
        try:
            return path.relative_to(self.workspace_root).as_posix()
        except ValueError:
            return str(path)

    def is_command_allowed(self, name: str) -> bool:
        """Exact match against the allow-list; everything else is denied."""
        return name in self.allowed_commands

    def is_command_dangerous(self, name: str) -> bool:
        return name in self.dangerous_commands

    def _escapes_lexically(self, base_dir: Path, relative: str | Path) -> bool:
        # ".." segments that climb above the workspace root, before symlinks
        if Path(relative).is_absolute():
            return False
        base_rel = os.path.relpath(base_dir, self.workspace_root)
        lexical = os.path.normpath(os.path.join(base_rel, relative))
        return lexical == os.pardir or lexical.startswith(os.pardir + os.sep)
