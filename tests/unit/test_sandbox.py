"""Tests for the workspace sandbox policy."""

from pathlib import Path

import pytest

from devrelay_mcp.core.exceptions import (
    FileAccessDeniedError,
    FileTooLargeError,
    WorkspaceFileNotFoundError,
)
from devrelay_mcp.core.sandbox import SandboxPolicy, mime_type_for


class TestResolvePath:
    """Tests for path resolution."""

    def test_resolves_relative_path(self, sandbox: SandboxPolicy, workspace: Path) -> None:
        resolved = sandbox.resolve_path("app.py")

        assert resolved == (workspace / "app.py").resolve()

    def test_parent_traversal_is_denied(self, sandbox: SandboxPolicy) -> None:
        """Test that ../ cannot climb out of the workspace."""
        with pytest.raises(FileAccessDeniedError) as exc_info:
            sandbox.resolve_path("../../etc/passwd", must_exist=False)

        assert exc_info.value.details["reason"] == "outside workspace"

    def test_absolute_path_outside_is_denied(self, sandbox: SandboxPolicy) -> None:
        with pytest.raises(FileAccessDeniedError):
            sandbox.resolve_path("/etc/passwd", must_exist=False, check_extension=False)

    def test_inner_dotdot_that_stays_inside_is_allowed(
        self, sandbox: SandboxPolicy, workspace: Path
    ) -> None:
        resolved = sandbox.resolve_path("src/../app.py")

        assert resolved == (workspace / "app.py").resolve()

    def test_symlink_escape_is_denied(
        self, sandbox: SandboxPolicy, workspace: Path, tmp_path: Path
    ) -> None:
        outside = tmp_path / "secret.txt"
        outside.write_text("secret")
        (workspace / "link.txt").symlink_to(outside)

        with pytest.raises(FileAccessDeniedError):
            sandbox.resolve_path("link.txt")

    def test_missing_file(self, sandbox: SandboxPolicy) -> None:
        with pytest.raises(WorkspaceFileNotFoundError):
            sandbox.resolve_path("missing.py")

    def test_missing_file_allowed_when_not_required(
        self, sandbox: SandboxPolicy, workspace: Path
    ) -> None:
        resolved = sandbox.resolve_path("new.py", must_exist=False)

        assert resolved == (workspace / "new.py").resolve()

    def test_extension_not_allowed(self, sandbox: SandboxPolicy, workspace: Path) -> None:
        (workspace / "binary.exe").write_bytes(b"\x00")

        with pytest.raises(FileAccessDeniedError) as exc_info:
            sandbox.resolve_path("binary.exe")

        assert "extension" in exc_info.value.details["reason"]

    def test_extension_check_can_be_skipped(self, sandbox: SandboxPolicy, workspace: Path) -> None:
        (workspace / "binary.exe").write_bytes(b"\x00")

        assert sandbox.resolve_path("binary.exe", check_extension=False).name == "binary.exe"

    def test_resolve_against_base(self, sandbox: SandboxPolicy, workspace: Path) -> None:
        resolved = sandbox.resolve_path("index.js", base=workspace / "src")

        assert resolved == (workspace / "src" / "index.js").resolve()


class TestResolveDirectory:
    def test_default_is_workspace_root(self, sandbox: SandboxPolicy, workspace: Path) -> None:
        assert sandbox.resolve_directory(None) == workspace.resolve()

    def test_file_is_not_a_directory(self, sandbox: SandboxPolicy) -> None:
        with pytest.raises(FileAccessDeniedError):
            sandbox.resolve_directory("app.py")

    def test_outside_directory_is_denied(self, sandbox: SandboxPolicy) -> None:
        with pytest.raises(FileAccessDeniedError):
            sandbox.resolve_directory("..")


class TestFileSize:
    def test_file_too_large(self, workspace: Path) -> None:
        policy = SandboxPolicy(workspace, max_file_size=10)
        path = (workspace / "twenty.txt").resolve()

        with pytest.raises(FileTooLargeError) as exc_info:
            policy.check_file_size(path)

        assert exc_info.value.details["path"] == "twenty.txt"

    def test_within_limit_returns_size(self, sandbox: SandboxPolicy, workspace: Path) -> None:
        path = workspace / "twenty.txt"

        assert sandbox.check_file_size(path) == path.stat().st_size


class TestCommands:
    def test_allow_list_is_exact(self, sandbox: SandboxPolicy) -> None:
        assert sandbox.is_command_allowed("echo")
        assert not sandbox.is_command_allowed("echo2")
        assert not sandbox.is_command_allowed("ECHO")

    def test_dangerous(self, sandbox: SandboxPolicy) -> None:
        assert sandbox.is_command_dangerous("rm")
        assert not sandbox.is_command_dangerous("echo")


def test_mime_types() -> None:
    assert mime_type_for("a.py") == "text/x-python"
    assert mime_type_for("A.JS") == "application/javascript"
    assert mime_type_for("README") == "text/plain"
