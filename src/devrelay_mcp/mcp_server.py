"""MCP server for the dev relay.

Exposes the relay's operations as MCP tools over stdio. Failed operations
raise ``ToolError`` with the JSON error payload, which clients receive as
an ``isError`` result.

Usage:
    # Run as stdio server (for AI host integration)
    python -m devrelay_mcp.mcp_server

    # Or via entry point
    devrelay-mcp
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from devrelay_mcp.config import settings
from devrelay_mcp.core.results import OperationResult
from devrelay_mcp.relay import DevRelay

logger = logging.getLogger(__name__)

# Relay instance (created in lifespan)
_relay: DevRelay | None = None


@asynccontextmanager
async def lifespan(app: FastMCP) -> AsyncIterator[dict[str, Any]]:
    """Build the relay on startup and tear it down on shutdown."""
    global _relay
    _relay = DevRelay(settings)
    await _relay.start()
    logger.info("DevRelay MCP server started")
    try:
        yield {"relay": _relay}
    finally:
        await _relay.stop()
        _relay = None
        logger.info("DevRelay MCP server stopped")


mcp = FastMCP(
    name="devrelay",
    instructions="""Sandboxed development relay. Debug: open_debug_session -> set_breakpoint -> pause_execution/step_*/continue_execution -> evaluate_expression -> close_debug_session. Files: read_workspace_file, apply_patch (+ confirm_patch). Tools: run_tests, run_lint, run_command. Git: git_status, git_diff, git_commit (+ confirm_commit). Logs: query_logs.""",
    lifespan=lifespan,
)


def _get_relay() -> DevRelay:
    """Get the relay, raising if not initialized."""
    if _relay is None:
        raise RuntimeError("DevRelay not initialized")
    return _relay


def _respond(result: OperationResult) -> dict[str, Any]:
    """Unwrap a result for MCP, turning failures into tool errors."""
    if result.is_error:
        raise ToolError(result.to_text())
    return result.payload()


# =============================================================================
# Debug Session Tools
# =============================================================================


@mcp.tool()
async def open_debug_session(
    kind: str,
    entry: str,
    cwd: str | None = None,
    args: list[str] | None = None,
    env: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Launch a program under its runtime's debugger.

    Args:
        kind: Runtime (node, python, go, java, csharp, php, ruby, rust)
        entry: Entry point, relative to cwd
        cwd: Working directory inside the workspace (default: workspace root)
        args: Program arguments
        env: Extra environment variables
    """
    return _respond(await _get_relay().debug.open(kind, entry, cwd=cwd, args=args, env=env))


@mcp.tool()
async def close_debug_session(session_id: str) -> dict[str, Any]:
    """Stop a session's process. The session stays queryable until removed."""
    return _respond(await _get_relay().debug.close(session_id))


@mcp.tool()
async def list_debug_sessions(status: str = "all") -> dict[str, Any]:
    """List sessions. status: all, active, paused or stopped."""
    return _respond(await _get_relay().debug.list_sessions(status))


@mcp.tool()
async def get_debug_session(session_id: str) -> dict[str, Any]:
    """Full session record: frame, breakpoints, watches and output tail."""
    return _respond(await _get_relay().debug.get(session_id))


@mcp.tool()
async def get_session_output(
    session_id: str,
    offset: int = 0,
    limit: int = 100,
    category: str | None = None,
    since: int | None = None,
) -> dict[str, Any]:
    """Page through a session's captured stdout/stderr.

    Args:
        session_id: Session ID
        offset: First chunk to return
        limit: Maximum chunks
        category: "stdout" or "stderr" (default: both)
        since: Only chunks after this sequence number
    """
    relay = _get_relay()
    return _respond(await relay.debug.get_output(session_id, offset, limit, category, since))


@mcp.tool()
async def remove_debug_session(session_id: str) -> dict[str, Any]:
    """Delete a stopped session record."""
    return _respond(await _get_relay().debug.remove(session_id))


# =============================================================================
# Breakpoint Tools
# =============================================================================


@mcp.tool()
async def set_breakpoint(
    session_id: str,
    file: str,
    line: int,
    condition: str | None = None,
) -> dict[str, Any]:
    """Set a line breakpoint.

    Args:
        session_id: Session ID
        file: Source file, relative to the session's working directory
        line: 1-based line number
        condition: Optional condition expression
    """
    return _respond(await _get_relay().breakpoints.set(session_id, file, line, condition))


@mcp.tool()
async def clear_breakpoint(session_id: str, breakpoint_id: str) -> dict[str, Any]:
    """Remove a breakpoint."""
    return _respond(await _get_relay().breakpoints.clear(session_id, breakpoint_id))


@mcp.tool()
async def list_breakpoints(session_id: str, enabled_only: bool = False) -> dict[str, Any]:
    """List a session's breakpoints."""
    return _respond(await _get_relay().breakpoints.list_breakpoints(session_id, enabled_only))


@mcp.tool()
async def toggle_breakpoint(
    session_id: str,
    breakpoint_id: str,
    enabled: bool | None = None,
) -> dict[str, Any]:
    """Enable or disable a breakpoint; flips it when enabled is omitted."""
    return _respond(await _get_relay().breakpoints.toggle(session_id, breakpoint_id, enabled))


# =============================================================================
# Execution Control Tools
# =============================================================================


@mcp.tool()
async def continue_execution(session_id: str) -> dict[str, Any]:
    """Resume a paused session."""
    return _respond(await _get_relay().execution.continue_execution(session_id))


@mcp.tool()
async def pause_execution(session_id: str) -> dict[str, Any]:
    """Pause a running session."""
    return _respond(await _get_relay().execution.pause(session_id))


@mcp.tool()
async def step_into(session_id: str) -> dict[str, Any]:
    """Step into the next call. Session must be paused."""
    return _respond(await _get_relay().execution.step_into(session_id))


@mcp.tool()
async def step_over(session_id: str) -> dict[str, Any]:
    """Step over the current line. Session must be paused."""
    return _respond(await _get_relay().execution.step_over(session_id))


@mcp.tool()
async def step_out(session_id: str) -> dict[str, Any]:
    """Step out of the current function. Session must be paused."""
    return _respond(await _get_relay().execution.step_out(session_id))


# =============================================================================
# Evaluation Tools
# =============================================================================


@mcp.tool()
async def evaluate_expression(
    session_id: str,
    expression: str,
    frame_id: int | None = None,
) -> dict[str, Any]:
    """Evaluate an expression in a paused or running session."""
    return _respond(await _get_relay().evaluation.evaluate(session_id, expression, frame_id))


@mcp.tool()
async def watch_expression(
    session_id: str,
    expression: str,
    name: str | None = None,
) -> dict[str, Any]:
    """Add a watch expression to a session."""
    return _respond(await _get_relay().evaluation.add_watch(session_id, expression, name))


@mcp.tool()
async def list_watch_expressions(session_id: str) -> dict[str, Any]:
    """List a session's watch expressions."""
    return _respond(await _get_relay().evaluation.list_watches(session_id))


@mcp.tool()
async def clear_watch_expression(session_id: str, watch_id: str) -> dict[str, Any]:
    """Remove a watch expression."""
    return _respond(await _get_relay().evaluation.clear_watch(session_id, watch_id))


# =============================================================================
# Patch Tools
# =============================================================================


@mcp.tool()
async def apply_patch(
    file: str,
    start: int | None = None,
    end: int | None = None,
    replacement: str | None = None,
    unified_diff: str | None = None,
    require_confirmation: bool = True,
    description: str | None = None,
) -> dict[str, Any]:
    """Replace lines start..end (1-based, inclusive) of a workspace file.

    Args:
        file: File path relative to the workspace
        start: First line to replace
        end: Last line to replace
        replacement: New text; empty deletes the lines
        unified_diff: Unified diff (not supported yet)
        require_confirmation: Hold the patch until confirm_patch (default true)
        description: What the patch does
    """
    relay = _get_relay()
    return _respond(
        await relay.patching.propose(
            file,
            start=start,
            end=end,
            replacement=replacement,
            unified_diff=unified_diff,
            require_confirmation=require_confirmation,
            description=description,
        )
    )


@mcp.tool()
async def confirm_patch(patch_id: str, confirmed_by: str | None = None) -> dict[str, Any]:
    """Apply a pending patch."""
    return _respond(await _get_relay().patching.confirm(patch_id, confirmed_by))


@mcp.tool()
async def reject_patch(patch_id: str) -> dict[str, Any]:
    """Discard a pending patch."""
    return _respond(await _get_relay().patching.reject(patch_id))


@mcp.tool()
async def list_pending_patches() -> dict[str, Any]:
    """List patches awaiting confirmation."""
    return _respond(await _get_relay().patching.list_pending())


@mcp.tool()
async def get_patch(patch_id: str) -> dict[str, Any]:
    """Get a patch and its status."""
    return _respond(await _get_relay().patching.get(patch_id))


# =============================================================================
# Command, Test and Lint Tools
# =============================================================================


@mcp.tool()
async def run_command(
    command: str,
    args: list[str] | None = None,
    cwd: str | None = None,
    timeout_ms: int | None = None,
) -> dict[str, Any]:
    """Run an allow-listed command in the workspace.

    Args:
        command: Executable name (must be allow-listed)
        args: Arguments
        cwd: Working directory inside the workspace
        timeout_ms: Timeout in milliseconds
    """
    return _respond(await _get_relay().commands.run(command, args, cwd, timeout_ms))


@mcp.tool()
async def get_command_execution(execution_id: str) -> dict[str, Any]:
    """Get a command execution with its full output."""
    return _respond(await _get_relay().commands.get(execution_id))


@mcp.tool()
async def list_command_executions(status: str | None = None, limit: int = 50) -> dict[str, Any]:
    """List command executions, newest first."""
    return _respond(await _get_relay().commands.list_executions(status, limit))


@mcp.tool()
async def run_tests(
    runner: str = "npm",
    target: str | None = None,
    args: list[str] | None = None,
    timeout_ms: int | None = None,
) -> dict[str, Any]:
    """Run a test suite.

    Args:
        runner: npm, yarn, jest, mocha, vitest, pytest, phpunit, rspec or "go test"
        target: Test file or pattern
        args: Extra runner arguments
        timeout_ms: Timeout in milliseconds
    """
    return _respond(await _get_relay().tests.run(runner, target, args, timeout_ms))


@mcp.tool()
async def get_test_report(report_id: str) -> dict[str, Any]:
    """Get a full test report."""
    return _respond(await _get_relay().tests.get(report_id))


@mcp.tool()
async def get_latest_test_report(runner: str | None = None) -> dict[str, Any]:
    """Get the most recent test report."""
    return _respond(await _get_relay().tests.latest(runner))


@mcp.tool()
async def list_test_reports(
    status: str | None = None,
    runner: str | None = None,
    limit: int = 20,
) -> dict[str, Any]:
    """List test reports, newest first."""
    return _respond(await _get_relay().tests.list_reports(status, runner, limit))


@mcp.tool()
async def run_lint(
    tool: str = "eslint",
    paths: list[str] | None = None,
    args: list[str] | None = None,
    timeout_ms: int | None = None,
) -> dict[str, Any]:
    """Run a linter.

    Args:
        tool: eslint, tsc, pylint, flake8, checkstyle, golint or clippy
        paths: Paths to lint (default: workspace root)
        args: Extra linter arguments
        timeout_ms: Timeout in milliseconds
    """
    return _respond(await _get_relay().lint.run(tool, paths, args, timeout_ms))


@mcp.tool()
async def get_lint_report(report_id: str) -> dict[str, Any]:
    """Get a full lint report."""
    return _respond(await _get_relay().lint.get(report_id))


@mcp.tool()
async def get_latest_lint_report(tool: str | None = None) -> dict[str, Any]:
    """Get the most recent lint report."""
    return _respond(await _get_relay().lint.latest(tool))


@mcp.tool()
async def list_lint_reports(
    status: str | None = None,
    tool: str | None = None,
    limit: int = 20,
) -> dict[str, Any]:
    """List lint reports, newest first."""
    return _respond(await _get_relay().lint.list_reports(status, tool, limit))


# =============================================================================
# Git Tools
# =============================================================================


@mcp.tool()
async def git_status() -> dict[str, Any]:
    """Branch, tracking and changed files of the workspace repository."""
    return _respond(await _get_relay().git.status())


@mcp.tool()
async def git_diff(staged: bool = False, paths: list[str] | None = None) -> dict[str, Any]:
    """Show unstaged (or staged) changes."""
    return _respond(await _get_relay().git.diff(staged, paths))


@mcp.tool()
async def git_commit(
    message: str,
    files: list[str] | None = None,
    require_confirmation: bool = True,
) -> dict[str, Any]:
    """Commit files (all changes when omitted), after confirm_commit by default."""
    return _respond(await _get_relay().git.commit(message, files, require_confirmation))


@mcp.tool()
async def confirm_commit(commit_id: str, confirmed_by: str | None = None) -> dict[str, Any]:
    """Confirm a pending commit and create it."""
    return _respond(await _get_relay().git.confirm(commit_id, confirmed_by))


@mcp.tool()
async def reject_commit(commit_id: str) -> dict[str, Any]:
    """Discard a pending commit."""
    return _respond(await _get_relay().git.reject(commit_id))


@mcp.tool()
async def list_pending_commits() -> dict[str, Any]:
    """List commits awaiting confirmation."""
    return _respond(await _get_relay().git.list_pending())


# =============================================================================
# Workspace and Log Tools
# =============================================================================


@mcp.tool()
async def read_workspace_file(
    path: str,
    start_line: int | None = None,
    end_line: int | None = None,
) -> dict[str, Any]:
    """Read a workspace file, optionally a line range, with its MIME type."""
    return _respond(await _get_relay().resources.read_file(path, start_line, end_line))


@mcp.tool()
async def list_workspace_files(pattern: str = "*", recursive: bool = True) -> dict[str, Any]:
    """List workspace files matching a glob pattern."""
    return _respond(await _get_relay().resources.list_files(pattern, recursive))


@mcp.tool()
async def workspace_status() -> dict[str, Any]:
    """Workspace, enabled features, supported tools and record counts."""
    return _respond(await _get_relay().resources.workspace_status())


@mcp.tool()
async def query_logs(
    level: str | None = None,
    since: str | None = None,
    until: str | None = None,
    contains: str | None = None,
    source: str | None = None,
    limit: int = 100,
) -> dict[str, Any]:
    """Query relay logs, newest first.

    Args:
        level: debug, info, warn or error
        since: ISO-8601 lower bound
        until: ISO-8601 upper bound
        contains: Case-insensitive text in message or data
        source: Exact source (e.g. "git", "debug:<session_id>")
        limit: Maximum entries
    """
    relay = _get_relay()
    return _respond(
        await relay.resources.query_logs(level, since, until, contains, source, limit)
    )


# =============================================================================
# Main Entry Point
# =============================================================================


def main() -> None:
    """Run the MCP server via stdio transport."""
    import sys

    # Logging goes to stderr (stdout is for MCP protocol)
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
