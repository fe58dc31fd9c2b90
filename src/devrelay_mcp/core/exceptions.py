"""Custom exception hierarchy for the dev relay."""

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Broad error classes surfaced to callers."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    EXTERNAL_PROCESS = "external_process"
    UNSUPPORTED = "unsupported"
    INTERNAL = "internal"


class DevRelayError(Exception):
    """Base exception for all dev relay errors."""

    category = ErrorCategory.INTERNAL

    def __init__(
        self,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class InternalError(DevRelayError):
    """Unexpected failure inside the relay."""

    def __init__(self, reason: str):
        super().__init__(
            code="INTERNAL_ERROR",
            message="An unexpected error occurred",
            details={"error": reason},
        )


class FileWriteError(DevRelayError):
    """Writing a workspace file failed."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            code="WRITE_FAILED",
            message=f"Failed to write {path}: {reason}",
            details={"path": path, "reason": reason},
        )


# =============================================================================
# Validation errors
# =============================================================================


class InvalidRequestError(DevRelayError):
    """Request failed validation; nothing was changed."""

    category = ErrorCategory.VALIDATION


class InvalidArgumentError(InvalidRequestError):
    """Missing or malformed argument."""

    def __init__(self, argument: str, reason: str):
        super().__init__(
            code="INVALID_ARGUMENT",
            message=f"Invalid argument '{argument}': {reason}",
            details={"argument": argument, "reason": reason},
        )


class FileAccessDeniedError(InvalidRequestError):
    """Path escapes the workspace or has a disallowed extension."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            code="FILE_ACCESS_DENIED",
            message=f"File access denied: {path} ({reason})",
            details={"path": path, "reason": reason},
        )


class FileTooLargeError(InvalidRequestError):
    """File exceeds the configured size limit."""

    def __init__(self, path: str, size: int, limit: int):
        super().__init__(
            code="FILE_TOO_LARGE",
            message=f"File too large: {path} is {size} bytes (max: {limit})",
            details={"path": path, "size": size, "limit": limit},
        )


class CommandNotAllowedError(InvalidRequestError):
    """Command is not on the allow-list."""

    def __init__(self, command: str, reason: str = "not in allowed commands"):
        super().__init__(
            code="COMMAND_NOT_ALLOWED",
            message=f"Command not allowed: {command}",
            details={"command": command, "reason": reason},
        )


class FeatureDisabledError(InvalidRequestError):
    """Capability switched off in configuration."""

    def __init__(self, feature: str):
        super().__init__(
            code="FEATURE_DISABLED",
            message=f"{feature} is disabled in server configuration",
            details={"feature": feature},
        )


class SessionLimitError(InvalidRequestError):
    """Maximum concurrent sessions reached."""

    def __init__(self, max_sessions: int):
        super().__init__(
            code="SESSION_LIMIT_REACHED",
            message=f"Maximum of {max_sessions} concurrent sessions reached",
            details={"max_sessions": max_sessions},
        )


class InvalidSessionStateError(InvalidRequestError):
    """Operation not valid in current session state."""

    def __init__(
        self,
        session_id: str,
        current_state: str,
        required_states: list[str],
        message: str | None = None,
    ):
        super().__init__(
            code="INVALID_SESSION_STATE",
            message=message
            or f"Session '{session_id}' is in state '{current_state}', "
            f"but operation requires: {required_states}",
            details={
                "session_id": session_id,
                "current_state": current_state,
                "required_states": required_states,
            },
        )


class InvalidConfirmationStateError(InvalidRequestError):
    """Pending action is no longer awaiting a decision."""

    def __init__(self, kind: str, action_id: str, status: str):
        super().__init__(
            code="INVALID_CONFIRMATION_STATE",
            message=f"{kind.capitalize()} '{action_id}' is already {status}",
            details={"id": action_id, "kind": kind, "status": status},
        )


# =============================================================================
# Not-found errors
# =============================================================================


class NotFoundError(DevRelayError):
    """Referenced entity does not exist."""

    category = ErrorCategory.NOT_FOUND


class SessionNotFoundError(NotFoundError):
    """Session with given ID does not exist."""

    def __init__(self, session_id: str):
        super().__init__(
            code="SESSION_NOT_FOUND",
            message=f"Debug session not found: {session_id}",
            details={"session_id": session_id},
        )


class BreakpointNotFoundError(NotFoundError):
    """Breakpoint with given ID does not exist."""

    def __init__(self, session_id: str, breakpoint_id: str):
        super().__init__(
            code="BREAKPOINT_NOT_FOUND",
            message=f"Breakpoint '{breakpoint_id}' not found in session '{session_id}'",
            details={"session_id": session_id, "breakpoint_id": breakpoint_id},
        )


class WatchNotFoundError(NotFoundError):
    """Watch expression with given ID does not exist."""

    def __init__(self, session_id: str, watch_id: str):
        super().__init__(
            code="WATCH_NOT_FOUND",
            message=f"Watch expression '{watch_id}' not found in session '{session_id}'",
            details={"session_id": session_id, "watch_id": watch_id},
        )


class PendingActionNotFoundError(NotFoundError):
    """Pending patch or commit does not exist."""

    def __init__(self, kind: str, action_id: str):
        super().__init__(
            code=f"{kind.upper()}_NOT_FOUND",
            message=f"Pending {kind} not found: {action_id}",
            details={"id": action_id, "kind": kind},
        )


class ReportNotFoundError(NotFoundError):
    """Test/lint report or command execution does not exist."""

    def __init__(self, kind: str, report_id: str):
        super().__init__(
            code="REPORT_NOT_FOUND",
            message=f"{kind.capitalize()} not found: {report_id}",
            details={"id": report_id, "kind": kind},
        )


class WorkspaceFileNotFoundError(NotFoundError):
    """Target file does not exist inside the workspace."""

    def __init__(self, path: str):
        super().__init__(
            code="FILE_NOT_FOUND",
            message=f"File not found: {path}",
            details={"path": path},
        )


# =============================================================================
# External process errors
# =============================================================================


class ExternalProcessError(DevRelayError):
    """An external tool failed to run."""

    category = ErrorCategory.EXTERNAL_PROCESS


class ProcessSpawnError(ExternalProcessError):
    """Binary could not be started (missing, not executable, ...)."""

    def __init__(self, command: str, reason: str):
        super().__init__(
            code="PROCESS_SPAWN_FAILED",
            message=f"Failed to start '{command}': {reason}",
            details={"command": command, "reason": reason},
        )


class ProcessTimeoutError(ExternalProcessError):
    """Process did not exit within its time budget."""

    def __init__(self, command: str, timeout: float, details: dict[str, Any] | None = None):
        super().__init__(
            code="TIMEOUT",
            message=f"'{command}' timed out after {timeout:g}s",
            details={"command": command, "timeout": timeout, **(details or {})},
        )


class LaunchError(ExternalProcessError):
    """Failed to launch debug target."""

    def __init__(self, reason: str, details: dict[str, Any] | None = None):
        super().__init__(
            code="LAUNCH_FAILED",
            message=f"Failed to launch debug target: {reason}",
            details=details or {},
        )


class GitCommandError(ExternalProcessError):
    """git exited with an error."""

    def __init__(self, operation: str, reason: str):
        super().__init__(
            code="GIT_FAILED",
            message=f"git {operation} failed: {reason}",
            details={"operation": operation, "reason": reason},
        )


class NotARepositoryError(ExternalProcessError):
    """Workspace is not inside a git repository."""

    def __init__(self, path: str):
        super().__init__(
            code="NOT_A_REPOSITORY",
            message=f"Not a git repository: {path}",
            details={"path": path},
        )


# =============================================================================
# Unsupported capabilities
# =============================================================================


class UnsupportedCapabilityError(DevRelayError):
    """Capability is deliberately not implemented."""

    category = ErrorCategory.UNSUPPORTED


class UnsupportedRuntimeError(UnsupportedCapabilityError):
    """No debug adapter exists for the runtime kind."""

    def __init__(self, kind: str, supported: list[str]):
        super().__init__(
            code="UNSUPPORTED_RUNTIME",
            message=f"Debugging is not supported for runtime '{kind}'",
            details={"kind": kind, "supported": supported},
        )


class UnsupportedPatchTypeError(UnsupportedCapabilityError):
    """Patch kind has no applier."""

    def __init__(self, patch_type: str):
        super().__init__(
            code="UNSUPPORTED_PATCH_TYPE",
            message=f"Patch type '{patch_type}' is not supported yet",
            details={"type": patch_type},
        )


class UnsupportedToolError(UnsupportedCapabilityError):
    """Unknown test runner or lint tool."""

    def __init__(self, kind: str, tool: str, supported: list[str]):
        super().__init__(
            code="UNSUPPORTED_TOOL",
            message=f"Unsupported {kind}: {tool}",
            details={"tool": tool, "supported": supported},
        )


class EvaluationUnsupportedError(UnsupportedCapabilityError):
    """Runtime adapter has no expression evaluator."""

    def __init__(self, kind: str):
        super().__init__(
            code="EVALUATION_UNSUPPORTED",
            message=f"Expression evaluation is not available for runtime '{kind}'",
            details={"kind": kind},
        )
