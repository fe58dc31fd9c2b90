"""Abstract base class for runtime debug adapters.

An adapter knows how to launch a debug target for one runtime and how to
drive its execution. The session orchestrators own the process and the
session state; adapters only answer runtime-specific questions (launch
vector, condition syntax, where a step lands, how to evaluate).
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from devrelay_mcp.core.exceptions import EvaluationUnsupportedError
from devrelay_mcp.models.session import StackFrame, ThreadInfo

if TYPE_CHECKING:
    from devrelay_mcp.core.session import DebugSession


class RuntimeKind(str, Enum):
    """Runtime kinds a debug session may request."""

    NODE = "node"
    PYTHON = "python"
    GO = "go"
    JAVA = "java"
    CSHARP = "csharp"
    CPP = "cpp"
    PHP = "php"
    RUBY = "ruby"
    RUST = "rust"


class StepMode(str, Enum):
    INTO = "into"
    OVER = "over"
    OUT = "out"


@dataclass
class LaunchSpec:
    """Command vector that starts a debug target."""

    command: str
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)


_CLOSERS = {")": "(", "]": "[", "}": "{"}


def check_balanced(expression: str) -> str | None:
    """Syntax-only check shared by adapters without a real parser.

    Returns:
        A description of the first problem found, or None when the
        expression looks well formed
    """
    if not expression.strip():
        return "empty expression"

    stack: list[str] = []
    quote: str | None = None
    escaped = False
    for ch in expression:
        if quote:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = None
            continue
        if ch in "\"'`":
            quote = ch
        elif ch in "([{":
            stack.append(ch)
        elif ch in _CLOSERS:
            if not stack or stack.pop() != _CLOSERS[ch]:
                return f"unbalanced '{ch}'"

    if quote:
        return "unterminated string literal"
    if stack:
        return f"unclosed '{stack[-1]}'"
    return None


class DebugAdapter(ABC):
    """Runtime strategy used by the debug session orchestrators.

    Stepping is modelled as a delay followed by a move of the current
    line; subclasses backed by a real debugger override ``step``,
    ``pause`` and ``evaluate``.
    """

    # Line movement per step mode
    STEP_DELTAS: dict[StepMode, int] = {
        StepMode.INTO: 1,
        StepMode.OVER: 1,
        StepMode.OUT: -5,
    }

    # Output text that marks the target as ready before the ready delay ends
    ready_marker: str | None = None

    def __init__(self, step_delay: float = 0.1):
        self.step_delay = step_delay

    @property
    @abstractmethod
    def kind(self) -> RuntimeKind:
        """The runtime this adapter supports."""
        ...

    @abstractmethod
    def build_launch(self, entry_point: Path, args: list[str]) -> LaunchSpec:
        """Command vector that starts ``entry_point`` under the debugger."""
        ...

    def check_condition_syntax(self, condition: str) -> str | None:
        """Validate a breakpoint condition without evaluating it."""
        return check_balanced(condition)

    def initial_frame(self, entry_point: str) -> StackFrame:
        return StackFrame(id=0, name="<module>", file=entry_point, line=1)

    def threads(self) -> list[ThreadInfo]:
        return [ThreadInfo(id=1, name="main")]

    async def continue_execution(self, session: "DebugSession") -> None:
        """Resume the target. Nothing to send without a protocol client."""
        return None

    async def pause(self, session: "DebugSession") -> StackFrame:
        """Suspend the target and report where it stopped."""
        return session.current_frame or self.initial_frame(session.entry_point)

    async def step(self, session: "DebugSession", mode: StepMode) -> int:
        """Perform one step and return the new current line."""
        await asyncio.sleep(self.step_delay)
        frame = session.current_frame or self.initial_frame(session.entry_point)
        return max(1, frame.line + self.STEP_DELTAS[mode])

    async def evaluate(self, session: "DebugSession", expression: str) -> dict[str, Any]:
        """Evaluate an expression in the current frame.

        Raises:
            EvaluationUnsupportedError: The runtime has no evaluator
        """
        raise EvaluationUnsupportedError(self.kind.value)
