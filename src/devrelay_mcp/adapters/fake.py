"""In-process adapter for tests and dry runs.

Launches the entry point with the current interpreter and answers
evaluations from a fixed table instead of a debugger.
"""

import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

from devrelay_mcp.adapters.base import DebugAdapter, LaunchSpec, RuntimeKind

if TYPE_CHECKING:
    from devrelay_mcp.core.session import DebugSession


class FakeDebugAdapter(DebugAdapter):
    """Adapter that runs the target as a plain Python script."""

    def __init__(
        self,
        step_delay: float = 0.0,
        kind: RuntimeKind = RuntimeKind.PYTHON,
        values: dict[str, Any] | None = None,
    ):
        super().__init__(step_delay=step_delay)
        self._kind = kind
        self.values = values or {}
        self.evaluated: list[str] = []

    @property
    def kind(self) -> RuntimeKind:
        return self._kind

    def build_launch(self, entry_point: Path, args: list[str]) -> LaunchSpec:
        return LaunchSpec(sys.executable, ["-u", str(entry_point), *args])

    async def evaluate(self, session: "DebugSession", expression: str) -> dict[str, Any]:
        self.evaluated.append(expression)
        value = self.values.get(expression)
        return {
            "result": repr(value),
            "type": type(value).__name__,
            "variables_reference": 0,
        }
