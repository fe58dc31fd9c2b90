"""Tests for runtime debug adapters."""

from pathlib import Path

import pytest

from devrelay_mcp.adapters import (
    DebugAdapter,
    RuntimeKind,
    StepMode,
    create_adapter,
    get_supported_runtimes,
    is_runtime_supported,
)
from devrelay_mcp.adapters.base import check_balanced
from devrelay_mcp.core.exceptions import UnsupportedRuntimeError


class TestFactory:
    """Tests for the adapter factory."""

    @pytest.mark.parametrize(
        "kind", ["node", "python", "go", "java", "csharp", "php", "ruby", "rust"]
    )
    def test_supported_kinds(self, kind: str) -> None:
        adapter = create_adapter(kind)

        assert isinstance(adapter, DebugAdapter)
        assert adapter.kind.value == kind

    def test_kind_is_case_insensitive(self) -> None:
        assert create_adapter("Python").kind == RuntimeKind.PYTHON

    def test_cpp_is_unsupported(self) -> None:
        with pytest.raises(UnsupportedRuntimeError) as exc_info:
            create_adapter("cpp")

        assert exc_info.value.details["kind"] == "cpp"
        assert "cpp" not in exc_info.value.details["supported"]

    def test_unknown_kind(self) -> None:
        with pytest.raises(UnsupportedRuntimeError):
            create_adapter("cobol")

    def test_supported_runtimes(self) -> None:
        supported = get_supported_runtimes()

        assert "node" in supported
        assert "cpp" not in supported
        assert is_runtime_supported("go")
        assert not is_runtime_supported("cpp")
        assert not is_runtime_supported("cobol")

    def test_step_delay_is_passed(self) -> None:
        assert create_adapter("node", step_delay=0.5).step_delay == 0.5


class TestLaunchVectors:
    """Tests for the command each runtime starts."""

    def test_node(self) -> None:
        launch = create_adapter("node").build_launch(Path("/ws/app.js"), ["--port", "1"])

        assert launch.command == "node"
        assert launch.args == ["--inspect-brk", "/ws/app.js", "--port", "1"]

    def test_python_uses_debugpy(self) -> None:
        launch = create_adapter("python").build_launch(Path("/ws/app.py"), [])

        assert launch.command == "python"
        assert launch.args[:2] == ["-m", "debugpy"]
        assert launch.args[-1] == "/ws/app.py"

    def test_go_passes_program_args_after_separator(self) -> None:
        launch = create_adapter("go").build_launch(Path("/ws/main.go"), ["-v"])

        assert launch.command == "dlv"
        assert "--headless" in launch.args
        assert launch.args[-2:] == ["--", "-v"]

    def test_java_suspends_for_debugger(self) -> None:
        launch = create_adapter("java").build_launch(Path("Main"), [])

        assert launch.command == "java"
        assert "suspend=y" in launch.args[0]

    def test_rust_uses_cargo(self) -> None:
        assert create_adapter("rust").build_launch(Path("src/main.rs"), []).command == "cargo"


class TestConditionSyntax:
    @pytest.mark.parametrize("condition", ["x > 1", "a[0] == 'x)'", "f(g(1), {'k': [2]})"])
    def test_balanced(self, condition: str) -> None:
        assert check_balanced(condition) is None

    @pytest.mark.parametrize(
        "condition,problem",
        [
            ("", "empty expression"),
            ("(x > 1", "unclosed '('"),
            ("x > 1)", "unbalanced ')'"),
            ("[1, 2)", "unbalanced ')'"),
            ("name == 'abc", "unterminated string literal"),
        ],
    )
    def test_unbalanced(self, condition: str, problem: str) -> None:
        assert check_balanced(condition) == problem

    def test_python_adapter_uses_the_parser(self) -> None:
        adapter = create_adapter("python")

        assert adapter.check_condition_syntax("x > 1 and y") is None
        assert adapter.check_condition_syntax("x >") is not None

    def test_node_adapter_uses_balance_check(self) -> None:
        assert create_adapter("node").check_condition_syntax("a === (b") == "unclosed '('"


class TestStepping:
    def test_step_deltas(self) -> None:
        assert DebugAdapter.STEP_DELTAS[StepMode.INTO] == 1
        assert DebugAdapter.STEP_DELTAS[StepMode.OVER] == 1
        assert DebugAdapter.STEP_DELTAS[StepMode.OUT] == -5

    def test_initial_frame(self) -> None:
        frame = create_adapter("node").initial_frame("app.js")

        assert frame.file == "app.js"
        assert frame.line == 1
