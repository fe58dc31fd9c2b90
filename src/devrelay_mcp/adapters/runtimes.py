"""Launch strategies for each supported runtime.

Each adapter starts the entry point under the runtime's own debug server.
C++ has no adapter: it needs a native debugger setup and is rejected up
front by the factory.
"""

import ast
from pathlib import Path

from devrelay_mcp.adapters.base import DebugAdapter, LaunchSpec, RuntimeKind
from devrelay_mcp.adapters.factory import register_adapter

DEBUGPY_PORT = 5678
DELVE_ADDRESS = ":2345"
JDWP_ADDRESS = "5005"


@register_adapter(RuntimeKind.NODE)
class NodeAdapter(DebugAdapter):
    """Node.js with the V8 inspector, paused before the first line."""

    ready_marker = "Debugger listening on"

    @property
    def kind(self) -> RuntimeKind:
        return RuntimeKind.NODE

    def build_launch(self, entry_point: Path, args: list[str]) -> LaunchSpec:
        return LaunchSpec("node", ["--inspect-brk", str(entry_point), *args])


@register_adapter(RuntimeKind.PYTHON)
class PythonAdapter(DebugAdapter):
    """CPython under debugpy, waiting for a client to attach."""

    @property
    def kind(self) -> RuntimeKind:
        return RuntimeKind.PYTHON

    def build_launch(self, entry_point: Path, args: list[str]) -> LaunchSpec:
        return LaunchSpec(
            "python",
            [
                "-m",
                "debugpy",
                "--wait-for-client",
                "--listen",
                str(DEBUGPY_PORT),
                str(entry_point),
                *args,
            ],
        )

    def check_condition_syntax(self, condition: str) -> str | None:
        try:
            ast.parse(condition, mode="eval")
        except SyntaxError as e:
            return e.msg
        return None


@register_adapter(RuntimeKind.GO)
class GoAdapter(DebugAdapter):
    """Delve headless server."""

    ready_marker = "API server listening"

    @property
    def kind(self) -> RuntimeKind:
        return RuntimeKind.GO

    def build_launch(self, entry_point: Path, args: list[str]) -> LaunchSpec:
        launch_args = [
            "debug",
            str(entry_point),
            "--headless",
            f"--listen={DELVE_ADDRESS}",
            "--api-version=2",
        ]
        if args:
            launch_args += ["--", *args]
        return LaunchSpec("dlv", launch_args)


@register_adapter(RuntimeKind.JAVA)
class JavaAdapter(DebugAdapter):
    """JVM with the JDWP agent suspended until a debugger attaches."""

    ready_marker = "Listening for transport"

    @property
    def kind(self) -> RuntimeKind:
        return RuntimeKind.JAVA

    def build_launch(self, entry_point: Path, args: list[str]) -> LaunchSpec:
        agent = f"-agentlib:jdwp=transport=dt_socket,server=y,suspend=y,address={JDWP_ADDRESS}"
        return LaunchSpec("java", [agent, "-cp", ".", str(entry_point), *args])


@register_adapter(RuntimeKind.CSHARP)
class CSharpAdapter(DebugAdapter):
    @property
    def kind(self) -> RuntimeKind:
        return RuntimeKind.CSHARP

    def build_launch(self, entry_point: Path, args: list[str]) -> LaunchSpec:
        return LaunchSpec("dotnet", ["run", "--launch-profile", "Debug", *args])


@register_adapter(RuntimeKind.PHP)
class PhpAdapter(DebugAdapter):
    @property
    def kind(self) -> RuntimeKind:
        return RuntimeKind.PHP

    def build_launch(self, entry_point: Path, args: list[str]) -> LaunchSpec:
        return LaunchSpec("php", [str(entry_point), *args])


@register_adapter(RuntimeKind.RUBY)
class RubyAdapter(DebugAdapter):
    @property
    def kind(self) -> RuntimeKind:
        return RuntimeKind.RUBY

    def build_launch(self, entry_point: Path, args: list[str]) -> LaunchSpec:
        return LaunchSpec("ruby", [str(entry_point), *args])


@register_adapter(RuntimeKind.RUST)
class RustAdapter(DebugAdapter):
    """Cargo build-and-run of the crate containing the entry point."""

    @property
    def kind(self) -> RuntimeKind:
        return RuntimeKind.RUST

    def build_launch(self, entry_point: Path, args: list[str]) -> LaunchSpec:
        launch_args = ["run"]
        if args:
            launch_args += ["--", *args]
        return LaunchSpec("cargo", launch_args)

