"""Global test fixtures."""

import sys
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from devrelay_mcp.adapters import RuntimeKind, create_adapter
from devrelay_mcp.adapters.base import DebugAdapter
from devrelay_mcp.adapters.fake import FakeDebugAdapter
from devrelay_mcp.config import Settings
from devrelay_mcp.core.logstore import LogStore
from devrelay_mcp.core.process import ProcessRunner
from devrelay_mcp.core.sandbox import SandboxPolicy
from devrelay_mcp.main import create_app
from devrelay_mcp.relay import DevRelay
from devrelay_mcp.utils.capture import ChunkLog

PYTHON = sys.executable

LONG_RUNNING_SCRIPT = """\
import time

def main():
    counter = 0
    while True:
        counter += 1
        print(f"tick {counter}", flush=True)
        time.sleep(0.2)

if __name__ == "__main__":
    main()
"""

QUICK_EXIT_SCRIPT = """\
import sys
print("bye")
sys.exit(3)
"""


def fake_adapter_factory(kind: str) -> DebugAdapter:
    """Real kind validation, but every target runs as a plain Python script."""
    create_adapter(kind)
    return FakeDebugAdapter(kind=RuntimeKind(kind.lower()), values={"x": 42})


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Workspace with a long-running script, a quick exit and a 20-line file."""
    root = tmp_path / "workspace"
    root.mkdir()
    (root / "app.py").write_text(LONG_RUNNING_SCRIPT)
    (root / "quick.py").write_text(QUICK_EXIT_SCRIPT)
    (root / "twenty.txt").write_text("".join(f"line {i}\n" for i in range(1, 21)))
    (root / "src").mkdir()
    (root / "src" / "index.js").write_text("console.log('hi');\n")
    return root


@pytest.fixture
def test_settings(workspace: Path) -> Settings:
    """Settings with fast timings and every feature enabled."""
    return Settings(
        workspace_dir=workspace,
        allow_file_patches=True,
        allow_command_execution=True,
        allowed_commands=["echo", "ls", "git", PYTHON, "rm"],
        dangerous_commands=["rm", "sudo"],
        max_sessions=3,
        session_startup_timeout_seconds=5.0,
        session_ready_delay_seconds=0.3,
        close_grace_seconds=1.0,
        kill_delay_seconds=0.5,
        step_delay_seconds=0.0,
    )


@pytest.fixture
def sandbox(workspace: Path) -> SandboxPolicy:
    return SandboxPolicy(
        workspace,
        allowed_extensions=[".py", ".txt", ".js"],
        allowed_commands=["echo", PYTHON],
        dangerous_commands=["rm"],
        max_file_size=1024 * 1024,
    )


@pytest.fixture
def log_store() -> LogStore:
    return LogStore(retention=100)


@pytest_asyncio.fixture
async def runner() -> AsyncGenerator[ProcessRunner, None]:
    """Process runner that kills leftovers after each test."""
    proc_runner = ProcessRunner(max_output_bytes=64 * 1024, kill_delay=0.5)
    yield proc_runner
    await proc_runner.shutdown()


@pytest_asyncio.fixture
async def relay(test_settings: Settings) -> AsyncGenerator[DevRelay, None]:
    """Started relay over the temporary workspace."""
    dev_relay = DevRelay(test_settings, adapter_factory=fake_adapter_factory)
    await dev_relay.start()
    yield dev_relay
    await dev_relay.stop()


@pytest.fixture
def chunk_log() -> ChunkLog:
    """Small chunk log for capture tests."""
    return ChunkLog(max_bytes=1024)


@pytest_asyncio.fixture
async def client(relay: DevRelay) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against an app wired to the test relay."""
    app = create_app()
    app.state.relay = relay
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as http_client:
        yield http_client
