"""Tests for the process runner."""

import asyncio
import sys
from pathlib import Path

import pytest

from devrelay_mcp.core.exceptions import ProcessSpawnError, ProcessTimeoutError
from devrelay_mcp.core.process import ProcessRunner

PYTHON = sys.executable


class TestRun:
    """Tests for ProcessRunner.run."""

    @pytest.mark.asyncio
    async def test_captures_stdout(self, runner: ProcessRunner, tmp_path: Path) -> None:
        result = await runner.run(PYTHON, ["-c", "print('hi')"], tmp_path, timeout=10)

        assert result.exit_code == 0
        assert result.stdout.strip() == "hi"
        assert result.truncated is False

    @pytest.mark.asyncio
    async def test_non_zero_exit_is_a_result(self, runner: ProcessRunner, tmp_path: Path) -> None:
        code = "import sys; sys.stderr.write('boom'); sys.exit(4)"
        result = await runner.run(PYTHON, ["-c", code], tmp_path, timeout=10)

        assert result.exit_code == 4
        assert result.stderr == "boom"
        assert result.output.endswith("boom")

    @pytest.mark.asyncio
    async def test_missing_binary(self, runner: ProcessRunner, tmp_path: Path) -> None:
        with pytest.raises(ProcessSpawnError) as exc_info:
            await runner.run("definitely-not-a-real-binary-xyz", [], tmp_path, timeout=5)

        assert exc_info.value.details["reason"] == "command not found"

    @pytest.mark.asyncio
    async def test_timeout(self, runner: ProcessRunner, tmp_path: Path) -> None:
        code = "import time; print('started', flush=True); time.sleep(30)"

        with pytest.raises(ProcessTimeoutError) as exc_info:
            await runner.run(PYTHON, ["-c", code], tmp_path, timeout=1.5)

        assert exc_info.value.code == "TIMEOUT"
        assert "started" in exc_info.value.details["stdout"]

    @pytest.mark.asyncio
    async def test_output_keeps_tail(self, tmp_path: Path) -> None:
        proc_runner = ProcessRunner(max_output_bytes=1024)
        code = "print('x' * 5000); print('END')"

        result = await proc_runner.run(PYTHON, ["-c", code], tmp_path, timeout=10)

        assert result.truncated is True
        assert len(result.stdout.encode()) <= 1024
        assert result.stdout.rstrip().endswith("END")

    @pytest.mark.asyncio
    @pytest.mark.posix
    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
    async def test_timed_out_process_ignoring_sigterm_is_killed(self, tmp_path: Path) -> None:
        proc_runner = ProcessRunner(max_output_bytes=1024, kill_delay=0.3)
        code = (
            "import signal, time\n"
            "signal.signal(signal.SIGTERM, signal.SIG_IGN)\n"
            "print('ready', flush=True)\n"
            "time.sleep(30)\n"
        )

        with pytest.raises(ProcessTimeoutError):
            await proc_runner.run(PYTHON, ["-c", code], tmp_path, timeout=0.5)

        # SIGTERM is ignored; the scheduled kill lands after kill_delay
        for _ in range(50):
            if proc_runner.live_count == 0:
                break
            await asyncio.sleep(0.1)
        assert proc_runner.live_count == 0
        await proc_runner.shutdown()


class TestSpawn:
    """Tests for long-lived processes."""

    @pytest.mark.asyncio
    async def test_output_callback_and_exit_callback(
        self, runner: ProcessRunner, tmp_path: Path
    ) -> None:
        received: list[tuple[str, str]] = []
        exits: list[int] = []

        proc = await runner.spawn(
            PYTHON,
            ["-c", "import sys; print('out'); sys.exit(2)"],
            tmp_path,
            output_callback=lambda category, text: received.append((category, text)),
        )
        proc.on_exit(exits.append)
        code = await proc.wait()

        assert code == 2
        assert exits == [2]
        assert ("stdout", "out\n") in received
        assert proc.has_exited
        assert runner.live_count == 0

    @pytest.mark.asyncio
    async def test_on_exit_after_exit_runs_immediately(
        self, runner: ProcessRunner, tmp_path: Path
    ) -> None:
        proc = await runner.spawn(PYTHON, ["-c", "pass"], tmp_path)
        await proc.wait()
        exits: list[int] = []

        proc.on_exit(exits.append)

        assert exits == [0]

    @pytest.mark.asyncio
    async def test_stop_terminates(self, runner: ProcessRunner, tmp_path: Path) -> None:
        proc = await runner.spawn(PYTHON, ["-c", "import time; time.sleep(30)"], tmp_path)

        await proc.stop(grace=2.0)

        assert not proc.is_alive
        assert runner.live_count == 0

    @pytest.mark.asyncio
    async def test_env_is_merged(self, runner: ProcessRunner, tmp_path: Path) -> None:
        code = "import os; print(os.environ['DEVRELAY_TEST_VAR'])"
        proc = await runner.spawn(
            PYTHON, ["-c", code], tmp_path, env={"DEVRELAY_TEST_VAR": "value"}
        )

        await proc.wait()

        assert proc.stdout.text().strip() == "value"

    @pytest.mark.asyncio
    async def test_shutdown_kills_live_processes(self, tmp_path: Path) -> None:
        proc_runner = ProcessRunner(max_output_bytes=1024, kill_delay=2.0)
        proc = await proc_runner.spawn(PYTHON, ["-c", "import time; time.sleep(30)"], tmp_path)

        await proc_runner.shutdown()

        assert not proc.is_alive
        assert proc_runner.live_count == 0
