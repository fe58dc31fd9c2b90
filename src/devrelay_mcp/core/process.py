"""External process execution.

One runner spawns every external tool the relay drives: debug targets,
shell commands, test runners, linters and git. Output is captured into
tail-kept buffers and every process is torn down with the same
terminate-then-kill ladder.
"""

import asyncio
import contextlib
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from devrelay_mcp.core.exceptions import ProcessSpawnError, ProcessTimeoutError
from devrelay_mcp.utils.capture import TailBuffer

logger = logging.getLogger(__name__)

OutputCallback = Callable[[str, str], Any]
ExitCallback = Callable[[int], Any]

READ_CHUNK_SIZE = 4096
PIPE_DRAIN_TIMEOUT = 1.0


@dataclass
class ProcessResult:
    """Outcome of a process that ran to completion."""

    exit_code: int
    stdout: str
    stderr: str
    truncated: bool = False

    @property
    def output(self) -> str:
        """stdout and stderr combined, for parsers."""
        return f"{self.stdout}\n{self.stderr}" if self.stderr else self.stdout


class ManagedProcess:
    """A spawned child process with captured output.

    Output is pumped into bounded buffers as it arrives and forwarded to an
    optional ``(category, text)`` callback. Exit callbacks fire once, after
    the process has exited and its pipes have drained.
    """

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        command: str,
        args: list[str],
        max_output_bytes: int,
        output_callback: OutputCallback | None = None,
    ):
        self._process = process
        self.command = command
        self.args = args
        self.stdout = TailBuffer(max_output_bytes)
        self.stderr = TailBuffer(max_output_bytes)
        self._output_callback = output_callback
        self._exit_callbacks: list[ExitCallback] = []
        self._exited = asyncio.Event()
        self._pumps: list[asyncio.Task[None]] = []
        self._watcher: asyncio.Task[None] | None = None

    def start(self) -> None:
        """Begin pumping output and watching for exit."""
        if self._process.stdout is not None:
            self._pumps.append(
                asyncio.create_task(self._pump(self._process.stdout, "stdout", self.stdout))
            )
        if self._process.stderr is not None:
            self._pumps.append(
                asyncio.create_task(self._pump(self._process.stderr, "stderr", self.stderr))
            )
        self._watcher = asyncio.create_task(self._watch())

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    @property
    def is_alive(self) -> bool:
        return self._process.returncode is None

    @property
    def has_exited(self) -> bool:
        """True once the process is gone and exit callbacks have run."""
        return self._exited.is_set()

    def on_exit(self, callback: ExitCallback) -> None:
        """Register a callback receiving the exit code.

        Registering after the process has exited runs the callback at once.
        """
        if self._exited.is_set():
            callback(self._process.returncode or 0)
            return
        self._exit_callbacks.append(callback)

    async def wait(self) -> int:
        """Wait for exit; an absent exit code is reported as 0."""
        await self._exited.wait()
        return self._process.returncode or 0

    def terminate(self) -> None:
        """Send the graceful termination signal."""
        if self.is_alive:
            with contextlib.suppress(ProcessLookupError):
                self._process.terminate()

    def kill(self) -> None:
        """Send the forceful kill signal."""
        if self.is_alive:
            with contextlib.suppress(ProcessLookupError):
                self._process.kill()

    async def stop(self, grace: float) -> int:
        """Terminate, wait up to ``grace`` seconds, then kill.

        Returns:
            The observed exit code
        """
        if self.is_alive:
            self.terminate()
            try:
                await asyncio.wait_for(self.wait(), timeout=grace)
            except asyncio.TimeoutError:
                logger.warning(f"Process {self.pid} ({self.command}) ignored SIGTERM, killing")
                self.kill()
        return await self.wait()

    async def _pump(self, stream: asyncio.StreamReader, category: str, buffer: TailBuffer) -> None:
        while True:
            chunk = await stream.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            buffer.append(chunk)
            if self._output_callback is not None:
                try:
                    self._output_callback(category, chunk.decode("utf-8", errors="replace"))
                except Exception as e:
                    logger.warning(f"Output callback failed for {self.command}: {e}")

    async def _watch(self) -> None:
        try:
            await self._process.wait()
            if self._pumps:
                # A grandchild can hold the pipes open after the child exits.
                _, pending = await asyncio.wait(self._pumps, timeout=PIPE_DRAIN_TIMEOUT)
                for task in pending:
                    task.cancel()
        finally:
            self._exited.set()
            code = self._process.returncode or 0
            logger.debug(f"Process {self.pid} ({self.command}) exited with {code}")
            for callback in self._exit_callbacks:
                try:
                    callback(code)
                except Exception:
                    logger.exception(f"Exit callback failed for process {self.pid}")


class ProcessRunner:
    """Spawns external processes under a bounded lifetime."""

    def __init__(self, max_output_bytes: int, kill_delay: float = 5.0):
        self.max_output_bytes = max_output_bytes
        self.kill_delay = kill_delay
        self._live: set[ManagedProcess] = set()
        self._reapers: set[asyncio.Task[None]] = set()

    async def spawn(
        self,
        command: str,
        args: list[str],
        cwd: Path,
        env: dict[str, str] | None = None,
        output_callback: OutputCallback | None = None,
    ) -> ManagedProcess:
        """Start a process with stdout/stderr captured.

        Raises:
            ProcessSpawnError: The binary is missing, not executable, or the
                working directory is unusable
        """
        full_env = {**os.environ, **env} if env else None
        try:
            process = await asyncio.create_subprocess_exec(
                command,
                *args,
                cwd=str(cwd),
                env=full_env,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            raise ProcessSpawnError(command, "command not found")
        except PermissionError:
            raise ProcessSpawnError(command, "permission denied")
        except OSError as e:
            raise ProcessSpawnError(command, str(e))

        managed = ManagedProcess(
            process,
            command=command,
            args=list(args),
            max_output_bytes=self.max_output_bytes,
            output_callback=output_callback,
        )
        self._live.add(managed)
        managed.on_exit(lambda _code: self._live.discard(managed))
        managed.start()
        logger.info(f"Spawned {command} (pid {managed.pid}) in {cwd}")
        return managed

    async def run(
        self,
        command: str,
        args: list[str],
        cwd: Path,
        timeout: float,
        env: dict[str, str] | None = None,
    ) -> ProcessResult:
        """Run a process to completion.

        A non-zero exit is a normal result. On timeout the process is sent
        SIGTERM, a kill is scheduled ``kill_delay`` seconds later, and the
        timeout error is raised without waiting for either to land.

        Raises:
            ProcessSpawnError: The process could not be started
            ProcessTimeoutError: The process outlived ``timeout`` seconds
        """
        proc = await self.spawn(command, args, cwd, env)
        try:
            exit_code = await asyncio.wait_for(proc.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{command} (pid {proc.pid}) timed out after {timeout:g}s")
            proc.terminate()
            self._schedule_kill(proc)
            raise ProcessTimeoutError(
                command,
                timeout,
                details={"stdout": proc.stdout.text(), "stderr": proc.stderr.text()},
            )
        except asyncio.CancelledError:
            proc.kill()
            raise

        return ProcessResult(
            exit_code=exit_code,
            stdout=proc.stdout.text(),
            stderr=proc.stderr.text(),
            truncated=proc.stdout.truncated or proc.stderr.truncated,
        )

    @property
    def live_count(self) -> int:
        return len(self._live)

    async def shutdown(self) -> None:
        """Kill every process still running and wait for the reapers."""
        for proc in list(self._live):
            proc.kill()
        for proc in list(self._live):
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(proc.wait(), timeout=self.kill_delay)
        for task in list(self._reapers):
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._live.clear()

    def _schedule_kill(self, proc: ManagedProcess) -> None:
        task = asyncio.create_task(self._kill_after_delay(proc))
        self._reapers.add(task)
        task.add_done_callback(self._reapers.discard)

    async def _kill_after_delay(self, proc: ManagedProcess) -> None:
        try:
            await asyncio.wait_for(proc.wait(), timeout=self.kill_delay)
        except asyncio.TimeoutError:
            logger.warning(f"Killing {proc.command} (pid {proc.pid}) after SIGTERM grace period")
            proc.kill()
