"""Process runner with subprocess isolation and reliable termination.

ytdl-exec runtime module v0.1.0

This module provides:
- Cross-platform subprocess isolation (new session/process group)
- Spawn failures mapped to SpawnError
- Reliable termination with graceful shutdown (SIGTERM -> timeout -> SIGKILL)
- Cancel-safe cleanup using asyncio.shield
- A one-shot run_process() that collects stdout/stderr and the exit status

Key design points:
- POSIX: start_new_session=True so the process leads its own group, which
  lets cancellation signal every descendant at once
- Windows: CREATE_NEW_PROCESS_GROUP for signal isolation
- Both output streams are always piped
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..errors import SpawnError
from .cancellation import IS_WINDOWS, CancelSignal, bind_cancel_signal

__all__ = [
    "ProcessRunner",
    "ProcessSpec",
    "ProcessStatus",
    "run_process",
    "wait_exit",
    "wait_status",
]

logger = logging.getLogger(__name__)

# Default timeouts
DEFAULT_TERM_TIMEOUT = 2.0  # seconds to wait after SIGTERM
DEFAULT_KILL_TIMEOUT = 1.0  # seconds to wait after SIGKILL
EXIT_POLL_INTERVAL = 0.05  # seconds between returncode checks


@dataclass(frozen=True)
class ProcessSpec:
    """Specification for a subprocess to run.

    Attributes:
        argv: Command line arguments (first element is the executable)
        cwd: Working directory for the process (None = current directory)
        env: Environment variable overrides
        inherit_env: Merge env over the parent environment (False = env only)
        stdin_bytes: Optional bytes to write to stdin (None = DEVNULL)
    """

    argv: list[str]
    cwd: Path | None = None
    env: Mapping[str, str] | None = None
    inherit_env: bool = True
    stdin_bytes: bytes | None = None

    def build_env(self) -> dict[str, str] | None:
        """Return the environment for the child (None = inherit unchanged)."""
        if self.env is None:
            return None if self.inherit_env else {}
        if not self.inherit_env:
            return dict(self.env)
        merged = dict(os.environ)
        merged.update(self.env)
        return merged


@dataclass(frozen=True)
class ProcessStatus:
    """Exit status of a finished process.

    Attributes:
        success: True if the process exited with code 0
        code: Exit code, None if the process was terminated by a signal
        signal: Terminating signal number (POSIX only)
    """

    success: bool
    code: int | None
    signal: int | None = None

    @classmethod
    def from_returncode(cls, returncode: int) -> "ProcessStatus":
        # asyncio reports death-by-signal as a negative return code
        if returncode < 0:
            return cls(success=False, code=None, signal=-returncode)
        return cls(success=returncode == 0, code=returncode)


async def wait_status(process: asyncio.subprocess.Process) -> ProcessStatus:
    """Wait for process to exit and return its status."""
    returncode = await process.wait()
    status = ProcessStatus.from_returncode(returncode)
    logger.debug(
        f"Subprocess completed pid={process.pid} "
        f"returncode={returncode}"
    )
    return status


async def wait_exit(
    process: asyncio.subprocess.Process,
    poll_interval: float = EXIT_POLL_INTERVAL,
) -> ProcessStatus:
    """Wait for the process itself to exit and return its status.

    Unlike ``process.wait()``, this does not wait for the pipes to close:
    a descendant that inherited stdout can keep it open long after the
    process has been reaped. ``returncode`` is set at reap time, so it is
    polled instead.
    """
    while process.returncode is None:
        await asyncio.sleep(poll_interval)
    status = ProcessStatus.from_returncode(process.returncode)
    logger.debug(
        f"Subprocess exited pid={process.pid} "
        f"returncode={process.returncode}"
    )
    return status


@dataclass
class ProcessRunner:
    """Cross-platform process spawner with reliable termination.

    Example:
        runner = ProcessRunner()
        process = await runner.spawn(ProcessSpec(argv=["yt-dlp", "--version"]))
        try:
            ...
        finally:
            await runner.safe_terminate(process)
    """

    term_timeout: float = DEFAULT_TERM_TIMEOUT
    kill_timeout: float = DEFAULT_KILL_TIMEOUT

    async def spawn(self, spec: ProcessSpec) -> asyncio.subprocess.Process:
        """Start the subprocess with stdout and stderr piped.

        Args:
            spec: Process specification

        Returns:
            The running process

        Raises:
            SpawnError: If the executable cannot be launched
        """
        kwargs = self._build_subprocess_kwargs(spec)

        try:
            process = await asyncio.create_subprocess_exec(
                *spec.argv,
                stdin=asyncio.subprocess.PIPE if spec.stdin_bytes is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=spec.cwd,
                **kwargs,
            )
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to start {spec.argv[:1]}: {e}")
            raise SpawnError(spec.argv, str(e)) from e

        logger.debug(
            f"Started subprocess pid={process.pid} "
            f"argv={spec.argv[0]} cwd={spec.cwd}"
        )

        if spec.stdin_bytes is not None and process.stdin:
            try:
                process.stdin.write(spec.stdin_bytes)
                await process.stdin.drain()
            except (BrokenPipeError, ConnectionResetError) as e:
                logger.debug(f"stdin closed early pid={process.pid}: {e}")
            finally:
                process.stdin.close()

        return process

    def _build_subprocess_kwargs(self, spec: ProcessSpec) -> dict[str, Any]:
        """Build platform-specific subprocess kwargs.

        Args:
            spec: Process specification

        Returns:
            Dict of kwargs for asyncio.create_subprocess_exec
        """
        kwargs: dict[str, Any] = {}

        env = spec.build_env()
        if env is not None:
            kwargs["env"] = env

        if IS_WINDOWS:
            kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP
        else:
            # POSIX: start_new_session (equivalent to setsid)
            kwargs["start_new_session"] = True

        return kwargs

    async def safe_terminate(self, process: asyncio.subprocess.Process | None) -> None:
        """Terminate process if still running, shielded from cancellation."""
        if process is None or process.returncode is not None:
            return
        try:
            await asyncio.shield(self.terminate(process))
        except asyncio.CancelledError:
            # If shield itself is cancelled, still try cleanup
            await self.terminate(process)
            raise

    async def terminate(self, process: asyncio.subprocess.Process) -> None:
        """Terminate subprocess gracefully, then forcefully if needed.

        Termination strategy:
        1. Send SIGTERM to the process group (terminate() on Windows)
        2. Wait up to term_timeout for graceful exit
        3. If still running, send SIGKILL to the group (kill() on Windows)
        4. Wait up to kill_timeout for forced exit

        Args:
            process: The subprocess to terminate
        """
        pid = process.pid
        logger.debug(f"Terminating subprocess pid={pid}")

        try:
            self._send(process, signal.SIGTERM)
            try:
                await asyncio.wait_for(process.wait(), timeout=self.term_timeout)
                logger.debug(
                    f"Subprocess terminated gracefully pid={pid} "
                    f"returncode={process.returncode}"
                )
                return
            except asyncio.TimeoutError:
                pass

            logger.debug(f"Force killing subprocess pid={pid}")
            self._send(process, getattr(signal, "SIGKILL", signal.SIGTERM))
            try:
                await asyncio.wait_for(process.wait(), timeout=self.kill_timeout)
                logger.debug(
                    f"Subprocess killed pid={pid} "
                    f"returncode={process.returncode}"
                )
            except asyncio.TimeoutError:
                logger.warning(f"Subprocess did not exit after kill pid={pid}")

        except ProcessLookupError:
            logger.debug(f"Subprocess already exited pid={pid}")

    def _send(self, process: asyncio.subprocess.Process, sig: int) -> None:
        if IS_WINDOWS:
            if sig == signal.SIGTERM:
                process.terminate()
            else:
                process.kill()
            return
        try:
            pgid = os.getpgid(process.pid)
            os.killpg(pgid, sig)
            logger.debug(f"Sent signal {sig} to process group pgid={pgid}")
        except ProcessLookupError:
            raise
        except OSError as e:
            logger.debug(f"killpg failed, falling back to send_signal: {e}")
            process.send_signal(sig)


async def run_process(
    spec: ProcessSpec,
    *,
    cancel_signal: CancelSignal | None = None,
    runner: ProcessRunner | None = None,
) -> tuple[ProcessStatus, bytes, bytes]:
    """Run a process to completion and collect its output.

    Args:
        spec: Process specification
        cancel_signal: Optional signal that kills the process when set
        runner: Runner to spawn with (default: new ProcessRunner)

    Returns:
        Tuple of (status, stdout_bytes, stderr_bytes)

    Raises:
        SpawnError: If the executable cannot be launched
    """
    runner = runner or ProcessRunner()
    process = await runner.spawn(spec)
    watcher = bind_cancel_signal(cancel_signal, process)

    try:
        stdout, stderr = await process.communicate()
        status = ProcessStatus.from_returncode(process.returncode)
    finally:
        if watcher is not None:
            watcher.cancel()
        await runner.safe_terminate(process)

    logger.debug(
        f"Subprocess completed pid={process.pid} "
        f"returncode={process.returncode}"
    )
    return status, stdout, stderr
