"""Abort-signal binding for running subprocesses.

ytdl-exec runtime module v0.1.0

When the caller's cancel signal fires:
1. Descendants of the process are terminated (best effort)
2. The process itself is killed, always, even if step 1 failed

Descendant termination is platform specific and hidden behind
DescendantKiller. The implementation is picked once at import time:
- POSIX: SIGTERM to the process group (the child leads its own session)
- Windows: ``taskkill /pid <pid> /T /F``
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import subprocess
import sys
from abc import ABC, abstractmethod
from typing import Protocol

import anyio.to_thread

__all__ = [
    "CancelSignal",
    "DescendantKiller",
    "PosixDescendantKiller",
    "WindowsDescendantKiller",
    "DESCENDANT_KILLER",
    "IS_WINDOWS",
    "bind_cancel_signal",
    "kill_process_tree",
]

logger = logging.getLogger(__name__)

IS_WINDOWS = sys.platform == "win32"

TASKKILL_TIMEOUT = 10.0  # seconds


class CancelSignal(Protocol):
    """Event-like cancel signal (``asyncio.Event`` or ``anyio.Event``)."""

    def is_set(self) -> bool:
        ...

    async def wait(self) -> object:
        ...


class DescendantKiller(ABC):
    """Terminates the processes spawned by a given process."""

    @abstractmethod
    def kill_descendants(self, pid: int) -> None:
        """Terminate descendants of pid.

        Raises:
            OSError: If the descendants could not be enumerated or signalled
        """
        ...


class PosixDescendantKiller(DescendantKiller):
    """Signals the process group led by the spawned process."""

    def kill_descendants(self, pid: int) -> None:
        pgid = os.getpgid(pid)
        if pgid == os.getpgid(0):
            # Never signal our own group
            logger.debug(f"pid={pid} shares our process group, skipping killpg")
            return
        os.killpg(pgid, signal.SIGTERM)
        logger.debug(f"Sent SIGTERM to process group pgid={pgid}")


class WindowsDescendantKiller(DescendantKiller):
    """Kills the process tree with taskkill."""

    def kill_descendants(self, pid: int) -> None:
        result = subprocess.run(
            ["taskkill", "/pid", str(pid), "/T", "/F"],
            capture_output=True,
            timeout=TASKKILL_TIMEOUT,
        )
        if result.returncode != 0:
            raise OSError(
                f"taskkill exited with {result.returncode}: "
                f"{result.stderr.decode(errors='replace').strip()}"
            )
        logger.debug(f"taskkill completed for pid={pid}")


DESCENDANT_KILLER: DescendantKiller = (
    WindowsDescendantKiller() if IS_WINDOWS else PosixDescendantKiller()
)


async def kill_process_tree(
    process: asyncio.subprocess.Process,
    killer: DescendantKiller = DESCENDANT_KILLER,
) -> None:
    """Kill descendants of process, then process itself.

    Descendant failures are logged and dropped; ``process.kill()`` runs in
    a finally block so the primary process never outlives a cancellation.
    """
    pid = process.pid
    try:
        try:
            await anyio.to_thread.run_sync(killer.kill_descendants, pid)
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug(f"Descendant termination failed for pid={pid}: {e}")
    finally:
        try:
            process.kill()
            logger.debug(f"Called kill() on pid={pid}")
        except ProcessLookupError:
            logger.debug(f"Process already exited pid={pid}")


def bind_cancel_signal(
    cancel_signal: CancelSignal | None,
    process: asyncio.subprocess.Process,
    killer: DescendantKiller = DESCENDANT_KILLER,
) -> asyncio.Task[None] | None:
    """Kill process (and its descendants) once cancel_signal is set.

    The reaction is one-shot. Cancel the returned task to unbind once the
    process has finished.

    Args:
        cancel_signal: Signal to watch, or None for no binding
        process: Running subprocess
        killer: Descendant termination strategy

    Returns:
        Watcher task, or None if no signal was given
    """
    if cancel_signal is None:
        return None

    async def watch() -> None:
        await cancel_signal.wait()
        if process.returncode is not None:
            return
        logger.info(f"Cancel signal received, killing pid={process.pid}")
        await kill_process_tree(process, killer)

    return asyncio.create_task(watch(), name=f"cancel-watch-{process.pid}")
