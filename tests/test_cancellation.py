"""Cancel-signal binding tests.

Covers the kill ordering (descendants first, the process itself always),
tolerance of already-exited processes, both asyncio and anyio events, and
the platform killers.
"""

from __future__ import annotations

import asyncio
import os
import signal
import subprocess
from unittest.mock import MagicMock, patch

import anyio
import pytest

from ytdl_exec.runtime import (
    IS_WINDOWS,
    DescendantKiller,
    PosixDescendantKiller,
    ProcessRunner,
    ProcessSpec,
    WindowsDescendantKiller,
    bind_cancel_signal,
    kill_process_tree,
)


class RecordingKiller(DescendantKiller):
    """Killer that records calls and optionally fails."""

    def __init__(self, error: Exception | None = None):
        self.calls: list[int] = []
        self.error = error

    def kill_descendants(self, pid: int) -> None:
        self.calls.append(pid)
        if self.error is not None:
            raise self.error


def fake_process(pid: int = 4242, returncode: int | None = None) -> MagicMock:
    process = MagicMock()
    process.pid = pid
    process.returncode = returncode
    return process


# =============================================================================
# kill_process_tree
# =============================================================================


class TestKillProcessTree:
    """Descendant kill followed by process kill."""

    @pytest.mark.asyncio
    async def test_descendants_then_process(self):
        killer = RecordingKiller()
        process = fake_process()

        await kill_process_tree(process, killer)

        assert killer.calls == [4242]
        process.kill.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_process_killed_when_descendant_kill_fails(self):
        killer = RecordingKiller(error=OSError("no such group"))
        process = fake_process()

        await kill_process_tree(process, killer)

        process.kill.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_process_killed_when_taskkill_times_out(self):
        killer = RecordingKiller(error=subprocess.TimeoutExpired(["taskkill"], 10))
        process = fake_process()

        await kill_process_tree(process, killer)

        process.kill.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_already_exited_process(self):
        process = fake_process()
        process.kill.side_effect = ProcessLookupError()

        # No exception
        await kill_process_tree(process, RecordingKiller())


# =============================================================================
# bind_cancel_signal
# =============================================================================


class TestBindCancelSignal:
    """Signal watcher."""

    @pytest.mark.asyncio
    async def test_no_signal_no_binding(self):
        assert bind_cancel_signal(None, fake_process(), RecordingKiller()) is None

    @pytest.mark.asyncio
    async def test_signal_triggers_kill_once(self):
        cancel = asyncio.Event()
        killer = RecordingKiller()
        process = fake_process()

        watcher = bind_cancel_signal(cancel, process, killer)
        await asyncio.sleep(0)
        assert killer.calls == []

        cancel.set()
        await asyncio.wait_for(watcher, timeout=5)

        assert killer.calls == [4242]
        process.kill.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_exited_process_not_killed(self):
        cancel = asyncio.Event()
        killer = RecordingKiller()
        process = fake_process(returncode=0)

        watcher = bind_cancel_signal(cancel, process, killer)
        cancel.set()
        await asyncio.wait_for(watcher, timeout=5)

        assert killer.calls == []
        process.kill.assert_not_called()

    @pytest.mark.asyncio
    async def test_unbind_by_cancelling(self):
        cancel = asyncio.Event()
        killer = RecordingKiller()
        process = fake_process()

        watcher = bind_cancel_signal(cancel, process, killer)
        watcher.cancel()
        cancel.set()
        await asyncio.sleep(0.05)

        assert watcher.cancelled()
        assert killer.calls == []

    @pytest.mark.asyncio
    @pytest.mark.skipif(IS_WINDOWS, reason="POSIX-specific test")
    async def test_real_process_killed_with_anyio_event(self):
        runner = ProcessRunner(term_timeout=0.5, kill_timeout=0.3)
        process = await runner.spawn(ProcessSpec(argv=["sleep", "100"]))
        cancel = anyio.Event()

        try:
            watcher = bind_cancel_signal(cancel, process)
            cancel.set()
            await asyncio.wait_for(watcher, timeout=5)
            returncode = await asyncio.wait_for(process.wait(), timeout=5)
        finally:
            await runner.safe_terminate(process)

        assert returncode < 0


# =============================================================================
# Platform killers
# =============================================================================


class TestPosixDescendantKiller:
    """Process group signalling."""

    def test_signals_child_group(self):
        killer = PosixDescendantKiller()
        with patch("os.getpgid", side_effect=lambda pid: 500 if pid == 4242 else 100), \
                patch("os.killpg") as killpg:
            killer.kill_descendants(4242)
        killpg.assert_called_once_with(500, signal.SIGTERM)

    def test_skips_own_group(self):
        killer = PosixDescendantKiller()
        with patch("os.getpgid", return_value=100), patch("os.killpg") as killpg:
            killer.kill_descendants(4242)
        killpg.assert_not_called()

    @pytest.mark.skipif(IS_WINDOWS, reason="POSIX-specific test")
    def test_missing_process_raises(self):
        killer = PosixDescendantKiller()
        with patch("os.getpgid", side_effect=ProcessLookupError()):
            with pytest.raises(OSError):
                killer.kill_descendants(4242)


class TestWindowsDescendantKiller:
    """taskkill invocation."""

    def test_runs_taskkill(self):
        completed = subprocess.CompletedProcess(args=[], returncode=0, stdout=b"", stderr=b"")
        with patch("subprocess.run", return_value=completed) as run:
            WindowsDescendantKiller().kill_descendants(4242)
        argv = run.call_args.args[0]
        assert argv == ["taskkill", "/pid", "4242", "/T", "/F"]

    def test_failure_raises_oserror(self):
        completed = subprocess.CompletedProcess(
            args=[], returncode=128, stdout=b"", stderr=b"ERROR: not found"
        )
        with patch("subprocess.run", return_value=completed):
            with pytest.raises(OSError, match="not found"):
                WindowsDescendantKiller().kill_descendants(4242)


def test_current_process_group_untouched():
    """Our own group is never a kill target."""
    if IS_WINDOWS:
        pytest.skip("POSIX-specific test")
    with patch("os.killpg") as killpg:
        PosixDescendantKiller().kill_descendants(os.getpid())
    killpg.assert_not_called()
