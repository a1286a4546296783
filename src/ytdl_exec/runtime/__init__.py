"""Runtime module for subprocess management and stream draining.

This module provides isolated process execution, incremental stream
decoding and cancel-signal binding for the yt-dlp subprocess.
"""

from __future__ import annotations

from .cancellation import (
    DESCENDANT_KILLER,
    IS_WINDOWS,
    CancelSignal,
    DescendantKiller,
    PosixDescendantKiller,
    WindowsDescendantKiller,
    bind_cancel_signal,
    kill_process_tree,
)
from .drain import DEFAULT_CHUNK_SIZE, ByteStream, drain_stream
from .process_runner import (
    ProcessRunner,
    ProcessSpec,
    ProcessStatus,
    run_process,
    wait_exit,
    wait_status,
)

__all__ = [
    "ProcessRunner",
    "ProcessSpec",
    "ProcessStatus",
    "run_process",
    "wait_exit",
    "wait_status",
    "ByteStream",
    "DEFAULT_CHUNK_SIZE",
    "drain_stream",
    "CancelSignal",
    "DescendantKiller",
    "PosixDescendantKiller",
    "WindowsDescendantKiller",
    "DESCENDANT_KILLER",
    "IS_WINDOWS",
    "bind_cancel_signal",
    "kill_process_tree",
]
