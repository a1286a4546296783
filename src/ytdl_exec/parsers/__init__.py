"""yt-dlp output parsing.

ytdl-exec parsers v0.1.0

Usage:
    from ytdl_exec.parsers import classify_line

    classified = classify_line("[download]  45.2% of ~10.00MiB at 1.00MiB/s ETA 00:09")
    for event in classified.events:
        print(event.kind, event)
"""

from __future__ import annotations

from .base import OTHER_EVENT_TYPE, TERMINAL_KINDS, VERSION, EventKind
from .classifier import (
    DEFAULT_PROGRESS_PATTERN,
    ClassifiedLine,
    LineSplitter,
    classify_line,
    split_lines,
)
from .events import (
    CloseEvent,
    CloseWithErrorEvent,
    DebugEvent,
    ErrorEvent,
    EventBase,
    LifecycleEvent,
    ProgressEvent,
    TerminalEvent,
    YTDLEvent,
    make_other_event,
)

__version__ = VERSION

__all__ = [
    "__version__",
    # enums
    "EventKind",
    "OTHER_EVENT_TYPE",
    "TERMINAL_KINDS",
    # events
    "EventBase",
    "ProgressEvent",
    "LifecycleEvent",
    "DebugEvent",
    "CloseEvent",
    "CloseWithErrorEvent",
    "ErrorEvent",
    "TerminalEvent",
    "YTDLEvent",
    "make_other_event",
    # classifier
    "DEFAULT_PROGRESS_PATTERN",
    "ClassifiedLine",
    "LineSplitter",
    "classify_line",
    "split_lines",
]
