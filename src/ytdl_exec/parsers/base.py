"""Base enums for the yt-dlp event system.

ytdl-exec parsers v0.1.0

Defines the event kinds a process session can emit.
"""

from __future__ import annotations

from enum import Enum
from typing import Final

__all__ = [
    "EventKind",
    "TERMINAL_KINDS",
    "OTHER_EVENT_TYPE",
    "VERSION",
]

VERSION: Final[str] = "0.1.0"

# Lifecycle event type used for lines that carry no bracketed tag
OTHER_EVENT_TYPE: Final[str] = "other"


class EventKind(str, Enum):
    """Kind of event emitted by a process session.

    - PROGRESS: a parsed download progress line
    - EVENT: a bracketed lifecycle line, or an untagged line as "other"
    - CLOSE / CLOSE_WITH_ERROR / ERROR: terminal outcomes, one per session
    - DEBUG: diagnostics added by the session itself
    """

    PROGRESS = "progress"
    EVENT = "event"
    CLOSE = "close"
    CLOSE_WITH_ERROR = "closeWithError"
    ERROR = "error"
    DEBUG = "debug"


TERMINAL_KINDS: Final[frozenset[EventKind]] = frozenset(
    {EventKind.CLOSE, EventKind.CLOSE_WITH_ERROR, EventKind.ERROR}
)
