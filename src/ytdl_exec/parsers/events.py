"""Typed event models emitted by a process session.

ytdl-exec parsers v0.1.0

Every event carries a ``kind`` discriminator so consumers can branch on it
instead of matching event names:
1. Stream events - progress and lifecycle lines parsed from stdout
2. Terminal events - close, closeWithError, error (exactly one per session)
3. Debug events - session diagnostics
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from ..errors import ExecError, format_error_message
from .base import OTHER_EVENT_TYPE, TERMINAL_KINDS, EventKind

__all__ = [
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
]


class EventBase(BaseModel):
    """Base class of all session events.

    Events are immutable values: two events built from the same input
    compare equal.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    kind: EventKind

    @property
    def is_terminal(self) -> bool:
        return self.kind in TERMINAL_KINDS


class ProgressEvent(EventBase):
    """Download progress parsed from a ``[download]`` line.

    Attributes:
        percent: Completion percentage, None if the text was not a number
        total_size: Total size as printed by yt-dlp (e.g. "10.00MiB")
        current_speed: Download speed (e.g. "1.00MiB/s")
        eta: Remaining time (e.g. "00:09")
    """

    kind: Literal[EventKind.PROGRESS] = EventKind.PROGRESS
    percent: float | None = None
    total_size: str | None = None
    current_speed: str | None = None
    eta: str | None = None


class LifecycleEvent(EventBase):
    """A classified output line.

    Attributes:
        event_type: Lowercased bracket tag ("download", "youtube", ...)
            or "other" for untagged lines
        event_data: Rest of the line
    """

    kind: Literal[EventKind.EVENT] = EventKind.EVENT
    event_type: str
    event_data: str = ""


class DebugEvent(EventBase):
    """Diagnostic message from the session."""

    kind: Literal[EventKind.DEBUG] = EventKind.DEBUG
    message: str = ""


class CloseEvent(EventBase):
    """The process finished successfully with no stderr output."""

    kind: Literal[EventKind.CLOSE] = EventKind.CLOSE
    exit_code: int | None = 0


class _FailureEvent(EventBase):
    exit_code: int | None = None
    stderr: str = ""
    message: str = ""

    @property
    def error(self) -> ExecError:
        """Exception equivalent of this event."""
        return ExecError(self.exit_code, self.stderr, message=self.message or None)

    @classmethod
    def from_failure(cls, exit_code: int | None, stderr: str):
        return cls(
            exit_code=exit_code,
            stderr=stderr,
            message=format_error_message(exit_code, stderr),
        )


class CloseWithErrorEvent(_FailureEvent):
    """The process exited with a failing status and empty stderr."""

    kind: Literal[EventKind.CLOSE_WITH_ERROR] = EventKind.CLOSE_WITH_ERROR


class ErrorEvent(_FailureEvent):
    """The process wrote to stderr, or the session failed internally."""

    kind: Literal[EventKind.ERROR] = EventKind.ERROR


TerminalEvent = Union[CloseEvent, CloseWithErrorEvent, ErrorEvent]

YTDLEvent = Annotated[
    Union[
        ProgressEvent,
        LifecycleEvent,
        DebugEvent,
        CloseEvent,
        CloseWithErrorEvent,
        ErrorEvent,
    ],
    Field(discriminator="kind"),
]


def make_other_event(line: str) -> LifecycleEvent:
    """Wrap an untagged line as an ``other`` lifecycle event."""
    return LifecycleEvent(event_type=OTHER_EVENT_TYPE, event_data=line)
