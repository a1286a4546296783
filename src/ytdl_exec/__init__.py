"""ytdl-exec - asyncio wrapper around the yt-dlp command line tool.

Environment variables:
    YTDL_PATH: yt-dlp executable (default "yt-dlp")
    YTDL_LOG_DEBUG: debug logging to a temp file (default false)

Usage:
    ytdl-exec version
    ytdl-exec info https://example.com/watch?v=abc
"""

__version__ = "0.1.0"

from .errors import (
    ExecError,
    MediaInfoParseError,
    NotFoundError,
    SpawnError,
    YTDLError,
)
from .invokers import CommandOutput, ExecOptions, ProcessSession, YTDLWrapper
from .parsers import (
    DEFAULT_PROGRESS_PATTERN,
    CloseEvent,
    CloseWithErrorEvent,
    DebugEvent,
    ErrorEvent,
    EventKind,
    LifecycleEvent,
    ProgressEvent,
    classify_line,
)

__all__ = [
    "__version__",
    "YTDLWrapper",
    "ProcessSession",
    "ExecOptions",
    "CommandOutput",
    "EventKind",
    "ProgressEvent",
    "LifecycleEvent",
    "DebugEvent",
    "CloseEvent",
    "CloseWithErrorEvent",
    "ErrorEvent",
    "DEFAULT_PROGRESS_PATTERN",
    "classify_line",
    "YTDLError",
    "SpawnError",
    "ExecError",
    "NotFoundError",
    "MediaInfoParseError",
]
