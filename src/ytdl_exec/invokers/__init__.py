"""yt-dlp invokers.

ytdl-exec invokers v0.1.0

Event mode:
    from ytdl_exec.invokers import YTDLWrapper

    ytdl = YTDLWrapper()
    session = await ytdl.exec(["-o", "%(title)s.%(ext)s", url])
    async for event in session:
        print(event.kind, event)

Promise mode:
    info = await ytdl.get_media_info(url)
    version = await ytdl.get_version()

Cancellation:
    cancel = asyncio.Event()
    session = await ytdl.exec([url], cancel_signal=cancel)
    cancel.set()  # kills yt-dlp and its children; the session then closes
"""

from __future__ import annotations

__version__ = "0.1.0"

from .result import NOT_FOUND_MARKER, interpret_output, is_not_found, parse_media_info
from .session import EventCallback, ProcessSession, SessionState
from .types import CommandOutput, ExecOptions, MediaInfo
from .wrapper import YTDLWrapper

__all__ = [
    "__version__",
    # types
    "CommandOutput",
    "ExecOptions",
    "MediaInfo",
    # session
    "EventCallback",
    "ProcessSession",
    "SessionState",
    # result interpretation
    "NOT_FOUND_MARKER",
    "interpret_output",
    "is_not_found",
    "parse_media_info",
    # wrapper
    "YTDLWrapper",
]
