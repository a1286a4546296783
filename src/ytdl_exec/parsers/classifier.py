"""yt-dlp output line classifier.

ytdl-exec parsers v0.1.0

Turns one line of yt-dlp stdout into typed events:
- Lines without a leading ``[`` become an ``other`` lifecycle event
- Bracketed lines become a lifecycle event named after the bracket tag
- Bracketed lines matching the progress pattern also yield a ProgressEvent

Parsing is regex based and permissive; the text format of yt-dlp is not a
stable contract.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Final

from .events import LifecycleEvent, ProgressEvent, make_other_event

__all__ = [
    "DEFAULT_PROGRESS_PATTERN",
    "ClassifiedLine",
    "LineSplitter",
    "classify_line",
    "split_lines",
]

# "[download]  45.2% of ~10.00MiB at 1.00MiB/s ETA 00:09"
# group 1: fraction, 2: total size, 4: speed, 6: eta
DEFAULT_PROGRESS_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\[download\] *(.*) of[ ~]*([^ ]*)(:? *at *([^ ]*))?(:? *ETA *([^ ]*))?",
    re.IGNORECASE,
)

_PERCENT_GROUP = 1
_TOTAL_GROUP = 2
_SPEED_GROUP = 4
_ETA_GROUP = 6

_LINE_BREAK = re.compile(r"\r|\n")


@dataclass(frozen=True)
class ClassifiedLine:
    """Events derived from a single output line.

    Attributes:
        event: Lifecycle event (always present)
        progress: Progress event, only for lines matching the progress pattern
    """

    event: LifecycleEvent
    progress: ProgressEvent | None = None

    @property
    def events(self) -> list[ProgressEvent | LifecycleEvent]:
        """Events in emission order (progress first)."""
        if self.progress is None:
            return [self.event]
        return [self.progress, self.event]


def _group(match: re.Match[str], index: int) -> str | None:
    # Custom patterns may define fewer groups than the default one
    if index > (match.re.groups or 0):
        return None
    return match.group(index)


def _parse_percent(fraction: str | None) -> float | None:
    if fraction is None:
        return None
    text = fraction.strip()
    if text.endswith("%"):
        text = text[:-1]
    try:
        value = float(text)
    except ValueError:
        return None
    if math.isnan(value):
        return None
    return value


def _parse_progress(line: str, progress_pattern: re.Pattern[str]) -> ProgressEvent | None:
    match = progress_pattern.search(line)
    if match is None:
        return None

    total_size = _group(match, _TOTAL_GROUP)
    if total_size is not None:
        total_size = total_size.lstrip("~")

    return ProgressEvent(
        percent=_parse_percent(_group(match, _PERCENT_GROUP)),
        total_size=total_size,
        current_speed=_group(match, _SPEED_GROUP),
        eta=_group(match, _ETA_GROUP),
    )


def _parse_lifecycle(line: str) -> LifecycleEvent:
    close = line.find("]")
    if close == -1:
        # No closing bracket: the tag runs up to the first space
        space = line.find(" ")
        tag = line[1:] if space == -1 else line[1:space]
        rest_start = -1 if space == -1 else space
    else:
        tag = line[1:close]
        rest_start = line.find(" ", close)

    data = "" if rest_start == -1 else line[rest_start:].strip()
    return LifecycleEvent(event_type=tag.strip().lower(), event_data=data)


def classify_line(
    line: str,
    progress_pattern: re.Pattern[str] = DEFAULT_PROGRESS_PATTERN,
) -> ClassifiedLine:
    """Classify one trimmed, non-empty line of yt-dlp output.

    Args:
        line: Output line without surrounding whitespace
        progress_pattern: Pattern recognizing progress lines

    Returns:
        ClassifiedLine with a lifecycle event and an optional progress event
    """
    if not line.startswith("["):
        return ClassifiedLine(event=make_other_event(line))

    return ClassifiedLine(
        event=_parse_lifecycle(line),
        progress=_parse_progress(line, progress_pattern),
    )


def split_lines(text: str) -> list[str]:
    """Split text on CR or LF, trimming and dropping empty lines."""
    return [piece.strip() for piece in _LINE_BREAK.split(text) if piece.strip()]


class LineSplitter:
    """Reassemble lines from arbitrarily cut text chunks.

    yt-dlp rewrites progress with ``\\r``, so both CR and LF end a line.
    The text after the last line break is held back until more data
    arrives or the stream ends.

    Example:
        splitter = LineSplitter()
        splitter.feed("[download]  4")   # -> []
        splitter.feed("5.0% of 1MiB\\r")  # -> ["[download]  45.0% of 1MiB"]
        splitter.flush()                 # -> []
    """

    def __init__(self) -> None:
        self._pending = ""

    def feed(self, text: str) -> list[str]:
        """Add a chunk and return the lines it completes."""
        buffer = self._pending + text
        pieces = _LINE_BREAK.split(buffer)
        self._pending = pieces.pop()
        return [piece.strip() for piece in pieces if piece.strip()]

    def flush(self) -> list[str]:
        """Return the held-back partial line, if any."""
        pending, self._pending = self._pending.strip(), ""
        return [pending] if pending else []
