"""Result interpretation for finished yt-dlp invocations.

ytdl-exec invokers v0.1.0

- interpret_output(): success passes through, failures become ExecError or
  NotFoundError depending on the stderr text
- parse_media_info(): ``--dump-json`` output is one JSON object for a
  single video but one object per line (no enclosing array) for
  playlists, so a failed direct parse falls back to JSON lines
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from typing import Final

from ..errors import ExecError, MediaInfoParseError, NotFoundError
from .types import CommandOutput, MediaInfo

__all__ = [
    "NOT_FOUND_MARKER",
    "interpret_output",
    "is_not_found",
    "parse_media_info",
]

logger = logging.getLogger(__name__)

NOT_FOUND_MARKER: Final[str] = "HTTP Error 404: Not Found"

_TRAILING_COMMA = re.compile(r",(\s+)?$")


def is_not_found(error_lines: Sequence[str]) -> bool:
    """Whether any stderr line carries the not-found marker."""
    return any(NOT_FOUND_MARKER in line for line in error_lines)


def interpret_output(output: CommandOutput, args: Sequence[str]) -> CommandOutput:
    """Check the status of a finished invocation.

    Args:
        output: Collected output
        args: Arguments the invocation was started with

    Returns:
        output, unchanged, on success

    Raises:
        NotFoundError: Failure with the 404 marker in stderr
        ExecError: Any other failure, carrying the raw stderr text
    """
    if output.success:
        return output

    stderr = output.error_text()
    if is_not_found(output.error_lines()):
        logger.info(f"yt-dlp reported not found for args={list(args)}")
        raise NotFoundError(args, exit_code=output.code, stderr=stderr)

    logger.debug(f"yt-dlp failed with code={output.code}")
    raise ExecError(output.code, stderr)


def parse_media_info(text: str) -> MediaInfo | list[MediaInfo]:
    """Parse ``--dump-json`` output.

    Args:
        text: stdout of yt-dlp

    Returns:
        A single record, or a list of records in output order

    Raises:
        MediaInfoParseError: If neither JSON nor JSON lines parse
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    cleaned = _TRAILING_COMMA.sub("", text.replace("\n", ","), count=1)
    try:
        records = json.loads(f"[{cleaned}]")
    except json.JSONDecodeError as e:
        raise MediaInfoParseError(f"Invalid media info JSON: {e}", text) from e

    logger.debug(f"Parsed {len(records)} media info records from JSON lines")
    return records
