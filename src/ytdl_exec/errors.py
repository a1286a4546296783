"""Exception types raised by ytdl-exec.

ytdl-exec errors v0.1.0
"""

from __future__ import annotations

from collections.abc import Sequence

__all__ = [
    "YTDLError",
    "SpawnError",
    "ExecError",
    "NotFoundError",
    "MediaInfoParseError",
    "format_error_message",
]


def format_error_message(code: int | None, stderr: str) -> str:
    """Build the message carried by a failed invocation.

    Args:
        code: Exit code of the process (None if unavailable)
        stderr: Captured stderr text

    Returns:
        Message embedding the exit code and, when present, the stderr text
    """
    message = f"\nError code: {code}"
    if stderr:
        message += f"\n\nError data:\n{stderr}"
    return message


class YTDLError(Exception):
    """Base exception for all ytdl-exec errors."""
    pass


class SpawnError(YTDLError):
    """The executable could not be launched.

    Attributes:
        argv: Command line that failed to start
        reason: OS error text
    """

    def __init__(self, argv: Sequence[str], reason: str) -> None:
        self.argv = list(argv)
        self.reason = reason
        executable = self.argv[0] if self.argv else "<empty argv>"
        super().__init__(f"Failed to start {executable}: {reason}")


class ExecError(YTDLError):
    """The process finished with a non-success status.

    Attributes:
        exit_code: Process exit code (None if killed by a signal)
        stderr: Raw stderr text of the process
    """

    def __init__(
        self,
        exit_code: int | None,
        stderr: str,
        message: str | None = None,
    ) -> None:
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(message or format_error_message(exit_code, stderr))


class NotFoundError(ExecError):
    """The requested media does not exist (yt-dlp reported HTTP 404).

    Attributes:
        args_list: Arguments of the invocation that was not found
    """

    def __init__(
        self,
        args: Sequence[str],
        exit_code: int | None = None,
        stderr: str = "",
    ) -> None:
        self.args_list = list(args)
        super().__init__(
            exit_code,
            stderr,
            message=f"Not found: [{', '.join(self.args_list)}]",
        )


class MediaInfoParseError(YTDLError, ValueError):
    """Media info output is neither a JSON value nor JSON lines."""

    def __init__(self, message: str, text: str) -> None:
        self.text = text
        super().__init__(message)
