"""Invoker type definitions.

ytdl-exec invokers v0.1.0

Defines spawn options, the collected command output and the media info
shape returned by ``--dump-json``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..runtime import ProcessSpec, ProcessStatus

__all__ = [
    "ExecOptions",
    "CommandOutput",
    "MediaInfo",
]

# Free-form record with at least "_type" and "_version": {"version": ...}
MediaInfo = dict[str, Any]


@dataclass(frozen=True)
class ExecOptions:
    """Spawn options for a yt-dlp invocation.

    Attributes:
        cwd: Working directory (None = current directory)
        env: Environment variable overrides
        inherit_env: Merge env over the parent environment
        stdin_bytes: Bytes written to stdin (None = no stdin)
    """

    cwd: Path | None = None
    env: Mapping[str, str] | None = None
    inherit_env: bool = True
    stdin_bytes: bytes | None = None

    def __post_init__(self) -> None:
        """Accept str paths for cwd."""
        if isinstance(self.cwd, str):
            object.__setattr__(self, "cwd", Path(self.cwd))

    def to_spec(self, executable: str, args: Sequence[str]) -> ProcessSpec:
        """Build the process spec for executable + args."""
        return ProcessSpec(
            argv=[executable, *args],
            cwd=self.cwd,
            env=self.env,
            inherit_env=self.inherit_env,
            stdin_bytes=self.stdin_bytes,
        )


@dataclass(frozen=True)
class CommandOutput:
    """Collected output of a finished invocation.

    Attributes:
        status: Exit status
        stdout: Raw stdout bytes
        stderr: Raw stderr bytes
        encoding: Encoding used by the text accessors
    """

    status: ProcessStatus
    stdout: bytes = b""
    stderr: bytes = b""
    encoding: str = field(default="utf-8", compare=False)

    @property
    def success(self) -> bool:
        return self.status.success

    @property
    def code(self) -> int | None:
        return self.status.code

    def text(self) -> str:
        """Decoded stdout."""
        return self.stdout.decode(self.encoding, errors="replace")

    def error_text(self) -> str:
        """Decoded stderr."""
        return self.stderr.decode(self.encoding, errors="replace")

    def lines(self) -> list[str]:
        """Stdout split into lines."""
        return self.text().splitlines()

    def error_lines(self) -> list[str]:
        """Stderr split into lines."""
        return self.error_text().splitlines()
