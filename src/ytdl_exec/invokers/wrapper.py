"""yt-dlp command line wrapper.

ytdl-exec invokers v0.1.0

Two ways to run yt-dlp:
- exec(): event mode, returns a started ProcessSession streaming typed
  progress / lifecycle events followed by one terminal event
- exec_promise(): collects all output and either returns it or raises
  NotFoundError / ExecError

Each call spawns its own process. The wrapper itself is immutable: use
with_path() / with_progress_pattern() to derive a differently configured
wrapper instead of changing one that sessions may be using.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from ..config import Config, get_config
from ..parsers import DEFAULT_PROGRESS_PATTERN
from ..runtime import CancelSignal, ProcessRunner, run_process
from .result import interpret_output, parse_media_info
from .session import EventCallback, ProcessSession
from .types import CommandOutput, ExecOptions, MediaInfo

__all__ = ["YTDLWrapper"]

logger = logging.getLogger(__name__)

_FORMAT_FLAGS = ("-f", "--format")


class YTDLWrapper:
    """Wrapper for the yt-dlp command line tool.

    Example:
        ytdl = YTDLWrapper()
        print(await ytdl.get_version())

        session = await ytdl.exec(["https://example.com/watch?v=abc"])
        async for event in session:
            print(event)
    """

    def __init__(
        self,
        path: str | None = None,
        *,
        progress_pattern: re.Pattern[str] | None = None,
        config: Config | None = None,
    ) -> None:
        """Create a wrapper.

        Args:
            path: Path to the yt-dlp executable (default: config.executable,
                "yt-dlp" from PATH unless YTDL_PATH is set)
            progress_pattern: Pattern recognizing progress lines
            config: Runtime configuration (default: loaded from environment)
        """
        self._config = config or get_config()
        self._path = path or self._config.executable
        self._progress_pattern = progress_pattern or DEFAULT_PROGRESS_PATTERN
        self._runner = ProcessRunner(term_timeout=self._config.term_timeout)

    @property
    def path(self) -> str:
        """Path to the yt-dlp executable."""
        return self._path

    @property
    def progress_pattern(self) -> re.Pattern[str]:
        """Pattern used to parse progress lines."""
        return self._progress_pattern

    @property
    def config(self) -> Config:
        return self._config

    def with_path(self, path: str) -> "YTDLWrapper":
        """Return a copy of this wrapper using another executable."""
        return YTDLWrapper(path, progress_pattern=self._progress_pattern, config=self._config)

    def with_progress_pattern(self, pattern: re.Pattern[str] | str) -> "YTDLWrapper":
        """Return a copy of this wrapper using another progress pattern.

        String patterns are compiled case-insensitively.
        """
        if isinstance(pattern, str):
            pattern = re.compile(pattern, re.IGNORECASE)
        return YTDLWrapper(self._path, progress_pattern=pattern, config=self._config)

    def __repr__(self) -> str:
        return f"YTDLWrapper(path={self._path!r}, progress_pattern={self._progress_pattern.pattern!r})"

    # =========================================================================
    # Execution
    # =========================================================================

    async def exec(
        self,
        args: Sequence[str] = (),
        options: ExecOptions | None = None,
        cancel_signal: CancelSignal | None = None,
        event_callback: EventCallback | None = None,
        buffer_events: bool = True,
    ) -> ProcessSession:
        """Run yt-dlp and stream its events.

        Args:
            args: Arguments passed to yt-dlp
            options: Spawn options
            cancel_signal: Event that kills the process when set
            event_callback: Called synchronously with every event
            buffer_events: Keep events for async iteration (False when
                only event_callback consumes them)

        Returns:
            A started ProcessSession

        Raises:
            SpawnError: If yt-dlp cannot be launched
        """
        options = options or ExecOptions()
        spec = options.to_spec(self._path, args)
        logger.info(f"Executing: {' '.join(spec.argv)}")

        session = ProcessSession(
            spec,
            progress_pattern=self._progress_pattern,
            cancel_signal=cancel_signal,
            event_callback=event_callback,
            buffer_events=buffer_events,
            runner=self._runner,
            encoding=self._config.encoding,
            chunk_size=self._config.chunk_size,
        )
        return await session.start()

    async def exec_promise(
        self,
        args: Sequence[str] = (),
        options: ExecOptions | None = None,
        cancel_signal: CancelSignal | None = None,
    ) -> CommandOutput:
        """Run yt-dlp to completion and return its output.

        Args:
            args: Arguments passed to yt-dlp
            options: Spawn options
            cancel_signal: Event that kills the process when set

        Returns:
            Collected output of a successful run

        Raises:
            SpawnError: If yt-dlp cannot be launched
            NotFoundError: If yt-dlp reported HTTP 404
            ExecError: For any other failure, with the raw stderr text
        """
        options = options or ExecOptions()
        spec = options.to_spec(self._path, args)
        logger.info(f"Executing: {' '.join(spec.argv)}")

        status, stdout, stderr = await run_process(
            spec,
            cancel_signal=cancel_signal,
            runner=self._runner,
        )
        output = CommandOutput(
            status=status,
            stdout=stdout,
            stderr=stderr,
            encoding=self._config.encoding,
        )
        return interpret_output(output, list(args))

    async def exec_promise_string(
        self,
        args: Sequence[str] = (),
        options: ExecOptions | None = None,
        cancel_signal: CancelSignal | None = None,
    ) -> str:
        """Like exec_promise(), returning stdout as text."""
        output = await self.exec_promise(args, options, cancel_signal)
        return output.text()

    # =========================================================================
    # Convenience queries
    # =========================================================================

    async def get_extractors(self) -> list[str]:
        """Names of all available extractors."""
        return _non_empty_lines(await self.exec_promise_string(["--list-extractors"]))

    async def get_extractor_descriptions(self) -> list[str]:
        """Descriptions of all available extractors."""
        return _non_empty_lines(await self.exec_promise_string(["--extractor-descriptions"]))

    async def get_help(self) -> str:
        """The yt-dlp help text."""
        return await self.exec_promise_string(["--help"])

    async def get_user_agent(self) -> str:
        """The user agent string yt-dlp sends."""
        return await self.exec_promise_string(["--dump-user-agent"])

    async def get_version(self) -> str:
        """The yt-dlp version string."""
        return await self.exec_promise_string(["--version"])

    async def get_media_info(
        self,
        args: str | Sequence[str],
        options: ExecOptions | None = None,
        cancel_signal: CancelSignal | None = None,
    ) -> MediaInfo | list[MediaInfo]:
        """Fetch media metadata with ``--dump-json``.

        Args:
            args: A URL, or a list of yt-dlp arguments
            options: Spawn options
            cancel_signal: Event that kills the process when set

        Returns:
            One record for a single video, a list for playlists

        Raises:
            NotFoundError: If the media does not exist
            ExecError: If yt-dlp failed
            MediaInfoParseError: If the output is not JSON
        """
        arg_list = [args] if isinstance(args, str) else list(args)
        if not any(flag in arg_list for flag in _FORMAT_FLAGS):
            arg_list += ["-f", "best"]

        text = await self.exec_promise_string([*arg_list, "--dump-json"], options, cancel_signal)
        return parse_media_info(text)


def _non_empty_lines(text: str) -> list[str]:
    return [line.strip() for line in text.split("\n") if line.strip()]
