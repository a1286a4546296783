"""Event-emitting yt-dlp process session.

ytdl-exec invokers v0.1.0

A ProcessSession owns one subprocess for its whole life:
- stdout and stderr are drained concurrently with the exit watch
- stdout chunks are split into lines and classified into events as they
  arrive, so progress reaches the caller in real time
- stderr is accumulated as diagnostic text
- exactly one terminal event (close / closeWithError / error) is emitted

Terminal precedence, decided once stdout, stderr and status are all done:
1. stderr non-empty          -> ErrorEvent
2. failing status            -> CloseWithErrorEvent
3. otherwise                 -> CloseEvent(0)

CloseWithErrorEvent is emitted early, as soon as the process has exited with
a failing status and stderr has reached EOF empty, without waiting for
stdout. The exit is taken from the reaped returncode, not from pipe
closure, so a descendant holding stdout open does not delay it; stdout
events that arrive later are still delivered after it.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import AsyncIterator, Callable
from enum import Enum
from typing import Any

from ..parsers import (
    DEFAULT_PROGRESS_PATTERN,
    CloseEvent,
    CloseWithErrorEvent,
    DebugEvent,
    ErrorEvent,
    EventBase,
    EventKind,
    LineSplitter,
    TerminalEvent,
    YTDLEvent,
    classify_line,
)
from ..runtime import (
    DEFAULT_CHUNK_SIZE,
    DESCENDANT_KILLER,
    CancelSignal,
    DescendantKiller,
    ProcessRunner,
    ProcessSpec,
    ProcessStatus,
    bind_cancel_signal,
    drain_stream,
    kill_process_tree,
    wait_exit,
)

__all__ = [
    "EventCallback",
    "ProcessSession",
    "SessionState",
]

# Callback invoked synchronously for every event
EventCallback = Callable[[EventBase], None]

logger = logging.getLogger(__name__)

_END = object()


class SessionState(str, Enum):
    """Lifecycle state of a ProcessSession."""

    CREATED = "created"
    SPAWNED = "spawned"
    DRAINING = "draining"
    CLOSED = "closed"
    CLOSED_WITH_ERROR = "closed_with_error"
    ERRORED = "errored"


_TERMINAL_STATES = {
    EventKind.CLOSE: SessionState.CLOSED,
    EventKind.CLOSE_WITH_ERROR: SessionState.CLOSED_WITH_ERROR,
    EventKind.ERROR: SessionState.ERRORED,
}


class ProcessSession:
    """One yt-dlp subprocess and the event stream parsed from it.

    Usage:
        session = await ProcessSession(spec).start()
        async for event in session:
            if event.kind is EventKind.PROGRESS:
                print(event.percent)
        terminal = await session.wait()

    Events are buffered in an unbounded queue, so iterating late does not
    lose any. The session can only be iterated once; event_callback sees
    every event as it is emitted. The queue keeps every event of the run
    (one pair per progress line) until it is iterated; callers that only
    use event_callback should pass buffer_events=False.
    """

    def __init__(
        self,
        spec: ProcessSpec,
        *,
        progress_pattern: re.Pattern[str] = DEFAULT_PROGRESS_PATTERN,
        cancel_signal: CancelSignal | None = None,
        event_callback: EventCallback | None = None,
        runner: ProcessRunner | None = None,
        killer: DescendantKiller = DESCENDANT_KILLER,
        encoding: str = "utf-8",
        encoding_errors: str = "replace",
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        buffer_events: bool = True,
    ) -> None:
        self._spec = spec
        self._progress_pattern = progress_pattern
        self._cancel_signal = cancel_signal
        self._event_callback = event_callback
        self._runner = runner or ProcessRunner()
        self._killer = killer
        self._encoding = encoding
        self._encoding_errors = encoding_errors
        self._chunk_size = chunk_size
        self._buffer_events = buffer_events

        self._process: asyncio.subprocess.Process | None = None
        self._task: asyncio.Task[None] | None = None
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._iterated = False

        self._state = SessionState.CREATED
        self._splitter = LineSplitter()
        self._stderr_parts: list[str] = []
        self._status: ProcessStatus | None = None
        self._terminal: TerminalEvent | None = None

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def spec(self) -> ProcessSpec:
        return self._spec

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def status(self) -> ProcessStatus | None:
        """Exit status, once the process has finished."""
        return self._status

    @property
    def stderr_text(self) -> str:
        """stderr accumulated so far."""
        return "".join(self._stderr_parts)

    @property
    def terminal(self) -> TerminalEvent | None:
        """The terminal event, once emitted."""
        return self._terminal

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> "ProcessSession":
        """Spawn the process and begin draining its output.

        Returns:
            self

        Raises:
            SpawnError: If the executable cannot be launched
            RuntimeError: If the session was already started
        """
        if self._state is not SessionState.CREATED:
            raise RuntimeError("ProcessSession can only be started once")

        self._process = await self._runner.spawn(self._spec)
        self._state = SessionState.SPAWNED
        logger.info(f"Spawned pid={self._process.pid}: {' '.join(self._spec.argv)}")
        self._emit(DebugEvent(message=f"spawned pid={self._process.pid}"))

        self._task = asyncio.create_task(
            self._run(self._process),
            name=f"ytdl-session-{self._process.pid}",
        )
        return self

    async def wait(self) -> TerminalEvent:
        """Wait for the session to finish and return its terminal event.

        Cancelling the waiter does not cancel the session.
        """
        if self._task is None:
            raise RuntimeError("ProcessSession has not been started")
        await asyncio.shield(self._task)
        assert self._terminal is not None
        return self._terminal

    async def aclose(self) -> TerminalEvent | None:
        """Kill the process (if running) and wait for the session to end."""
        if self._task is None:
            return None
        if self._process is not None and self._process.returncode is None:
            logger.info(f"Closing session, killing pid={self._process.pid}")
            await kill_process_tree(self._process, self._killer)
        return await self.wait()

    async def __aenter__(self) -> "ProcessSession":
        if self._state is SessionState.CREATED:
            await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def __aiter__(self) -> AsyncIterator[YTDLEvent]:
        """Yield events in emission order until the session has finished."""
        if not self._buffer_events:
            raise RuntimeError("ProcessSession was created with buffer_events=False")
        if self._iterated:
            raise RuntimeError("ProcessSession events can only be iterated once")
        self._iterated = True

        while True:
            event = await self._queue.get()
            if event is _END:
                return
            yield event

    # =========================================================================
    # Draining
    # =========================================================================

    async def _run(self, process: asyncio.subprocess.Process) -> None:
        """Drain both streams, wait for exit and emit the terminal event."""
        watcher = bind_cancel_signal(self._cancel_signal, process, self._killer)
        self._state = SessionState.DRAINING

        stdout_task = asyncio.create_task(
            drain_stream(
                process.stdout,
                self._on_stdout_chunk,
                encoding=self._encoding,
                errors=self._encoding_errors,
                chunk_size=self._chunk_size,
            )
        )
        stderr_task = asyncio.create_task(
            drain_stream(
                process.stderr,
                self._stderr_parts.append,
                encoding=self._encoding,
                errors=self._encoding_errors,
                chunk_size=self._chunk_size,
            )
        )
        status_task = asyncio.create_task(self._watch_status(process, stderr_task))
        tasks = (stdout_task, stderr_task, status_task)

        try:
            await asyncio.gather(*tasks)
        except Exception as e:
            logger.warning(f"Session for pid={process.pid} failed: {type(e).__name__}: {e}")
            code = self._status.code if self._status else None
            stderr = self.stderr_text
            detail = f"{type(e).__name__}: {e}"
            self._emit_terminal(
                ErrorEvent.from_failure(code, f"{stderr}\n{detail}" if stderr else detail)
            )
        else:
            for line in self._splitter.flush():
                self._emit_line(line)
            self._finish(status_task.result())
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            if watcher is not None:
                watcher.cancel()
            try:
                await self._runner.safe_terminate(process)
                await asyncio.gather(*tasks, return_exceptions=True)
            finally:
                self._queue.put_nowait(_END)
            logger.debug(f"Session finished pid={process.pid} state={self._state.value}")

    async def _watch_status(
        self,
        process: asyncio.subprocess.Process,
        stderr_task: asyncio.Task[int],
    ) -> ProcessStatus:
        status = await wait_exit(process)
        self._status = status
        if not status.success:
            await stderr_task
            if not self.stderr_text:
                logger.debug(f"pid={process.pid} failed with empty stderr, closing early")
                self._emit_terminal(CloseWithErrorEvent.from_failure(status.code, ""))
        return status

    def _finish(self, status: ProcessStatus) -> None:
        stderr = self.stderr_text
        if stderr:
            self._emit_terminal(ErrorEvent.from_failure(status.code, stderr))
        elif not status.success:
            self._emit_terminal(CloseWithErrorEvent.from_failure(status.code, ""))
        else:
            self._emit_terminal(CloseEvent(exit_code=0))

    def _on_stdout_chunk(self, text: str) -> None:
        for line in self._splitter.feed(text):
            self._emit_line(line)

    def _emit_line(self, line: str) -> None:
        for event in classify_line(line, self._progress_pattern).events:
            self._emit(event)

    # =========================================================================
    # Emission
    # =========================================================================

    def _emit_terminal(self, event: TerminalEvent) -> None:
        if self._terminal is not None:
            logger.debug(
                f"Dropping {event.kind.value}: session already ended "
                f"with {self._terminal.kind.value}"
            )
            return
        self._terminal = event
        self._state = _TERMINAL_STATES[event.kind]
        logger.info(f"pid={self.pid} {event.kind.value} exit_code={event.exit_code}")
        self._emit(event)

    def _emit(self, event: EventBase) -> None:
        if self._buffer_events:
            self._queue.put_nowait(event)
        if self._event_callback is None:
            return
        try:
            self._event_callback(event)
        except Exception:
            logger.exception(f"Event callback failed for {event.kind.value} event")
