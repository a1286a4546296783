"""ytdl-exec command line entry point.

Subcommands:
    version                      print the yt-dlp version
    help                         print the yt-dlp help text
    user-agent                   print the yt-dlp user agent
    extractors [--descriptions]  list extractors
    info URL... [-f FORMAT]      print media info as JSON
    run -- ARGS...               run yt-dlp, streaming events as JSON lines

During ``run``, SIGINT cancels the running yt-dlp instead of killing the
wrapper; the terminal event is still printed.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from collections.abc import Sequence

from .config import Config, get_config
from .errors import NotFoundError, YTDLError
from .invokers import YTDLWrapper
from .parsers import EventKind
from .runtime import IS_WINDOWS

__all__ = ["build_parser", "run", "main"]

logger = logging.getLogger(__name__)

EXIT_ERROR = 1
EXIT_USAGE = 2
EXIT_NOT_FOUND = 4


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="ytdl-exec",
        description="Run yt-dlp and parse its output",
    )
    parser.add_argument(
        "--ytdl-path",
        default=None,
        help="yt-dlp executable (default: $YTDL_PATH or yt-dlp)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("version", help="print the yt-dlp version")
    sub.add_parser("help", help="print the yt-dlp help text")
    sub.add_parser("user-agent", help="print the yt-dlp user agent")

    extractors = sub.add_parser("extractors", help="list extractors")
    extractors.add_argument("--descriptions", action="store_true", help="print descriptions")

    info = sub.add_parser("info", help="print media info as JSON")
    info.add_argument("urls", nargs="+", metavar="URL")
    info.add_argument("-f", "--format", default=None, help="format selector")

    run_cmd = sub.add_parser("run", help="run yt-dlp and stream events")
    run_cmd.add_argument("args", nargs=argparse.REMAINDER, help="arguments for yt-dlp")

    return parser


async def _stream(ytdl: YTDLWrapper, args: Sequence[str]) -> int:
    """Run yt-dlp in event mode, printing one JSON line per event."""
    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()

    def on_sigint() -> None:
        logger.warning("SIGINT received, cancelling yt-dlp")
        cancel.set()

    if not IS_WINDOWS:
        loop.add_signal_handler(signal.SIGINT, on_sigint)
    else:
        signal.signal(signal.SIGINT, lambda sig, frame: loop.call_soon_threadsafe(on_sigint))

    try:
        session = await ytdl.exec(list(args), cancel_signal=cancel)
        async for event in session:
            print(event.model_dump_json(), flush=True)
        terminal = await session.wait()
    finally:
        if not IS_WINDOWS:
            loop.remove_signal_handler(signal.SIGINT)
        else:
            signal.signal(signal.SIGINT, signal.default_int_handler)

    if terminal.kind is EventKind.CLOSE:
        return 0
    # stderr warnings alone do not fail the command
    status = session.status
    if status is not None and status.code is not None:
        return status.code
    return EXIT_ERROR


async def run(argv: Sequence[str] | None = None, config: Config | None = None) -> int:
    """Execute one CLI command and return the process exit code."""
    args = build_parser().parse_args(argv)
    ytdl = YTDLWrapper(args.ytdl_path, config=config)

    try:
        if args.command == "version":
            print((await ytdl.get_version()).strip())
        elif args.command == "help":
            print(await ytdl.get_help(), end="")
        elif args.command == "user-agent":
            print((await ytdl.get_user_agent()).strip())
        elif args.command == "extractors":
            if args.descriptions:
                lines = await ytdl.get_extractor_descriptions()
            else:
                lines = await ytdl.get_extractors()
            print("\n".join(lines))
        elif args.command == "info":
            info_args = list(args.urls)
            if args.format:
                info_args += ["-f", args.format]
            info = await ytdl.get_media_info(info_args)
            print(json.dumps(info, ensure_ascii=False, indent=2))
        elif args.command == "run":
            forwarded = list(args.args)
            if forwarded and forwarded[0] == "--":
                forwarded = forwarded[1:]
            return await _stream(ytdl, forwarded)
        else:
            return EXIT_USAGE
    except NotFoundError as e:
        print(f"ytdl-exec: {e}", file=sys.stderr)
        return EXIT_NOT_FOUND
    except YTDLError as e:
        print(f"ytdl-exec: {type(e).__name__}: {e}", file=sys.stderr)
        return EXIT_ERROR

    return 0


def _configure_logging(config: Config) -> None:
    log_handlers: list[logging.Handler] = []

    if config.log_debug and config.log_file:
        # Debug mode: log to a temp file
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        log_handlers.append(file_handler)
        log_level = logging.DEBUG
    else:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        log_handlers.append(stderr_handler)
        log_level = logging.WARNING

    # Third-party loggers stay at WARNING
    logging.basicConfig(level=logging.WARNING, handlers=log_handlers)
    logging.getLogger("ytdl_exec").setLevel(log_level)


def main() -> None:
    """Console script entry point."""
    config = get_config()
    _configure_logging(config)
    if config.log_file:
        logger.info(f"Debug log: {config.log_file}")
    sys.exit(asyncio.run(run(config=config)))


if __name__ == "__main__":
    main()
