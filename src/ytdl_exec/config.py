"""ytdl-exec environment configuration.

Environment variables:
    YTDL_PATH: yt-dlp executable
        - default "yt-dlp" (looked up on PATH)
        - absolute path to use a specific binary

    YTDL_CHUNK_SIZE: bytes per stream read
        - default 4096
        - clamped to 1024-1048576

    YTDL_ENCODING: text encoding of yt-dlp output
        - default utf-8

    YTDL_TERM_TIMEOUT: seconds to wait after SIGTERM during cleanup
        - default 2.0
        - clamped to 0.1-30 seconds

    YTDL_LOG_DEBUG: debug logging
        - true/1/yes = on (log to a temp file)
        - false/0/no = off (default, log to stderr)
"""

from __future__ import annotations

import codecs
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

__all__ = ["Config", "load_config", "get_config", "reload_config"]

DEFAULT_EXECUTABLE = "yt-dlp"
DEFAULT_CHUNK_SIZE = 4096
DEFAULT_ENCODING = "utf-8"
DEFAULT_TERM_TIMEOUT = 2.0


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse a boolean environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_chunk_size(value: str | None) -> int:
    """Parse the read size, falling back to the default on bad input."""
    if not value:
        return DEFAULT_CHUNK_SIZE
    try:
        size = int(value)
    except ValueError:
        return DEFAULT_CHUNK_SIZE
    return max(1024, min(size, 1024 * 1024))


def _parse_encoding(value: str | None) -> str:
    """Parse the output encoding; unknown codecs fall back to utf-8."""
    if not value or not value.strip():
        return DEFAULT_ENCODING
    try:
        return codecs.lookup(value.strip()).name
    except LookupError:
        return DEFAULT_ENCODING


def _parse_term_timeout(value: str | None) -> float:
    """Parse the SIGTERM grace period."""
    if not value:
        return DEFAULT_TERM_TIMEOUT
    try:
        timeout = float(value)
    except ValueError:
        return DEFAULT_TERM_TIMEOUT
    return max(0.1, min(timeout, 30.0))


@dataclass(frozen=True)
class Config:
    """ytdl-exec configuration.

    Attributes:
        executable: yt-dlp executable
        chunk_size: Bytes per stream read
        encoding: Text encoding of stdout/stderr
        term_timeout: Seconds to wait after SIGTERM before SIGKILL
        log_debug: Debug logging to a file
        log_file: Log file path (set when log_debug=True)
    """

    executable: str = DEFAULT_EXECUTABLE
    chunk_size: int = DEFAULT_CHUNK_SIZE
    encoding: str = DEFAULT_ENCODING
    term_timeout: float = DEFAULT_TERM_TIMEOUT
    log_debug: bool = False
    log_file: str | None = None


def _generate_log_file_path() -> str:
    """Build a timestamped log file path under the temp directory."""
    log_dir = Path(tempfile.gettempdir()) / "ytdl-exec"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"ytdl_debug_{timestamp}.log"

    return str(log_file.resolve())


def load_config() -> Config:
    """Load configuration from environment variables."""
    log_debug = _parse_bool(os.environ.get("YTDL_LOG_DEBUG"), default=False)
    log_file = _generate_log_file_path() if log_debug else None

    return Config(
        executable=os.environ.get("YTDL_PATH", "").strip() or DEFAULT_EXECUTABLE,
        chunk_size=_parse_chunk_size(os.environ.get("YTDL_CHUNK_SIZE")),
        encoding=_parse_encoding(os.environ.get("YTDL_ENCODING")),
        term_timeout=_parse_term_timeout(os.environ.get("YTDL_TERM_TIMEOUT")),
        log_debug=log_debug,
        log_file=log_file,
    )


# Global config instance (lazy)
_config: Config | None = None


def get_config() -> Config:
    """Return the global configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Reload configuration from the environment (for tests)."""
    global _config
    _config = load_config()
    return _config
