"""Pytest configuration and fixtures."""

from __future__ import annotations

import stat
import sys
from pathlib import Path

import pytest

# Project root
PROJECT_ROOT = Path(__file__).parent.parent

# Add src to the Python path (development checkouts)
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

FIXTURES_DIR = PROJECT_ROOT / "tests" / "fixtures"
FAKE_YTDLP_SCRIPT = FIXTURES_DIR / "fake_ytdlp.py"

from ytdl_exec.config import Config  # noqa: E402
from ytdl_exec.invokers import YTDLWrapper  # noqa: E402


@pytest.fixture
def fake_ytdlp(tmp_path: Path) -> str:
    """Executable shim that runs the fake yt-dlp with this interpreter."""
    if sys.platform == "win32":
        pytest.skip("POSIX shell shim required")

    shim = tmp_path / "yt-dlp"
    shim.write_text(
        "#!/bin/sh\n"
        f'exec "{sys.executable}" "{FAKE_YTDLP_SCRIPT}" "$@"\n'
    )
    shim.chmod(shim.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(shim)


@pytest.fixture
def test_config() -> Config:
    """Configuration independent of the environment."""
    return Config(term_timeout=0.5)


@pytest.fixture
def ytdl(fake_ytdlp: str, test_config: Config) -> YTDLWrapper:
    """Wrapper around the fake yt-dlp."""
    return YTDLWrapper(fake_ytdlp, config=test_config)
