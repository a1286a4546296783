"""YTDLWrapper tests against the fake yt-dlp."""

from __future__ import annotations

import asyncio
import re

import pytest

from ytdl_exec.config import Config
from ytdl_exec.errors import ExecError, MediaInfoParseError, NotFoundError
from ytdl_exec.invokers import ExecOptions, YTDLWrapper
from ytdl_exec.parsers import DEFAULT_PROGRESS_PATTERN

pytestmark = [pytest.mark.integration, pytest.mark.timeout(30)]

URL = "https://example.com/watch?v=abc"


# =============================================================================
# Construction
# =============================================================================


class TestConstruction:
    """Path and pattern configuration."""

    def test_defaults_from_config(self):
        ytdl = YTDLWrapper(config=Config(executable="/opt/yt-dlp"))
        assert ytdl.path == "/opt/yt-dlp"
        assert ytdl.progress_pattern is DEFAULT_PROGRESS_PATTERN

    def test_explicit_path_wins(self):
        ytdl = YTDLWrapper("/usr/bin/yt-dlp", config=Config(executable="/opt/yt-dlp"))
        assert ytdl.path == "/usr/bin/yt-dlp"

    def test_with_path_returns_new_wrapper(self):
        ytdl = YTDLWrapper("a", config=Config())
        other = ytdl.with_path("b")
        assert other is not ytdl
        assert ytdl.path == "a"
        assert other.path == "b"
        assert other.config is ytdl.config

    def test_with_progress_pattern_string(self):
        ytdl = YTDLWrapper("a", config=Config())
        other = ytdl.with_progress_pattern(r"\[fetch\] (\d+)%")
        assert ytdl.progress_pattern is DEFAULT_PROGRESS_PATTERN
        assert other.progress_pattern.pattern == r"\[fetch\] (\d+)%"
        assert other.progress_pattern.flags & re.IGNORECASE
        assert other.path == "a"

    def test_with_progress_pattern_compiled(self):
        pattern = re.compile(r"x(\d+)")
        other = YTDLWrapper("a", config=Config()).with_progress_pattern(pattern)
        assert other.progress_pattern is pattern

    def test_repr(self):
        assert "yt-dlp-bin" in repr(YTDLWrapper("yt-dlp-bin", config=Config()))


# =============================================================================
# Informational queries
# =============================================================================


class TestQueries:
    """Version, help, user agent and extractors."""

    @pytest.mark.asyncio
    async def test_version(self, ytdl: YTDLWrapper):
        assert await ytdl.get_version() == "2024.08.06\n"

    @pytest.mark.asyncio
    async def test_help(self, ytdl: YTDLWrapper):
        assert (await ytdl.get_help()).startswith("Usage: yt-dlp")

    @pytest.mark.asyncio
    async def test_user_agent(self, ytdl: YTDLWrapper):
        assert "FakeYtDlp" in await ytdl.get_user_agent()

    @pytest.mark.asyncio
    async def test_extractors_trimmed_and_filtered(self, ytdl: YTDLWrapper):
        assert await ytdl.get_extractors() == ["youtube", "vimeo", "generic"]

    @pytest.mark.asyncio
    async def test_extractor_descriptions(self, ytdl: YTDLWrapper):
        assert await ytdl.get_extractor_descriptions() == ["YouTube", "Vimeo"]

    @pytest.mark.asyncio
    async def test_concurrent_calls(self, ytdl: YTDLWrapper):
        version, extractors = await asyncio.gather(ytdl.get_version(), ytdl.get_extractors())
        assert version.strip() == "2024.08.06"
        assert extractors[0] == "youtube"


# =============================================================================
# Media info
# =============================================================================


class TestMediaInfo:
    """--dump-json handling."""

    @pytest.mark.asyncio
    async def test_single_video(self, ytdl: YTDLWrapper):
        info = await ytdl.get_media_info(URL)
        assert info["_type"] == "video"
        assert info["_version"]["version"] == "2024.08.06"
        assert info["webpage_url"] == URL

    @pytest.mark.asyncio
    async def test_default_format_is_best(self, ytdl: YTDLWrapper):
        info = await ytdl.get_media_info([URL])
        assert info["format"] == "best"

    @pytest.mark.asyncio
    async def test_explicit_format_kept(self, ytdl: YTDLWrapper):
        info = await ytdl.get_media_info([URL, "-f", "worst"])
        assert info["format"] == "worst"

    @pytest.mark.asyncio
    async def test_long_format_flag_kept(self, ytdl: YTDLWrapper):
        info = await ytdl.get_media_info([URL, "--format", "bestaudio"])
        assert info["format"] == "bestaudio"

    @pytest.mark.asyncio
    async def test_playlist_is_list(self, ytdl: YTDLWrapper):
        info = await ytdl.get_media_info("https://example.com/playlist?list=xyz")
        assert isinstance(info, list)
        assert [record["id"] for record in info] == ["vid1", "vid2"]

    @pytest.mark.asyncio
    async def test_not_found(self, ytdl: YTDLWrapper):
        with pytest.raises(NotFoundError) as exc_info:
            await ytdl.get_media_info("https://example.com/missing")
        err = exc_info.value
        assert err.args_list == ["https://example.com/missing", "-f", "best", "--dump-json"]
        assert err.exit_code == 1
        assert "HTTP Error 404" in err.stderr

    @pytest.mark.asyncio
    async def test_unparseable_output(self, ytdl: YTDLWrapper):
        with pytest.raises(MediaInfoParseError):
            await ytdl.get_media_info("https://example.com/broken")


# =============================================================================
# Promise mode
# =============================================================================


class TestExecPromise:
    """Collected output and failure mapping."""

    @pytest.mark.asyncio
    async def test_output_collected(self, ytdl: YTDLWrapper):
        output = await ytdl.exec_promise([URL, "--fake-stderr", "WARNING: ok"])
        assert output.success
        assert output.lines()[0] == f"[generic] Extracting URL: {URL}"
        assert output.error_text() == "WARNING: ok\n"

    @pytest.mark.asyncio
    async def test_failure_raises_exec_error(self, ytdl: YTDLWrapper):
        with pytest.raises(ExecError) as exc_info:
            await ytdl.exec_promise(["--fake-stderr", "ERROR: nope", "--fake-exit", "2"])
        err = exc_info.value
        assert not isinstance(err, NotFoundError)
        assert err.exit_code == 2
        assert err.stderr == "ERROR: nope\n"

    @pytest.mark.asyncio
    async def test_string_variant(self, ytdl: YTDLWrapper):
        text = await ytdl.exec_promise_string(["--fake-stdout", "hello"])
        assert text.endswith("hello\n")

    @pytest.mark.asyncio
    async def test_options_env_and_cwd(self, ytdl: YTDLWrapper, tmp_path):
        options = ExecOptions(cwd=str(tmp_path), env={"YTDL_TEST": "1"})
        assert options.cwd == tmp_path
        spec = options.to_spec(ytdl.path, ["--version"])
        assert spec.argv == [ytdl.path, "--version"]
        assert spec.cwd == tmp_path

        assert (await ytdl.exec_promise(["--version"], options)).success

    @pytest.mark.asyncio
    async def test_cancel_signal(self, ytdl: YTDLWrapper):
        cancel = asyncio.Event()
        task = asyncio.create_task(ytdl.exec_promise(["--fake-sleep", "30"], cancel_signal=cancel))
        await asyncio.sleep(0.3)
        cancel.set()

        with pytest.raises(ExecError) as exc_info:
            await asyncio.wait_for(task, timeout=10)
        assert exc_info.value.exit_code is None
