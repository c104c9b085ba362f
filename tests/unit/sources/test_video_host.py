"""Tests for yt-dlp downloads."""

import pytest

from clipshare.exceptions import ValidationFailure
from clipshare.executor import ProcessExitFailure
from clipshare.sources import VideoHostFetcher

URL = "https://video.example/watch?v=abc"


@pytest.fixture
def fetcher(fake_runner):
    return VideoHostFetcher(fake_runner, timeout=60, retries=0, retry_delay=0)


class TestFetchMetadata:
    @pytest.mark.asyncio
    async def test_returns_json_object(self, fetcher, fake_runner):
        data = await fetcher.fetch_metadata(URL)
        assert data["title"] == "Big Match: Highlights!"
        call = fake_runner.calls[0]
        assert call.command == "yt-dlp"
        assert call.args[0] == "--dump-single-json"
        assert call.args[-1] == URL
        assert call.label == "yt-dlp"
        assert call.options.timeout == 60

    @pytest.mark.asyncio
    async def test_non_object_is_rejected(self, fetcher, fake_runner):
        fake_runner.video_metadata = ["not", "an", "object"]
        with pytest.raises(ValidationFailure, match="not an object"):
            await fetcher.fetch_metadata(URL)


class TestDownload:
    @pytest.mark.asyncio
    async def test_download_renamed_to_mp4(self, fetcher, fake_runner, tmp_path):
        """The downloaded file is named from the cleaned title and resource id."""
        download = await fetcher.download(URL, "res-1", tmp_path)

        assert download.path == tmp_path / "videos" / "Big_Match_Highlights_res-1.mp4"
        assert download.path.read_bytes() == b"downloaded"
        assert download.title == "Big_Match_Highlights"
        assert download.duration_seconds == 90.0
        assert not (tmp_path / "videos" / "Big_Match_Highlights_res-1.webm").exists()
        assert len(fake_runner.calls_labelled("yt-dlp")) == 2

    @pytest.mark.asyncio
    async def test_missing_duration(self, fetcher, fake_runner, tmp_path):
        fake_runner.video_metadata = {"title": "Clip"}
        download = await fetcher.download(URL, "r", tmp_path)
        assert download.duration_seconds is None

    @pytest.mark.asyncio
    async def test_no_file_written(self, fetcher, fake_runner, tmp_path, monkeypatch):
        async def run(command, args, options=None):
            return await original(command, ["--dump-single-json", *args[-1:]], options)

        original = fake_runner.run
        monkeypatch.setattr(fake_runner, "run", run)
        with pytest.raises(ValidationFailure, match="wrote no file"):
            await fetcher.download(URL, "r", tmp_path)

    @pytest.mark.asyncio
    async def test_process_failure_propagates(self, fetcher, fake_runner, tmp_path):
        fake_runner.fail = lambda cmd, args: "--no-playlist" in args
        with pytest.raises(ProcessExitFailure, match="yt-dlp exited 1"):
            await fetcher.download(URL, "r", tmp_path)
