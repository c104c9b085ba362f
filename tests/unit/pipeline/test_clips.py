"""Tests for per-range clip derivation."""

import pytest

from conftest import make_range
from clipshare.pipeline import clip_relpath, generate_range_clips, trim_range_clip


class TestGenerateRangeClips:
    @pytest.mark.asyncio
    async def test_failed_cut_does_not_stop_others(self, fake_runner, tmp_path):
        """A failing range is recorded and the remaining ranges still get clips."""
        ranges = [make_range("r1", 0, 1000), make_range("r1", 2000, 3000), make_range("r1", 4000, 5000)]
        bad = ranges[1]
        fake_runner.fail = lambda cmd, args: args[-1].endswith(f"{bad.id}.mp4")

        result = await generate_range_clips(fake_runner, tmp_path / "p.mp4", tmp_path, ranges)

        assert result.created == [ranges[0].id, ranges[2].id]
        assert list(result.failed) == [bad.id]
        assert (tmp_path / clip_relpath(ranges[0].id)).is_file()
        assert not (tmp_path / clip_relpath(bad.id)).exists()

    def test_clip_path_is_deterministic(self):
        assert clip_relpath("abc") == "clips/abc.mp4"


class TestTrimRangeClip:
    @pytest.mark.asyncio
    async def test_copy_first(self, fake_runner, tmp_path):
        range_ = make_range("r1", 1000, 2000)
        copied = await trim_range_clip(fake_runner, tmp_path / "p.mp4", range_, tmp_path / "out" / "c.mp4")
        assert copied
        assert len(fake_runner.calls) == 1
        assert (tmp_path / "out" / "c.mp4").is_file()
