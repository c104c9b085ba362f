"""Tests for ffmpeg/ffprobe argument builders."""

from pathlib import Path

import pytest

from clipshare.core.timing import range_window
from clipshare.tools import (
    QualityTier,
    copy_trim_args,
    export_clip_args,
    ffmpeg_scene_args,
    ffprobe_scene_args,
    frame_batch_args,
    processing_clip_args,
    quality_args,
    thumbnail_args,
    transcode_args,
)


def _value_after(args: list[str], flag: str) -> str:
    return args[args.index(flag) + 1]


class TestTranscodeArgs:
    def test_canonical_mp4_settings(self):
        """Canonical files are H.264/AAC with faststart."""
        args = transcode_args(Path("/in/source.mov"), Path("/out/processed.mp4"))
        assert _value_after(args, "-i") == "/in/source.mov"
        assert _value_after(args, "-c:v") == "libx264"
        assert _value_after(args, "-c:a") == "aac"
        assert _value_after(args, "-movflags") == "+faststart"
        assert args[-1] == "/out/processed.mp4"


class TestSceneArgs:
    def test_ffprobe_escapes_movie_path(self):
        """Colons in the path are escaped for the lavfi movie source."""
        args = ffprobe_scene_args(Path("/media/a:b.mp4"), 0.4)
        graph = args[-1]
        assert graph.startswith("movie=/media/a\\:b.mp4,")
        assert "select=gt(scene\\,0.4)" in graph

    def test_ffmpeg_prints_metadata_to_stdout(self):
        args = ffmpeg_scene_args(Path("/media/a.mp4"), 0.3)
        assert "select='gt(scene,0.3)',metadata=print:file=-" in args
        assert args[-3:] == ["-f", "null", "-"]


class TestFrameBatchArgs:
    def test_one_select_term_per_timestamp(self):
        """Each timestamp becomes one eq(t,...) term."""
        args = frame_batch_args(Path("/p.mp4"), [0.0, 12.5, 30.0], Path("/frames"), 1)
        vf = _value_after(args, "-vf")
        assert vf.startswith("select='eq(t,0)+eq(t,12.5)+eq(t,30)'")
        assert "scale=160:-1" in vf

    def test_start_number_continues_numbering(self):
        args = frame_batch_args(Path("/p.mp4"), [1.0], Path("/frames"), 1001)
        assert _value_after(args, "-start_number") == "1001"
        assert "/frames/shot_frame_%06d.jpg" in args

    def test_empty_batch_rejected(self):
        with pytest.raises(ValueError):
            frame_batch_args(Path("/p.mp4"), [], Path("/frames"), 1)


class TestTrimArgs:
    def test_processing_clip_pre_seeks(self):
        """Input seek lands 0.1s early and the output seek covers the rest."""
        window = range_window(5000, 8000)
        args = processing_clip_args(Path("/c.mp4"), window, Path("/clip.mp4"))
        assert args[:2] == ["-ss", "4.9"]
        assert args[4:6] == ["-ss", "0.1"]
        assert _value_after(args, "-t") == "3"
        assert _value_after(args, "-profile:v") == "baseline"

    def test_processing_clip_near_zero(self):
        window = range_window(0, 1000)
        args = processing_clip_args(Path("/c.mp4"), window, Path("/clip.mp4"))
        assert args[:2] == ["-ss", "0"]

    def test_copy_trim_uses_stream_copy(self):
        args = copy_trim_args(Path("/c.mp4"), range_window(1000, 2000), Path("/o.mp4"))
        assert _value_after(args, "-c") == "copy"


class TestExportArgs:
    @pytest.mark.parametrize(
        "tier,scale",
        [("720p", "scale=1280:720"), ("480p", "scale=854:480")],
    )
    def test_scaled_tiers(self, tier, scale):
        args = export_clip_args(Path("/c.mp4"), range_window(0, 1000), Path("/o.mp4"), tier)
        assert _value_after(args, "-vf") == scale

    def test_1080p_keeps_resolution(self):
        args = quality_args(QualityTier.HD_1080)
        assert "-vf" not in args
        assert _value_after(args, "-crf") == "18"

    def test_unknown_tier_rejected(self):
        with pytest.raises(ValueError):
            quality_args("4k")

    def test_thumbnail_single_frame(self):
        args = thumbnail_args(Path("/c.mp4"), 2.5, Path("/t.jpg"))
        assert args[:2] == ["-ss", "2.5"]
        assert _value_after(args, "-vframes") == "1"
        assert _value_after(args, "-vf") == "scale=320:180"
