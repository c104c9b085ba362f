"""Tests for scene detection and probe output parsers."""

import pytest

from clipshare.exceptions import ValidationFailure
from clipshare.tools import (
    SceneCut,
    parse_ffmpeg_scene_metadata,
    parse_ffprobe_scene_csv,
    parse_probe_duration,
)


class TestParseFfprobeSceneCsv:
    def test_parses_rows(self):
        cuts = parse_ffprobe_scene_csv("12.0,0.62\n47.5,0.88\n")
        assert cuts == [SceneCut(12.0, 0.62), SceneCut(47.5, 0.88)]

    def test_skips_unusable_rows(self):
        """Blank lines and non-numeric timestamps are ignored."""
        cuts = parse_ffprobe_scene_csv("\nN/A,0.5\n3.0\n")
        assert cuts == [SceneCut(3.0, 0.0)]

    def test_confidence_is_clamped(self):
        """Confidence stays within 0.3-0.95 regardless of the raw score."""
        low, high = parse_ffprobe_scene_csv("1.0,0.05\n2.0,1.0\n")
        assert low.confidence == 0.3
        assert high.confidence == 0.95


class TestParseFfmpegSceneMetadata:
    def test_pairs_pts_with_scores(self):
        output = (
            "frame:0    pts:1234   pts_time:4.12\n"
            "lavfi.scene_score=0.512\n"
            "frame:1    pts:5678   pts_time:9.5\n"
            "lavfi.scene_score=0.77\n"
        )
        cuts = parse_ffmpeg_scene_metadata(output)
        assert cuts == [SceneCut(4.12, 0.512), SceneCut(9.5, 0.77)]

    def test_score_without_timestamp_ignored(self):
        assert parse_ffmpeg_scene_metadata("lavfi.scene_score=0.9\n") == []


class TestParseProbeDuration:
    def test_reads_format_duration(self):
        assert parse_probe_duration('{"format": {"duration": "63.480000"}}') == 63.48

    @pytest.mark.parametrize(
        "output",
        ["not json", "{}", '{"format": {"duration": "N/A"}}', '{"format": {"duration": "0"}}'],
    )
    def test_invalid_output(self, output):
        with pytest.raises(ValidationFailure):
            parse_probe_duration(output)
