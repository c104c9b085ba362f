"""Tests for ffmpeg stderr progress parsing."""

import pytest

from clipshare.tools import StderrProgress, parse_duration_line, parse_stderr_progress


class TestParseStderrProgress:
    def test_status_line(self):
        line = "frame= 1234 fps= 30 q=28.0 size=   2048kB time=00:01:23.45 bitrate=2.0kbits/s speed=2.0x"
        progress = parse_stderr_progress(line)
        assert progress is not None
        assert progress.frame == 1234
        assert progress.out_time_seconds == pytest.approx(83.45)
        assert progress.speed == "2.0x"

    def test_negative_time_ignored(self):
        """ffmpeg prints a negative time before the first frame."""
        assert parse_stderr_progress("frame=    0 time=-00:00:00.02") is None

    def test_non_status_line(self):
        assert parse_stderr_progress("Stream #0:0: Video: h264") is None

    def test_fraction_needs_duration(self):
        progress = parse_stderr_progress("time=00:00:30.00")
        assert progress.get_fraction(None) is None
        assert progress.get_fraction(60.0) == 0.5
        assert progress.get_fraction(10.0) == 1.0


class TestStderrProgress:
    def test_learns_duration_from_banner(self):
        """Without a known duration the Duration: banner is used."""
        reader = StderrProgress()
        assert reader.feed("  Duration: 00:02:00.00, start: 0.000000, bitrate: 1000 kb/s") is None
        assert reader.duration_seconds == 120.0
        assert reader.feed("frame=10 time=00:00:30.00 speed=1x") == 0.25

    def test_known_duration_wins(self):
        reader = StderrProgress(60.0)
        reader.feed("  Duration: 00:10:00.00, start: 0")
        assert reader.duration_seconds == 60.0

    def test_parse_duration_line(self):
        assert parse_duration_line("Duration: 01:00:00.5") == 3600.5
        assert parse_duration_line("nothing here") is None
