"""Tests for core helpers: timestamps, filename sanitising and range timing."""

from datetime import datetime, timezone

import pytest

from clipshare.core import (
    clean_video_title,
    range_window,
    sanitize_filename_component,
    truncate_error,
)
from clipshare.core.datetime_utils import compact_timestamp, utc_now_iso
from clipshare.core.timing import format_seconds


class TestRangeWindow:
    """Tests for range_window()."""

    def test_converts_milliseconds(self):
        """Offsets become seconds with the matching duration."""
        window = range_window(1500, 4000)
        assert window.start == 1.5
        assert window.end == 4.0
        assert window.duration == 2.5

    def test_negative_start_clamped(self):
        """A negative start is clamped to zero."""
        window = range_window(-500, 2000)
        assert window.start == 0.0
        assert window.duration == 2.0

    def test_empty_range_gets_minimum_duration(self):
        """An end at or before the start is pushed 0.1s past it."""
        window = range_window(3000, 3000)
        assert window.duration == pytest.approx(0.1)
        assert range_window(5000, 1000).end == pytest.approx(5.1)


class TestFormatSeconds:
    def test_strips_float_noise(self):
        assert format_seconds(1.5) == "1.5"
        assert format_seconds(2.0) == "2"
        assert format_seconds(0.1 + 0.2) == "0.3"
        assert format_seconds(0) == "0"


class TestSanitizeFilenameComponent:
    """Tests for sanitize_filename_component()."""

    def test_replaces_unsafe_characters(self):
        """Every character outside [A-Za-z0-9_-] becomes an underscore."""
        assert sanitize_filename_component("Goal! (2nd half)") == "Goal___2nd_half_"

    def test_keeps_safe_characters(self):
        assert sanitize_filename_component("clip_01-final") == "clip_01-final"

    def test_empty_uses_fallback(self):
        """None and empty strings use the fallback."""
        assert sanitize_filename_component(None) == "untitled"
        assert sanitize_filename_component("", fallback="clip") == "clip"


class TestCleanVideoTitle:
    def test_drops_specials_and_joins_whitespace(self):
        """Specials are removed and whitespace runs become underscores."""
        assert clean_video_title("Big  Match: Highlights!") == "Big_Match_Highlights"

    def test_caps_length(self):
        assert len(clean_video_title("x" * 300)) == 100

    def test_missing_title(self):
        assert clean_video_title(None) == "Untitled_Video"


class TestTimestamps:
    def test_now_is_aware_utc(self):
        assert utc_now_iso().endswith("+00:00")

    def test_compact_timestamp_is_filesystem_safe(self):
        dt = datetime(2024, 1, 15, 10, 30, 5, tzinfo=timezone.utc)
        assert compact_timestamp(dt) == "20240115T103005Z"


class TestTruncateError:
    def test_short_message_unchanged(self):
        assert truncate_error("boom") == "boom"

    def test_long_message_truncated(self):
        """Long messages keep their head and stay within the limit."""
        message = truncate_error("e" * 5000)
        assert len(message) == 2000
        assert message.endswith("... [truncated]")
