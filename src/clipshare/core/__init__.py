"""Core utilities package.

Pure helpers with no third-party dependencies: timestamps, filename
sanitising and range time arithmetic.
"""

from clipshare.core.datetime_utils import compact_timestamp, utc_now_iso
from clipshare.core.string_utils import (
    clean_video_title,
    sanitize_filename_component,
    truncate_error,
)
from clipshare.core.timing import RangeWindow, range_window

__all__ = [
    "RangeWindow",
    "clean_video_title",
    "compact_timestamp",
    "range_window",
    "sanitize_filename_component",
    "truncate_error",
    "utc_now_iso",
]
