"""FFmpeg stderr progress parsing.

ffmpeg prints the input duration once ("Duration: 00:12:34.56, ...") and
then periodic status lines ("frame= 1234 fps= 30 ... time=00:01:23.45
bitrate=... speed=2.0x"). StderrProgress turns that stream into a
completion fraction.
"""

import re
from dataclasses import dataclass

_DURATION_RE = re.compile(r"Duration:\s*(\d+):(\d+):(\d+)(?:\.(\d+))?")
_TIME_RE = re.compile(r"time=\s*(-?\d+):(\d+):(\d+)(?:\.(\d+))?")
_FRAME_RE = re.compile(r"frame=\s*(\d+)")
_SPEED_RE = re.compile(r"speed=\s*([^\s]+)")


def _hms_to_seconds(hours: str, minutes: str, seconds: str, fraction: str | None) -> float:
    value = int(hours) * 3600 + int(minutes) * 60 + int(seconds)
    if fraction:
        value += int(fraction) / (10 ** len(fraction))
    return float(value)


@dataclass
class FFmpegProgress:
    """One parsed ffmpeg status line."""

    frame: int | None = None
    out_time_seconds: float | None = None
    speed: str | None = None

    def get_fraction(self, duration_seconds: float | None) -> float | None:
        """Completion fraction (0-1), or None if either side is unknown."""
        if (
            duration_seconds is None
            or duration_seconds <= 0
            or self.out_time_seconds is None
        ):
            return None
        return max(0.0, min(1.0, self.out_time_seconds / duration_seconds))


def parse_duration_line(line: str) -> float | None:
    """Parse the input duration banner, e.g. "Duration: 00:01:30.50"."""
    match = _DURATION_RE.search(line)
    if not match:
        return None
    return _hms_to_seconds(*match.groups())


def parse_stderr_progress(line: str) -> FFmpegProgress | None:
    """Parse an ffmpeg stderr status line.

    Returns:
        Parsed FFmpegProgress, or None if the line carries no time= field.
    """
    time_match = _TIME_RE.search(line)
    if not time_match or time_match.group(1).startswith("-"):
        return None
    result = FFmpegProgress(out_time_seconds=_hms_to_seconds(*time_match.groups()))
    frame_match = _FRAME_RE.search(line)
    if frame_match:
        result.frame = int(frame_match.group(1))
    speed_match = _SPEED_RE.search(line)
    if speed_match and speed_match.group(1) != "N/A":
        result.speed = speed_match.group(1)
    return result


class StderrProgress:
    """Stateful reader for one ffmpeg run's stderr.

    Args:
        duration_seconds: Known duration; when None, the first Duration:
            banner in the stream is used.
    """

    def __init__(self, duration_seconds: float | None = None) -> None:
        self.duration_seconds = duration_seconds

    def feed(self, line: str) -> float | None:
        """Consume a line; return the completion fraction if it moved."""
        if self.duration_seconds is None:
            duration = parse_duration_line(line)
            if duration is not None and duration > 0:
                self.duration_seconds = duration
                return None
        progress = parse_stderr_progress(line)
        if progress is None:
            return None
        return progress.get_fraction(self.duration_seconds)
