"""Range time arithmetic shared by every trim and thumbnail call site."""

from __future__ import annotations

from dataclasses import dataclass

MIN_CLIP_SECONDS = 0.1


@dataclass(frozen=True)
class RangeWindow:
    """Seek window for one Range, in seconds."""

    start: float
    end: float

    @property
    def duration(self) -> float:
        return max(MIN_CLIP_SECONDS, self.end - self.start)


def range_window(start_ms: int, end_ms: int) -> RangeWindow:
    """Convert stored millisecond offsets into a non-empty seek window.

    Negative starts are clamped to 0 and an end at or before the start is
    pushed to ``start + 0.1`` so ffmpeg never receives a zero duration.
    """
    start = max(0.0, start_ms / 1000)
    end = max(start + MIN_CLIP_SECONDS, end_ms / 1000)
    return RangeWindow(start=start, end=end)


def format_seconds(value: float) -> str:
    """Format seconds for an ffmpeg argument without float noise."""
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    return text or "0"
