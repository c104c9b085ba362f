"""Argument builders for ffmpeg and ffprobe invocations.

Each function returns the argument list (without the executable) for one
invocation. They are pure so the exact command lines can be asserted in
tests and reused by every stage through the Process Executor.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from pathlib import Path

from clipshare.core.timing import RangeWindow, format_seconds

# Input seek lands this far before the clip start, then an output seek of
# the same amount lands on the exact frame.
PRE_SEEK_SECONDS = 0.1

HISTOGRAM_SAMPLE_SECONDS = 2.0


class QualityTier(Enum):
    """Export encoding quality."""

    HD_1080 = "1080p"
    HD_720 = "720p"
    SD_480 = "480p"


_QUALITY_ARGS: dict[QualityTier, tuple[str, ...]] = {
    QualityTier.HD_1080: (
        "-c:v", "libx264", "-preset", "medium", "-crf", "18",
        "-c:a", "aac", "-b:a", "128k",
    ),
    QualityTier.HD_720: (
        "-c:v", "libx264", "-preset", "medium", "-crf", "20",
        "-vf", "scale=1280:720",
        "-c:a", "aac", "-b:a", "128k",
    ),
    QualityTier.SD_480: (
        "-c:v", "libx264", "-preset", "medium", "-crf", "22",
        "-vf", "scale=854:480",
        "-c:a", "aac", "-b:a", "96k",
    ),
}  # fmt: skip


def quality_args(tier: QualityTier | str) -> list[str]:
    """Encoder arguments for an export quality tier."""
    return list(_QUALITY_ARGS[QualityTier(tier)])


def transcode_args(source: Path, output: Path) -> list[str]:
    """Canonical transcode: H.264/AAC MP4 with the index up front."""
    return [
        "-i", str(source),
        "-c:v", "libx264", "-preset", "ultrafast", "-crf", "18",
        "-c:a", "aac", "-b:a", "128k",
        "-movflags", "+faststart",
        "-y", str(output),
    ]  # fmt: skip


def probe_duration_args(path: Path) -> list[str]:
    """ffprobe container duration as JSON."""
    return [
        "-v", "error",
        "-show_entries", "format=duration",
        "-of", "json",
        str(path),
    ]  # fmt: skip


def _movie_filter_path(path: Path) -> str:
    # lavfi option values use ':' and '\' as syntax
    return str(path).replace("\\", "\\\\").replace(":", "\\:").replace("'", "\\'")


def ffprobe_scene_args(path: Path, threshold: float) -> list[str]:
    """ffprobe scene-change detection, one CSV row per selected frame."""
    return [
        "-hide_banner",
        "-of", "csv=p=0",
        "-show_entries", "frame=pts_time:frame_tags=lavfi.scene_score",
        "-f", "lavfi",
        f"movie={_movie_filter_path(path)},select=gt(scene\\,{threshold})",
    ]  # fmt: skip


def ffmpeg_scene_args(path: Path, threshold: float) -> list[str]:
    """ffmpeg scene-change detection, metadata printed to stdout."""
    return [
        "-hide_banner",
        "-i", str(path),
        "-vf", f"select='gt(scene,{threshold})',metadata=print:file=-",
        "-f", "null",
        "-",
    ]  # fmt: skip


def histogram_sample_args(path: Path, output_dir: Path) -> list[str]:
    """Extract one frame every HISTOGRAM_SAMPLE_SECONDS for the fallback."""
    return [
        "-i", str(path),
        "-vf", f"fps=1/{HISTOGRAM_SAMPLE_SECONDS:g}",
        "-q:v", "2",
        "-y", str(output_dir / "frame_%04d.jpg"),
    ]  # fmt: skip


def frame_batch_args(
    path: Path,
    times: Sequence[float],
    output_dir: Path,
    start_number: int,
) -> list[str]:
    """Extract the frames nearest each timestamp in one invocation.

    Args:
        path: Canonical file.
        times: Timestamps in seconds for this batch.
        output_dir: The frames directory.
        start_number: Index of the first output image, so consecutive
            batches continue the numbering instead of overwriting.
    """
    if not times:
        raise ValueError("frame batch needs at least one timestamp")
    select = "+".join(f"eq(t,{format_seconds(t)})" for t in times)
    return [
        "-i", str(path),
        "-vf", f"select='{select}',scale=160:-1:flags=lanczos",
        "-vsync", "vfr",
        "-q:v", "4",
        "-start_number", str(start_number),
        str(output_dir / "shot_frame_%06d.jpg"),
        "-y",
    ]  # fmt: skip


def processing_clip_args(source: Path, window: RangeWindow, output: Path) -> list[str]:
    """Per-range clip cut during resource processing (mobile-safe H.264)."""
    return [
        "-ss", format_seconds(max(0.0, window.start - PRE_SEEK_SECONDS)),
        "-i", str(source),
        "-ss", format_seconds(PRE_SEEK_SECONDS),
        "-t", format_seconds(window.duration),
        "-c:v", "libx264", "-preset", "fast", "-crf", "28",
        "-profile:v", "baseline", "-level", "3.0",
        "-pix_fmt", "yuv420p",
        "-g", "30", "-keyint_min", "30",
        "-c:a", "aac", "-b:a", "96k", "-ar", "44100", "-ac", "2",
        "-avoid_negative_ts", "make_zero",
        "-movflags", "+faststart",
        "-y", str(output),
    ]  # fmt: skip


def copy_trim_args(source: Path, window: RangeWindow, output: Path) -> list[str]:
    """Stream-copy trim; only frame-accurate when cuts land on keyframes."""
    return [
        "-ss", format_seconds(window.start),
        "-i", str(source),
        "-t", format_seconds(window.duration),
        "-c", "copy",
        "-movflags", "+faststart",
        "-y", str(output),
    ]  # fmt: skip


def reencode_trim_args(source: Path, window: RangeWindow, output: Path) -> list[str]:
    """Full re-encode trim, used when the copy trim fails."""
    return [
        "-ss", format_seconds(window.start),
        "-i", str(source),
        "-t", format_seconds(window.duration),
        "-c:v", "libx264", "-preset", "ultrafast", "-crf", "18",
        "-c:a", "aac", "-b:a", "128k",
        "-movflags", "+faststart",
        "-y", str(output),
    ]  # fmt: skip


def export_clip_args(
    source: Path,
    window: RangeWindow,
    output: Path,
    tier: QualityTier | str,
) -> list[str]:
    """Export package clip at the chosen quality tier."""
    return [
        "-ss", format_seconds(window.start),
        "-i", str(source),
        "-t", format_seconds(window.duration),
        *quality_args(tier),
        "-movflags", "+faststart",
        "-y", str(output),
    ]  # fmt: skip


def thumbnail_args(source: Path, at_seconds: float, output: Path) -> list[str]:
    """Single 320x180 JPEG at a timestamp."""
    return [
        "-ss", format_seconds(max(0.0, at_seconds)),
        "-i", str(source),
        "-vframes", "1",
        "-q:v", "2",
        "-vf", "scale=320:180",
        "-y", str(output),
    ]  # fmt: skip
