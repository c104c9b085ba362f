"""Command builders and output parsers for the external media tools."""

from clipshare.tools.ffmpeg_commands import (
    QualityTier,
    copy_trim_args,
    export_clip_args,
    ffmpeg_scene_args,
    ffprobe_scene_args,
    frame_batch_args,
    histogram_sample_args,
    probe_duration_args,
    processing_clip_args,
    quality_args,
    reencode_trim_args,
    thumbnail_args,
    transcode_args,
)
from clipshare.tools.ffmpeg_progress import (
    FFmpegProgress,
    StderrProgress,
    parse_duration_line,
    parse_stderr_progress,
)
from clipshare.tools.scene import (
    SceneCut,
    parse_ffmpeg_scene_metadata,
    parse_ffprobe_scene_csv,
    parse_probe_duration,
)

__all__ = [
    "FFmpegProgress",
    "QualityTier",
    "SceneCut",
    "StderrProgress",
    "copy_trim_args",
    "export_clip_args",
    "ffmpeg_scene_args",
    "ffprobe_scene_args",
    "frame_batch_args",
    "histogram_sample_args",
    "parse_duration_line",
    "parse_ffmpeg_scene_metadata",
    "parse_ffprobe_scene_csv",
    "parse_probe_duration",
    "parse_stderr_progress",
    "probe_duration_args",
    "processing_clip_args",
    "quality_args",
    "reencode_trim_args",
    "thumbnail_args",
    "transcode_args",
]
