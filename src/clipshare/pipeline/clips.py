"""Per-range clip derivation."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from clipshare.core.timing import range_window
from clipshare.db import Range
from clipshare.executor import CommandRunner, ProcessFailure, RunOptions
from clipshare.tools import copy_trim_args, processing_clip_args, reencode_trim_args

logger = logging.getLogger(__name__)

CLIPS_DIRNAME = "clips"


def clip_relpath(range_id: str) -> str:
    """Clip location relative to the resource directory.

    Deterministic by range id, so regenerations overwrite in place.
    """
    return f"{CLIPS_DIRNAME}/{range_id}.mp4"


@dataclass
class ClipBatchResult:
    """Which ranges got clips during processing."""

    created: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)


async def generate_range_clips(
    runner: CommandRunner,
    canonical: Path,
    resource_dir: Path,
    ranges: Sequence[Range],
    options: RunOptions | None = None,
) -> ClipBatchResult:
    """Cut one clip per range from the canonical file.

    Existing clips are left alone. A failed cut is logged and recorded but
    does not stop the remaining ranges.
    """
    options = options or RunOptions(timeout=300.0, label="range clip")
    clips_dir = resource_dir / CLIPS_DIRNAME
    clips_dir.mkdir(parents=True, exist_ok=True)
    result = ClipBatchResult()

    for range_ in ranges:
        output = resource_dir / clip_relpath(range_.id)
        if output.exists():
            result.skipped.append(range_.id)
            continue
        window = range_window(range_.start_ms, range_.end_ms)
        try:
            await runner.run(
                "ffmpeg", processing_clip_args(canonical, window, output), options
            )
        except ProcessFailure as e:
            logger.warning("Clip for range %s failed: %s", range_.id, e)
            result.failed[range_.id] = str(e)
            continue
        result.created.append(range_.id)

    logger.info(
        "Range clips: %d created, %d skipped, %d failed",
        len(result.created),
        len(result.skipped),
        len(result.failed),
    )
    return result


async def trim_range_clip(
    runner: CommandRunner,
    source: Path,
    range_: Range,
    output: Path,
    options: RunOptions | None = None,
) -> bool:
    """Trim one range, trying a stream copy before a full re-encode.

    Returns:
        True if the stream copy succeeded, False if the re-encode was used.

    Raises:
        ProcessFailure: If the re-encode fallback also failed.
    """
    options = options or RunOptions(timeout=300.0, label="range trim")
    output.parent.mkdir(parents=True, exist_ok=True)
    window = range_window(range_.start_ms, range_.end_ms)
    try:
        await runner.run("ffmpeg", copy_trim_args(source, window, output), options)
        return True
    except ProcessFailure as e:
        logger.info("Stream-copy trim failed for range %s, re-encoding: %s", range_.id, e)
    await runner.run("ffmpeg", reencode_trim_args(source, window, output), options)
    return False
