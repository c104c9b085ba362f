"""Preview frame sampling.

Sampling points are shot-cut timestamps plus a regular-interval fill, so
long shots still get previews. Points are extracted in batches because
every timestamp becomes a term in one ffmpeg select expression, and a
command line has a length ceiling.
"""

from __future__ import annotations

import bisect
import json
import logging
from collections.abc import Awaitable, Callable, Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path

from clipshare.core.datetime_utils import utc_now_iso
from clipshare.db import ShotBoundary
from clipshare.executor import CommandRunner, RunOptions
from clipshare.tools import frame_batch_args

logger = logging.getLogger(__name__)

SIDECAR_NAME = "frame_metadata.json"


def plan_frame_times(
    shot_seconds: Sequence[float],
    duration: float,
    interval: float = 10.0,
    dedupe: float = 1.0,
) -> list[float]:
    """Build the sorted list of sampling timestamps.

    Args:
        shot_seconds: Shot-cut timestamps in seconds.
        duration: Content duration in seconds.
        interval: Spacing of the regular fill.
        dedupe: Fill points closer than this to a shot cut are skipped.

    Returns:
        Sorted timestamps within [0, duration].
    """
    if interval <= 0:
        raise ValueError(f"interval must be positive, got {interval}")
    anchors = sorted({t for t in shot_seconds if 0 <= t <= duration})
    points = list(anchors)

    steps = int(duration // interval) if duration > 0 else 0
    for step in range(steps + 1):
        t = round(step * interval, 3)
        if t > duration:
            break
        i = bisect.bisect_left(anchors, t)
        near_before = i > 0 and t - anchors[i - 1] < dedupe
        near_after = i < len(anchors) and anchors[i] - t < dedupe
        if not (near_before or near_after):
            points.append(t)

    return sorted(points)


def iter_batches(times: Sequence[float], size: int) -> Iterator[Sequence[float]]:
    """Yield consecutive slices of at most size timestamps."""
    if size < 1:
        raise ValueError(f"batch size must be >= 1, got {size}")
    for start in range(0, len(times), size):
        yield times[start : start + size]


def write_sidecar(
    frames_dir: Path,
    frame_times: Sequence[float],
    boundaries: Sequence[ShotBoundary],
) -> Path:
    """Write the JSON sidecar describing the sampled frames."""
    path = frames_dir / SIDECAR_NAME
    data = {
        "frameTimes": list(frame_times),
        "frameCount": len(frame_times),
        "shotCuts": [
            {
                "timestampMs": b.timestamp_ms,
                "confidence": b.confidence,
                "method": b.detection_method.value,
            }
            for b in boundaries
        ],
        "generatedAt": utc_now_iso(),
    }
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


@dataclass
class FrameSampleResult:
    """Outcome of one sampling run."""

    frame_times: list[float]
    batch_count: int
    sidecar_path: Path


class FrameSampler:
    """Extract preview frames for a canonical file.

    Args:
        runner: Process executor.
        batch_size: Maximum timestamps per ffmpeg invocation.
        interval: Regular fill spacing in seconds.
        dedupe: Minimum distance from a shot cut for fill points.
        warning_threshold: Log a warning above this many points.
        options: Run options for each batch.
    """

    def __init__(
        self,
        runner: CommandRunner,
        batch_size: int = 1000,
        interval: float = 10.0,
        dedupe: float = 1.0,
        warning_threshold: int = 100_000,
        options: RunOptions | None = None,
    ) -> None:
        self._runner = runner
        self.batch_size = batch_size
        self._interval = interval
        self._dedupe = dedupe
        self._warning_threshold = warning_threshold
        self._options = options or RunOptions(label="frame extraction")

    async def sample(
        self,
        canonical: Path,
        frames_dir: Path,
        boundaries: Sequence[ShotBoundary],
        duration: float,
        on_batch: Callable[[int, int], Awaitable[None]] | None = None,
    ) -> FrameSampleResult:
        """Plan, extract and describe the preview frames.

        Args:
            canonical: Canonical file to sample.
            frames_dir: Output directory (created if missing).
            boundaries: Detected shot boundaries.
            duration: Content duration in seconds.
            on_batch: Coroutine callback awaited after each batch with
                (frames done, frames total).
        """
        frames_dir.mkdir(parents=True, exist_ok=True)
        times = plan_frame_times(
            [b.timestamp_seconds for b in boundaries],
            duration,
            self._interval,
            self._dedupe,
        )
        if len(times) > self._warning_threshold:
            logger.warning(
                "Sampling %d frames exceeds %d; extraction will be slow",
                len(times),
                self._warning_threshold,
            )

        batch_count = 0
        done = 0
        for batch in iter_batches(times, self.batch_size):
            await self._runner.run(
                "ffmpeg",
                frame_batch_args(canonical, batch, frames_dir, start_number=done + 1),
                self._options,
            )
            batch_count += 1
            done += len(batch)
            if on_batch is not None:
                await on_batch(done, len(times))

        sidecar = write_sidecar(frames_dir, times, boundaries)
        logger.info(
            "Sampled %d frames in %d batch(es) into %s", len(times), batch_count, frames_dir
        )
        return FrameSampleResult(times, batch_count, sidecar)
