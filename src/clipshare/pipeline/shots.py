"""Shot boundary detection over the canonical file.

Three methods are tried in order, falling through on process failure:
ffprobe scene scores, ffmpeg scene metadata, then a coarse histogram
fallback that compares encoded sizes of frames sampled every two seconds.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path

from clipshare.db import DetectionMethod, ShotBoundary
from clipshare.executor import CommandRunner, ProcessFailure, RunOptions
from clipshare.tools import (
    SceneCut,
    ffmpeg_scene_args,
    ffprobe_scene_args,
    histogram_sample_args,
    parse_ffmpeg_scene_metadata,
    parse_ffprobe_scene_csv,
)
from clipshare.tools.ffmpeg_commands import HISTOGRAM_SAMPLE_SECONDS

logger = logging.getLogger(__name__)

# Consecutive samples less similar than this are a cut
HISTOGRAM_SIMILARITY_THRESHOLD = 0.7


def frame_size_similarity(a: int, b: int) -> float:
    """Similarity of two encoded frames from their byte sizes (0-1)."""
    largest = max(a, b)
    if largest == 0:
        return 1.0
    return 1.0 - abs(a - b) / largest


def histogram_cuts(frame_sizes: list[int]) -> list[SceneCut]:
    """Find cuts between consecutive sampled frames.

    The cut is placed at the earlier frame of each dissimilar pair, with
    confidence ``1 - similarity``.
    """
    cuts = []
    for i in range(1, len(frame_sizes)):
        similarity = frame_size_similarity(frame_sizes[i - 1], frame_sizes[i])
        if similarity < HISTOGRAM_SIMILARITY_THRESHOLD:
            cuts.append(
                SceneCut((i - 1) * HISTOGRAM_SAMPLE_SECONDS, 1.0 - similarity)
            )
    return cuts


class ShotDetector:
    """Detect shot boundaries for one resource.

    Args:
        runner: Process executor.
        threshold: Scene score threshold for the ffprobe/ffmpeg methods.
        options: Run options applied to every detection command.
    """

    def __init__(
        self,
        runner: CommandRunner,
        threshold: float = 0.4,
        options: RunOptions | None = None,
    ) -> None:
        self._runner = runner
        self._threshold = threshold
        self._options = options or RunOptions(label="shot detection")

    async def detect(
        self,
        resource_id: str,
        canonical: Path,
        duration_seconds: float,
        scratch_root: Path,
    ) -> list[ShotBoundary]:
        """Run detection and return boundaries inside the duration.

        Raises:
            ProcessFailure: If every method failed.
        """
        method, cuts = await self._run_methods(canonical, scratch_root)
        duration_ms = int(duration_seconds * 1000)
        boundaries = []
        for cut in cuts:
            timestamp_ms = int(round(cut.timestamp_seconds * 1000))
            if timestamp_ms < 0 or timestamp_ms >= duration_ms:
                continue
            if method == DetectionMethod.HISTOGRAM_DIFFERENCE:
                confidence = max(0.0, min(1.0, cut.score))
            else:
                confidence = cut.confidence
            boundaries.append(
                ShotBoundary(
                    id=None,
                    resource_id=resource_id,
                    timestamp_ms=timestamp_ms,
                    confidence=round(confidence, 4),
                    detection_method=method,
                )
            )
        boundaries.sort(key=lambda b: b.timestamp_ms)
        logger.info(
            "Detected %d shot boundaries via %s", len(boundaries), method.value
        )
        return boundaries

    async def _run_methods(
        self, canonical: Path, scratch_root: Path
    ) -> tuple[DetectionMethod, list[SceneCut]]:
        try:
            result = await self._runner.run(
                "ffprobe", ffprobe_scene_args(canonical, self._threshold), self._options
            )
            return DetectionMethod.FFPROBE_SCENE, parse_ffprobe_scene_csv(result.stdout)
        except ProcessFailure as e:
            logger.warning("ffprobe scene detection failed, trying ffmpeg: %s", e)

        try:
            result = await self._runner.run(
                "ffmpeg", ffmpeg_scene_args(canonical, self._threshold), self._options
            )
            # metadata=print goes to stdout; older builds log it to stderr
            output = result.stdout or result.stderr
            return DetectionMethod.FFMPEG_SCENE, parse_ffmpeg_scene_metadata(output)
        except ProcessFailure as e:
            logger.warning(
                "ffmpeg scene detection failed, using histogram fallback: %s", e
            )

        return DetectionMethod.HISTOGRAM_DIFFERENCE, await self._histogram(
            canonical, scratch_root
        )

    async def _histogram(self, canonical: Path, scratch_root: Path) -> list[SceneCut]:
        scratch_root.mkdir(parents=True, exist_ok=True)
        scratch = Path(tempfile.mkdtemp(prefix="shot-samples-", dir=scratch_root))
        try:
            await self._runner.run(
                "ffmpeg", histogram_sample_args(canonical, scratch), self._options
            )
            sizes = [p.stat().st_size for p in sorted(scratch.glob("frame_*.jpg"))]
            return histogram_cuts(sizes)
        finally:
            shutil.rmtree(scratch, ignore_errors=True)
