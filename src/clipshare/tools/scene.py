"""Parsers for ffprobe/ffmpeg analysis output."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass

from clipshare.exceptions import ValidationFailure

logger = logging.getLogger(__name__)

MIN_SCENE_CONFIDENCE = 0.3
MAX_SCENE_CONFIDENCE = 0.95

_PTS_TIME_RE = re.compile(r"pts_time:([\d.]+)")
_SCENE_SCORE_RE = re.compile(r"lavfi\.scene_score=([\d.]+)")


@dataclass(frozen=True)
class SceneCut:
    """A detected scene change."""

    timestamp_seconds: float
    score: float

    @property
    def confidence(self) -> float:
        """Score clamped to the range reported for scene detection."""
        return max(MIN_SCENE_CONFIDENCE, min(MAX_SCENE_CONFIDENCE, self.score))


def _to_float(value: str) -> float | None:
    try:
        return float(value)
    except ValueError:
        return None


def parse_ffprobe_scene_csv(output: str) -> list[SceneCut]:
    """Parse ``timestamp,score`` rows from ffprobe scene detection.

    Rows without a usable timestamp are skipped; a missing score counts
    as the minimum confidence.
    """
    cuts: list[SceneCut] = []
    for line in output.splitlines():
        fields = [f.strip() for f in line.strip().split(",")]
        if not fields or not fields[0]:
            continue
        timestamp = _to_float(fields[0])
        if timestamp is None:
            continue
        score = _to_float(fields[1]) if len(fields) > 1 else None
        cuts.append(SceneCut(timestamp, score if score is not None else 0.0))
    return cuts


def parse_ffmpeg_scene_metadata(output: str) -> list[SceneCut]:
    """Parse ``metadata=print`` output from ffmpeg scene detection.

    Each frame prints a ``pts_time:`` line followed by its
    ``lavfi.scene_score=`` tag line.
    """
    cuts: list[SceneCut] = []
    current: float | None = None
    for line in output.splitlines():
        pts_match = _PTS_TIME_RE.search(line)
        if pts_match:
            current = _to_float(pts_match.group(1))
            continue
        score_match = _SCENE_SCORE_RE.search(line)
        if score_match and current is not None:
            score = _to_float(score_match.group(1))
            cuts.append(SceneCut(current, score if score is not None else 0.0))
            current = None
    return cuts


def parse_probe_duration(output: str) -> float:
    """Extract ``format.duration`` from ffprobe JSON output.

    Raises:
        ValidationFailure: If the output is not JSON or has no positive
            duration.
    """
    try:
        data = json.loads(output)
    except json.JSONDecodeError as e:
        raise ValidationFailure(f"ffprobe returned invalid JSON: {e}") from e
    raw = (data.get("format") or {}).get("duration") if isinstance(data, dict) else None
    duration = _to_float(str(raw)) if raw is not None else None
    if duration is None or duration <= 0:
        raise ValidationFailure("ffprobe output has no duration", field="duration")
    return duration
