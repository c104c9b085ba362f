"""Tests for preview frame planning and batched extraction."""

import json
import re

import pytest

from clipshare.db import DetectionMethod, ShotBoundary
from clipshare.executor import ProcessResult
from clipshare.pipeline.frames import SIDECAR_NAME, FrameSampler, iter_batches, plan_frame_times


class CountingRunner:
    """Records frame batch invocations without writing images."""

    def __init__(self) -> None:
        self.batches: list[list[str]] = []

    async def run(self, command, args, options=None):
        args = [str(a) for a in args]
        self.batches.append(args)
        return ProcessResult(command, args, 0, "", "", 0.0)


def _terms(args: list[str]) -> int:
    vf = args[args.index("-vf") + 1]
    return len(re.findall(r"eq\(t,", vf))


class TestPlanFrameTimes:
    def test_shot_cuts_plus_interval_fill(self):
        """Fill points near a cut are skipped; the rest are merged in order."""
        times = plan_frame_times([10.4, 25.0], duration=40.0, interval=10.0)
        assert times == [0.0, 10.4, 20.0, 25.0, 30.0, 40.0]

    def test_cuts_outside_duration_ignored(self):
        assert plan_frame_times([-1.0, 50.0], duration=20.0, interval=10.0) == [0.0, 10.0, 20.0]

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            plan_frame_times([], 10.0, interval=0)


class TestIterBatches:
    def test_slices(self):
        assert [list(b) for b in iter_batches([1, 2, 3, 4, 5], 2)] == [[1, 2], [3, 4], [5]]

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            list(iter_batches([1], 0))


class TestFrameSampler:
    @pytest.mark.asyncio
    async def test_large_plan_is_batched(self, tmp_path):
        """50,000+ sampling points never exceed 1000 per invocation."""
        runner = CountingRunner()
        sampler = FrameSampler(runner, batch_size=1000, interval=10.0)
        result = await sampler.sample(tmp_path / "p.mp4", tmp_path / "frames", [], 500_000.0)

        assert len(result.frame_times) == 50_001
        assert result.batch_count == 51
        assert all(_terms(args) <= 1000 for args in runner.batches)
        assert sum(_terms(args) for args in runner.batches) == 50_001
        starts = [int(a[a.index("-start_number") + 1]) for a in runner.batches]
        assert starts[:3] == [1, 1001, 2001]

    @pytest.mark.asyncio
    async def test_writes_sidecar_and_reports_batches(self, fake_runner, tmp_path):
        """The sidecar lists every sampling point and the shot cuts."""
        boundaries = [
            ShotBoundary(None, "r1", 12000, 0.62, DetectionMethod.FFPROBE_SCENE),
        ]
        reported: list[tuple[int, int]] = []

        async def on_batch(done: int, total: int) -> None:
            reported.append((done, total))

        sampler = FrameSampler(fake_runner, batch_size=2, interval=10.0)
        result = await sampler.sample(
            tmp_path / "p.mp4", tmp_path / "frames", boundaries, 30.0, on_batch=on_batch
        )

        assert result.frame_times == [0.0, 10.0, 12.0, 20.0, 30.0]
        assert reported == [(2, 5), (4, 5), (5, 5)]
        assert len(list((tmp_path / "frames").glob("shot_frame_*.jpg"))) == 5
        sidecar = json.loads((tmp_path / "frames" / SIDECAR_NAME).read_text())
        assert sidecar["frameCount"] == 5
        assert sidecar["shotCuts"] == [
            {"timestampMs": 12000, "confidence": 0.62, "method": "ffprobe_scene"}
        ]
