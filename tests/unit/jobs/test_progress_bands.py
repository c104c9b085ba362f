"""Tests for stage bands and the progress ticker."""

import asyncio

import pytest

from clipshare.jobs import ProgressTicker, StageBand


class RecordingReporter:
    def __init__(self) -> None:
        self.values: list[float] = []

    async def report(self, percent: float) -> None:
        self.values.append(percent)

    def report_nowait(self, percent: float) -> None:
        self.values.append(percent)


class TestStageBand:
    def test_maps_fraction_into_band(self):
        band = StageBand(10, 80)
        assert band.at(0) == 10
        assert band.at(0.5) == 45
        assert band.at(2.0) == 80

    def test_rejects_inverted_band(self):
        with pytest.raises(ValueError):
            StageBand(50, 20)


class TestProgressTicker:
    @pytest.mark.asyncio
    async def test_ticks_stop_short_of_band_end(self):
        """Ticks advance by step and never reach the band end."""
        reporter = RecordingReporter()
        async with ProgressTicker(reporter, StageBand(10, 30), step=7.0, interval=0.01):
            await asyncio.sleep(0.2)
        assert reporter.values[:2] == [17.0, 24.0]
        assert max(reporter.values) == 29.0

    @pytest.mark.asyncio
    async def test_exit_cancels_ticking(self):
        reporter = RecordingReporter()
        async with ProgressTicker(reporter, StageBand(0, 100), step=1.0, interval=10):
            pass
        assert reporter.values == []
