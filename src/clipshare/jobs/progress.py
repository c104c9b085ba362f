"""Progress reporting for running Jobs.

A Job's progress is split into stage bands (for example transcode covers
10-80%). Stages report into their band through a JobProgress, either
directly from async code or from synchronous callbacks such as a stderr
line handler. Values never go backwards.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from clipshare.exceptions import StorageFailure

if TYPE_CHECKING:
    from clipshare.db import Job
    from clipshare.jobs.tracker import JobTracker

logger = logging.getLogger(__name__)


class ProgressReporter(Protocol):
    """Anything a stage can report percentages to."""

    async def report(self, percent: float) -> None:
        """Report overall Job progress (0-100)."""
        ...

    def report_nowait(self, percent: float) -> None:
        """Report from synchronous code running on the event loop."""
        ...


@dataclass(frozen=True)
class StageBand:
    """The slice of overall progress owned by one stage."""

    start: float
    end: float

    def __post_init__(self) -> None:
        if not 0 <= self.start <= self.end <= 100:
            raise ValueError(f"invalid progress band {self.start}-{self.end}")

    def at(self, fraction: float) -> float:
        """Map a stage-local fraction (0-1) into the band."""
        fraction = max(0.0, min(1.0, fraction))
        return self.start + (self.end - self.start) * fraction


class JobProgress:
    """ProgressReporter that writes through a JobTracker.

    Duplicate and lower values are dropped before they reach the store.
    report_nowait() coalesces bursts into a single background flush so
    a chatty stderr stream costs at most one write in flight.
    """

    def __init__(self, tracker: JobTracker, job: Job) -> None:
        self._tracker = tracker
        self._job = job
        self._last = job.progress_percent
        self._pending: float | None = None
        self._flush_task: asyncio.Task[None] | None = None

    @property
    def last(self) -> float:
        return self._last

    async def report(self, percent: float) -> None:
        percent = round(max(0.0, min(100.0, percent)), 1)
        if percent <= self._last:
            return
        self._last = percent
        await self._tracker.progress(self._job, percent)

    def report_nowait(self, percent: float) -> None:
        if percent <= self._last or (
            self._pending is not None and percent <= self._pending
        ):
            return
        self._pending = percent
        if self._flush_task is None or self._flush_task.done():
            self._flush_task = asyncio.get_running_loop().create_task(self._flush())

    async def _flush(self) -> None:
        while self._pending is not None:
            value, self._pending = self._pending, None
            try:
                await self.report(value)
            except StorageFailure as e:
                logger.warning("Progress update for job %s failed: %s", self._job.id, e)

    async def drain(self) -> None:
        """Wait for any background flush to finish."""
        if self._flush_task is not None:
            await self._flush_task


class ProgressTicker:
    """Advance progress on a timer while a stage has no real signal.

    Adds step percent every interval, stopping one point short of the
    band end; the stage reports the end itself when it finishes. Real
    progress reported meanwhile wins because reports are monotonic.

    Usage:
        async with ProgressTicker(progress, StageBand(10, 80), 7.0, 1.0):
            await run_transcode()
    """

    def __init__(
        self,
        reporter: ProgressReporter,
        band: StageBand,
        step: float,
        interval: float,
    ) -> None:
        self._reporter = reporter
        self._band = band
        self._step = step
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    async def _run(self) -> None:
        ceiling = max(self._band.start, self._band.end - 1)
        value = self._band.start
        while value < ceiling:
            await asyncio.sleep(self._interval)
            value = min(value + self._step, ceiling)
            try:
                await self._reporter.report(value)
            except StorageFailure as e:
                logger.warning("Progress tick failed: %s", e)

    async def __aenter__(self) -> ProgressTicker:
        self._task = asyncio.create_task(self._run())
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
