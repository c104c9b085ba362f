"""Debounced per-range clip regeneration.

Every edit to a Range cancels that Range's active export_clip Jobs,
creates a new pending Job and restarts a timer keyed by
``resource:range``. Only the Job whose timer survives the quiet period
runs, so N rapid edits leave N-1 cancelled Jobs and one derivation of the
latest offsets.

Once a timer has fired its trim is not interrupted by later edits; the
later Job's trim writes the same path and the last writer wins.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from clipshare.core.datetime_utils import utc_now_iso
from clipshare.db import (
    Job,
    Range,
    delete_range,
    get_range,
    set_range_clip_path,
    update_range_offsets,
)
from clipshare.exceptions import StorageFailure, ValidationFailure
from clipshare.executor import CommandRunner, RunOptions
from clipshare.jobs import JobProgress, JobTracker, RangeNotFoundError
from clipshare.logging import job_context
from clipshare.pipeline.clips import clip_relpath, trim_range_clip
from clipshare.pipeline.orchestrator import CANONICAL_NAME

logger = logging.getLogger(__name__)

SUPERSEDED_REASON = "Superseded by newer edit"
DELETED_REASON = "Range deleted"


def timer_key(resource_id: str, range_id: str) -> str:
    return f"{resource_id}:{range_id}"


def validate_offsets(start_ms: int, end_ms: int) -> None:
    """Reject offsets that cannot describe a clip.

    Raises:
        ValidationFailure: Negative start or end not after start.
    """
    if start_ms < 0:
        raise ValidationFailure("start_ms must be >= 0", field="start_ms")
    if end_ms <= start_ms:
        raise ValidationFailure("end_ms must be greater than start_ms", field="end_ms")


class RegenerationScheduler:
    """Coalesces Range edits into one clip regeneration per quiet period.

    Args:
        tracker: Job state writer.
        runner: Process executor.
        processed_dir: Root of per-resource artifact directories.
        debounce_seconds: Quiet period before a regeneration fires.
        options: Run options for each trim attempt.
    """

    def __init__(
        self,
        tracker: JobTracker,
        runner: CommandRunner,
        processed_dir: Path,
        debounce_seconds: float = 1.2,
        options: RunOptions | None = None,
    ) -> None:
        self._tracker = tracker
        self._runner = runner
        self._processed_dir = processed_dir
        self.debounce_seconds = debounce_seconds
        self._options = options or RunOptions(timeout=300.0, label="range trim")
        self._timers: dict[str, asyncio.Task[None]] = {}
        self._running: set[asyncio.Task[None]] = set()
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def pending_timers(self) -> int:
        return len(self._timers)

    def _lock(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    async def _get_range(self, range_id: str) -> Range:
        range_ = await self._tracker.read(get_range, range_id)
        if range_ is None:
            raise RangeNotFoundError(range_id)
        return range_

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    async def edit_range(
        self,
        range_id: str,
        start_ms: int,
        end_ms: int,
        label: str | None = None,
    ) -> str:
        """Store new offsets for a range and schedule its regeneration.

        Returns:
            Id of the pending export_clip Job.
        """
        validate_offsets(start_ms, end_ms)
        await self._get_range(range_id)
        await self._tracker.write(
            "update range",
            update_range_offsets,
            range_id,
            start_ms,
            end_ms,
            utc_now_iso(),
            label,
        )
        return await self.schedule(range_id)

    async def schedule(self, range_id: str) -> str:
        """Supersede active Jobs for the range and (re)start its timer.

        Returns:
            Id of the new pending export_clip Job.
        """
        range_ = await self._get_range(range_id)
        key = timer_key(range_.resource_id, range_id)
        async with self._lock(key):
            _, job = await self._tracker.supersede_range_job(
                range_.resource_id,
                range_id,
                SUPERSEDED_REASON,
                payload={"startMs": range_.start_ms, "endMs": range_.end_ms},
            )
            previous = self._timers.pop(key, None)
            if previous is not None:
                previous.cancel()
            self._timers[key] = asyncio.create_task(
                self._fire_after_quiet(key, job), name=f"regenerate-{key}"
            )
        logger.debug("Scheduled regeneration of range %s as job %s", range_id, job.id)
        return job.id

    async def delete_range(self, range_id: str) -> bool:
        """Delete a range, its pending regeneration and its clip file.

        Returns:
            False if the range did not exist.
        """
        range_ = await self._tracker.read(get_range, range_id)
        if range_ is None:
            return False
        key = timer_key(range_.resource_id, range_id)
        async with self._lock(key):
            timer = self._timers.pop(key, None)
            if timer is not None:
                timer.cancel()
            await self._tracker.cancel_range_jobs(range_id, DELETED_REASON)
            clip = self._processed_dir / range_.resource_id / clip_relpath(range_id)
            try:
                clip.unlink()
                logger.info("Deleted clip %s", clip)
            except FileNotFoundError:
                logger.debug("No clip to delete for range %s", range_id)
            except OSError as e:
                logger.warning("Could not delete clip %s: %s", clip, e)
            deleted = await self._tracker.write("delete range", delete_range, range_id)
        self._locks.pop(key, None)
        return deleted

    # ------------------------------------------------------------------
    # Firing
    # ------------------------------------------------------------------

    async def _fire_after_quiet(self, key: str, job: Job) -> None:
        await asyncio.sleep(self.debounce_seconds)
        current = asyncio.current_task()
        if self._timers.get(key) is current:
            del self._timers[key]
        # From here on, later edits no longer cancel this task
        if current is not None:
            self._running.add(current)
        try:
            with job_context(job.id, job.resource_id):
                await self.regenerate(job)
        finally:
            if current is not None:
                self._running.discard(current)

    async def regenerate(self, job: Job) -> None:
        """Trim the range for an export_clip Job, recording the outcome."""
        if not await self._tracker.start(job):
            return
        progress = JobProgress(self._tracker, job)
        try:
            await progress.report(10)
            payload = await self._trim(job)
        except asyncio.CancelledError:
            logger.warning("Regeneration job %s interrupted", job.id)
            raise
        except Exception as e:
            logger.exception("Regeneration job %s failed", job.id)
            try:
                await self._tracker.fail(job, e)
            except StorageFailure as store_error:
                logger.error("Could not record failure of job %s: %s", job.id, store_error)
            return
        await self._tracker.complete(job, payload)

    async def _trim(self, job: Job) -> dict[str, object]:
        if job.range_id is None:
            raise ValidationFailure("export_clip job has no range", field="range_id")
        range_ = await self._get_range(job.range_id)
        resource_dir = self._processed_dir / range_.resource_id
        canonical = resource_dir / CANONICAL_NAME
        if not canonical.is_file():
            raise ValidationFailure(
                f"Resource {range_.resource_id} has no processed file; process it first",
                field="resource_id",
            )
        relpath = clip_relpath(range_.id)
        copied = await trim_range_clip(
            self._runner, canonical, range_, resource_dir / relpath, self._options
        )
        await self._tracker.write("record clip path", set_range_clip_path, range_.id, relpath)
        return {
            "clipPath": relpath,
            "method": "copy" if copied else "reencode",
            "startMs": range_.start_ms,
            "endMs": range_.end_ms,
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def wait_idle(self) -> None:
        """Wait until no timer is pending and no regeneration is running."""
        while self._timers or self._running:
            await asyncio.gather(
                *self._timers.values(), *self._running, return_exceptions=True
            )

    async def shutdown(self) -> None:
        """Cancel timers and running regenerations.

        Jobs whose timers never fired stay pending; the next edit to the
        range cancels them.
        """
        tasks = [*self._timers.values(), *self._running]
        self._timers.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
