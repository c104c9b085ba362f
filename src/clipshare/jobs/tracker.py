"""Job lifecycle tracking over the shared connection pool.

JobTracker is the only writer of Job status and progress. Every call runs
its SQL in a worker thread (asyncio.to_thread) inside one
pool.transaction(), so a status change and the Resource mirror it implies
commit together.

Resource mirroring: a process_resource Job's status and progress are
copied onto its Resource in the same transaction. Other Job kinds do not
touch the Resource.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
import uuid
from collections.abc import Callable
from typing import Any, TypeVar

from clipshare.core.datetime_utils import utc_now_iso
from clipshare.core.string_utils import truncate_error
from clipshare.db import (
    DaemonConnectionPool,
    Job,
    JobKind,
    JobStatus,
    ProcessingStatus,
    cancel_active_range_jobs,
    finish_job,
    get_job,
    get_jobs_for_resource,
    insert_job,
    mark_job_processing,
    raise_resource_progress,
    set_resource_processing,
    update_job_progress,
)
from clipshare.exceptions import StorageFailure
from clipshare.jobs.exceptions import JobNotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _mirrors_resource(job: Job) -> bool:
    return job.kind == JobKind.PROCESS_RESOURCE


def _new_job(
    resource_id: str,
    kind: JobKind,
    now: str,
    range_id: str | None = None,
    payload: dict[str, Any] | None = None,
    job_id: str | None = None,
) -> Job:
    return Job(
        id=job_id or str(uuid.uuid4()),
        resource_id=resource_id,
        kind=kind,
        status=JobStatus.PENDING,
        progress_percent=0.0,
        created_at=now,
        updated_at=now,
        range_id=range_id,
        payload_json=json.dumps(payload) if payload is not None else None,
    )


class JobTracker:
    """Async facade for Job state transitions.

    Transitions are guarded in SQL: start only moves pending -> processing,
    finish only moves pending/processing -> terminal, and progress is
    raised with MAX() so it never decreases. A method that loses a race
    (for example, completing a Job that was cancelled meanwhile) returns
    False instead of raising.
    """

    def __init__(self, pool: DaemonConnectionPool) -> None:
        self._pool = pool

    @property
    def pool(self) -> DaemonConnectionPool:
        return self._pool

    # ------------------------------------------------------------------
    # Generic store access
    # ------------------------------------------------------------------

    async def read(self, fn: Callable[..., T], *args: Any) -> T:
        """Run fn(conn, *args) on a fresh read connection in a worker thread.

        Raises:
            StorageFailure: If SQLite raises.
        """

        def _run() -> T:
            with self._pool.read_connection() as conn:
                return fn(conn, *args)

        try:
            return await asyncio.to_thread(_run)
        except sqlite3.Error as e:
            raise StorageFailure(f"read via {fn.__name__}", e) from e

    async def write(self, operation: str, fn: Callable[..., T], *args: Any) -> T:
        """Run fn(conn, *args) inside one write transaction.

        Args:
            operation: Short description used in StorageFailure messages.
            fn: Callable taking a connection first; must not commit.
            *args: Extra positional arguments for fn.

        Raises:
            StorageFailure: If SQLite raises; the transaction is rolled back.
        """

        def _run() -> T:
            with self._pool.transaction() as conn:
                return fn(conn, *args)

        try:
            return await asyncio.to_thread(_run)
        except sqlite3.Error as e:
            raise StorageFailure(operation, e) from e

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def create_job(
        self,
        resource_id: str,
        kind: JobKind,
        range_id: str | None = None,
        payload: dict[str, Any] | None = None,
        job_id: str | None = None,
    ) -> Job:
        """Create a pending Job.

        A new process_resource Job resets its Resource to pending/0 so the
        Resource always reflects its most recent processing Job.

        Args:
            resource_id: Owning resource.
            kind: What the Job derives.
            range_id: Target range for export_clip Jobs.
            payload: Kind-specific inputs, stored as JSON.
            job_id: Pre-allocated id (generated when omitted).
        """
        now = utc_now_iso()
        job = _new_job(resource_id, kind, now, range_id, payload, job_id)

        def _insert(conn: sqlite3.Connection) -> None:
            insert_job(conn, job)
            if _mirrors_resource(job):
                set_resource_processing(
                    conn, resource_id, ProcessingStatus.PENDING, 0.0, now
                )

        await self.write("create job", _insert)
        logger.debug("Created %s job %s for resource %s", kind.value, job.id, resource_id)
        return job

    async def start(self, job: Job) -> bool:
        """Move a pending Job to processing.

        Returns:
            False if the Job is no longer pending (cancelled or already
            started), in which case nothing should run for it.
        """
        now = utc_now_iso()

        def _start(conn: sqlite3.Connection) -> bool:
            if not mark_job_processing(conn, job.id, now):
                return False
            if _mirrors_resource(job):
                set_resource_processing(
                    conn, job.resource_id, ProcessingStatus.PROCESSING, 0.0, now
                )
            return True

        started = await self.write("start job", _start)
        if started:
            job.status = JobStatus.PROCESSING
            job.started_at = now
            logger.info("Job %s (%s) started", job.id, job.kind.value)
        else:
            logger.info("Job %s is no longer pending; not starting", job.id)
        return started

    async def progress(self, job: Job, percent: float) -> None:
        """Raise a processing Job's progress (and its Resource mirror)."""
        now = utc_now_iso()
        percent = max(0.0, min(100.0, float(percent)))

        def _update(conn: sqlite3.Connection) -> None:
            if update_job_progress(conn, job.id, percent, now) and _mirrors_resource(
                job
            ):
                raise_resource_progress(conn, job.resource_id, percent, now)

        await self.write("update job progress", _update)
        if percent > job.progress_percent:
            job.progress_percent = percent

    async def complete(self, job: Job, payload: dict[str, Any] | None = None) -> bool:
        """Mark a Job completed at 100%.

        Returns:
            False if the Job had already reached a terminal status.
        """
        return await self._finish(job, JobStatus.COMPLETED, payload=payload)

    async def fail(self, job: Job, error: BaseException | str) -> bool:
        """Mark a Job failed with a truncated error message.

        A failed process_resource Job sets its Resource to failed with
        progress 0.
        """
        message = truncate_error(str(error) or type(error).__name__)
        return await self._finish(job, JobStatus.FAILED, error_text=message)

    async def cancel(self, job: Job, reason: str) -> bool:
        """Cancel a single pending/processing Job."""
        return await self._finish(job, JobStatus.CANCELLED, error_text=reason)

    async def _finish(
        self,
        job: Job,
        status: JobStatus,
        error_text: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> bool:
        now = utc_now_iso()
        payload_json = json.dumps(payload) if payload is not None else None

        def _update(conn: sqlite3.Connection) -> bool:
            if not finish_job(conn, job.id, status, now, error_text, payload_json):
                if get_job(conn, job.id) is None:
                    raise JobNotFoundError(job.id, status.value)
                return False
            if _mirrors_resource(job):
                progress = 100.0 if status == JobStatus.COMPLETED else 0.0
                set_resource_processing(
                    conn,
                    job.resource_id,
                    ProcessingStatus.from_job_status(status),
                    progress,
                    now,
                )
            return True

        finished = await self.write(f"mark job {status.value}", _update)
        if finished:
            job.status = status
            job.completed_at = now
            job.error_text = error_text
            if payload_json is not None:
                job.payload_json = payload_json
            if status == JobStatus.COMPLETED:
                job.progress_percent = 100.0
            if status == JobStatus.FAILED:
                logger.error("Job %s (%s) failed: %s", job.id, job.kind.value, error_text)
            else:
                logger.info("Job %s (%s) %s", job.id, job.kind.value, status.value)
        else:
            logger.info(
                "Job %s already terminal; ignoring transition to %s",
                job.id,
                status.value,
            )
        return finished

    async def cancel_range_jobs(self, range_id: str, reason: str) -> list[str]:
        """Cancel every active export_clip Job for a range."""
        now = utc_now_iso()
        cancelled = await self.write(
            "cancel range jobs", cancel_active_range_jobs, range_id, reason, now
        )
        if cancelled:
            logger.info(
                "Cancelled %d export_clip job(s) for range %s: %s",
                len(cancelled),
                range_id,
                reason,
            )
        return cancelled

    async def supersede_range_job(
        self,
        resource_id: str,
        range_id: str,
        reason: str,
        payload: dict[str, Any] | None = None,
    ) -> tuple[list[str], Job]:
        """Cancel a range's active export_clip Jobs and create a new one.

        Both happen in one transaction, so a range never has two active
        export_clip Jobs.

        Returns:
            (ids of cancelled Jobs, the new pending Job).
        """
        now = utc_now_iso()
        job = _new_job(resource_id, JobKind.EXPORT_CLIP, now, range_id, payload)

        def _supersede(conn: sqlite3.Connection) -> list[str]:
            cancelled = cancel_active_range_jobs(conn, range_id, reason, now)
            insert_job(conn, job)
            return cancelled

        cancelled = await self.write("supersede range job", _supersede)
        if cancelled:
            logger.info(
                "Range %s: job %s supersedes %s", range_id, job.id, ", ".join(cancelled)
            )
        return cancelled, job

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_job(self, job_id: str) -> Job | None:
        return await self.read(get_job, job_id)

    async def active_job(self, resource_id: str, kind: JobKind) -> Job | None:
        """Return the resource's newest Job of kind if it is still active."""
        jobs = await self.read(get_jobs_for_resource, resource_id, kind, 1)
        if jobs and not jobs[0].status.is_terminal:
            return jobs[0]
        return None
