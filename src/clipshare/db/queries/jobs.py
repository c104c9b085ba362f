"""Job CRUD operations for the clipshare store.

Status transitions are conditional UPDATEs so that terminal Jobs stay
immutable: every write that moves a Job forward names the statuses it is
allowed to move from. None of these functions commit.
"""

import sqlite3

from clipshare.db.types import Job, JobKind, JobStatus

from .helpers import JOB_COLUMNS, _row_to_job

_ACTIVE = (JobStatus.PENDING.value, JobStatus.PROCESSING.value)


def insert_job(conn: sqlite3.Connection, job: Job) -> str:
    """Insert a new job record.

    Args:
        conn: Database connection.
        job: Job to insert.

    Returns:
        The ID of the inserted job.
    """
    conn.execute(
        f"INSERT INTO jobs ({JOB_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
        (
            job.id,
            job.resource_id,
            job.range_id,
            job.kind.value,
            job.status.value,
            job.progress_percent,
            job.error_text,
            job.payload_json,
            job.created_at,
            job.updated_at,
            job.started_at,
            job.completed_at,
        ),
    )
    return job.id


def get_job(conn: sqlite3.Connection, job_id: str) -> Job | None:
    """Get a job by ID, or None if it does not exist."""
    row = conn.execute(
        f"SELECT {JOB_COLUMNS} FROM jobs WHERE id = ?", (job_id,)
    ).fetchone()
    return _row_to_job(row) if row is not None else None


def get_jobs_for_resource(
    conn: sqlite3.Connection,
    resource_id: str,
    kind: JobKind | None = None,
    limit: int | None = None,
) -> list[Job]:
    """Get a resource's jobs, newest first.

    Args:
        conn: Database connection.
        resource_id: Owning resource.
        kind: Only return jobs of this kind.
        limit: Maximum number of jobs to return.

    Returns:
        List of Job records ordered by created_at descending.
    """
    query = f"SELECT {JOB_COLUMNS} FROM jobs WHERE resource_id = ?"
    params: list[object] = [resource_id]
    if kind is not None:
        query += " AND kind = ?"
        params.append(kind.value)
    query += " ORDER BY created_at DESC, rowid DESC"
    if limit is not None:
        query += " LIMIT ?"
        params.append(limit)
    return [_row_to_job(row) for row in conn.execute(query, params).fetchall()]


def get_jobs_for_range(conn: sqlite3.Connection, range_id: str) -> list[Job]:
    """Get every export_clip job for a range, oldest first."""
    rows = conn.execute(
        f"""
        SELECT {JOB_COLUMNS} FROM jobs
        WHERE range_id = ? AND kind = ?
        ORDER BY created_at ASC, rowid ASC
        """,
        (range_id, JobKind.EXPORT_CLIP.value),
    ).fetchall()
    return [_row_to_job(row) for row in rows]


def mark_job_processing(conn: sqlite3.Connection, job_id: str, now: str) -> bool:
    """Move a pending job to processing.

    Returns:
        True if the job was pending and is now processing; False if it was
        already claimed, cancelled or finished.
    """
    cursor = conn.execute(
        """
        UPDATE jobs SET status = ?, started_at = ?, updated_at = ?
        WHERE id = ? AND status = ?
        """,
        (JobStatus.PROCESSING.value, now, now, job_id, JobStatus.PENDING.value),
    )
    return cursor.rowcount > 0


def update_job_progress(
    conn: sqlite3.Connection, job_id: str, percent: float, now: str
) -> bool:
    """Raise a processing job's progress; lower values are ignored.

    Returns:
        True if the job is processing (whether or not the value increased).
    """
    percent = max(0.0, min(100.0, percent))
    cursor = conn.execute(
        """
        UPDATE jobs SET progress_percent = MAX(progress_percent, ?), updated_at = ?
        WHERE id = ? AND status = ?
        """,
        (percent, now, job_id, JobStatus.PROCESSING.value),
    )
    return cursor.rowcount > 0


def finish_job(
    conn: sqlite3.Connection,
    job_id: str,
    status: JobStatus,
    now: str,
    error_text: str | None = None,
    payload_json: str | None = None,
) -> bool:
    """Move an active job to a terminal status.

    Completed jobs are pinned at 100%. The payload is only replaced when a
    new one is given.

    Returns:
        True if the job was pending/processing and is now terminal.
    """
    if not status.is_terminal:
        raise ValueError(f"finish_job requires a terminal status, got {status}")
    progress_sql = "100" if status == JobStatus.COMPLETED else "progress_percent"
    cursor = conn.execute(
        f"""
        UPDATE jobs
        SET status = ?, error_text = ?, completed_at = ?, updated_at = ?,
            progress_percent = {progress_sql},
            payload_json = COALESCE(?, payload_json)
        WHERE id = ? AND status IN (?, ?)
        """,
        (status.value, error_text, now, now, payload_json, job_id, *_ACTIVE),
    )
    return cursor.rowcount > 0


def cancel_active_range_jobs(
    conn: sqlite3.Connection, range_id: str, reason: str, now: str
) -> list[str]:
    """Cancel every pending/processing export_clip job for a range.

    Returns:
        IDs of the jobs that were cancelled.
    """
    rows = conn.execute(
        """
        SELECT id FROM jobs
        WHERE range_id = ? AND kind = ? AND status IN (?, ?)
        """,
        (range_id, JobKind.EXPORT_CLIP.value, *_ACTIVE),
    ).fetchall()
    job_ids = [row["id"] for row in rows]
    if job_ids:
        placeholders = ",".join("?" * len(job_ids))
        conn.execute(
            f"""
            UPDATE jobs SET status = ?, error_text = ?, completed_at = ?, updated_at = ?
            WHERE id IN ({placeholders})
            """,
            (JobStatus.CANCELLED.value, reason, now, now, *job_ids),
        )
    return job_ids


def fail_processing_jobs(conn: sqlite3.Connection, message: str, now: str) -> int:
    """Force every processing job to failed.

    Only the startup recovery sweep calls this; it is the one permitted
    write to a job that another process may have left mid-flight.

    Returns:
        Number of jobs transitioned.
    """
    cursor = conn.execute(
        """
        UPDATE jobs SET status = ?, error_text = ?, completed_at = ?, updated_at = ?
        WHERE status = ?
        """,
        (JobStatus.FAILED.value, message, now, now, JobStatus.PROCESSING.value),
    )
    return cursor.rowcount


def count_jobs_by_status_and_kind(
    conn: sqlite3.Connection,
) -> dict[str, dict[str, int]]:
    """Aggregate job counts as {kind: {status: count}}."""
    rows = conn.execute(
        "SELECT kind, status, COUNT(*) AS n FROM jobs GROUP BY kind, status"
    ).fetchall()
    counts: dict[str, dict[str, int]] = {}
    for row in rows:
        counts.setdefault(row["kind"], {})[row["status"]] = row["n"]
    return counts
