"""Resource and shot-boundary queries for the clipshare store."""

import sqlite3
from collections.abc import Iterable

from clipshare.db.types import (
    ProcessingStatus,
    Resource,
    ShotBoundary,
)

from .helpers import RESOURCE_COLUMNS, _row_to_resource, _row_to_shot_boundary


def insert_resource(conn: sqlite3.Connection, resource: Resource) -> str:
    """Insert a new resource record. Does not commit."""
    conn.execute(
        f"INSERT INTO resources ({RESOURCE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
        (
            resource.id,
            resource.title,
            resource.content_title,
            resource.source_kind.value,
            resource.source_ref,
            resource.duration_seconds,
            resource.processing_status.value,
            resource.processing_progress,
            resource.created_at,
            resource.updated_at,
        ),
    )
    return resource.id


def get_resource(conn: sqlite3.Connection, resource_id: str) -> Resource | None:
    """Get a resource by ID, or None if it does not exist."""
    row = conn.execute(
        f"SELECT {RESOURCE_COLUMNS} FROM resources WHERE id = ?", (resource_id,)
    ).fetchone()
    return _row_to_resource(row) if row is not None else None


def list_resources(conn: sqlite3.Connection) -> list[Resource]:
    """List all resources, oldest first."""
    rows = conn.execute(
        f"SELECT {RESOURCE_COLUMNS} FROM resources ORDER BY created_at"
    ).fetchall()
    return [_row_to_resource(row) for row in rows]


def set_resource_processing(
    conn: sqlite3.Connection,
    resource_id: str,
    status: ProcessingStatus,
    progress: float,
    now: str,
) -> bool:
    """Set a resource's mirrored processing status and progress."""
    cursor = conn.execute(
        """
        UPDATE resources
        SET processing_status = ?, processing_progress = ?, updated_at = ?
        WHERE id = ?
        """,
        (status.value, progress, now, resource_id),
    )
    return cursor.rowcount > 0


def raise_resource_progress(
    conn: sqlite3.Connection, resource_id: str, progress: float, now: str
) -> bool:
    """Raise a processing resource's progress; lower values are ignored."""
    cursor = conn.execute(
        """
        UPDATE resources
        SET processing_progress = MAX(processing_progress, ?), updated_at = ?
        WHERE id = ? AND processing_status = ?
        """,
        (progress, now, resource_id, ProcessingStatus.PROCESSING.value),
    )
    return cursor.rowcount > 0


def set_resource_duration(
    conn: sqlite3.Connection, resource_id: str, duration_seconds: float, now: str
) -> None:
    """Record the probed content duration."""
    conn.execute(
        "UPDATE resources SET duration_seconds = ?, updated_at = ? WHERE id = ?",
        (duration_seconds, now, resource_id),
    )


def fail_processing_resources(conn: sqlite3.Connection, now: str) -> int:
    """Force every processing resource to failed with zero progress.

    Returns:
        Number of resources transitioned.
    """
    cursor = conn.execute(
        """
        UPDATE resources
        SET processing_status = ?, processing_progress = 0, updated_at = ?
        WHERE processing_status = ?
        """,
        (ProcessingStatus.FAILED.value, now, ProcessingStatus.PROCESSING.value),
    )
    return cursor.rowcount


def count_resources_by_status(conn: sqlite3.Connection) -> dict[str, int]:
    """Aggregate resource counts by processing status."""
    rows = conn.execute(
        "SELECT processing_status, COUNT(*) AS n FROM resources "
        "GROUP BY processing_status"
    ).fetchall()
    return {row["processing_status"]: row["n"] for row in rows}


def replace_shot_boundaries(
    conn: sqlite3.Connection,
    resource_id: str,
    boundaries: Iterable[ShotBoundary],
) -> int:
    """Replace a resource's shot boundaries with a new detection result.

    Returns:
        Number of boundaries inserted.
    """
    conn.execute("DELETE FROM shot_boundaries WHERE resource_id = ?", (resource_id,))
    cursor = conn.executemany(
        """
        INSERT INTO shot_boundaries
            (resource_id, timestamp_ms, confidence, detection_method)
        VALUES (?, ?, ?, ?)
        """,
        [
            (resource_id, b.timestamp_ms, b.confidence, b.detection_method.value)
            for b in boundaries
        ],
    )
    return max(cursor.rowcount, 0)


def get_shot_boundaries(
    conn: sqlite3.Connection, resource_id: str
) -> list[ShotBoundary]:
    """Get a resource's shot boundaries in timeline order."""
    rows = conn.execute(
        """
        SELECT id, resource_id, timestamp_ms, confidence, detection_method
        FROM shot_boundaries WHERE resource_id = ?
        ORDER BY timestamp_ms
        """,
        (resource_id,),
    ).fetchall()
    return [_row_to_shot_boundary(row) for row in rows]
