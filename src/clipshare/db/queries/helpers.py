"""Row conversion helpers shared by the query modules."""

import sqlite3

from clipshare.db.types import (
    DetectionMethod,
    Job,
    JobKind,
    JobStatus,
    ProcessingStatus,
    Range,
    Resource,
    ShotBoundary,
    SourceKind,
)

JOB_COLUMNS = """
    id, resource_id, range_id, kind, status, progress_percent, error_text,
    payload_json, created_at, updated_at, started_at, completed_at
"""

RESOURCE_COLUMNS = """
    id, title, content_title, source_kind, source_ref, duration_seconds,
    processing_status, processing_progress, created_at, updated_at
"""

RANGE_COLUMNS = """
    id, resource_id, label, start_ms, end_ms, created_by, clip_path,
    created_at, updated_at
"""


def _row_to_job(row: sqlite3.Row) -> Job:
    """Convert a database row to a Job object."""
    return Job(
        id=row["id"],
        resource_id=row["resource_id"],
        range_id=row["range_id"],
        kind=JobKind(row["kind"]),
        status=JobStatus(row["status"]),
        progress_percent=row["progress_percent"],
        error_text=row["error_text"],
        payload_json=row["payload_json"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        started_at=row["started_at"],
        completed_at=row["completed_at"],
    )


def _row_to_resource(row: sqlite3.Row) -> Resource:
    """Convert a database row to a Resource object."""
    return Resource(
        id=row["id"],
        title=row["title"],
        content_title=row["content_title"],
        source_kind=SourceKind(row["source_kind"]),
        source_ref=row["source_ref"],
        duration_seconds=row["duration_seconds"],
        processing_status=ProcessingStatus(row["processing_status"]),
        processing_progress=row["processing_progress"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_range(row: sqlite3.Row) -> Range:
    """Convert a database row to a Range object."""
    return Range(
        id=row["id"],
        resource_id=row["resource_id"],
        label=row["label"],
        start_ms=row["start_ms"],
        end_ms=row["end_ms"],
        created_by=row["created_by"],
        clip_path=row["clip_path"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_shot_boundary(row: sqlite3.Row) -> ShotBoundary:
    """Convert a database row to a ShotBoundary object."""
    return ShotBoundary(
        id=row["id"],
        resource_id=row["resource_id"],
        timestamp_ms=row["timestamp_ms"],
        confidence=row["confidence"],
        detection_method=DetectionMethod(row["detection_method"]),
    )
