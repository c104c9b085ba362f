"""Database module for clipshare.

Re-exports the types, connection helpers and query functions.

Usage:
    from clipshare.db import DaemonConnectionPool, JobStatus, get_job
"""

from .connection import DB_FILENAME, DaemonConnectionPool, get_connection
from .queries import (
    cancel_active_range_jobs,
    count_jobs_by_status_and_kind,
    count_resources_by_status,
    delete_range,
    fail_processing_jobs,
    fail_processing_resources,
    finish_job,
    get_job,
    get_jobs_for_range,
    get_jobs_for_resource,
    get_range,
    get_resource,
    get_shot_boundaries,
    insert_job,
    insert_range,
    insert_resource,
    list_ranges,
    list_resources,
    mark_job_processing,
    raise_resource_progress,
    replace_shot_boundaries,
    set_range_clip_path,
    set_resource_duration,
    set_resource_processing,
    update_job_progress,
    update_range_offsets,
)
from .schema import SCHEMA_VERSION, create_schema, initialize_database
from .types import (
    TERMINAL_STATUSES,
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

__all__ = [
    # Types
    "DetectionMethod",
    "Job",
    "JobKind",
    "JobStatus",
    "ProcessingStatus",
    "Range",
    "Resource",
    "ShotBoundary",
    "SourceKind",
    "TERMINAL_STATUSES",
    # Connection and schema
    "DB_FILENAME",
    "DaemonConnectionPool",
    "SCHEMA_VERSION",
    "create_schema",
    "get_connection",
    "initialize_database",
    # Queries
    "cancel_active_range_jobs",
    "count_jobs_by_status_and_kind",
    "count_resources_by_status",
    "delete_range",
    "fail_processing_jobs",
    "fail_processing_resources",
    "finish_job",
    "get_job",
    "get_jobs_for_range",
    "get_jobs_for_resource",
    "get_range",
    "get_resource",
    "get_shot_boundaries",
    "insert_job",
    "insert_range",
    "insert_resource",
    "list_ranges",
    "list_resources",
    "mark_job_processing",
    "raise_resource_progress",
    "replace_shot_boundaries",
    "set_range_clip_path",
    "set_resource_duration",
    "set_resource_processing",
    "update_job_progress",
    "update_range_offsets",
]
