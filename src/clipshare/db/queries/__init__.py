"""Query functions for the clipshare store.

All functions take an open connection and leave transaction control to
the caller.
"""

from .jobs import (
    cancel_active_range_jobs,
    count_jobs_by_status_and_kind,
    fail_processing_jobs,
    finish_job,
    get_job,
    get_jobs_for_range,
    get_jobs_for_resource,
    insert_job,
    mark_job_processing,
    update_job_progress,
)
from .ranges import (
    delete_range,
    get_range,
    insert_range,
    list_ranges,
    set_range_clip_path,
    update_range_offsets,
)
from .resources import (
    count_resources_by_status,
    fail_processing_resources,
    get_resource,
    get_shot_boundaries,
    insert_resource,
    list_resources,
    raise_resource_progress,
    replace_shot_boundaries,
    set_resource_duration,
    set_resource_processing,
)

__all__ = [
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
