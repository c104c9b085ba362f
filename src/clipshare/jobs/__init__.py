"""Job tracking: lifecycle transitions, single-flight claims, progress
reporting and startup recovery."""

from clipshare.jobs.claims import ClaimTable
from clipshare.jobs.exceptions import (
    JobNotFoundError,
    JobTrackingError,
    RangeNotFoundError,
    ResourceNotFoundError,
)
from clipshare.jobs.progress import (
    JobProgress,
    ProgressReporter,
    ProgressTicker,
    StageBand,
)
from clipshare.jobs.recovery import (
    INTERRUPTED_MESSAGE,
    RecoveryStats,
    RecoverySweep,
    build_status_summary,
    recover_interrupted,
)
from clipshare.jobs.tracker import JobTracker

__all__ = [
    "ClaimTable",
    "INTERRUPTED_MESSAGE",
    "JobNotFoundError",
    "JobProgress",
    "JobTracker",
    "JobTrackingError",
    "ProgressReporter",
    "ProgressTicker",
    "RangeNotFoundError",
    "RecoveryStats",
    "RecoverySweep",
    "ResourceNotFoundError",
    "StageBand",
    "build_status_summary",
    "recover_interrupted",
]
