"""Startup recovery for Jobs interrupted by a restart.

Background work lives in in-memory tasks, so anything still marked
processing when the service starts has no worker behind it. The sweep
moves those Jobs (and the Resources mirroring them) to failed before any
new trigger is accepted.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import asdict, dataclass
from typing import Any

from clipshare.core.datetime_utils import utc_now_iso
from clipshare.db import (
    DaemonConnectionPool,
    JobStatus,
    ProcessingStatus,
    count_jobs_by_status_and_kind,
    count_resources_by_status,
    fail_processing_jobs,
    fail_processing_resources,
)

logger = logging.getLogger(__name__)

INTERRUPTED_MESSAGE = "Processing interrupted by application restart"


@dataclass
class RecoveryStats:
    """What one sweep found and fixed."""

    stuck_jobs: int = 0
    stuck_resources: int = 0
    recovered_jobs: int = 0
    recovered_resources: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.recovered_jobs or self.recovered_resources)

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def _count(conn: sqlite3.Connection, sql: str, status: str) -> int:
    return conn.execute(sql, (status,)).fetchone()[0]


def recover_interrupted(conn: sqlite3.Connection) -> RecoveryStats:
    """Fail every processing Job and Resource.

    Writes are skipped entirely when nothing is stuck, so a second sweep
    against a clean store is a no-op.

    Args:
        conn: Connection inside a write transaction. Does not commit.

    Returns:
        Counts found and transitioned.
    """
    stats = RecoveryStats(
        stuck_jobs=_count(
            conn,
            "SELECT COUNT(*) FROM jobs WHERE status = ?",
            JobStatus.PROCESSING.value,
        ),
        stuck_resources=_count(
            conn,
            "SELECT COUNT(*) FROM resources WHERE processing_status = ?",
            ProcessingStatus.PROCESSING.value,
        ),
    )
    now = utc_now_iso()
    if stats.stuck_jobs:
        stats.recovered_jobs = fail_processing_jobs(conn, INTERRUPTED_MESSAGE, now)
    if stats.stuck_resources:
        stats.recovered_resources = fail_processing_resources(conn, now)
    return stats


def build_status_summary(conn: sqlite3.Connection) -> dict[str, Any]:
    """Aggregate Job counts by kind and status, and Resources by status."""
    jobs = count_jobs_by_status_and_kind(conn)
    by_status: dict[str, int] = {}
    for per_kind in jobs.values():
        for status, n in per_kind.items():
            by_status[status] = by_status.get(status, 0) + n
    return {
        "jobs": {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "by_kind": jobs,
        },
        "resources": count_resources_by_status(conn),
    }


class RecoverySweep:
    """Runs recovery and status queries against a connection pool."""

    def __init__(self, pool: DaemonConnectionPool) -> None:
        self._pool = pool

    def sweep(self) -> RecoveryStats:
        """Run one recovery pass in a single transaction."""
        with self._pool.transaction() as conn:
            stats = recover_interrupted(conn)
        if stats.changed:
            logger.warning(
                "Recovered %d interrupted job(s) and %d resource(s)",
                stats.recovered_jobs,
                stats.recovered_resources,
            )
        else:
            logger.info("Recovery sweep found no interrupted work")
        return stats

    def status_summary(self) -> dict[str, Any]:
        with self._pool.read_connection() as conn:
            return build_status_summary(conn)
