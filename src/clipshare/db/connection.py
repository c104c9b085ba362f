"""SQLite connections for the Job/Resource/Range store.

The store runs in WAL mode: any number of readers proceed alongside the
single writer. DaemonConnectionPool hands out a fresh connection per read
and serializes every write through one shared connection, so concurrent
Jobs never interleave partial transitions.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from clipshare.db.schema import initialize_database

logger = logging.getLogger(__name__)

DB_FILENAME = "clipshare.db"

_PRAGMAS = (
    "PRAGMA foreign_keys = ON",
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = NORMAL",
    "PRAGMA busy_timeout = 10000",
    "PRAGMA temp_store = MEMORY",
)

# Transactions slower than this share of the lock timeout are logged
SLOW_TRANSACTION_RATIO = 0.8


def open_connection(
    db_path: Path, timeout: float = 30.0, shared: bool = False
) -> sqlite3.Connection:
    """Open a configured connection, creating the parent directory.

    Args:
        db_path: Database file.
        timeout: Seconds to wait on a locked database.
        shared: Allow use from threads other than the creating one.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), timeout=timeout, check_same_thread=not shared)
    for pragma in _PRAGMAS:
        conn.execute(pragma)
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def get_connection(db_path: Path, timeout: float = 30.0) -> Iterator[sqlite3.Connection]:
    """Single-threaded connection closed on exit (CLI and tests)."""
    conn = open_connection(db_path, timeout)
    try:
        yield conn
    finally:
        conn.close()


class DaemonConnectionPool:
    """Connections for a process that runs many Jobs at once.

    Reads open their own connection and never wait on the write lock.
    Writes go through transaction(), which holds the lock for the whole
    BEGIN IMMEDIATE ... COMMIT span.

    After close() every call raises sqlite3.ProgrammingError, which callers
    already treat as a storage failure.
    """

    def __init__(self, db_path: Path, timeout: float = 30.0) -> None:
        self.db_path = db_path
        self.timeout = timeout
        self._writer: sqlite3.Connection | None = None
        self._lock = threading.Lock()
        self._closed = threading.Event()

    def _check_open(self) -> None:
        if self._closed.is_set():
            raise sqlite3.ProgrammingError(f"Connection pool for {self.db_path} is closed")

    def _writer_connection(self) -> sqlite3.Connection:
        # Caller holds _lock
        self._check_open()
        if self._writer is None:
            self._writer = open_connection(self.db_path, self.timeout, shared=True)
        return self._writer

    def initialize_schema(self) -> None:
        """Create tables and indexes if they do not exist."""
        with self._lock:
            initialize_database(self._writer_connection())

    @contextmanager
    def read_connection(self) -> Iterator[sqlite3.Connection]:
        """A new connection for one read, closed on exit."""
        self._check_open()
        conn = open_connection(self.db_path, self.timeout, shared=True)
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """One atomic write.

        Commits when the block exits normally and rolls back when it raises.
        Query functions called inside never commit themselves.

        Example:
            with pool.transaction() as conn:
                finish_job(conn, job_id, JobStatus.FAILED, now, message)
                set_resource_processing(conn, resource_id, ...)
        """
        started = time.monotonic()
        with self._lock:
            conn = self._writer_connection()
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
                conn.execute("COMMIT")
            except Exception:
                conn.execute("ROLLBACK")
                raise
            finally:
                elapsed = time.monotonic() - started
                if elapsed > self.timeout * SLOW_TRANSACTION_RATIO:
                    logger.warning("Slow transaction on %s: %.2fs", self.db_path, elapsed)

    def close(self) -> None:
        """Close the write connection; the pool cannot be reused."""
        with self._lock:
            self._closed.set()
            if self._writer is not None:
                writer, self._writer = self._writer, None
                writer.close()

    @property
    def is_closed(self) -> bool:
        return self._closed.is_set()
