"""Database schema definition for clipshare.

Tables, indexes and constraints for the persisted Job/Resource/Range/
ShotBoundary records.
"""

import sqlite3

SCHEMA_VERSION = 1

SCHEMA_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS _meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS resources (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    content_title TEXT,
    source_kind TEXT NOT NULL,
    source_ref TEXT NOT NULL,
    duration_seconds REAL,
    processing_status TEXT NOT NULL DEFAULT 'idle',
    processing_progress REAL NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,   -- ISO 8601 UTC timestamp
    updated_at TEXT NOT NULL,
    CONSTRAINT valid_source_kind CHECK (
        source_kind IN ('local', 'media_server', 'video_host')
    ),
    CONSTRAINT valid_processing_status CHECK (
        processing_status IN (
            'idle', 'pending', 'processing', 'completed', 'failed', 'cancelled'
        )
    )
);

CREATE INDEX IF NOT EXISTS idx_resources_processing_status
    ON resources(processing_status);

CREATE TABLE IF NOT EXISTS ranges (
    id TEXT PRIMARY KEY,
    resource_id TEXT NOT NULL,
    label TEXT,
    start_ms INTEGER NOT NULL,
    end_ms INTEGER NOT NULL,
    created_by TEXT,
    clip_path TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (resource_id) REFERENCES resources(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_ranges_resource ON ranges(resource_id, created_at);

CREATE TABLE IF NOT EXISTS jobs (
    id TEXT PRIMARY KEY,
    resource_id TEXT NOT NULL,
    range_id TEXT,
    kind TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending',
    progress_percent REAL NOT NULL DEFAULT 0,
    error_text TEXT,
    payload_json TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    started_at TEXT,
    completed_at TEXT,
    FOREIGN KEY (resource_id) REFERENCES resources(id) ON DELETE CASCADE,
    CONSTRAINT valid_kind CHECK (
        kind IN ('process_resource', 'export_clip', 'export_package')
    ),
    CONSTRAINT valid_status CHECK (
        status IN ('pending', 'processing', 'completed', 'failed', 'cancelled')
    ),
    CONSTRAINT valid_progress CHECK (
        progress_percent >= 0 AND progress_percent <= 100
    )
);

CREATE INDEX IF NOT EXISTS idx_jobs_status ON jobs(status);
CREATE INDEX IF NOT EXISTS idx_jobs_resource ON jobs(resource_id, created_at);
CREATE INDEX IF NOT EXISTS idx_jobs_range_status ON jobs(range_id, status);

CREATE TABLE IF NOT EXISTS shot_boundaries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    resource_id TEXT NOT NULL,
    timestamp_ms INTEGER NOT NULL,
    confidence REAL NOT NULL,
    detection_method TEXT NOT NULL,
    FOREIGN KEY (resource_id) REFERENCES resources(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_shot_boundaries_resource
    ON shot_boundaries(resource_id, timestamp_ms);
"""


def create_schema(conn: sqlite3.Connection) -> None:
    """Create the database schema if it doesn't exist.

    Args:
        conn: An open database connection.
    """
    conn.executescript(SCHEMA_SQL)
    conn.execute(
        "INSERT OR IGNORE INTO _meta (key, value) VALUES ('schema_version', ?)",
        (str(SCHEMA_VERSION),),
    )
    # executescript() commits implicitly; the INSERT above opens a new
    # transaction that must be closed before callers BEGIN their own.
    conn.commit()


def get_schema_version(conn: sqlite3.Connection) -> int | None:
    """Get the current schema version, or None for an empty database."""
    try:
        cursor = conn.execute("SELECT value FROM _meta WHERE key = 'schema_version'")
        row = cursor.fetchone()
        return int(row[0]) if row else None
    except sqlite3.OperationalError:
        return None


def initialize_database(conn: sqlite3.Connection) -> None:
    """Initialize the database with schema, creating tables if needed.

    Safe to call on every startup.

    Args:
        conn: An open database connection.
    """
    if get_schema_version(conn) is None:
        create_schema(conn)
