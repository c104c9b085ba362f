"""Range (bookmark) queries for the clipshare store."""

import sqlite3

from clipshare.db.types import Range

from .helpers import RANGE_COLUMNS, _row_to_range


def insert_range(conn: sqlite3.Connection, range_: Range) -> str:
    """Insert a new range record. Does not commit."""
    conn.execute(
        f"INSERT INTO ranges ({RANGE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
        (
            range_.id,
            range_.resource_id,
            range_.label,
            range_.start_ms,
            range_.end_ms,
            range_.created_by,
            range_.clip_path,
            range_.created_at,
            range_.updated_at,
        ),
    )
    return range_.id


def get_range(conn: sqlite3.Connection, range_id: str) -> Range | None:
    """Get a range by ID, or None if it does not exist."""
    row = conn.execute(
        f"SELECT {RANGE_COLUMNS} FROM ranges WHERE id = ?", (range_id,)
    ).fetchone()
    return _row_to_range(row) if row is not None else None


def list_ranges(conn: sqlite3.Connection, resource_id: str) -> list[Range]:
    """List a resource's ranges in creation order.

    This order is the index order used for hotkey assignment.
    """
    rows = conn.execute(
        f"""
        SELECT {RANGE_COLUMNS} FROM ranges WHERE resource_id = ?
        ORDER BY created_at ASC, rowid ASC
        """,
        (resource_id,),
    ).fetchall()
    return [_row_to_range(row) for row in rows]


def update_range_offsets(
    conn: sqlite3.Connection,
    range_id: str,
    start_ms: int,
    end_ms: int,
    now: str,
    label: str | None = None,
) -> bool:
    """Update a range's offsets (and label, when given)."""
    cursor = conn.execute(
        """
        UPDATE ranges
        SET start_ms = ?, end_ms = ?, label = COALESCE(?, label), updated_at = ?
        WHERE id = ?
        """,
        (start_ms, end_ms, label, now, range_id),
    )
    return cursor.rowcount > 0


def set_range_clip_path(
    conn: sqlite3.Connection, range_id: str, clip_path: str | None
) -> bool:
    """Record (or clear) the derived clip reference for a range."""
    cursor = conn.execute(
        "UPDATE ranges SET clip_path = ? WHERE id = ?", (clip_path, range_id)
    )
    return cursor.rowcount > 0


def delete_range(conn: sqlite3.Connection, range_id: str) -> bool:
    """Delete a range. Returns False if it did not exist."""
    cursor = conn.execute("DELETE FROM ranges WHERE id = ?", (range_id,))
    return cursor.rowcount > 0
