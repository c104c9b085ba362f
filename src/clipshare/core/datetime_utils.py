"""UTC timestamps.

The store keeps ISO-8601 UTC strings; artifact names use the compact form.
"""

from datetime import datetime, timezone


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def compact_timestamp(dt: datetime | None = None) -> str:
    """Filesystem-safe UTC timestamp, e.g. ``20240115T103000Z``."""
    dt = dt or datetime.now(timezone.utc)
    return dt.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
