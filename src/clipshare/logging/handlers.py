"""JSON log formatting for clipshare.

One object per line:

    {"timestamp": ..., "level": "INFO", "logger": "clipshare.pipeline...",
     "message": ..., "job_id": ..., "resource_id": ..., "extra": {...}}

job_id and resource_id appear only inside a job context; ``extra`` holds
whatever the call site passed with ``extra=``.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

# Attributes every LogRecord carries, plus the ones JobContextFilter adds
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName", "job_id", "resource_id", "job_tag"}


class JSONFormatter(logging.Formatter):
    """Render each record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in ("job_id", "resource_id"):
            value = getattr(record, name, None)
            if value:
                entry[name] = value

        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        if extra:
            entry["extra"] = extra
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)
