"""Job context for structured logging.

Propagates the current job and resource ids through asyncio tasks with
contextvars, so every log line emitted inside a Job carries them.
"""

from __future__ import annotations

import contextvars
import logging
from collections.abc import Generator
from contextlib import contextmanager

_job_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "job_id", default=None
)
_resource_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "resource_id", default=None
)


@contextmanager
def job_context(job_id: str, resource_id: str | None = None) -> Generator[None, None, None]:
    """Set job context on entry and restore the previous one on exit.

    Example:
        with job_context(job.id, job.resource_id):
            logger.info("Transcoding")  # carries job_id/resource_id
    """
    job_token = _job_id.set(job_id)
    resource_token = _resource_id.set(resource_id)
    try:
        yield
    finally:
        _job_id.reset(job_token)
        _resource_id.reset(resource_token)


def get_job_context() -> tuple[str | None, str | None]:
    """Return (job_id, resource_id) for the current context."""
    return _job_id.get(), _resource_id.get()


class JobContextFilter(logging.Filter):
    """Logging filter that injects job context into log records.

    Adds job_id and resource_id attributes, plus a compact job_tag such as
    ``[job 1a2b3c4d] `` for the text format.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        job_id, resource_id = get_job_context()
        record.job_id = job_id
        record.resource_id = resource_id
        record.job_tag = f"[job {job_id[:8]}] " if job_id else ""
        return True
