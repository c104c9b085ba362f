"""Structured logging module for clipshare.

Provides configurable logging with JSON format support, file rotation
and job context injection.
"""

from clipshare.logging.config import configure_logging
from clipshare.logging.context import JobContextFilter, get_job_context, job_context
from clipshare.logging.handlers import JSONFormatter

__all__ = [
    "JSONFormatter",
    "JobContextFilter",
    "configure_logging",
    "get_job_context",
    "job_context",
]
