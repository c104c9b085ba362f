"""Root logger setup from LoggingConfig."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

from clipshare.logging.context import JobContextFilter
from clipshare.logging.handlers import JSONFormatter

if TYPE_CHECKING:
    from clipshare.config.models import LoggingConfig

TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(job_tag)s%(name)s: %(message)s"
TEXT_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"

# Libraries that log every request at INFO
NOISY_LOGGERS = ("aiohttp.access", "httpx", "httpcore")


def _formatter(config: LoggingConfig) -> logging.Formatter:
    if config.format.casefold() == "json":
        return JSONFormatter()
    return logging.Formatter(TEXT_FORMAT, datefmt=TEXT_DATEFMT)


def _open_log_file(path: Path, config: LoggingConfig) -> logging.Handler | None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        return RotatingFileHandler(
            path,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
    except OSError as e:
        sys.stderr.write(f"Warning: cannot open log file {path}: {e}; using stderr\n")
        return None


def configure_logging(config: LoggingConfig) -> None:
    """Replace the root logger's handlers according to config.

    Output goes to the rotating log file when one is configured and can be
    opened, and to stderr otherwise (or additionally, with
    include_stderr). Every handler carries the job context filter, so
    lines written inside a Job name it.
    """
    level = logging.getLevelName(config.level.upper())
    formatter = _formatter(config)
    job_filter = JobContextFilter()

    handlers: list[logging.Handler] = []
    if config.file is not None:
        file_handler = _open_log_file(Path(config.file).expanduser(), config)
        if file_handler is not None:
            handlers.append(file_handler)
    if config.include_stderr or not handlers:
        handlers.append(logging.StreamHandler(sys.stderr))

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(job_filter)
        root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
