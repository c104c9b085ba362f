"""Error taxonomy shared across the pipeline.

Every failure that can end a Job derives from ClipshareError so the Job
boundary can record it without special-casing. Process failures live in
clipshare.executor.exceptions and derive from the same base.
"""

from __future__ import annotations


class ClipshareError(Exception):
    """Base exception for all pipeline errors."""


class ValidationFailure(ClipshareError):
    """Raised when input or upstream metadata is malformed or incomplete.

    Attributes:
        field: Name of the offending field, when known.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.message = message
        self.field = field
        super().__init__(message)


class UpstreamFetchFailure(ClipshareError):
    """Raised when the media source cannot be reached or refuses a request.

    Attributes:
        url: Request URL with credentials removed, when known.
        status_code: HTTP status code, when a response was received.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class StorageFailure(ClipshareError):
    """Raised when a persisted-state or filesystem operation fails.

    Attributes:
        operation: Short name of what was being written (e.g. "update job").
    """

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        self.operation = operation
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Storage failure during {operation}{detail}")
