"""Custom exceptions for job tracking."""

from clipshare.exceptions import ClipshareError, ValidationFailure


class JobTrackingError(ClipshareError):
    """Base exception for job tracking errors."""


class JobNotFoundError(JobTrackingError):
    """Raised when a job doesn't exist in the database.

    Attributes:
        job_id: The ID of the job that was not found.
        operation: The operation that was attempted (e.g., "start", "fail").
    """

    def __init__(self, job_id: str, operation: str) -> None:
        self.job_id = job_id
        self.operation = operation
        super().__init__(f"Cannot {operation} job {job_id}: not found")


class ResourceNotFoundError(ValidationFailure):
    """Raised when a trigger names a resource that doesn't exist."""

    def __init__(self, resource_id: str) -> None:
        self.resource_id = resource_id
        super().__init__(f"Resource {resource_id} not found", field="resource_id")


class RangeNotFoundError(ValidationFailure):
    """Raised when a trigger names a range that doesn't exist."""

    def __init__(self, range_id: str) -> None:
        self.range_id = range_id
        super().__init__(f"Range {range_id} not found", field="range_id")
