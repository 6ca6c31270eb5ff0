"""Errors raised by the job orchestrator and the job worker."""

from __future__ import annotations

from courier.errors import CourierError
from courier.handlers.errors import ReportValidationError, UnsupportedReportTypeError


class JobNotFoundError(CourierError):
    """Raised when a job id does not match any job row."""

    def __init__(self, job_id: str) -> None:
        """Record the unknown job id."""
        self.job_id = job_id
        super().__init__(f"Report job not found: {job_id}")


class ReportNotReadyError(CourierError):
    """Raised when an artifact is requested before the job completed."""

    def __init__(self, job_id: str, status: str) -> None:
        """Record the job id and its current status."""
        self.job_id = job_id
        self.status = status
        super().__init__(
            f"Report job {job_id} is not ready for download (status: {status})"
        )


class JobAccessDeniedError(CourierError):
    """Raised when a caller asks for a job owned by someone else."""

    def __init__(self, job_id: str) -> None:
        """Record the job id without revealing its owner."""
        self.job_id = job_id
        super().__init__(f"Access to report job {job_id} is not permitted")


class JobProcessingError(CourierError):
    """Raised by the worker after a job was marked FAILED.

    Re-raising lets the queue runtime apply its retry and dead-letter policy.
    """

    def __init__(self, job_id: str, detail: str) -> None:
        """Record the job id and a description of the failure."""
        self.job_id = job_id
        super().__init__(f"Report job {job_id} failed: {detail}")

    @classmethod
    def wrapping(cls, job_id: str, error: BaseException) -> JobProcessingError:
        """Wrap ``error``; criteria and type problems become permanent failures."""
        detail = str(error) or type(error).__name__
        if isinstance(error, ReportValidationError | UnsupportedReportTypeError):
            return PermanentJobError(job_id, detail)
        return cls(job_id, detail)


class PermanentJobError(JobProcessingError):
    """Job failure that a retry cannot fix, so the queue must not retry it."""
