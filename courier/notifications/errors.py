"""Errors raised while notifying users of finished reports."""

from __future__ import annotations

from courier.errors import CourierError


class NotificationError(CourierError):
    """Raised when a notification cannot be recorded or signalled.

    The dispatcher logs these and never lets them reach the job lifecycle.
    """

    def __init__(self, job_id: str, stage: str, detail: str) -> None:
        """Record the job, the failing stage, and a description."""
        self.job_id = job_id
        self.stage = stage
        super().__init__(f"Notification {stage} failed for job {job_id}: {detail}")

    @classmethod
    def wrapping(
        cls, job_id: str, stage: str, error: BaseException
    ) -> NotificationError:
        """Return an error describing ``error`` raised during ``stage``."""
        return cls(job_id, stage, str(error) or type(error).__name__)


class NotificationConfigError(CourierError, ValueError):
    """Raised when the notification backend configuration is invalid."""

    @classmethod
    def invalid_backend(cls, backend: str) -> NotificationConfigError:
        """Return an error naming an unknown backend."""
        return cls(
            f"Invalid COURIER_NOTIFICATION_BACKEND {backend!r}; "
            "expected 'log' or 'dramatiq'"
        )
