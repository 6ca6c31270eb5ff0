"""Emit structured observability events for report job lifecycles.

Usage
-----
>>> events = JobEventLogger()
>>> events.log_job_started(job_id="4f1c", report_type="DUMMY_TEST")

"""

from __future__ import annotations

import enum
import typing as typ

from courier.logging import get_logger, log_error, log_info, log_warning

if typ.TYPE_CHECKING:
    import datetime as dt

logger = get_logger(__name__)


class JobEventType(enum.StrEnum):
    """Structured log event types for report jobs."""

    JOB_QUEUED = "jobs.job.queued"
    JOB_DISPATCHED = "jobs.job.dispatched"
    JOB_DISPATCH_FAILED = "jobs.job.dispatch_failed"
    JOB_STARTED = "jobs.job.started"
    JOB_COMPLETED = "jobs.job.completed"
    JOB_FAILED = "jobs.job.failed"
    JOB_SKIPPED = "jobs.job.skipped"


class JobEventLogger:
    """Emit structured job events via femtologging."""

    def log_job_queued(self, *, job_id: str, report_type: str, owner_id: str) -> None:
        """Log that a job row was committed in QUEUED state."""
        log_info(
            logger,
            "[%s] job_id=%s report_type=%s owner_id=%s",
            JobEventType.JOB_QUEUED,
            job_id,
            report_type,
            owner_id,
        )

    def log_job_dispatched(self, *, job_id: str) -> None:
        """Log that the dispatch message for a job was accepted by the queue."""
        log_info(logger, "[%s] job_id=%s", JobEventType.JOB_DISPATCHED, job_id)

    def log_dispatch_failed(self, *, job_id: str, error: BaseException) -> None:
        """Log a dispatch failure; the reconciler will retry the job later."""
        log_error(
            logger,
            "[%s] job_id=%s error_type=%s error_message=%s",
            JobEventType.JOB_DISPATCH_FAILED,
            job_id,
            type(error).__name__,
            str(error),
            exc_info=error,
        )

    def log_job_started(self, *, job_id: str, report_type: str) -> None:
        """Log that a delivery claimed a job."""
        log_info(
            logger,
            "[%s] job_id=%s report_type=%s",
            JobEventType.JOB_STARTED,
            job_id,
            report_type,
        )

    def log_job_completed(
        self,
        *,
        job_id: str,
        total_records: int,
        duration: dt.timedelta,
    ) -> None:
        """Log successful completion with record count and duration."""
        log_info(
            logger,
            "[%s] job_id=%s total_records=%d duration_seconds=%.3f",
            JobEventType.JOB_COMPLETED,
            job_id,
            total_records,
            duration.total_seconds(),
        )

    def log_job_failed(
        self,
        *,
        job_id: str,
        error: BaseException,
        duration: dt.timedelta,
    ) -> None:
        """Log a failed job with error details.

        Parameters
        ----------
        job_id
            Identifier of the failed job.
        error
            Exception that ended processing.
        duration
            Elapsed time between claim and failure.

        """
        log_error(
            logger,
            "[%s] job_id=%s duration_seconds=%.3f error_type=%s error_message=%s",
            JobEventType.JOB_FAILED,
            job_id,
            duration.total_seconds(),
            type(error).__name__,
            str(error),
            exc_info=error,
        )

    def log_job_skipped(self, *, job_id: str, reason: str) -> None:
        """Log a delivery that did nothing, such as a duplicate message."""
        log_warning(
            logger,
            "[%s] job_id=%s reason=%s",
            JobEventType.JOB_SKIPPED,
            job_id,
            reason,
        )
