"""Report job orchestration: producer, worker, and job record store."""

from __future__ import annotations

from .config import JobsConfig
from .dispatch import (
    DispatchQueue,
    DispatchReconciler,
    DramatiqDispatchQueue,
    JobDispatcher,
)
from .errors import (
    JobAccessDeniedError,
    JobNotFoundError,
    JobProcessingError,
    PermanentJobError,
    ReportNotReadyError,
)
from .models import QueuedReportResult, ReportRequest, SyncReportResult
from .observability import JobEventLogger, JobEventType
from .processor import (
    ProcessOutcome,
    ReportJobProcessor,
    ReportJobProcessorDependencies,
)
from .service import ReportJobService, ReportJobServiceDependencies
from .storage import JobStatus, ReportJob, init_job_storage

__all__ = [
    "DispatchQueue",
    "DispatchReconciler",
    "DramatiqDispatchQueue",
    "JobAccessDeniedError",
    "JobDispatcher",
    "JobEventLogger",
    "JobEventType",
    "JobNotFoundError",
    "JobProcessingError",
    "JobStatus",
    "JobsConfig",
    "PermanentJobError",
    "ProcessOutcome",
    "QueuedReportResult",
    "ReportJob",
    "ReportJobProcessor",
    "ReportJobProcessorDependencies",
    "ReportJobService",
    "ReportJobServiceDependencies",
    "ReportNotReadyError",
    "ReportRequest",
    "SyncReportResult",
    "init_job_storage",
]
