"""Idempotent worker-side processing of queued report jobs.

Dispatch messages are delivered at least once and possibly out of order, so
the job row is the only arbiter of whether work should happen. A delivery
claims the job with a conditional update; any delivery that loses the claim
returns without side effects.

Lifecycle driven by :meth:`ReportJobProcessor.process`::

    QUEUED ──claim──▶ PROCESSING ──▶ COMPLETED
       ▲                   │
       └── FAILED ◀────────┘   (a queue retry may claim a FAILED job again)

"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import enum
import typing as typ

from sqlalchemy import update

from courier.artifacts.protocol import artifact_filename
from courier.common.text import bounded_error_message
from courier.common.time import utcnow
from courier.downloads.service import DownloadGrant
from courier.handlers.criteria import decode_criteria
from courier.handlers.errors import ReportGenerationError
from courier.jobs.config import JobsConfig
from courier.jobs.errors import JobProcessingError
from courier.jobs.observability import JobEventLogger
from courier.jobs.storage import CLAIMABLE_STATUSES, JobStatus, ReportJob
from courier.logging import get_logger, log_exception, log_info, log_warning, mask_url
from courier.objectstore.protocol import ArtifactLocation

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from courier.artifacts.protocol import ArtifactMaterializer
    from courier.downloads.service import DownloadLink, DownloadTokenService
    from courier.handlers.registry import HandlerRegistry
    from courier.notifications.dispatcher import NotificationDispatcher
    from courier.objectstore.protocol import ObjectStore

logger = get_logger(__name__)


class ProcessOutcome(enum.StrEnum):
    """What a single delivery of a dispatch message did."""

    COMPLETED = "completed"
    MISSING = "missing"
    ALREADY_COMPLETED = "already_completed"
    IN_PROGRESS = "in_progress"
    CLAIM_LOST = "claim_lost"


@dc.dataclass(frozen=True, slots=True)
class ReportJobProcessorDependencies:
    """Collaborators used to execute a claimed job.

    Attributes
    ----------
    session_factory
        Async session factory for the job record store.
    registry
        Strategies keyed by report type.
    object_store
        Destination for generated artifacts.
    materializer
        Serializer turning report data into a file.
    downloads
        Issues the redirect link wrapping the presigned URL.
    notifier
        Best-effort notification of the job owner.

    """

    session_factory: async_sessionmaker[AsyncSession]
    registry: HandlerRegistry
    object_store: ObjectStore
    materializer: ArtifactMaterializer
    downloads: DownloadTokenService
    notifier: NotificationDispatcher


@dc.dataclass(frozen=True, slots=True)
class _Delivery:
    """Stored artifact and its presigned target, ready to be linked."""

    location: str
    filename: str
    target_url: str
    target_expires_at: dt.datetime
    report_name: str
    total_records: int


class ReportJobProcessor:
    """Execute queued report jobs exactly once per successful claim."""

    def __init__(
        self,
        dependencies: ReportJobProcessorDependencies,
        config: JobsConfig | None = None,
        event_logger: JobEventLogger | None = None,
    ) -> None:
        """Configure the processor.

        Parameters
        ----------
        dependencies
            Grouped collaborators.
        config
            Job settings; defaults to ``JobsConfig()``.
        event_logger
            Structured event emitter; defaults to ``JobEventLogger()``.

        """
        self._deps = dependencies
        self._session_factory = dependencies.session_factory
        self._config = config or JobsConfig()
        self._events = event_logger or JobEventLogger()

    async def process(self, job_id: str) -> ProcessOutcome:
        """Handle one delivery of the dispatch message for ``job_id``.

        Parameters
        ----------
        job_id
            Identifier carried by the dispatch message.

        Returns
        -------
        ProcessOutcome
            ``COMPLETED`` when this delivery produced the report, otherwise
            the reason the delivery was a no-op.

        Raises
        ------
        JobProcessingError
            After the job was marked FAILED, so the queue can retry it.
        BaseException
            Interrupts such as worker time limits, re-raised as is once the
            job was marked FAILED.

        """
        async with self._session_factory() as session:
            job = await session.get(ReportJob, job_id)
        if job is None:
            log_warning(logger, "Report job %s not found; dropping message", job_id)
            return ProcessOutcome.MISSING
        if job.status == JobStatus.COMPLETED:
            self._events.log_job_skipped(job_id=job_id, reason="already completed")
            return ProcessOutcome.ALREADY_COMPLETED
        if job.status == JobStatus.PROCESSING:
            self._events.log_job_skipped(job_id=job_id, reason="already processing")
            return ProcessOutcome.IN_PROGRESS

        started_at = utcnow()
        if not await self._claim(job_id, started_at):
            self._events.log_job_skipped(job_id=job_id, reason="claimed elsewhere")
            return ProcessOutcome.CLAIM_LOST
        self._events.log_job_started(job_id=job_id, report_type=job.report_type)

        try:
            delivery = await self._execute(job)
            link = await self._mark_completed(job, delivery)
        except Exception as exc:
            await self._record_failure(job_id, exc, started_at)
            raise JobProcessingError.wrapping(job_id, exc) from exc
        except BaseException as exc:
            # Worker time limits and cancellation still end the claim.
            await self._record_failure(job_id, exc, started_at)
            raise

        if link is None:
            return ProcessOutcome.CLAIM_LOST
        self._events.log_job_completed(
            job_id=job_id,
            total_records=delivery.total_records,
            duration=utcnow() - started_at,
        )
        await self._notify(job, link, delivery.report_name)
        return ProcessOutcome.COMPLETED

    async def _claim(self, job_id: str, started_at: dt.datetime) -> bool:
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                update(ReportJob)
                .where(
                    ReportJob.id == job_id,
                    ReportJob.status.in_(CLAIMABLE_STATUSES),
                )
                .values(
                    status=JobStatus.PROCESSING,
                    started_at=started_at,
                    completed_at=None,
                    error_message=None,
                )
                .execution_options(synchronize_session=False)
            )
        return result.rowcount == 1

    async def _execute(self, job: ReportJob) -> _Delivery:
        strategy = self._deps.registry.get(job.report_type)
        criteria = decode_criteria(strategy, job.criteria)
        try:
            data = await strategy.generate(criteria)
        except ReportGenerationError:
            raise
        except Exception as exc:
            raise ReportGenerationError.wrapping(job.report_type, exc) from exc

        materializer = self._deps.materializer
        payload = await materializer.materialize(data)
        filename = artifact_filename(
            job.report_type, job.id, materializer.file_extension
        )
        location = await self._deps.object_store.put(
            ArtifactLocation(scope_id=job.scope_id, job_id=job.id, filename=filename),
            payload,
            content_type=materializer.content_type,
        )
        presigned = await self._deps.object_store.presign(
            location, self._config.presign_ttl
        )
        log_info(
            logger,
            "Artifact for job %s stored at %s, presigned %s",
            job.id,
            location,
            mask_url(presigned.url),
        )
        return _Delivery(
            location=location,
            filename=filename,
            target_url=presigned.url,
            target_expires_at=presigned.expires_at,
            report_name=strategy.display_name,
            total_records=data.total_records,
        )

    async def _mark_completed(
        self, job: ReportJob, delivery: _Delivery
    ) -> DownloadLink | None:
        """Record completion and issue the download token in one transaction.

        Returns ``None`` without issuing a token when the row is no longer
        PROCESSING.
        """
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                update(ReportJob)
                .where(
                    ReportJob.id == job.id,
                    ReportJob.status == JobStatus.PROCESSING,
                )
                .values(
                    status=JobStatus.COMPLETED,
                    completed_at=utcnow(),
                    artifact_location=delivery.location,
                    filename=delivery.filename,
                    error_message=None,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                log_warning(
                    logger,
                    "Report job %s left PROCESSING before completion was recorded",
                    job.id,
                )
                return None
            return await self._deps.downloads.issue(
                DownloadGrant(
                    job_id=job.id, owner_id=job.owner_id, scope_id=job.scope_id
                ),
                target_url=delivery.target_url,
                target_expires_at=delivery.target_expires_at,
                session=session,
            )

    async def _record_failure(
        self, job_id: str, error: BaseException, started_at: dt.datetime
    ) -> None:
        await self._mark_failed(job_id, error)
        self._events.log_job_failed(
            job_id=job_id, error=error, duration=utcnow() - started_at
        )

    async def _mark_failed(self, job_id: str, error: BaseException) -> None:
        message = bounded_error_message(error, self._config.error_message_limit)
        try:
            async with self._session_factory() as session, session.begin():
                await session.execute(
                    update(ReportJob)
                    .where(
                        ReportJob.id == job_id,
                        ReportJob.status == JobStatus.PROCESSING,
                    )
                    .values(
                        status=JobStatus.FAILED,
                        completed_at=utcnow(),
                        artifact_location=None,
                        filename=None,
                        error_message=message,
                    )
                    .execution_options(synchronize_session=False)
                )
        except Exception as exc:  # noqa: BLE001 - failure handling never raises
            log_exception(
                logger, f"Could not record failure of report job {job_id}", exc
            )

    async def _notify(
        self, job: ReportJob, link: DownloadLink, report_name: str
    ) -> None:
        try:
            await self._deps.notifier.notify(job, link, report_name=report_name)
        except Exception as exc:  # noqa: BLE001 - notification is best-effort
            log_exception(
                logger, f"Notification for report job {job.id} raised", exc
            )
