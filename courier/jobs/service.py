"""Report job orchestration: inline generation or persisted async jobs.

This module provides the ReportJobService, the producer side of the
pipeline. It resolves the strategy for a request, validates and costs the
criteria, asks the threshold router where the work belongs, and then either
generates the report inline or commits a QUEUED job and dispatches it.

Usage
-----
>>> dependencies = ReportJobServiceDependencies(
...     session_factory=session_factory,
...     registry=build_default_registry(),
...     router=ThresholdRouter(session_factory),
...     dispatcher=JobDispatcher(session_factory, DramatiqDispatchQueue()),
... )
>>> service = ReportJobService(dependencies)
>>> result = await service.submit(
...     ReportRequest(report_type="DUMMY_TEST", owner_id="42", scope_id="7")
... )

"""

from __future__ import annotations

import contextlib
import dataclasses as dc
import typing as typ

from sqlalchemy import select

from courier.common.time import utcnow
from courier.handlers.criteria import convert_criteria, encode_criteria
from courier.handlers.errors import ReportGenerationError
from courier.jobs.config import JobsConfig
from courier.jobs.errors import JobAccessDeniedError, JobNotFoundError
from courier.jobs.models import QueuedReportResult, SyncReportResult
from courier.jobs.observability import JobEventLogger
from courier.jobs.storage import JobStatus, ReportJob
from courier.logging import get_logger, log_info

if typ.TYPE_CHECKING:
    import datetime as dt

    import msgspec
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from courier.handlers.protocol import ReportStrategy
    from courier.handlers.registry import HandlerRegistry
    from courier.jobs.dispatch import JobDispatcher
    from courier.jobs.models import ReportRequest, SubmissionResult
    from courier.thresholds.router import ThresholdRouter

logger = get_logger(__name__)

_DEFAULT_LIST_LIMIT = 50


@dc.dataclass(frozen=True, slots=True)
class ReportJobServiceDependencies:
    """Core dependencies for ReportJobService.

    Attributes
    ----------
    session_factory
        Async session factory for the job record store.
    registry
        Strategies keyed by report type.
    router
        Sync/async routing decision.
    dispatcher
        Sends committed job ids to the worker queue.

    """

    session_factory: async_sessionmaker[AsyncSession]
    registry: HandlerRegistry
    router: ThresholdRouter
    dispatcher: JobDispatcher


class ReportJobService:
    """Accept report requests and query job state."""

    def __init__(
        self,
        dependencies: ReportJobServiceDependencies,
        config: JobsConfig | None = None,
        event_logger: JobEventLogger | None = None,
    ) -> None:
        """Configure the service.

        Parameters
        ----------
        dependencies
            Grouped collaborators.
        config
            Job settings; defaults to ``JobsConfig()``.
        event_logger
            Structured event emitter; defaults to ``JobEventLogger()``.

        """
        self._session_factory = dependencies.session_factory
        self._registry = dependencies.registry
        self._router = dependencies.router
        self._dispatcher = dependencies.dispatcher
        self._config = config or JobsConfig()
        self._events = event_logger or JobEventLogger()

    async def submit(self, request: ReportRequest) -> SubmissionResult:
        """Generate a report inline or queue it for the worker.

        Parameters
        ----------
        request
            Report type, owner, scope, and raw criteria.

        Returns
        -------
        SubmissionResult
            ``SyncReportResult`` with the data, or ``QueuedReportResult``
            with the job id and a completion estimate.

        Raises
        ------
        UnsupportedReportTypeError
            If no strategy handles ``request.report_type``.
        ReportValidationError
            If the criteria cannot be decoded or fail validation.
        ReportGenerationError
            If inline generation fails.

        """
        strategy = self._registry.get(request.report_type)
        criteria = convert_criteria(strategy, request.criteria)
        strategy.validate(criteria)

        estimate = await strategy.estimate_cost(criteria)
        route_async = await self._router.should_route_async(
            request.report_type, estimate.record_count, estimate.duration
        )
        if not route_async:
            return await self._generate_inline(strategy, criteria)
        return await self._enqueue(request, criteria)

    async def _generate_inline(
        self, strategy: ReportStrategy, criteria: msgspec.Struct
    ) -> SyncReportResult:
        try:
            data = await strategy.generate(criteria)
        except ReportGenerationError:
            raise
        except Exception as exc:
            raise ReportGenerationError.wrapping(strategy.report_type, exc) from exc
        log_info(
            logger,
            "Generated %s report inline with %d records",
            strategy.report_type,
            data.total_records,
        )
        return SyncReportResult(data=data)

    async def _enqueue(
        self, request: ReportRequest, criteria: msgspec.Struct
    ) -> QueuedReportResult:
        requested_at = utcnow()
        job = ReportJob(
            owner_id=request.owner_id,
            scope_id=request.scope_id,
            report_type=request.report_type,
            criteria=encode_criteria(criteria),
            status=JobStatus.QUEUED,
            requested_at=requested_at,
        )
        async with self._session_factory() as session, session.begin():
            session.add(job)
            await session.flush()
            job_id = job.id
        self._events.log_job_queued(
            job_id=job_id,
            report_type=request.report_type,
            owner_id=request.owner_id,
        )

        await self._dispatcher.dispatch(job_id)
        return QueuedReportResult(
            job_id=job_id,
            estimated_completion=requested_at + self._config.estimated_completion,
        )

    def _reading(
        self, session: AsyncSession | None
    ) -> typ.AsyncContextManager[AsyncSession]:
        """Reuse ``session`` when given, otherwise open a short-lived one."""
        if session is not None:
            return contextlib.nullcontext(session)
        return self._session_factory()

    async def get_job(
        self, job_id: str, *, session: AsyncSession | None = None
    ) -> ReportJob:
        """Return the job row for ``job_id``.

        Parameters
        ----------
        job_id
            Identifier of the job.
        session
            Request-scoped session to read through; a fresh one is opened
            when omitted.

        Raises
        ------
        JobNotFoundError
            If no job has that id.

        """
        async with self._reading(session) as reader:
            job = await reader.get(ReportJob, job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    async def get_owned_job(
        self, job_id: str, owner_id: str, *, session: AsyncSession | None = None
    ) -> ReportJob:
        """Return ``job_id`` only when it belongs to ``owner_id``.

        Raises
        ------
        JobNotFoundError
            If no job has that id.
        JobAccessDeniedError
            If the job belongs to another owner.

        """
        job = await self.get_job(job_id, session=session)
        if job.owner_id != owner_id:
            raise JobAccessDeniedError(job_id)
        return job

    async def list_jobs(
        self,
        owner_id: str,
        *,
        limit: int = _DEFAULT_LIST_LIMIT,
        since: dt.datetime | None = None,
        session: AsyncSession | None = None,
    ) -> list[ReportJob]:
        """Return the owner's jobs requested at or after ``since``, newest first."""
        stmt = select(ReportJob).where(ReportJob.owner_id == owner_id)
        if since is not None:
            stmt = stmt.where(ReportJob.requested_at >= since)
        stmt = stmt.order_by(ReportJob.requested_at.desc()).limit(limit)
        async with self._reading(session) as reader:
            return list((await reader.scalars(stmt)).all())
