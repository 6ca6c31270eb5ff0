"""Hand committed jobs to the worker queue.

The dispatch message carries only the job id; the worker reads everything
else from the job row. Dispatch happens strictly after the job row is
committed and is stamped on the row once the queue accepts the message, so
jobs left undispatched by a crash can be found and re-sent.
"""

from __future__ import annotations

import asyncio
import typing as typ

from sqlalchemy import select, update

from courier._broker import ensure_broker_configured
from courier.common.time import utcnow
from courier.jobs.observability import JobEventLogger
from courier.jobs.storage import JobStatus, ReportJob

if typ.TYPE_CHECKING:
    import datetime as dt

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


@typ.runtime_checkable
class DispatchQueue(typ.Protocol):
    """Protocol for enqueuing a job id for the worker."""

    async def enqueue(self, job_id: str) -> None:
        """Send a dispatch message for ``job_id`` or raise on failure."""
        ...


class DramatiqDispatchQueue:
    """Send dispatch messages through the ``process_report_job`` actor."""

    async def enqueue(self, job_id: str) -> None:
        """Send ``job_id`` to the worker queue."""
        await asyncio.to_thread(self._send, job_id)

    @staticmethod
    def _send(job_id: str) -> None:
        ensure_broker_configured()
        from courier.jobs.actor import process_report_job

        process_report_job.send(job_id)


class JobDispatcher:
    """Enqueue jobs and record successful dispatch on the job row."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        queue: DispatchQueue,
        event_logger: JobEventLogger | None = None,
    ) -> None:
        """Configure the dispatcher with its queue and database access."""
        self._session_factory = session_factory
        self._queue = queue
        self._events = event_logger or JobEventLogger()

    async def dispatch(self, job_id: str) -> bool:
        """Enqueue ``job_id`` and stamp ``dispatched_at``.

        Failures are logged and reported as False; the job row stays
        undispatched so the reconciler picks it up.

        """
        try:
            await self._queue.enqueue(job_id)
        except Exception as exc:  # noqa: BLE001 - reconciler retries dispatch
            self._events.log_dispatch_failed(job_id=job_id, error=exc)
            return False

        try:
            async with self._session_factory() as session, session.begin():
                await session.execute(
                    update(ReportJob)
                    .where(
                        ReportJob.id == job_id,
                        ReportJob.dispatched_at.is_(None),
                    )
                    .values(dispatched_at=utcnow())
                    .execution_options(synchronize_session=False)
                )
        except Exception as exc:  # noqa: BLE001 - message already sent
            self._events.log_dispatch_failed(job_id=job_id, error=exc)
        else:
            self._events.log_job_dispatched(job_id=job_id)
        return True


class DispatchReconciler:
    """Re-send QUEUED jobs whose dispatch was never recorded."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        dispatcher: JobDispatcher,
    ) -> None:
        """Configure the reconciler."""
        self._session_factory = session_factory
        self._dispatcher = dispatcher

    async def pending_job_ids(self, older_than: dt.datetime) -> list[str]:
        """Return ids of undispatched QUEUED jobs requested before ``older_than``."""
        async with self._session_factory() as session:
            rows = await session.scalars(
                select(ReportJob.id)
                .where(
                    ReportJob.status == JobStatus.QUEUED,
                    ReportJob.dispatched_at.is_(None),
                    ReportJob.requested_at <= older_than,
                )
                .order_by(ReportJob.requested_at)
            )
            return list(rows.all())

    async def redispatch_pending(self, cutoff: dt.datetime) -> list[str]:
        """Dispatch every pending job older than ``cutoff``; return those sent."""
        sent: list[str] = []
        for job_id in await self.pending_job_ids(cutoff):
            if await self._dispatcher.dispatch(job_id):
                sent.append(job_id)
        return sent
