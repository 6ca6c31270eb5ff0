"""Dramatiq actors for report job processing and maintenance.

The dispatch message carries only the job id. Every actor reads the
database location from ``COURIER_DATABASE_URL`` and reuses engines and
services across invocations within a worker process.

Usage
-----
Queue a job for processing (normally done by ``DramatiqDispatchQueue``):

>>> process_report_job.send("550e8400-e29b-41d4-a716-446655440000")

Schedule maintenance from cron or a Kubernetes CronJob:

>>> reconcile_dispatch_job.send()
>>> sweep_download_tokens_job.send()

"""

from __future__ import annotations

import asyncio
import threading
import typing as typ

import dramatiq
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from courier._broker import ensure_broker_configured
from courier.artifacts.xlsx import XlsxMaterializer
from courier.common.time import utcnow
from courier.config import parse_positive_int, read_database_url, read_str
from courier.downloads.config import DownloadConfig
from courier.downloads.service import DownloadTokenService
from courier.handlers import build_default_registry
from courier.jobs.config import JobsConfig
from courier.jobs.dispatch import (
    DispatchReconciler,
    DramatiqDispatchQueue,
    JobDispatcher,
)
from courier.jobs.errors import PermanentJobError
from courier.jobs.processor import ReportJobProcessor, ReportJobProcessorDependencies
from courier.logging import get_logger, log_info
from courier.notifications.config import NotificationConfig
from courier.notifications.dispatcher import NotificationDispatcher
from courier.notifications.factory import create_notification_channel
from courier.objectstore.factory import create_object_store

type SessionFactory = async_sessionmaker[AsyncSession]

logger = get_logger(__name__)

# Actors bind to the global broker when they are declared.
ensure_broker_configured()

REPORTS_QUEUE = read_str("COURIER_REPORTS_QUEUE", "reports") or "reports"
MAINTENANCE_QUEUE = (
    read_str("COURIER_MAINTENANCE_QUEUE", "maintenance") or "maintenance"
)
_MAX_RETRIES = parse_positive_int("COURIER_JOB_MAX_RETRIES", 3)
_TIME_LIMIT_MS = parse_positive_int("COURIER_JOB_TIME_LIMIT_SECONDS", 30 * 60) * 1000

_ENGINE_CACHE: dict[str, AsyncEngine] = {}
_SESSION_FACTORY_CACHE: dict[str, SessionFactory] = {}
_PROCESSOR_CACHE: dict[str, ReportJobProcessor] = {}
_CACHE_LOCK = threading.Lock()


def _resolve_database_url() -> str:
    """Return ``COURIER_DATABASE_URL`` or fail loudly."""
    database_url = read_database_url()
    if database_url is None:
        msg = "COURIER_DATABASE_URL must be set for Courier worker actors"
        raise RuntimeError(msg)
    return database_url


def _ensure_session_factory_locked(database_url: str) -> SessionFactory:
    """Return the cached session factory for *database_url*, creating it if absent.

    Precondition: the caller **must** hold ``_CACHE_LOCK``. Each actor call
    runs its own event loop, so pooled connections are not kept between
    calls.
    """
    if database_url not in _SESSION_FACTORY_CACHE:
        engine = create_async_engine(database_url, poolclass=NullPool)
        _ENGINE_CACHE[database_url] = engine
        _SESSION_FACTORY_CACHE[database_url] = async_sessionmaker(
            engine, expire_on_commit=False
        )
    return _SESSION_FACTORY_CACHE[database_url]


def _get_or_create_session_factory(database_url: str) -> SessionFactory:
    """Get or create an async session factory for the given database URL."""
    with _CACHE_LOCK:
        return _ensure_session_factory_locked(database_url)


def build_processor(session_factory: SessionFactory) -> ReportJobProcessor:
    """Build a ``ReportJobProcessor`` from environment configuration."""
    dependencies = ReportJobProcessorDependencies(
        session_factory=session_factory,
        registry=build_default_registry(),
        object_store=create_object_store(),
        materializer=XlsxMaterializer(),
        downloads=DownloadTokenService(session_factory, DownloadConfig.from_env()),
        notifier=NotificationDispatcher(
            session_factory,
            create_notification_channel(),
            NotificationConfig.from_env(),
        ),
    )
    return ReportJobProcessor(dependencies, config=JobsConfig.from_env())


def _get_or_create_processor(database_url: str) -> ReportJobProcessor:
    """Get or create the processor for ``database_url``."""
    with _CACHE_LOCK:
        if database_url not in _PROCESSOR_CACHE:
            session_factory = _ensure_session_factory_locked(database_url)
            _PROCESSOR_CACHE[database_url] = build_processor(session_factory)
        return _PROCESSOR_CACHE[database_url]


def _run_actor_async[T](
    async_fn: typ.Callable[[SessionFactory], typ.Awaitable[T]],
) -> T:
    """Run ``async_fn`` with the cached session factory on a fresh loop."""
    ensure_broker_configured()
    session_factory = _get_or_create_session_factory(_resolve_database_url())

    async def run() -> T:
        return await async_fn(session_factory)

    return asyncio.run(run())


@dramatiq.actor(
    queue_name=REPORTS_QUEUE,
    max_retries=_MAX_RETRIES,
    time_limit=_TIME_LIMIT_MS,
    throws=(PermanentJobError,),
)
def process_report_job(job_id: str) -> str:
    """Dramatiq actor executing one delivery of a report job.

    Parameters
    ----------
    job_id
        Identifier of the job row to process.

    Returns
    -------
    str
        The ``ProcessOutcome`` value for this delivery.

    Raises
    ------
    JobProcessingError
        When the job failed; Dramatiq retries unless it is permanent.

    """
    processor = _get_or_create_processor(_resolve_database_url())

    async def execute(_session_factory: SessionFactory) -> str:
        return str(await processor.process(job_id))

    return _run_actor_async(execute)


@dramatiq.actor(queue_name=MAINTENANCE_QUEUE, max_retries=0)
def reconcile_dispatch_job() -> list[str]:
    """Dramatiq actor re-sending QUEUED jobs that were never dispatched.

    Returns
    -------
    list[str]
        Ids of the jobs dispatched by this run.

    """
    config = JobsConfig.from_env()

    async def execute(session_factory: SessionFactory) -> list[str]:
        dispatcher = JobDispatcher(session_factory, DramatiqDispatchQueue())
        reconciler = DispatchReconciler(session_factory, dispatcher)
        sent = await reconciler.redispatch_pending(utcnow() - config.dispatch_grace)
        log_info(logger, "Re-dispatched %d pending report job(s)", len(sent))
        return sent

    return _run_actor_async(execute)


@dramatiq.actor(queue_name=MAINTENANCE_QUEUE, max_retries=0)
def sweep_download_tokens_job() -> int:
    """Dramatiq actor deleting expired download tokens.

    Returns
    -------
    int
        Number of tokens removed.

    """

    async def execute(session_factory: SessionFactory) -> int:
        service = DownloadTokenService(session_factory, DownloadConfig.from_env())
        return await service.sweep_expired()

    return _run_actor_async(execute)
