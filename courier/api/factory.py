"""Build the API's domain services from environment configuration.

The worker actors assemble the processor the same way; the API side only
needs the producer half of the pipeline plus the download services.

Usage
-----
Build dependencies for the API layer::

    from courier.api.factory import build_app_dependencies

    deps = build_app_dependencies(session_factory)

"""

from __future__ import annotations

import typing as typ

from courier.api.app import AppDependencies
from courier.downloads.config import DownloadConfig
from courier.downloads.service import DownloadTokenService
from courier.handlers import build_default_registry
from courier.jobs.config import JobsConfig
from courier.jobs.dispatch import DramatiqDispatchQueue, JobDispatcher
from courier.jobs.observability import JobEventLogger
from courier.jobs.service import ReportJobService, ReportJobServiceDependencies
from courier.objectstore.factory import create_object_store
from courier.thresholds.config import ThresholdRouterConfig
from courier.thresholds.router import ThresholdRouter

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

__all__ = ["build_app_dependencies", "build_report_service"]


def build_report_service(
    session_factory: async_sessionmaker[AsyncSession],
) -> ReportJobService:
    """Build a ``ReportJobService`` from environment configuration.

    Parameters
    ----------
    session_factory
        Async session factory for the job and threshold tables.

    Returns
    -------
    ReportJobService
        Orchestrator dispatching queued jobs through Dramatiq.

    """
    event_logger = JobEventLogger()
    dependencies = ReportJobServiceDependencies(
        session_factory=session_factory,
        registry=build_default_registry(),
        router=ThresholdRouter(session_factory, ThresholdRouterConfig.from_env()),
        dispatcher=JobDispatcher(
            session_factory, DramatiqDispatchQueue(), event_logger=event_logger
        ),
    )
    return ReportJobService(
        dependencies, config=JobsConfig.from_env(), event_logger=event_logger
    )


def build_app_dependencies(
    session_factory: async_sessionmaker[AsyncSession],
) -> AppDependencies:
    """Assemble every dependency the full application needs."""
    return AppDependencies(
        session_factory=session_factory,
        report_service=build_report_service(session_factory),
        downloads=DownloadTokenService(session_factory, DownloadConfig.from_env()),
        object_store=create_object_store(),
    )
