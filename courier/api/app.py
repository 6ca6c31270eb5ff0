"""Application factory for the Courier Falcon ASGI application.

``create_app()`` always registers the health probes. When every domain
dependency is supplied it also installs the session middleware, the report
routes, and the public download redirect.

Usage
-----
Create a health-only app (no database)::

    app = create_app()

Create a full app with domain endpoints::

    from courier.api.factory import build_app_dependencies

    app = create_app(build_app_dependencies(session_factory))

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from courier.api.errors import register_error_handlers
from courier.api.health.resources import HealthResource, ReadyResource

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from courier.downloads.service import DownloadTokenService
    from courier.jobs.service import ReportJobService
    from courier.objectstore.protocol import ObjectStore

__all__ = ["AppDependencies", "create_app"]


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Dependencies for the Falcon ASGI application.

    Domain endpoints are registered only when every attribute is set;
    otherwise the app serves health probes alone.

    Attributes
    ----------
    session_factory
        Async session factory for database access.
    report_service
        Orchestrator for submissions and job queries.
    downloads
        Download token service behind ``/r/{token}``.
    object_store
        Store holding generated artifacts.

    """

    session_factory: async_sessionmaker[AsyncSession] | None = None
    report_service: ReportJobService | None = None
    downloads: DownloadTokenService | None = None
    object_store: ObjectStore | None = None


@dc.dataclass(frozen=True, slots=True)
class _DomainDependencies:
    session_factory: async_sessionmaker[AsyncSession]
    report_service: ReportJobService
    downloads: DownloadTokenService
    object_store: ObjectStore


def _domain_deps(deps: AppDependencies | None) -> _DomainDependencies | None:
    """Return the narrowed dependencies when every one is present."""
    if (
        deps is None
        or deps.session_factory is None
        or deps.report_service is None
        or deps.downloads is None
        or deps.object_store is None
    ):
        return None
    return _DomainDependencies(
        session_factory=deps.session_factory,
        report_service=deps.report_service,
        downloads=deps.downloads,
        object_store=deps.object_store,
    )


def _add_domain_routes(app: falcon.asgi.App, deps: _DomainDependencies) -> None:
    from courier.api.downloads.resources import DownloadRedirectResource
    from courier.api.reports.resources import (
        ReportCollectionResource,
        ReportDownloadResource,
        ReportJobResource,
        ReportResourceDependencies,
    )

    resource_deps = ReportResourceDependencies(
        report_service=deps.report_service,
        downloads=deps.downloads,
        object_store=deps.object_store,
    )
    app.add_route("/reports", ReportCollectionResource(resource_deps))
    app.add_route("/reports/{job_id}", ReportJobResource(resource_deps))
    app.add_route("/reports/{job_id}/download", ReportDownloadResource(resource_deps))
    app.add_route("/r/{token}", DownloadRedirectResource(deps.downloads))


def create_app(
    dependencies: AppDependencies | None = None,
) -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    Parameters
    ----------
    dependencies
        Optional application dependencies. When ``None`` or incomplete,
        only ``/health`` and ``/ready`` are available.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    """
    domain = _domain_deps(dependencies)
    middleware: list[object] = []
    if domain is not None:
        from courier.api.middleware import SQLAlchemySessionManager

        middleware.append(SQLAlchemySessionManager(domain.session_factory))

    app = falcon.asgi.App(middleware=middleware)  # type: ignore[no-matching-overload]  # Falcon stubs

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource())

    if domain is not None:
        _add_domain_routes(app, domain)

    register_error_handlers(app)
    return app
