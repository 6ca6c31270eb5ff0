"""Report submission, job status, and artifact download resources.

Routes
------
``POST /reports``
    Submit a report request. Small reports are generated inline and
    returned with HTTP 200; large ones are queued and answered with HTTP 202.
``GET /reports?owner_id=...[&since=...]``
    List an owner's jobs, newest first, optionally only those requested at
    or after ``since`` (``YYYY-MM-DDTHH:MM:SSZ``).
``GET /reports/{job_id}``
    Return one job, with its download link once completed.
``GET /reports/{job_id}/download``
    Stream the stored artifact to the owner named in ``X-Owner-Id``.

Reads go through the request-scoped session opened by
:class:`courier.api.middleware.SQLAlchemySessionManager`.

"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import typing as typ

import falcon
import msgspec

from courier.api.errors import InvalidInputError
from courier.artifacts.xlsx import XLSX_CONTENT_TYPE
from courier.jobs.errors import ReportNotReadyError
from courier.jobs.models import QueuedReportResult, ReportRequest
from courier.jobs.storage import JobStatus

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from courier.downloads.service import DownloadTokenService
    from courier.jobs.models import SyncReportResult
    from courier.jobs.service import ReportJobService
    from courier.jobs.storage import ReportJob
    from courier.objectstore.protocol import ObjectStore

__all__ = [
    "ReportCollectionResource",
    "ReportDownloadResource",
    "ReportJobResource",
    "ReportResourceDependencies",
]

_CONTENT_TYPES = {"xlsx": XLSX_CONTENT_TYPE}
_DEFAULT_CONTENT_TYPE = "application/octet-stream"
_MAX_LIST_LIMIT = 200
_DEFAULT_LIST_LIMIT = 50
_SINCE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


@dc.dataclass(frozen=True, slots=True)
class ReportResourceDependencies:
    """Collaborators shared by the report resources.

    Attributes
    ----------
    report_service
        Orchestrator handling submissions and job queries.
    downloads
        Source of redirect links for completed jobs.
    object_store
        Store holding generated artifacts.

    """

    report_service: ReportJobService
    downloads: DownloadTokenService
    object_store: ObjectStore


def _serialize_sync(result: SyncReportResult, report_type: str) -> dict[str, typ.Any]:
    data = result.data
    return msgspec.to_builtins(
        {
            "mode": "sync",
            "report_type": report_type,
            "title": data.title,
            "columns": list(data.columns),
            "rows": [list(row) for row in data.rows],
            "total_records": result.total_records,
            "generated_at": data.generated_at,
        }
    )


def _serialize_queued(result: QueuedReportResult) -> dict[str, typ.Any]:
    return msgspec.to_builtins(
        {
            "mode": "async",
            "job_id": result.job_id,
            "status": JobStatus.QUEUED.value,
            "estimated_completion": result.estimated_completion,
            "status_url": f"/reports/{result.job_id}",
        }
    )


def _serialize_job(
    job: ReportJob, download_url: str | None = None
) -> dict[str, typ.Any]:
    """Serialize a job row to a JSON-compatible dict.

    ``artifact_location`` is an internal store key and is never exposed.
    """
    return msgspec.to_builtins(
        {
            "job_id": job.id,
            "report_type": job.report_type,
            "owner_id": job.owner_id,
            "scope_id": job.scope_id,
            "status": str(job.status),
            "requested_at": job.requested_at,
            "started_at": job.started_at,
            "completed_at": job.completed_at,
            "filename": job.filename,
            "error_message": job.error_message,
            "download_url": download_url,
        }
    )


class ReportCollectionResource:
    """``/reports``: submit requests and list an owner's jobs."""

    def __init__(self, dependencies: ReportResourceDependencies) -> None:
        """Configure the resource with its dependencies."""
        self._service = dependencies.report_service

    async def on_post(self, req: Request, resp: Response) -> None:
        """Submit a report request.

        Raises
        ------
        InvalidInputError
            If the body is not a JSON report request.

        """
        body = await req.stream.read()
        try:
            request = msgspec.json.decode(body, type=ReportRequest)
        except msgspec.DecodeError as exc:
            raise InvalidInputError(str(exc)) from exc

        result = await self._service.submit(request)
        if isinstance(result, QueuedReportResult):
            resp.media = _serialize_queued(result)
            resp.status = falcon.HTTP_202
            return
        resp.media = _serialize_sync(result, request.report_type)
        resp.status = falcon.HTTP_200

    async def on_get(self, req: Request, resp: Response) -> None:
        """List the jobs of the owner named by the ``owner_id`` parameter.

        Raises
        ------
        InvalidInputError
            If ``owner_id`` is missing.
        falcon.HTTPInvalidParam
            If ``limit`` or ``since`` is malformed.

        """
        owner_id = req.get_param("owner_id")
        if not owner_id:
            raise InvalidInputError("owner_id is required", field="owner_id")
        limit = req.get_param_as_int(
            "limit",
            min_value=1,
            max_value=_MAX_LIST_LIMIT,
            default=_DEFAULT_LIST_LIMIT,
        )
        since = req.get_param_as_datetime("since", format_string=_SINCE_FORMAT)
        jobs = await self._service.list_jobs(
            owner_id,
            limit=limit,
            since=since.replace(tzinfo=dt.UTC) if since is not None else None,
            session=req.context.session,
        )
        resp.media = {"jobs": [_serialize_job(job) for job in jobs]}
        resp.status = falcon.HTTP_200


class ReportJobResource:
    """``/reports/{job_id}``: status of a single job."""

    def __init__(self, dependencies: ReportResourceDependencies) -> None:
        """Configure the resource with its dependencies."""
        self._service = dependencies.report_service
        self._downloads = dependencies.downloads

    async def on_get(self, req: Request, resp: Response, *, job_id: str) -> None:
        """Return the job, with a live download link once it has completed."""
        session = req.context.session
        job = await self._service.get_job(job_id, session=session)
        download_url: str | None = None
        if job.status == JobStatus.COMPLETED:
            link = await self._downloads.active_link_for_job(job_id, session=session)
            download_url = link.url if link is not None else None
        resp.media = _serialize_job(job, download_url)
        resp.status = falcon.HTTP_200


class ReportDownloadResource:
    """``/reports/{job_id}/download``: the artifact bytes for the owner."""

    def __init__(self, dependencies: ReportResourceDependencies) -> None:
        """Configure the resource with its dependencies."""
        self._service = dependencies.report_service
        self._object_store = dependencies.object_store

    async def on_get(self, req: Request, resp: Response, *, job_id: str) -> None:
        """Return the artifact as an attachment.

        Raises
        ------
        JobNotFoundError
            If the job does not exist.
        JobAccessDeniedError
            If ``X-Owner-Id`` does not name the job's owner.
        ReportNotReadyError
            If the job has not completed.

        """
        owner_id = req.get_header("X-Owner-Id", required=True)
        job = await self._service.get_owned_job(
            job_id, owner_id, session=req.context.session
        )
        if job.status != JobStatus.COMPLETED or job.artifact_location is None:
            raise ReportNotReadyError(job_id, str(job.status))

        payload = await self._object_store.get(job.artifact_location)
        filename = job.filename or job.artifact_location.rsplit("/", 1)[-1]
        extension = filename.rsplit(".", 1)[-1].lower()
        resp.content_type = _CONTENT_TYPES.get(extension, _DEFAULT_CONTENT_TYPE)
        resp.downloadable_as = filename
        resp.data = payload
        resp.status = falcon.HTTP_200
