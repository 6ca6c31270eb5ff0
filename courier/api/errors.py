"""API-level exceptions and Falcon error handlers.

Domain errors raised by the orchestrator, the download redirect, and the
strategies are translated here into JSON bodies of the form
``{"title": ..., "description": ...}``.

Usage
-----
Register every handler on the Falcon app::

    from courier.api.errors import register_error_handlers

    register_error_handlers(app)

"""

from __future__ import annotations

import typing as typ

import falcon

from courier.downloads.errors import GENERIC_LINK_MESSAGE, LinkInvalidOrExpiredError
from courier.handlers.errors import (
    ReportGenerationError,
    ReportValidationError,
    UnsupportedReportTypeError,
)
from courier.jobs.errors import (
    JobAccessDeniedError,
    JobNotFoundError,
    ReportNotReadyError,
)
from courier.logging import get_logger, log_exception

if typ.TYPE_CHECKING:
    from falcon.asgi import App, Request, Response

__all__ = [
    "InvalidInputError",
    "handle_access_denied",
    "handle_generation_failed",
    "handle_invalid_input",
    "handle_job_not_found",
    "handle_link_invalid",
    "handle_not_ready",
    "handle_unsupported_report_type",
    "handle_validation_failed",
    "register_error_handlers",
]

logger = get_logger(__name__)


class InvalidInputError(Exception):
    """Raised for malformed requests that should map to HTTP 400.

    Attributes
    ----------
    reason
        Human-readable description of the problem.
    field
        Optional name of the input field at fault.

    """

    def __init__(self, reason: str, *, field: str | None = None) -> None:
        """Initialize with a validation reason and optional field name."""
        self.reason = reason
        self.field = field
        message = f"{field}: {reason}" if field is not None else reason
        super().__init__(message)


async def handle_invalid_input(
    _req: Request,
    resp: Response,
    ex: InvalidInputError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``InvalidInputError`` to an HTTP 400 JSON response."""
    resp.status = falcon.HTTP_400
    media: dict[str, str] = {"title": "Invalid input", "description": ex.reason}
    if ex.field is not None:
        media["field"] = ex.field
    resp.media = media


async def handle_validation_failed(
    _req: Request,
    resp: Response,
    ex: ReportValidationError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``ReportValidationError`` to HTTP 400 listing every problem."""
    resp.status = falcon.HTTP_400
    resp.media = {
        "title": "Invalid report criteria",
        "description": str(ex),
        "problems": list(ex.problems),
    }


async def handle_unsupported_report_type(
    _req: Request,
    resp: Response,
    ex: UnsupportedReportTypeError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``UnsupportedReportTypeError`` to HTTP 400."""
    resp.status = falcon.HTTP_400
    resp.media = {"title": "Unsupported report type", "description": str(ex)}


async def handle_job_not_found(
    _req: Request,
    resp: Response,
    ex: JobNotFoundError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``JobNotFoundError`` to HTTP 404."""
    resp.status = falcon.HTTP_404
    resp.media = {"title": "Report job not found", "description": str(ex)}


async def handle_access_denied(
    _req: Request,
    resp: Response,
    ex: JobAccessDeniedError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``JobAccessDeniedError`` to HTTP 403."""
    resp.status = falcon.HTTP_403
    resp.media = {"title": "Forbidden", "description": str(ex)}


async def handle_not_ready(
    _req: Request,
    resp: Response,
    ex: ReportNotReadyError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``ReportNotReadyError`` to HTTP 409 with the current status."""
    resp.status = falcon.HTTP_409
    resp.media = {
        "title": "Report not ready",
        "description": str(ex),
        "status": ex.status,
    }


async def handle_link_invalid(
    _req: Request,
    resp: Response,
    _ex: LinkInvalidOrExpiredError,
    _params: dict[str, typ.Any],
) -> None:
    """Map every redirect failure to the same HTTP 404 body.

    Unknown, expired, and malformed tokens must be indistinguishable.
    """
    resp.status = falcon.HTTP_404
    resp.media = {"title": "Not found", "description": GENERIC_LINK_MESSAGE}


async def handle_generation_failed(
    _req: Request,
    resp: Response,
    ex: ReportGenerationError,
    _params: dict[str, typ.Any],
) -> None:
    """Map inline ``ReportGenerationError`` to HTTP 500 and log the cause."""
    log_exception(logger, f"Inline generation of {ex.report_type} failed", ex)
    resp.status = falcon.HTTP_500
    resp.media = {
        "title": "Report generation failed",
        "description": f"The {ex.report_type} report could not be generated.",
    }


def register_error_handlers(app: App) -> None:
    """Attach every Courier error handler to ``app``."""
    app.add_error_handler(InvalidInputError, handle_invalid_input)
    app.add_error_handler(ReportValidationError, handle_validation_failed)
    app.add_error_handler(UnsupportedReportTypeError, handle_unsupported_report_type)
    app.add_error_handler(JobNotFoundError, handle_job_not_found)
    app.add_error_handler(JobAccessDeniedError, handle_access_denied)
    app.add_error_handler(ReportNotReadyError, handle_not_ready)
    app.add_error_handler(LinkInvalidOrExpiredError, handle_link_invalid)
    app.add_error_handler(ReportGenerationError, handle_generation_failed)
