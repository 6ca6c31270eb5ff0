"""Behavioural coverage for the public download redirect."""

from __future__ import annotations

import asyncio
import datetime as dt
import typing as typ
from http import HTTPStatus

import falcon.testing
from pytest_bdd import given, parsers, scenario, then, when

from courier.api.app import AppDependencies, create_app
from courier.common.time import utcnow
from courier.downloads.errors import GENERIC_LINK_MESSAGE
from courier.downloads.service import DownloadGrant
from tests.helpers.pipeline import build_pipeline

if typ.TYPE_CHECKING:
    from falcon.testing.client import Result
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from tests.helpers.pipeline import Pipeline

_FEATURE = "../download_redirect.feature"
_TARGET_URL = "https://store.test/reports/7/job-1/file.xlsx?X-Amz-Signature=abc"


class RedirectContext(typ.TypedDict, total=False):
    """Mutable context shared between steps."""

    pipeline: Pipeline
    client: falcon.testing.TestClient
    token: str
    response: Result


@scenario(_FEATURE, "A valid link redirects to the artifact")
def test_valid_link() -> None:
    """Wrapper for pytest-bdd scenario."""


@scenario(_FEATURE, "An expired link is rejected")
def test_expired_link() -> None:
    """Wrapper for pytest-bdd scenario."""


@scenario(_FEATURE, "An unknown link is rejected")
def test_unknown_link() -> None:
    """Wrapper for pytest-bdd scenario."""


def _context(
    session_factory: async_sessionmaker[AsyncSession],
) -> RedirectContext:
    pipeline = build_pipeline(session_factory)
    deps = AppDependencies(
        session_factory=session_factory,
        report_service=pipeline.service,
        downloads=pipeline.downloads,
        object_store=pipeline.object_store,
    )
    client = falcon.testing.TestClient(create_app(deps))
    return {"pipeline": pipeline, "client": client}


def _issue(
    context: RedirectContext,
    job_id: str,
    issued_at: dt.datetime,
    ttl: dt.timedelta,
) -> str:
    link = asyncio.run(
        context["pipeline"].downloads.issue(
            DownloadGrant(job_id=job_id, owner_id="42", scope_id="7"),
            target_url=_TARGET_URL,
            target_expires_at=issued_at + ttl,
            now=issued_at,
        )
    )
    return link.token


@given(
    parsers.parse('a download link for job "{job_id}" valid for {hours:d} hour'),
    target_fixture="redirect_context",
)
def given_valid_link(
    bdd_session_factory: async_sessionmaker[AsyncSession], job_id: str, hours: int
) -> RedirectContext:
    """Issue a link that is still live."""
    context = _context(bdd_session_factory)
    context["token"] = _issue(context, job_id, utcnow(), dt.timedelta(hours=hours))
    return context


@given(
    parsers.parse('a download link for job "{job_id}" that has expired'),
    target_fixture="redirect_context",
)
def given_expired_link(
    bdd_session_factory: async_sessionmaker[AsyncSession], job_id: str
) -> RedirectContext:
    """Issue a link whose lifetime ended a day ago."""
    context = _context(bdd_session_factory)
    issued_at = utcnow() - dt.timedelta(days=2)
    context["token"] = _issue(context, job_id, issued_at, dt.timedelta(days=1))
    return context


@given("a download service with no links", target_fixture="redirect_context")
def given_no_links(
    bdd_session_factory: async_sessionmaker[AsyncSession],
) -> RedirectContext:
    """Provide the API without issuing any link."""
    return _context(bdd_session_factory)


@when("the link is followed")
def when_follow_link(redirect_context: RedirectContext) -> None:
    """Request the issued token."""
    client = redirect_context["client"]
    redirect_context["response"] = client.simulate_get(
        f"/r/{redirect_context['token']}"
    )


@when(parsers.parse('the token "{token}" is followed'))
def when_follow_token(redirect_context: RedirectContext, token: str) -> None:
    """Request an arbitrary token."""
    client = redirect_context["client"]
    redirect_context["response"] = client.simulate_get(f"/r/{token}")


@then("the response redirects to the artifact URL")
def then_redirects(redirect_context: RedirectContext) -> None:
    """Assert a 302 to the stored presigned URL."""
    response = redirect_context["response"]
    assert response.status_code == HTTPStatus.FOUND, (
        f"expected 302, got {response.status_code}"
    )
    assert response.headers["location"] == _TARGET_URL


@then("the response is the generic not found answer")
def then_generic_not_found(redirect_context: RedirectContext) -> None:
    """Assert the shared 404 body."""
    response = redirect_context["response"]
    assert response.status_code == HTTPStatus.NOT_FOUND
    assert response.json == {"title": "Not found", "description": GENERIC_LINK_MESSAGE}
