"""Request-scoped SQLAlchemy sessions for the Courier API.

Domain requests receive an ``AsyncSession`` on ``req.context.session``. The
unit of work commits when the response status is below 400 and rolls back
otherwise. Health probes and the public redirect route never touch the
database through the request context, so no session is opened for them.
"""

from __future__ import annotations

import typing as typ

from sqlalchemy.exc import SQLAlchemyError

from courier.logging import get_logger, log_error

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

__all__ = ["DEFAULT_EXEMPT_PREFIXES", "SQLAlchemySessionManager"]

logger = get_logger(__name__)

DEFAULT_EXEMPT_PREFIXES: tuple[str, ...] = ("/health", "/ready", "/r/")

_FIRST_ERROR_STATUS = 400


class SQLAlchemySessionManager:
    """Falcon middleware opening one async session per domain request.

    Parameters
    ----------
    session_factory
        Factory producing the per-request ``AsyncSession``.
    exempt_prefixes
        Path prefixes served without a session.

    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        exempt_prefixes: tuple[str, ...] = DEFAULT_EXEMPT_PREFIXES,
    ) -> None:
        """Store the factory and the exempt path prefixes."""
        self._session_factory = session_factory
        self._exempt_prefixes = exempt_prefixes

    async def process_request(self, req: Request, _resp: Response) -> None:
        """Attach a fresh session unless the path is exempt."""
        if req.path.startswith(self._exempt_prefixes):
            return
        req.context.session = self._session_factory()

    async def process_response(
        self,
        req: Request,
        resp: Response,
        _resource: object,
        req_succeeded: bool,  # noqa: FBT001 - Falcon passes this positionally
    ) -> None:
        """Finish the request's unit of work and close the session."""
        session: AsyncSession | None = getattr(req.context, "session", None)
        if session is None:
            return
        commit = req_succeeded and resp.status_code < _FIRST_ERROR_STATUS
        try:
            if session.is_active:
                await (session.commit() if commit else session.rollback())
        except SQLAlchemyError:
            log_error(
                logger,
                "Closing session for %s %s failed",
                req.method,
                req.path,
                exc_info=True,
            )
            if session.is_active:
                await session.rollback()
            raise
        finally:
            await session.close()
