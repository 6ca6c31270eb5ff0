"""Issue and redeem opaque download tokens.

Presigned object-store URLs are long, signed, and easily broken by mail
gateways that rewrite links. Users receive a short ``/r/{token}`` link
instead; the token is a random lookup key into ``download_tokens`` and the
redirect endpoint resolves it to the presigned URL only while it is live.

Usage
-----
>>> service = DownloadTokenService(session_factory, DownloadConfig())
>>> link = await service.issue(
...     DownloadGrant(job_id=job.id, owner_id="42", scope_id="7"),
...     target_url=presigned_url,
...     target_expires_at=presign_expiry,
... )
>>> await service.redeem(link.token) == presigned_url
True

"""

from __future__ import annotations

import contextlib
import dataclasses as dc
import datetime as dt
import secrets
import typing as typ

from sqlalchemy import delete, select, update

from courier.common.time import utcnow
from courier.downloads.config import DownloadConfig
from courier.downloads.errors import LinkInvalidOrExpiredError
from courier.downloads.storage import DownloadToken
from courier.logging import get_logger, log_debug, log_info

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = get_logger(__name__)

# 32 random bytes encode to 43 URL-safe characters.
_TOKEN_BYTES = 32
_MIN_TOKEN_LENGTH = 32
_MAX_TOKEN_LENGTH = 64


@dc.dataclass(frozen=True, slots=True)
class DownloadGrant:
    """Who a download token is issued to, and for which job."""

    job_id: str
    owner_id: str
    scope_id: str


@dc.dataclass(frozen=True, slots=True)
class DownloadLink:
    """A freshly issued or still-valid download link.

    Attributes
    ----------
    token
        Opaque handle stored in ``download_tokens``.
    url
        Public redirect URL embedding ``token``.
    expires_at
        Instant after which the link stops resolving.

    """

    token: str
    url: str
    expires_at: dt.datetime


def _looks_like_token(token: str) -> bool:
    return _MIN_TOKEN_LENGTH <= len(token) <= _MAX_TOKEN_LENGTH and all(
        ch.isalnum() or ch in "-_" for ch in token
    )


class DownloadTokenService:
    """Random-token table lookup in front of presigned URLs."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        config: DownloadConfig | None = None,
    ) -> None:
        """Configure the service with a session factory and link settings."""
        self._session_factory = session_factory
        self._config = config or DownloadConfig()

    def link_for(self, token: str) -> str:
        """Return the public redirect URL for ``token``."""
        return f"{self._config.public_base_url}/r/{token}"

    async def issue(
        self,
        grant: DownloadGrant,
        *,
        target_url: str,
        target_expires_at: dt.datetime,
        now: dt.datetime | None = None,
        session: AsyncSession | None = None,
    ) -> DownloadLink:
        """Persist a new token that redirects to ``target_url``.

        Parameters
        ----------
        grant
            Job and recipient the link belongs to.
        target_url
            Presigned URL the token resolves to.
        target_expires_at
            Expiry of ``target_url``; caps the token expiry.
        now
            Issue time; defaults to the current time.
        session
            Open transaction to write the token in; the caller commits it.
            When omitted the token is committed on its own.

        Returns
        -------
        DownloadLink
            The token, its public URL, and its expiry.

        """
        issued_at = now or utcnow()
        expires_at = min(
            issued_at + dt.timedelta(seconds=self._config.token_ttl_seconds),
            target_expires_at,
        )
        token = secrets.token_urlsafe(_TOKEN_BYTES)
        row = DownloadToken(
            token=token,
            job_id=grant.job_id,
            owner_id=grant.owner_id,
            scope_id=grant.scope_id,
            target_url=target_url,
            expires_at=expires_at,
            created_at=issued_at,
        )
        if session is None:
            async with self._session_factory() as own_session, own_session.begin():
                own_session.add(row)
        else:
            session.add(row)
            await session.flush()
        log_info(
            logger,
            "Issued download token for job %s expiring %s",
            grant.job_id,
            expires_at.isoformat(),
        )
        return DownloadLink(
            token=token, url=self.link_for(token), expires_at=expires_at
        )

    async def redeem(self, token: str, *, now: dt.datetime | None = None) -> str:
        """Resolve ``token`` to its target URL and record the access.

        The access counter is incremented in SQL so concurrent redemptions
        never lose updates.

        Raises
        ------
        LinkInvalidOrExpiredError
            If the token is malformed, unknown, expired, or was swept while
            being redeemed.

        """
        if not _looks_like_token(token):
            raise LinkInvalidOrExpiredError
        accessed_at = now or utcnow()
        async with self._session_factory() as session, session.begin():
            row = (
                await session.execute(
                    select(DownloadToken.target_url, DownloadToken.expires_at).where(
                        DownloadToken.token == token
                    )
                )
            ).one_or_none()
            if row is None or row.expires_at <= accessed_at:
                log_debug(logger, "Rejected unknown or expired download token")
                raise LinkInvalidOrExpiredError

            result = await session.execute(
                update(DownloadToken)
                .where(
                    DownloadToken.token == token,
                    DownloadToken.expires_at > accessed_at,
                )
                .values(
                    access_count=DownloadToken.access_count + 1,
                    last_accessed_at=accessed_at,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise LinkInvalidOrExpiredError
        return row.target_url

    async def active_link_for_job(
        self,
        job_id: str,
        *,
        now: dt.datetime | None = None,
        session: AsyncSession | None = None,
    ) -> DownloadLink | None:
        """Return the longest-lived unexpired link for ``job_id``, if any.

        Reads through ``session`` when one is given.
        """
        current = now or utcnow()
        reading = (
            contextlib.nullcontext(session)
            if session is not None
            else self._session_factory()
        )
        async with reading as reader:
            row = await reader.scalar(
                select(DownloadToken)
                .where(
                    DownloadToken.job_id == job_id,
                    DownloadToken.expires_at > current,
                )
                .order_by(DownloadToken.expires_at.desc())
                .limit(1)
            )
        if row is None:
            return None
        return DownloadLink(
            token=row.token, url=self.link_for(row.token), expires_at=row.expires_at
        )

    async def sweep_expired(self, *, now: dt.datetime | None = None) -> int:
        """Delete every token whose expiry has passed.

        Returns
        -------
        int
            Number of rows removed; zero when nothing had expired.

        """
        cutoff = now or utcnow()
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                delete(DownloadToken)
                .where(DownloadToken.expires_at <= cutoff)
                .execution_options(synchronize_session=False)
            )
        removed = result.rowcount or 0
        log_info(logger, "Swept %d expired download token(s)", removed)
        return removed

    async def revoke_for_job(self, job_id: str) -> int:
        """Delete every token issued for ``job_id`` and return the count."""
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                delete(DownloadToken)
                .where(DownloadToken.job_id == job_id)
                .execution_options(synchronize_session=False)
            )
        return result.rowcount or 0
