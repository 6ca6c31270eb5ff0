"""Persistence model for opaque download redirect tokens."""

from __future__ import annotations

import datetime as dt  # noqa: TC003
import typing as typ

from sqlalchemy import Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from courier.common.storage import Base, UTCDateTime
from courier.common.time import utcnow

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


class DownloadToken(Base):
    """Opaque handle that resolves to a presigned artifact URL.

    ``expires_at`` never exceeds the expiry of ``target_url``. Rows are
    created once per completed job and removed by the expiry sweep.
    """

    __tablename__ = "download_tokens"
    __table_args__ = (
        Index("ix_download_tokens_expires_at", "expires_at"),
        Index("ix_download_tokens_job_id", "job_id"),
    )

    token: Mapped[str] = mapped_column(String(64), primary_key=True)
    job_id: Mapped[str] = mapped_column(String(36), nullable=False)
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False)
    scope_id: Mapped[str] = mapped_column(String(128), nullable=False)
    target_url: Mapped[str] = mapped_column(Text(), nullable=False)
    expires_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, nullable=False
    )
    access_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_accessed_at: Mapped[dt.datetime | None] = mapped_column(
        UTCDateTime(), default=None
    )


async def init_download_storage(engine: AsyncEngine) -> None:
    """Create all tables registered with Base if they are absent."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
