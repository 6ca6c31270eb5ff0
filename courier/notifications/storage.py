"""Persistence model for notification intents."""

from __future__ import annotations

import datetime as dt  # noqa: TC003
import typing as typ
import uuid

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from courier.common.storage import Base, UTCDateTime
from courier.common.time import utcnow

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


class NotificationIntent(Base):
    """Record of a notification the system attempted to send.

    ``signalled_at`` stays NULL when the channel could not be reached, which
    leaves an audit trail of undelivered notifications.
    """

    __tablename__ = "notification_intents"
    __table_args__ = (Index("ix_notification_intents_job_id", "job_id"),)

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    job_id: Mapped[str] = mapped_column(String(36), nullable=False)
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False)
    scope_id: Mapped[str] = mapped_column(String(128), nullable=False)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    payload: Mapped[str] = mapped_column(Text(), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, nullable=False
    )
    signalled_at: Mapped[dt.datetime | None] = mapped_column(
        UTCDateTime(), default=None
    )


async def init_notification_storage(engine: AsyncEngine) -> None:
    """Create all tables registered with Base if they are absent."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
