"""Persistence model for the report job record store."""

from __future__ import annotations

import datetime as dt
import enum
import typing as typ
import uuid

from sqlalchemy import Enum, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from courier.common.storage import Base, UTCDateTime
from courier.common.time import utcnow

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


class JobStatus(enum.StrEnum):
    """Lifecycle states of an asynchronous report job."""

    QUEUED = "QUEUED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


CLAIMABLE_STATUSES = (JobStatus.QUEUED, JobStatus.FAILED)
"""States from which a delivered dispatch message may claim a job."""


class ReportJob(Base):
    """One asynchronous report request and its processing outcome.

    ``criteria`` holds the JSON encoding of the strategy's criteria struct;
    the orchestrator never interprets it. ``artifact_location`` is the object
    store key, never a signed URL, and is only set once the job completes.
    ``dispatched_at`` marks that the dispatch message left the producer.
    """

    __tablename__ = "report_jobs"
    __table_args__ = (
        Index("ix_report_jobs_owner_requested", "owner_id", "requested_at"),
        Index("ix_report_jobs_status_dispatched", "status", "dispatched_at"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False)
    scope_id: Mapped[str] = mapped_column(String(128), nullable=False)
    report_type: Mapped[str] = mapped_column(String(64), nullable=False)
    criteria: Mapped[str] = mapped_column(Text(), nullable=False, default="{}")
    status: Mapped[JobStatus] = mapped_column(
        Enum(
            JobStatus,
            native_enum=False,
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
            validate_strings=True,
            length=16,
        ),
        nullable=False,
        default=JobStatus.QUEUED,
    )
    requested_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, nullable=False
    )
    started_at: Mapped[dt.datetime | None] = mapped_column(UTCDateTime(), default=None)
    completed_at: Mapped[dt.datetime | None] = mapped_column(
        UTCDateTime(), default=None
    )
    dispatched_at: Mapped[dt.datetime | None] = mapped_column(
        UTCDateTime(), default=None
    )
    artifact_location: Mapped[str | None] = mapped_column(String(1024), default=None)
    filename: Mapped[str | None] = mapped_column(String(255), default=None)
    error_message: Mapped[str | None] = mapped_column(Text(), default=None)


async def init_job_storage(engine: AsyncEngine) -> None:
    """Create all tables registered with Base if they are absent."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
