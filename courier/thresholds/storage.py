"""Persistence model for per-report-type routing thresholds."""

from __future__ import annotations

import datetime as dt  # noqa: TC003
import typing as typ

from sqlalchemy import CheckConstraint, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from courier.common.storage import Base, UTCDateTime
from courier.common.time import utcnow

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


class ReportThreshold(Base):
    """Largest request a report type may serve inline."""

    __tablename__ = "threshold_configs"
    __table_args__ = (
        CheckConstraint("max_records > 0", name="ck_threshold_max_records_positive"),
        CheckConstraint(
            "max_duration_seconds > 0",
            name="ck_threshold_max_duration_positive",
        ),
    )

    report_type: Mapped[str] = mapped_column(String(64), primary_key=True)
    max_records: Mapped[int] = mapped_column(Integer, nullable=False)
    max_duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(Text(), default=None)
    updated_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow, nullable=False
    )


async def init_threshold_storage(engine: AsyncEngine) -> None:
    """Create all tables registered with Base if they are absent."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
