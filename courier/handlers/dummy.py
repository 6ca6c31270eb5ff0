"""Synthetic report type used to exercise the pipeline end to end."""

from __future__ import annotations

import asyncio
import datetime as dt
import typing as typ

import msgspec

from courier.common.time import utcnow
from courier.handlers.errors import ReportValidationError
from courier.handlers.protocol import CostEstimate, TabularData
from courier.logging import get_logger, log_info

if typ.TYPE_CHECKING:
    from courier.handlers.protocol import CellValue

logger = get_logger(__name__)

DUMMY_REPORT_TYPE = "DUMMY_TEST"
MAX_DUMMY_RECORDS = 1_000_000
# Rows produced per second, used only for duration estimates.
_RECORDS_PER_SECOND = 5000


class DummyReportCriteria(msgspec.Struct, kw_only=True, frozen=True):
    """Criteria for the synthetic report.

    Attributes
    ----------
    record_count
        Number of rows to generate.
    test_parameter
        Free-form value echoed into logs.

    """

    record_count: int = 10_000
    test_parameter: str | None = None


class DummyReportStrategy:
    """Generate ``record_count`` rows of predictable synthetic data."""

    report_type = DUMMY_REPORT_TYPE
    display_name = "Test Report"
    criteria_type = DummyReportCriteria

    def validate(self, criteria: msgspec.Struct) -> None:
        """Reject negative or oversized record counts.

        Raises
        ------
        ReportValidationError
            If ``criteria`` is not a ``DummyReportCriteria`` or its record
            count is outside ``0..1_000_000``.

        """
        if not isinstance(criteria, DummyReportCriteria):
            raise ReportValidationError(
                self.report_type,
                [f"Invalid criteria type for {self.report_type} report"],
            )
        problems: list[str] = []
        if criteria.record_count < 0:
            problems.append("Record count must be non-negative")
        if criteria.record_count > MAX_DUMMY_RECORDS:
            problems.append("Record count cannot exceed 1,000,000")
        if problems:
            raise ReportValidationError(self.report_type, problems)

    async def estimate_cost(self, criteria: msgspec.Struct) -> CostEstimate:
        """Estimate size directly from the requested record count."""
        count = typ.cast("DummyReportCriteria", criteria).record_count
        return CostEstimate(
            record_count=count,
            duration=dt.timedelta(seconds=count / _RECORDS_PER_SECOND),
        )

    async def generate(self, criteria: msgspec.Struct) -> TabularData:
        """Build the synthetic rows off the event loop."""
        dummy = typ.cast("DummyReportCriteria", criteria)
        log_info(
            logger,
            "Generating %s report with %d records (test_parameter=%s)",
            self.report_type,
            dummy.record_count,
            dummy.test_parameter,
        )
        generated_at = utcnow()
        rows = await asyncio.to_thread(_build_rows, dummy.record_count, generated_at)
        return TabularData(
            title="Dummy Test Report",
            columns=("Field 1", "Field 2", "Field 3", "Timestamp"),
            rows=rows,
            generated_at=generated_at,
        )


def _build_rows(
    count: int, timestamp: dt.datetime
) -> tuple[tuple[CellValue, ...], ...]:
    return tuple(
        (f"Field1-{i}", f"Field2-{i}", f"Field3-{i}", timestamp) for i in range(count)
    )
