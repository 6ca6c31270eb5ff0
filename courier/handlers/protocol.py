"""Report generation strategy contract.

Every report type is produced by one strategy. Strategies are stateless:
the worker rebuilds criteria from their JSON encoding, so nothing may leak
from the request that queued the job.

Usage
-----
Check that a strategy satisfies the contract:

>>> from courier.handlers.dummy import DummyReportStrategy
>>> isinstance(DummyReportStrategy(), ReportStrategy)
True

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import msgspec

if typ.TYPE_CHECKING:
    import datetime as dt

type CellValue = str | int | float | bool | dt.datetime | None


@dc.dataclass(frozen=True, slots=True)
class CostEstimate:
    """Predicted size of a report, consumed by the threshold router.

    Attributes
    ----------
    record_count
        Expected number of output rows.
    duration
        Expected generation time.

    """

    record_count: int
    duration: dt.timedelta


@dc.dataclass(frozen=True, slots=True)
class TabularData:
    """Generated report content in a tabular, format-neutral shape.

    Attributes
    ----------
    title
        Human-readable title, used as the sheet name.
    columns
        Column headers.
    rows
        Row values, each aligned with ``columns``.
    generated_at
        Time the data was produced.

    """

    title: str
    columns: tuple[str, ...]
    rows: tuple[tuple[CellValue, ...], ...]
    generated_at: dt.datetime

    @property
    def total_records(self) -> int:
        """Return the number of data rows."""
        return len(self.rows)


@typ.runtime_checkable
class ReportStrategy(typ.Protocol):
    """Protocol implemented by every report type.

    Attributes
    ----------
    report_type
        Registry key, for example ``"DUMMY_TEST"``.
    display_name
        Name shown to users in notifications.
    criteria_type
        msgspec struct describing the accepted criteria.

    """

    report_type: str
    display_name: str
    criteria_type: type[msgspec.Struct]

    def validate(self, criteria: msgspec.Struct) -> None:
        """Raise ``ReportValidationError`` when ``criteria`` are unacceptable."""
        ...

    async def estimate_cost(self, criteria: msgspec.Struct) -> CostEstimate:
        """Return the predicted record count and duration for ``criteria``."""
        ...

    async def generate(self, criteria: msgspec.Struct) -> TabularData:
        """Produce the report data for ``criteria``."""
        ...
