"""Request and result types exchanged with the job orchestrator."""

from __future__ import annotations

import dataclasses as dc
import datetime as dt  # noqa: TC003
import typing as typ

import msgspec

if typ.TYPE_CHECKING:
    from courier.handlers.protocol import TabularData


class ReportRequest(msgspec.Struct, kw_only=True, frozen=True):
    """Inbound request for a report.

    ``criteria`` is interpreted only by the strategy registered for
    ``report_type``.
    """

    report_type: str
    owner_id: str
    scope_id: str
    criteria: dict[str, typ.Any] = msgspec.field(default_factory=dict)


@dc.dataclass(frozen=True, slots=True)
class SyncReportResult:
    """Report computed inline and returned to the caller."""

    data: TabularData

    @property
    def total_records(self) -> int:
        """Return the number of generated rows."""
        return self.data.total_records


@dc.dataclass(frozen=True, slots=True)
class QueuedReportResult:
    """Report accepted for asynchronous processing."""

    job_id: str
    estimated_completion: dt.datetime


type SubmissionResult = SyncReportResult | QueuedReportResult
