"""Errors raised while resolving, validating, or running report strategies."""

from __future__ import annotations

import typing as typ

from courier.errors import CourierError

if typ.TYPE_CHECKING:
    import collections.abc as cabc


class ReportValidationError(CourierError):
    """Raised when report criteria are malformed or out of range.

    Attributes
    ----------
    report_type
        Report type whose criteria failed validation.
    problems
        Individual validation problems, in the order they were found.

    """

    def __init__(self, report_type: str, problems: cabc.Sequence[str]) -> None:
        """Record the failing report type and its validation problems."""
        self.report_type = report_type
        self.problems = tuple(problems)
        super().__init__(", ".join(self.problems) or "Invalid report criteria")

    @classmethod
    def undecodable(cls, report_type: str, detail: str) -> ReportValidationError:
        """Return an error for criteria that do not match the expected shape."""
        return cls(report_type, [f"Invalid criteria for {report_type}: {detail}"])


class UnsupportedReportTypeError(CourierError):
    """Raised when no strategy is registered for a report type."""

    def __init__(self, report_type: str, supported: cabc.Iterable[str]) -> None:
        """Name the requested type and every type that is supported."""
        self.report_type = report_type
        self.supported = tuple(sorted(supported))
        available = ", ".join(self.supported) or "none"
        super().__init__(
            f"No handler registered for report type: {report_type}. "
            f"Available types: {available}"
        )


class ReportGenerationError(CourierError):
    """Raised when a strategy fails to produce report data."""

    def __init__(self, report_type: str, detail: str) -> None:
        """Record the report type and a description of the failure."""
        self.report_type = report_type
        super().__init__(f"Failed to generate {report_type} report: {detail}")

    @classmethod
    def wrapping(
        cls, report_type: str, error: BaseException
    ) -> ReportGenerationError:
        """Return an error describing ``error`` raised by a strategy."""
        detail = str(error) or type(error).__name__
        return cls(report_type, detail)
