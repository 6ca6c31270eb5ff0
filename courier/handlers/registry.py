"""Immutable lookup table from report type to generation strategy.

Usage
-----
Build the registry once at startup and share it:

>>> from courier.handlers.dummy import DummyReportStrategy
>>> registry = HandlerRegistry([DummyReportStrategy()])
>>> registry.get("DUMMY_TEST").display_name
'Test Report'

"""

from __future__ import annotations

import types
import typing as typ

from courier.handlers.errors import UnsupportedReportTypeError
from courier.logging import get_logger, log_info, log_warning

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from courier.handlers.protocol import ReportStrategy

logger = get_logger(__name__)


class HandlerRegistry:
    """Read-only mapping of report types to strategies.

    Registrations happen only in the constructor. A report type registered
    twice keeps the last strategy and logs a warning.
    """

    def __init__(self, strategies: cabc.Iterable[ReportStrategy]) -> None:
        """Index ``strategies`` by their report type."""
        table: dict[str, ReportStrategy] = {}
        for strategy in strategies:
            previous = table.get(strategy.report_type)
            if previous is not None:
                log_warning(
                    logger,
                    "Duplicate handler for report type %s: %s replaces %s",
                    strategy.report_type,
                    type(strategy).__name__,
                    type(previous).__name__,
                )
            table[strategy.report_type] = strategy
        self._strategies: typ.Mapping[str, ReportStrategy] = types.MappingProxyType(
            table
        )
        log_info(
            logger,
            "Handler registry initialised with %d report type(s): %s",
            len(table),
            ", ".join(sorted(table)),
        )

    def get(self, report_type: str) -> ReportStrategy:
        """Return the strategy for ``report_type``.

        Raises
        ------
        UnsupportedReportTypeError
            If no strategy is registered for ``report_type``.

        """
        try:
            return self._strategies[report_type]
        except KeyError:
            raise UnsupportedReportTypeError(
                report_type, self._strategies.keys()
            ) from None

    def is_supported(self, report_type: str) -> bool:
        """Return whether a strategy is registered for ``report_type``."""
        return report_type in self._strategies

    def supported_types(self) -> frozenset[str]:
        """Return every registered report type."""
        return frozenset(self._strategies)

    def __len__(self) -> int:
        """Return the number of registered report types."""
        return len(self._strategies)
