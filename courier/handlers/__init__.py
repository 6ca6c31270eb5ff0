"""Report generation strategies and the registry that resolves them."""

from __future__ import annotations

from .dummy import DUMMY_REPORT_TYPE, DummyReportCriteria, DummyReportStrategy
from .errors import (
    ReportGenerationError,
    ReportValidationError,
    UnsupportedReportTypeError,
)
from .protocol import CostEstimate, ReportStrategy, TabularData
from .registry import HandlerRegistry


def build_default_registry() -> HandlerRegistry:
    """Return a registry holding every strategy shipped with Courier."""
    return HandlerRegistry([DummyReportStrategy()])


__all__ = [
    "DUMMY_REPORT_TYPE",
    "CostEstimate",
    "DummyReportCriteria",
    "DummyReportStrategy",
    "HandlerRegistry",
    "ReportGenerationError",
    "ReportStrategy",
    "ReportValidationError",
    "TabularData",
    "UnsupportedReportTypeError",
    "build_default_registry",
]
