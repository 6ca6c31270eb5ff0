"""Sync/async routing based on per-report-type thresholds."""

from __future__ import annotations

from .config import ThresholdRouterConfig
from .router import ThresholdLimits, ThresholdRouter
from .storage import ReportThreshold, init_threshold_storage

__all__ = [
    "ReportThreshold",
    "ThresholdLimits",
    "ThresholdRouter",
    "ThresholdRouterConfig",
    "init_threshold_storage",
]
