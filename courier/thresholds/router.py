"""Decide whether a report request is served inline or queued.

The router reads per-report-type limits from ``threshold_configs`` through a
small time-bounded cache. Missing rows and database failures both fall back
to the configured defaults, so routing never raises.

Usage
-----
>>> router = ThresholdRouter(session_factory)
>>> await router.should_route_async("DUMMY_TEST", 50_000, dt.timedelta(seconds=2))
True

"""

from __future__ import annotations

import dataclasses as dc
import threading
import time
import typing as typ

from sqlalchemy.exc import SQLAlchemyError

from courier.logging import get_logger, log_debug, log_warning
from courier.thresholds.config import ThresholdRouterConfig
from courier.thresholds.storage import ReportThreshold

if typ.TYPE_CHECKING:
    import datetime as dt

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = get_logger(__name__)


@dc.dataclass(frozen=True, slots=True)
class ThresholdLimits:
    """Effective bounds for one report type.

    Attributes
    ----------
    max_records
        Largest record count served inline.
    max_duration_seconds
        Longest estimated duration served inline.
    is_default
        True when no stored configuration was found.

    """

    max_records: int
    max_duration_seconds: int
    is_default: bool = False

    def exceeded_by(self, record_count: int, duration: dt.timedelta) -> bool:
        """Return True when either estimate is above its bound."""
        return (
            record_count > self.max_records
            or duration.total_seconds() > self.max_duration_seconds
        )


class ThresholdRouter:
    """Route requests by comparing cost estimates with stored limits."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        config: ThresholdRouterConfig | None = None,
        clock: typ.Callable[[], float] = time.monotonic,
    ) -> None:
        """Configure the router.

        Parameters
        ----------
        session_factory
            Async session factory used to read ``threshold_configs``.
        config
            Default bounds and cache lifetime; defaults to
            ``ThresholdRouterConfig()``.
        clock
            Monotonic clock returning seconds, replaceable in tests.

        """
        self._session_factory = session_factory
        self._config = config or ThresholdRouterConfig()
        self._clock = clock
        self._cache: dict[str, tuple[ThresholdLimits, float]] = {}
        self._lock = threading.Lock()

    @property
    def defaults(self) -> ThresholdLimits:
        """Return the fallback limits."""
        return ThresholdLimits(
            max_records=self._config.default_max_records,
            max_duration_seconds=self._config.default_max_duration_seconds,
            is_default=True,
        )

    async def should_route_async(
        self,
        report_type: str,
        estimated_record_count: int,
        estimated_duration: dt.timedelta,
    ) -> bool:
        """Return True when the request must be processed asynchronously.

        Parameters
        ----------
        report_type
            Report type whose limits apply.
        estimated_record_count
            Predicted number of output rows.
        estimated_duration
            Predicted generation time.

        Returns
        -------
        bool
            True if either estimate exceeds its limit.

        """
        limits = await self.limits_for(report_type)
        route_async = limits.exceeded_by(estimated_record_count, estimated_duration)
        log_debug(
            logger,
            "Routing %s records=%d duration=%.3fs max_records=%d "
            "max_duration=%ds default=%s async=%s",
            report_type,
            estimated_record_count,
            estimated_duration.total_seconds(),
            limits.max_records,
            limits.max_duration_seconds,
            limits.is_default,
            route_async,
        )
        return route_async

    async def limits_for(self, report_type: str) -> ThresholdLimits:
        """Return cached or freshly loaded limits for ``report_type``."""
        now = self._clock()
        with self._lock:
            cached = self._cache.get(report_type)
        if cached is not None and cached[1] > now:
            return cached[0]

        try:
            limits = await self._load(report_type)
        except SQLAlchemyError as exc:
            log_warning(
                logger,
                "Threshold lookup for %s failed; using defaults: %s",
                report_type,
                exc,
            )
            return self.defaults

        with self._lock:
            self._cache[report_type] = (limits, now + self._config.cache_ttl_seconds)
        return limits

    def invalidate(self, report_type: str | None = None) -> None:
        """Drop cached limits for one report type, or all of them."""
        with self._lock:
            if report_type is None:
                self._cache.clear()
            else:
                self._cache.pop(report_type, None)

    async def _load(self, report_type: str) -> ThresholdLimits:
        async with self._session_factory() as session:
            row = await session.get(ReportThreshold, report_type)
        if row is None:
            log_debug(
                logger, "No threshold configured for %s; using defaults", report_type
            )
            return self.defaults
        return ThresholdLimits(
            max_records=row.max_records,
            max_duration_seconds=row.max_duration_seconds,
        )
