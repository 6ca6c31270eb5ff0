"""Configuration for sync/async routing thresholds.

Usage
-----
>>> config = ThresholdRouterConfig()
>>> config.default_max_records
5000

"""

from __future__ import annotations

import dataclasses as dc

from courier.config import parse_positive_int

DEFAULT_MAX_RECORDS = 5000
DEFAULT_MAX_DURATION_SECONDS = 10
DEFAULT_CACHE_TTL_SECONDS = 300


@dc.dataclass(frozen=True, slots=True)
class ThresholdRouterConfig:
    """Fallback bounds and cache lifetime for the threshold router.

    Attributes
    ----------
    default_max_records
        Record bound used when a report type has no stored configuration.
    default_max_duration_seconds
        Duration bound used when a report type has no stored configuration.
    cache_ttl_seconds
        Seconds a looked-up configuration stays cached.

    """

    default_max_records: int = DEFAULT_MAX_RECORDS
    default_max_duration_seconds: int = DEFAULT_MAX_DURATION_SECONDS
    cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS

    @classmethod
    def from_env(cls) -> ThresholdRouterConfig:
        """Create configuration from environment variables.

        Reads ``COURIER_THRESHOLD_DEFAULT_MAX_RECORDS``,
        ``COURIER_THRESHOLD_DEFAULT_MAX_DURATION_SECONDS`` and
        ``COURIER_THRESHOLD_CACHE_TTL_SECONDS``; each must be a positive
        integer.

        Raises
        ------
        ValueError
            If any variable is set to a non-positive or non-integer value.

        """
        return cls(
            default_max_records=parse_positive_int(
                "COURIER_THRESHOLD_DEFAULT_MAX_RECORDS", DEFAULT_MAX_RECORDS
            ),
            default_max_duration_seconds=parse_positive_int(
                "COURIER_THRESHOLD_DEFAULT_MAX_DURATION_SECONDS",
                DEFAULT_MAX_DURATION_SECONDS,
            ),
            cache_ttl_seconds=parse_positive_int(
                "COURIER_THRESHOLD_CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS
            ),
        )
