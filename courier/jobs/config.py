"""Configuration for job orchestration and processing.

Usage
-----
>>> config = JobsConfig()
>>> config.error_message_limit
1000

"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt

from courier.config import parse_positive_int

DEFAULT_PRESIGN_TTL_SECONDS = 7 * 24 * 60 * 60
DEFAULT_ESTIMATED_COMPLETION_SECONDS = 5 * 60
DEFAULT_ERROR_MESSAGE_LIMIT = 1000
DEFAULT_DISPATCH_GRACE_SECONDS = 60


@dc.dataclass(frozen=True, slots=True)
class JobsConfig:
    """Settings shared by the producer, the worker, and maintenance jobs.

    Attributes
    ----------
    presign_ttl_seconds
        Lifetime of presigned artifact URLs.
    estimated_completion_seconds
        Offset added to the submission time for the completion estimate
        returned with queued jobs.
    error_message_limit
        Maximum stored length of a failure message before truncation.
    dispatch_grace_seconds
        Age a QUEUED job must reach without a dispatch mark before the
        reconciler re-sends it.

    """

    presign_ttl_seconds: int = DEFAULT_PRESIGN_TTL_SECONDS
    estimated_completion_seconds: int = DEFAULT_ESTIMATED_COMPLETION_SECONDS
    error_message_limit: int = DEFAULT_ERROR_MESSAGE_LIMIT
    dispatch_grace_seconds: int = DEFAULT_DISPATCH_GRACE_SECONDS

    @property
    def presign_ttl(self) -> dt.timedelta:
        """Return the presigned URL lifetime."""
        return dt.timedelta(seconds=self.presign_ttl_seconds)

    @property
    def estimated_completion(self) -> dt.timedelta:
        """Return the completion estimate offset."""
        return dt.timedelta(seconds=self.estimated_completion_seconds)

    @property
    def dispatch_grace(self) -> dt.timedelta:
        """Return the reconciler grace period."""
        return dt.timedelta(seconds=self.dispatch_grace_seconds)

    @classmethod
    def from_env(cls) -> JobsConfig:
        """Create configuration from environment variables.

        Reads ``COURIER_PRESIGN_TTL_SECONDS``,
        ``COURIER_ESTIMATED_COMPLETION_SECONDS``,
        ``COURIER_ERROR_MESSAGE_LIMIT`` and
        ``COURIER_DISPATCH_GRACE_SECONDS``.

        Raises
        ------
        ValueError
            If any variable is set to a non-positive or non-integer value.

        """
        return cls(
            presign_ttl_seconds=parse_positive_int(
                "COURIER_PRESIGN_TTL_SECONDS", DEFAULT_PRESIGN_TTL_SECONDS
            ),
            estimated_completion_seconds=parse_positive_int(
                "COURIER_ESTIMATED_COMPLETION_SECONDS",
                DEFAULT_ESTIMATED_COMPLETION_SECONDS,
            ),
            error_message_limit=parse_positive_int(
                "COURIER_ERROR_MESSAGE_LIMIT", DEFAULT_ERROR_MESSAGE_LIMIT
            ),
            dispatch_grace_seconds=parse_positive_int(
                "COURIER_DISPATCH_GRACE_SECONDS", DEFAULT_DISPATCH_GRACE_SECONDS
            ),
        )
