"""Root of the Courier error hierarchy."""

from __future__ import annotations


class CourierError(Exception):
    """Base class for all errors raised deliberately by Courier."""


class TimezoneAwareRequiredError(CourierError, ValueError):
    """Raised when a naive datetime is bound to a UTC column."""

    def __init__(self, context: str) -> None:
        """Attach a consistent message for the failing context."""
        super().__init__(f"{context} must be timezone aware")

    @classmethod
    def for_column(cls) -> TimezoneAwareRequiredError:
        """Return an error for a naive value bound to a datetime column."""
        return cls("datetime column values")
