"""Errors raised by the download redirect subsystem."""

from __future__ import annotations

from courier.errors import CourierError

GENERIC_LINK_MESSAGE = "Download link is invalid or has expired"


class LinkInvalidOrExpiredError(CourierError):
    """Raised for unknown, malformed, or expired download tokens.

    The message is identical for every cause so callers learn nothing about
    which tokens exist.
    """

    def __init__(self) -> None:
        """Use the single generic message."""
        super().__init__(GENERIC_LINK_MESSAGE)
