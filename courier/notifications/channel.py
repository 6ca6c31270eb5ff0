"""NotificationChannel protocol and the message it carries.

Channels hand a finished-report message to whatever actually reaches the
user. They may raise; the dispatcher contains every failure.
"""

from __future__ import annotations

import typing as typ

import msgspec


class ReportReadyMessage(msgspec.Struct, kw_only=True, frozen=True):
    """Notification that a queued report can be downloaded."""

    event_type: str
    delivery_level: str
    job_id: str
    owner_id: str
    scope_id: str
    report_type: str
    report_name: str
    download_url: str
    expiration_date: str


@typ.runtime_checkable
class NotificationChannel(typ.Protocol):
    """Protocol for delivering ``ReportReadyMessage`` instances."""

    async def send(self, message: ReportReadyMessage) -> None:
        """Deliver ``message`` or raise on failure."""
        ...
