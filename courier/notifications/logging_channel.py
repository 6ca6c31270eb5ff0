"""Notification channel that only writes to the log.

Intended for local development where no delivery worker is running.
"""

from __future__ import annotations

import typing as typ

from courier.logging import get_logger, log_info

if typ.TYPE_CHECKING:
    from courier.notifications.channel import ReportReadyMessage

logger = get_logger(__name__)


class LoggingNotificationChannel:
    """Log each notification instead of delivering it."""

    async def send(self, message: ReportReadyMessage) -> None:
        """Log the notification summary; the download link is never logged."""
        log_info(
            logger,
            "[%s] job_id=%s owner_id=%s report=%r expires=%s",
            message.event_type,
            message.job_id,
            message.owner_id,
            message.report_name,
            message.expiration_date,
        )
