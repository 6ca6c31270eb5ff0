"""Factory for building the notification channel from environment settings."""

from __future__ import annotations

import typing as typ

from courier.notifications.config import NotificationConfig
from courier.notifications.logging_channel import LoggingNotificationChannel

if typ.TYPE_CHECKING:
    from courier.notifications.channel import NotificationChannel


def create_notification_channel(
    config: NotificationConfig | None = None,
) -> NotificationChannel:
    """Return the channel selected by ``COURIER_NOTIFICATION_BACKEND``.

    Examples
    --------
    >>> channel = create_notification_channel(NotificationConfig(backend="log"))
    >>> type(channel).__name__
    'LoggingNotificationChannel'

    """
    resolved = config or NotificationConfig.from_env()
    if resolved.backend == "dramatiq":
        from courier.notifications.dramatiq_channel import (
            DramatiqNotificationChannel,
        )

        return DramatiqNotificationChannel(
            queue_name=resolved.queue_name,
            actor_name=resolved.actor_name,
        )
    return LoggingNotificationChannel()
