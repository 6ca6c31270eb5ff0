"""Report-ready notifications: intent records and delivery channels."""

from __future__ import annotations

from .channel import NotificationChannel, ReportReadyMessage
from .config import NotificationConfig
from .dispatcher import NotificationDispatcher
from .dramatiq_channel import DramatiqNotificationChannel
from .errors import NotificationConfigError, NotificationError
from .factory import create_notification_channel
from .logging_channel import LoggingNotificationChannel
from .storage import NotificationIntent, init_notification_storage

__all__ = [
    "DramatiqNotificationChannel",
    "LoggingNotificationChannel",
    "NotificationChannel",
    "NotificationConfig",
    "NotificationConfigError",
    "NotificationDispatcher",
    "NotificationError",
    "NotificationIntent",
    "ReportReadyMessage",
    "create_notification_channel",
    "init_notification_storage",
]
