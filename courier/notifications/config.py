"""Configuration for notification delivery."""

from __future__ import annotations

import dataclasses as dc

from courier.config import read_str
from courier.notifications.errors import NotificationConfigError

DEFAULT_EVENT_TYPE = "REPORT_READY_FOR_DOWNLOAD"
DEFAULT_DELIVERY_LEVEL = "IMMEDIATELY"
_VALID_BACKENDS = frozenset({"log", "dramatiq"})


@dc.dataclass(frozen=True, slots=True)
class NotificationConfig:
    """Where and how report-ready notifications are sent.

    Attributes
    ----------
    backend
        ``"log"`` writes notifications to the log; ``"dramatiq"`` enqueues
        them for an external delivery worker.
    queue_name
        Dramatiq queue consumed by the delivery worker.
    actor_name
        Dramatiq actor name the delivery worker registers.
    event_type
        Event identifier placed on every notification.
    delivery_level
        Urgency hint for the delivery worker.

    """

    backend: str = "log"
    queue_name: str = "notifications"
    actor_name: str = "deliver_notification"
    event_type: str = DEFAULT_EVENT_TYPE
    delivery_level: str = DEFAULT_DELIVERY_LEVEL

    @classmethod
    def from_env(cls) -> NotificationConfig:
        """Create configuration from environment variables.

        Reads ``COURIER_NOTIFICATION_BACKEND``,
        ``COURIER_NOTIFICATION_QUEUE``, ``COURIER_NOTIFICATION_ACTOR`` and
        ``COURIER_NOTIFICATION_EVENT_TYPE``.

        Raises
        ------
        NotificationConfigError
            If the backend is neither ``log`` nor ``dramatiq``.

        """
        defaults = cls()
        raw_backend = read_str("COURIER_NOTIFICATION_BACKEND", defaults.backend)
        backend = (raw_backend or defaults.backend).lower()
        if backend not in _VALID_BACKENDS:
            raise NotificationConfigError.invalid_backend(backend)
        return cls(
            backend=backend,
            queue_name=read_str("COURIER_NOTIFICATION_QUEUE", defaults.queue_name)
            or defaults.queue_name,
            actor_name=read_str("COURIER_NOTIFICATION_ACTOR", defaults.actor_name)
            or defaults.actor_name,
            event_type=read_str("COURIER_NOTIFICATION_EVENT_TYPE", defaults.event_type)
            or defaults.event_type,
        )
