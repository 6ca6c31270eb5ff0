"""Notification channel that enqueues messages for an external Dramatiq worker.

The delivery worker lives in another service, so messages are addressed by
queue and actor name rather than through a local ``@dramatiq.actor``.
"""

from __future__ import annotations

import asyncio
import typing as typ

import dramatiq
import msgspec

from courier._broker import ensure_broker_configured
from courier.logging import get_logger, log_debug

if typ.TYPE_CHECKING:
    from courier.notifications.channel import ReportReadyMessage

logger = get_logger(__name__)


class DramatiqNotificationChannel:
    """Enqueue notifications on a named queue for a named actor."""

    def __init__(self, *, queue_name: str, actor_name: str) -> None:
        """Address messages to ``actor_name`` on ``queue_name``."""
        self._queue_name = queue_name
        self._actor_name = actor_name

    async def send(self, message: ReportReadyMessage) -> None:
        """Enqueue ``message`` as the single positional actor argument."""
        await asyncio.to_thread(self._enqueue, msgspec.to_builtins(message))

    def _enqueue(self, payload: dict[str, typ.Any]) -> None:
        broker = ensure_broker_configured()
        broker.declare_queue(self._queue_name)
        enqueued = broker.enqueue(
            dramatiq.Message(
                queue_name=self._queue_name,
                actor_name=self._actor_name,
                args=(payload,),
                kwargs={},
                options={},
            )
        )
        log_debug(
            logger,
            "Enqueued notification %s for job %s on %s",
            enqueued.message_id,
            payload["job_id"],
            self._queue_name,
        )
