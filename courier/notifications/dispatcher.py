"""Best-effort notification of users whose queued report is ready.

``notify`` persists an intent row and then signals the configured channel.
It never raises: a report that was generated and uploaded stays COMPLETED
even if the user cannot be told about it.
"""

from __future__ import annotations

import typing as typ

import msgspec
from sqlalchemy import update

from courier.common.time import utcnow
from courier.logging import get_logger, log_exception, log_info
from courier.notifications.channel import ReportReadyMessage
from courier.notifications.config import NotificationConfig
from courier.notifications.errors import NotificationError
from courier.notifications.storage import NotificationIntent

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from courier.downloads.service import DownloadLink
    from courier.jobs.storage import ReportJob
    from courier.notifications.channel import NotificationChannel

logger = get_logger(__name__)

_EXPIRATION_FORMAT = "%Y-%m-%d %H:%M:%S"


class NotificationDispatcher:
    """Record and send report-ready notifications."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        channel: NotificationChannel,
        config: NotificationConfig | None = None,
    ) -> None:
        """Configure the dispatcher.

        Parameters
        ----------
        session_factory
            Async session factory used to persist intents.
        channel
            Delivery channel signalled after the intent is stored.
        config
            Event naming; defaults to ``NotificationConfig()``.

        """
        self._session_factory = session_factory
        self._channel = channel
        self._config = config or NotificationConfig()

    def build_message(
        self, job: ReportJob, link: DownloadLink, report_name: str
    ) -> ReportReadyMessage:
        """Return the message announcing ``link`` for ``job``."""
        return ReportReadyMessage(
            event_type=self._config.event_type,
            delivery_level=self._config.delivery_level,
            job_id=job.id,
            owner_id=job.owner_id,
            scope_id=job.scope_id,
            report_type=job.report_type,
            report_name=report_name,
            download_url=link.url,
            expiration_date=link.expires_at.strftime(_EXPIRATION_FORMAT),
        )

    async def notify(
        self, job: ReportJob, link: DownloadLink, *, report_name: str
    ) -> bool:
        """Persist and signal a notification for ``job``.

        Parameters
        ----------
        job
            Completed job the notification concerns.
        link
            Download link included in the notification.
        report_name
            Human-readable report name.

        Returns
        -------
        bool
            True if the channel accepted the message. Every failure is
            logged and reported as False.

        """
        try:
            message = self.build_message(job, link, report_name)
            intent_id = await self._record(message)
        except Exception as exc:  # noqa: BLE001 - notification is best-effort
            self._log_failure(job.id, "record", exc)
            return False

        try:
            await self._channel.send(message)
        except Exception as exc:  # noqa: BLE001 - notification is best-effort
            self._log_failure(job.id, "signal", exc)
            return False

        try:
            await self._mark_signalled(intent_id)
        except Exception as exc:  # noqa: BLE001 - notification is best-effort
            self._log_failure(job.id, "acknowledge", exc)

        log_info(
            logger,
            "Notification %s sent for job %s to owner %s",
            message.event_type,
            job.id,
            job.owner_id,
        )
        return True

    async def _record(self, message: ReportReadyMessage) -> str:
        intent = NotificationIntent(
            job_id=message.job_id,
            owner_id=message.owner_id,
            scope_id=message.scope_id,
            event_type=message.event_type,
            payload=msgspec.json.encode(message).decode("utf-8"),
        )
        async with self._session_factory() as session, session.begin():
            session.add(intent)
            await session.flush()
            return intent.id

    async def _mark_signalled(self, intent_id: str) -> None:
        async with self._session_factory() as session, session.begin():
            await session.execute(
                update(NotificationIntent)
                .where(NotificationIntent.id == intent_id)
                .values(signalled_at=utcnow())
                .execution_options(synchronize_session=False)
            )

    @staticmethod
    def _log_failure(job_id: str, stage: str, exc: BaseException) -> None:
        error = NotificationError.wrapping(job_id, stage, exc)
        log_exception(logger, str(error), exc)
