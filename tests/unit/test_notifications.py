"""Tests for best-effort report-ready notifications."""

from __future__ import annotations

import datetime as dt
import typing as typ
from unittest import mock

import dramatiq
import msgspec
import pytest
from dramatiq.brokers.stub import StubBroker
from sqlalchemy import select

from courier import _broker
from courier.downloads import DownloadLink
from courier.jobs.storage import JobStatus, ReportJob
from courier.notifications import (
    DramatiqNotificationChannel,
    LoggingNotificationChannel,
    NotificationConfig,
    NotificationDispatcher,
    NotificationIntent,
    ReportReadyMessage,
    create_notification_channel,
)
from courier.notifications import dispatcher as dispatcher_module
from courier.notifications import logging_channel as logging_channel_module
from tests.helpers.fakes import FailingChannel, RecordingChannel, RecordingLogger

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

EXPIRES = dt.datetime(2024, 7, 8, 9, 30, 15, tzinfo=dt.UTC)
LINK = DownloadLink(
    token="tok", url="https://reports.example.com/r/tok", expires_at=EXPIRES
)


def _job() -> ReportJob:
    return ReportJob(
        id="job-1",
        owner_id="42",
        scope_id="7",
        report_type="DUMMY_TEST",
        criteria="{}",
        status=JobStatus.COMPLETED,
    )


async def _intents(
    session_factory: async_sessionmaker[AsyncSession],
) -> list[NotificationIntent]:
    async with session_factory() as session:
        return list((await session.scalars(select(NotificationIntent))).all())


class TestNotificationDispatcher:
    """Intent persistence and channel signalling."""

    def test_message_carries_link_and_formatted_expiry(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """The message names the report and formats the expiry."""
        dispatcher = NotificationDispatcher(session_factory, RecordingChannel())
        message = dispatcher.build_message(_job(), LINK, "Test Report")
        assert message == ReportReadyMessage(
            event_type="REPORT_READY_FOR_DOWNLOAD",
            delivery_level="IMMEDIATELY",
            job_id="job-1",
            owner_id="42",
            scope_id="7",
            report_type="DUMMY_TEST",
            report_name="Test Report",
            download_url="https://reports.example.com/r/tok",
            expiration_date="2024-07-08 09:30:15",
        )

    @pytest.mark.asyncio
    async def test_successful_notification_is_recorded_and_signalled(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """The intent row is stamped once the channel accepts the message."""
        channel = RecordingChannel()
        dispatcher = NotificationDispatcher(session_factory, channel)

        assert await dispatcher.notify(_job(), LINK, report_name="Test Report")

        assert [m.job_id for m in channel.messages] == ["job-1"]
        [intent] = await _intents(session_factory)
        assert intent.job_id == "job-1"
        assert intent.event_type == "REPORT_READY_FOR_DOWNLOAD"
        assert intent.signalled_at is not None
        payload = msgspec.json.decode(intent.payload)
        assert payload["download_url"] == LINK.url

    @pytest.mark.asyncio
    async def test_channel_failure_is_contained(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A failing channel returns False, logs, and leaves the intent unsignalled."""
        logger = RecordingLogger()
        monkeypatch.setattr(dispatcher_module, "logger", logger)
        channel = FailingChannel()
        dispatcher = NotificationDispatcher(session_factory, channel)

        assert not await dispatcher.notify(_job(), LINK, report_name="Test Report")

        assert channel.attempts == 1
        [intent] = await _intents(session_factory)
        assert intent.signalled_at is None
        errors = logger.messages("ERROR")
        assert len(errors) == 1
        assert "Notification signal failed for job job-1" in errors[0]

    @pytest.mark.asyncio
    async def test_record_failure_skips_channel(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """If the intent cannot be stored nothing is sent and nothing raises."""
        monkeypatch.setattr(dispatcher_module, "logger", RecordingLogger())
        failing_factory = mock.MagicMock(side_effect=RuntimeError("db down"))
        channel = RecordingChannel()
        dispatcher = NotificationDispatcher(failing_factory, channel)

        assert not await dispatcher.notify(_job(), LINK, report_name="Test Report")
        assert channel.messages == []

    @pytest.mark.asyncio
    async def test_custom_event_type(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """The configured event type is used on messages and intents."""
        channel = RecordingChannel()
        dispatcher = NotificationDispatcher(
            session_factory, channel, NotificationConfig(event_type="EXPORT_READY")
        )

        await dispatcher.notify(_job(), LINK, report_name="Test Report")

        assert channel.messages[0].event_type == "EXPORT_READY"
        [intent] = await _intents(session_factory)
        assert intent.event_type == "EXPORT_READY"


@pytest.mark.asyncio
async def test_logging_channel_omits_download_url(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """The log channel never writes the link itself."""
    logger = RecordingLogger()
    monkeypatch.setattr(logging_channel_module, "logger", logger)
    message = NotificationDispatcher(mock.MagicMock(), RecordingChannel()).build_message(
        _job(), LINK, "Test Report"
    )

    await LoggingNotificationChannel().send(message)

    [entry] = logger.messages("INFO")
    assert "job_id=job-1" in entry
    assert LINK.url not in entry
    assert "tok" not in entry


class TestChannelFactory:
    """create_notification_channel backend selection."""

    def test_log_backend(self) -> None:
        """The log backend builds the logging channel."""
        channel = create_notification_channel(NotificationConfig(backend="log"))
        assert isinstance(channel, LoggingNotificationChannel)

    def test_dramatiq_backend(self) -> None:
        """The dramatiq backend builds the queue channel."""
        channel = create_notification_channel(NotificationConfig(backend="dramatiq"))
        assert isinstance(channel, DramatiqNotificationChannel)

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without explicit config the environment decides."""
        monkeypatch.setenv("COURIER_NOTIFICATION_BACKEND", "dramatiq")
        assert isinstance(create_notification_channel(), DramatiqNotificationChannel)


@pytest.fixture
def stub_broker(monkeypatch: pytest.MonkeyPatch) -> typ.Iterator[StubBroker]:
    """Install a fresh StubBroker as the global broker."""
    broker = StubBroker()
    monkeypatch.setattr(_broker, "_broker_configured", True)
    try:
        previous: dramatiq.Broker | None = dramatiq.get_broker()
    except (ImportError, LookupError):
        previous = None
    dramatiq.set_broker(broker)
    try:
        yield broker
    finally:
        if previous is not None:
            dramatiq.set_broker(previous)


@pytest.mark.asyncio
async def test_dramatiq_channel_enqueues_message(stub_broker: StubBroker) -> None:
    """Messages are addressed to the configured queue and actor."""
    channel = DramatiqNotificationChannel(
        queue_name="notifications", actor_name="deliver_notification"
    )
    message = NotificationDispatcher(mock.MagicMock(), RecordingChannel()).build_message(
        _job(), LINK, "Test Report"
    )

    await channel.send(message)

    queue = stub_broker.queues["notifications"]
    assert queue.qsize() == 1
    enqueued = dramatiq.Message.decode(queue.get_nowait())
    assert enqueued.actor_name == "deliver_notification"
    assert enqueued.args[0]["job_id"] == "job-1"
    assert enqueued.args[0]["download_url"] == LINK.url
