"""Tests for idempotent worker-side processing of report jobs."""

from __future__ import annotations

import asyncio
import typing as typ

import pytest
from dramatiq.middleware import TimeLimitExceeded
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from courier.common.text import TRUNCATION_MARKER
from courier.downloads.config import DownloadConfig
from courier.downloads.service import DownloadTokenService
from courier.downloads.storage import DownloadToken
from courier.handlers import DummyReportStrategy
from courier.jobs import (
    JobProcessingError,
    JobsConfig,
    JobStatus,
    PermanentJobError,
    ProcessOutcome,
    QueuedReportResult,
    ReportJob,
    ReportRequest,
)
from courier.jobs import processor as processor_module
from courier.notifications.storage import NotificationIntent
from tests.helpers.fakes import (
    FAILING_REPORT_TYPE,
    SIGNED_QUERY,
    FailingChannel,
    FailingReportStrategy,
    InMemoryObjectStore,
    RecordingChannel,
    RecordingLogger,
)
from tests.helpers.pipeline import INLINE_MAX_RECORDS, PUBLIC_BASE_URL, build_pipeline

if typ.TYPE_CHECKING:
    import msgspec
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from courier.downloads.service import DownloadLink
    from courier.handlers.protocol import TabularData
    from tests.helpers.pipeline import Pipeline

type SessionFactory = async_sessionmaker[AsyncSession]

QUEUED_COUNT = INLINE_MAX_RECORDS + 5


class FlakyDummyStrategy(DummyReportStrategy):
    """Synthetic strategy that fails its first ``failures`` generations."""

    def __init__(
        self, failures: int = 1, error: BaseException | None = None
    ) -> None:
        self.failures = failures
        self.error = error or TimeoutError("warehouse timeout")

    async def generate(self, criteria: msgspec.Struct) -> TabularData:
        if self.failures > 0:
            self.failures -= 1
            raise self.error
        return await super().generate(criteria)


async def _queue(pipeline: Pipeline, report_type: str = "DUMMY_TEST") -> str:
    result = await pipeline.service.submit(
        ReportRequest(
            report_type=report_type,
            owner_id="42",
            scope_id="7",
            criteria={"record_count": QUEUED_COUNT},
        )
    )
    assert isinstance(result, QueuedReportResult)
    return result.job_id


async def _insert_job(
    session_factory: SessionFactory,
    *,
    job_id: str,
    status: JobStatus = JobStatus.QUEUED,
    report_type: str = "DUMMY_TEST",
    criteria: str = '{"record_count": 3}',
) -> None:
    async with session_factory() as session, session.begin():
        session.add(
            ReportJob(
                id=job_id,
                owner_id="42",
                scope_id="7",
                report_type=report_type,
                criteria=criteria,
                status=status,
            )
        )


async def _job(session_factory: SessionFactory, job_id: str) -> ReportJob:
    async with session_factory() as session:
        job = await session.get(ReportJob, job_id)
    assert job is not None
    return job


async def _tokens(session_factory: SessionFactory) -> list[DownloadToken]:
    async with session_factory() as session:
        return list((await session.scalars(select(DownloadToken))).all())


class TestSuccessfulProcessing:
    """A claimed job runs to COMPLETED exactly once."""

    @pytest.mark.asyncio
    async def test_completes_job_and_notifies_owner(
        self, session_factory: SessionFactory
    ) -> None:
        """The artifact is stored, linked, and announced."""
        channel = RecordingChannel()
        pipeline = build_pipeline(session_factory, channel=channel)
        job_id = await _queue(pipeline)

        outcome = await pipeline.processor.process(job_id)

        assert outcome is ProcessOutcome.COMPLETED
        job = await _job(session_factory, job_id)
        expected_key = f"reports/7/{job_id}/DUMMY_TEST_{job_id}.xlsx"
        assert job.status == JobStatus.COMPLETED
        assert job.artifact_location == expected_key
        assert job.filename == f"DUMMY_TEST_{job_id}.xlsx"
        assert job.started_at is not None
        assert job.completed_at is not None
        assert job.completed_at >= job.started_at
        assert job.error_message is None
        assert expected_key in pipeline.object_store.objects

        (message,) = channel.messages
        assert message.job_id == job_id
        assert message.owner_id == "42"
        assert message.report_name == "Test Report"
        assert message.download_url.startswith(f"{PUBLIC_BASE_URL}/r/")
        assert SIGNED_QUERY not in message.download_url

        (token,) = await _tokens(session_factory)
        assert token.job_id == job_id
        assert token.target_url == pipeline.object_store.presigned[0]

    @pytest.mark.asyncio
    async def test_signed_url_is_masked_in_logs(
        self, session_factory: SessionFactory, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Presigned query strings never reach the log."""
        logger = RecordingLogger()
        monkeypatch.setattr(processor_module, "logger", logger)
        pipeline = build_pipeline(session_factory)
        job_id = await _queue(pipeline)

        await pipeline.processor.process(job_id)

        stored = [msg for msg in logger.messages("INFO") if "presigned" in msg]
        assert len(stored) == 1
        assert "?[MASKED]" in stored[0]
        assert all(SIGNED_QUERY not in msg for _, msg, _ in logger.calls)

    @pytest.mark.asyncio
    async def test_redelivery_after_completion_is_a_no_op(
        self, session_factory: SessionFactory
    ) -> None:
        """A duplicate message leaves the completed job untouched."""
        channel = RecordingChannel()
        pipeline = build_pipeline(session_factory, channel=channel)
        job_id = await _queue(pipeline)
        await pipeline.processor.process(job_id)
        first = await _job(session_factory, job_id)

        outcome = await pipeline.processor.process(job_id)

        assert outcome is ProcessOutcome.ALREADY_COMPLETED
        again = await _job(session_factory, job_id)
        assert again.completed_at == first.completed_at
        assert len(pipeline.object_store.presigned) == 1
        assert len(channel.messages) == 1
        assert len(await _tokens(session_factory)) == 1

    @pytest.mark.asyncio
    async def test_concurrent_deliveries_complete_once(
        self, session_factory: SessionFactory
    ) -> None:
        """Only one of two simultaneous deliveries does the work."""
        channel = RecordingChannel()
        pipeline = build_pipeline(session_factory, channel=channel)
        job_id = await _queue(pipeline)

        outcomes = await asyncio.gather(
            pipeline.processor.process(job_id),
            pipeline.processor.process(job_id),
        )

        assert outcomes.count(ProcessOutcome.COMPLETED) == 1
        assert len(channel.messages) == 1
        assert len(pipeline.object_store.objects) == 1


class TestSkippedDeliveries:
    """Deliveries that must not touch the job."""

    @pytest.mark.asyncio
    async def test_unknown_job_is_dropped(
        self, session_factory: SessionFactory
    ) -> None:
        """A message for a missing row is acknowledged without work."""
        pipeline = build_pipeline(session_factory)

        outcome = await pipeline.processor.process("no-such-job")

        assert outcome is ProcessOutcome.MISSING
        assert pipeline.object_store.objects == {}

    @pytest.mark.asyncio
    async def test_processing_job_is_left_alone(
        self, session_factory: SessionFactory
    ) -> None:
        """A job already claimed by another delivery is skipped."""
        pipeline = build_pipeline(session_factory)
        await _insert_job(session_factory, job_id="busy", status=JobStatus.PROCESSING)

        outcome = await pipeline.processor.process("busy")

        assert outcome is ProcessOutcome.IN_PROGRESS
        job = await _job(session_factory, "busy")
        assert job.status == JobStatus.PROCESSING
        assert pipeline.object_store.objects == {}


class TestFailures:
    """Failed runs are recorded and re-raised."""

    @pytest.mark.asyncio
    async def test_generation_failure_marks_job_failed(
        self, session_factory: SessionFactory
    ) -> None:
        """The job ends FAILED with the error and the exception propagates."""
        channel = RecordingChannel()
        pipeline = build_pipeline(
            session_factory, strategies=[FailingReportStrategy()], channel=channel
        )
        job_id = await _queue(pipeline, FAILING_REPORT_TYPE)

        with pytest.raises(JobProcessingError) as excinfo:
            await pipeline.processor.process(job_id)

        assert not isinstance(excinfo.value, PermanentJobError)
        assert excinfo.value.job_id == job_id
        job = await _job(session_factory, job_id)
        assert job.status == JobStatus.FAILED
        assert job.error_message == (
            "Failed to generate FAILING_TEST report: upstream data source unavailable"
        )
        assert job.completed_at is not None
        assert job.artifact_location is None
        assert channel.messages == []
        assert await _tokens(session_factory) == []

    @pytest.mark.asyncio
    async def test_long_error_message_is_truncated(
        self, session_factory: SessionFactory
    ) -> None:
        """Stored failure messages respect the configured limit."""
        pipeline = build_pipeline(
            session_factory,
            strategies=[FailingReportStrategy("x" * 5000)],
            jobs_config=JobsConfig(error_message_limit=100),
        )
        job_id = await _queue(pipeline, FAILING_REPORT_TYPE)

        with pytest.raises(JobProcessingError):
            await pipeline.processor.process(job_id)

        job = await _job(session_factory, job_id)
        assert job.error_message is not None
        assert job.error_message.endswith(TRUNCATION_MARKER)
        assert len(job.error_message) == 100 + len(TRUNCATION_MARKER)

    @pytest.mark.asyncio
    async def test_storage_failure_marks_job_failed(
        self, session_factory: SessionFactory
    ) -> None:
        """An upload error fails the job before any link is issued."""
        pipeline = build_pipeline(
            session_factory, object_store=InMemoryObjectStore(fail_put=True)
        )
        job_id = await _queue(pipeline)

        with pytest.raises(JobProcessingError):
            await pipeline.processor.process(job_id)

        job = await _job(session_factory, job_id)
        assert job.status == JobStatus.FAILED
        assert job.error_message is not None
        assert "bucket unavailable" in job.error_message
        assert await _tokens(session_factory) == []

    @pytest.mark.asyncio
    async def test_retry_reclaims_failed_job(
        self, session_factory: SessionFactory
    ) -> None:
        """A redelivered message can complete a job that failed earlier."""
        pipeline = build_pipeline(session_factory, strategies=[FlakyDummyStrategy()])
        job_id = await _queue(pipeline)

        with pytest.raises(JobProcessingError):
            await pipeline.processor.process(job_id)
        outcome = await pipeline.processor.process(job_id)

        assert outcome is ProcessOutcome.COMPLETED
        job = await _job(session_factory, job_id)
        assert job.status == JobStatus.COMPLETED
        assert job.error_message is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("report_type", "criteria"),
        [("DUMMY_TEST", "not json"), ("RETIRED_TYPE", "{}")],
        ids=["corrupt_criteria", "unsupported_type"],
    )
    async def test_unrecoverable_jobs_fail_permanently(
        self, session_factory: SessionFactory, report_type: str, criteria: str
    ) -> None:
        """Errors a retry cannot fix raise the permanent variant."""
        pipeline = build_pipeline(session_factory)
        await _insert_job(
            session_factory, job_id="doomed", report_type=report_type, criteria=criteria
        )

        with pytest.raises(PermanentJobError):
            await pipeline.processor.process("doomed")

        job = await _job(session_factory, "doomed")
        assert job.status == JobStatus.FAILED


class BrokenCommitDownloads(DownloadTokenService):
    """Issues the token, then fails the surrounding transaction."""

    async def issue(self, *args: typ.Any, **kwargs: typ.Any) -> DownloadLink:
        await super().issue(*args, **kwargs)
        raise OperationalError("COMMIT", {}, Exception("database went away"))


class TestInterruptedProcessing:
    """Interrupts and failed final writes never strand a job."""

    @pytest.mark.asyncio
    async def test_time_limit_marks_job_failed(
        self, session_factory: SessionFactory
    ) -> None:
        """A worker time limit ends the claim as FAILED and propagates as is."""
        strategy = FlakyDummyStrategy(error=TimeLimitExceeded())
        pipeline = build_pipeline(session_factory, strategies=[strategy])
        job_id = await _queue(pipeline)

        with pytest.raises(TimeLimitExceeded):
            await pipeline.processor.process(job_id)

        job = await _job(session_factory, job_id)
        assert job.status == JobStatus.FAILED, "interrupted job left PROCESSING"
        assert job.error_message == "TimeLimitExceeded"
        assert await _tokens(session_factory) == []

    @pytest.mark.asyncio
    async def test_redelivery_after_time_limit_completes(
        self, session_factory: SessionFactory
    ) -> None:
        """The retry of an interrupted job claims it again."""
        strategy = FlakyDummyStrategy(error=TimeLimitExceeded())
        pipeline = build_pipeline(session_factory, strategies=[strategy])
        job_id = await _queue(pipeline)

        with pytest.raises(TimeLimitExceeded):
            await pipeline.processor.process(job_id)
        outcome = await pipeline.processor.process(job_id)

        assert outcome is ProcessOutcome.COMPLETED
        assert len(await _tokens(session_factory)) == 1

    @pytest.mark.asyncio
    async def test_failed_completion_write_leaves_no_token(
        self, session_factory: SessionFactory
    ) -> None:
        """The token is rolled back with the completion it belonged to."""
        downloads = BrokenCommitDownloads(
            session_factory, DownloadConfig(public_base_url=PUBLIC_BASE_URL)
        )
        channel = RecordingChannel()
        pipeline = build_pipeline(
            session_factory, downloads=downloads, channel=channel
        )
        job_id = await _queue(pipeline)

        with pytest.raises(JobProcessingError):
            await pipeline.processor.process(job_id)

        job = await _job(session_factory, job_id)
        assert job.status == JobStatus.FAILED
        assert job.artifact_location is None
        assert await _tokens(session_factory) == [], "no token may outlive the failure"
        assert await downloads.active_link_for_job(job_id) is None
        assert channel.messages == []


class TestNotificationFailure:
    """Notification problems never change the job outcome."""

    @pytest.mark.asyncio
    async def test_channel_failure_keeps_job_completed(
        self, session_factory: SessionFactory
    ) -> None:
        """The job stays COMPLETED and the intent stays unsignalled."""
        channel = FailingChannel()
        pipeline = build_pipeline(session_factory, channel=channel)
        job_id = await _queue(pipeline)

        outcome = await pipeline.processor.process(job_id)

        assert outcome is ProcessOutcome.COMPLETED
        assert channel.attempts == 1
        job = await _job(session_factory, job_id)
        assert job.status == JobStatus.COMPLETED
        async with session_factory() as session:
            (intent,) = (await session.scalars(select(NotificationIntent))).all()
        assert intent.job_id == job_id
        assert intent.signalled_at is None
