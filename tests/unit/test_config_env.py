"""Tests for environment-driven configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from courier.config import parse_positive_int, read_flag, read_str
from courier.downloads.config import DownloadConfig
from courier.jobs.config import JobsConfig
from courier.notifications.config import NotificationConfig
from courier.notifications.errors import NotificationConfigError
from courier.objectstore.config import ObjectStoreConfig
from courier.objectstore.errors import ObjectStoreConfigError
from courier.thresholds.config import ThresholdRouterConfig


class TestParsePositiveInt:
    """Tests for parse_positive_int."""

    def test_unset_uses_default(self) -> None:
        """Missing variables fall back to the default."""
        assert parse_positive_int("COURIER_TEST_VALUE", 7) == 7

    def test_blank_uses_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Whitespace-only values fall back to the default."""
        monkeypatch.setenv("COURIER_TEST_VALUE", "  ")
        assert parse_positive_int("COURIER_TEST_VALUE", 7) == 7

    def test_valid_value(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Integers are parsed."""
        monkeypatch.setenv("COURIER_TEST_VALUE", "42")
        assert parse_positive_int("COURIER_TEST_VALUE", 7) == 42

    @pytest.mark.parametrize(
        ("raw", "expected_fragment"),
        [("abc", "must be an integer"), ("0", "must be positive"), ("-3", "must be positive")],
    )
    def test_invalid_value_raises(
        self,
        monkeypatch: pytest.MonkeyPatch,
        raw: str,
        expected_fragment: str,
    ) -> None:
        """Malformed or non-positive values are rejected with the variable name."""
        monkeypatch.setenv("COURIER_TEST_VALUE", raw)
        with pytest.raises(ValueError, match=expected_fragment) as excinfo:
            parse_positive_int("COURIER_TEST_VALUE", 7)
        assert "COURIER_TEST_VALUE" in str(excinfo.value)


def test_read_str_strips_and_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    """read_str trims values and treats blanks as unset."""
    assert read_str("COURIER_TEST_VALUE", "fallback") == "fallback"
    monkeypatch.setenv("COURIER_TEST_VALUE", "  value ")
    assert read_str("COURIER_TEST_VALUE") == "value"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("1", True), ("TRUE", True), ("yes", True), ("0", False), ("", False)],
)
def test_read_flag(
    monkeypatch: pytest.MonkeyPatch, raw: str, *, expected: bool
) -> None:
    """read_flag accepts the usual truthy spellings."""
    monkeypatch.setenv("COURIER_TEST_FLAG", raw)
    assert read_flag("COURIER_TEST_FLAG") is expected


class TestJobsConfig:
    """Tests for JobsConfig.from_env."""

    def test_defaults(self) -> None:
        """Unset variables produce the documented defaults."""
        config = JobsConfig.from_env()
        assert config.presign_ttl_seconds == 7 * 24 * 60 * 60
        assert config.estimated_completion.total_seconds() == 300
        assert config.error_message_limit == 1000
        assert config.dispatch_grace_seconds == 60

    def test_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Every field can be overridden."""
        monkeypatch.setenv("COURIER_PRESIGN_TTL_SECONDS", "3600")
        monkeypatch.setenv("COURIER_ERROR_MESSAGE_LIMIT", "50")
        config = JobsConfig.from_env()
        assert config.presign_ttl.total_seconds() == 3600
        assert config.error_message_limit == 50


class TestThresholdRouterConfig:
    """Tests for ThresholdRouterConfig.from_env."""

    def test_defaults(self) -> None:
        """Defaults are 5000 records, 10 seconds, five minute cache."""
        assert ThresholdRouterConfig.from_env() == ThresholdRouterConfig(
            default_max_records=5000,
            default_max_duration_seconds=10,
            cache_ttl_seconds=300,
        )

    def test_rejects_zero(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Bounds must be positive."""
        monkeypatch.setenv("COURIER_THRESHOLD_DEFAULT_MAX_RECORDS", "0")
        with pytest.raises(ValueError, match="must be positive"):
            ThresholdRouterConfig.from_env()


class TestDownloadConfig:
    """Tests for DownloadConfig.from_env."""

    def test_trailing_slash_is_removed(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Links are built without a doubled slash."""
        monkeypatch.setenv("COURIER_PUBLIC_BASE_URL", "https://reports.example.com/")
        config = DownloadConfig.from_env()
        assert config.public_base_url == "https://reports.example.com"

    def test_defaults(self) -> None:
        """Unset variables give a local base URL and a seven day TTL."""
        config = DownloadConfig.from_env()
        assert config.public_base_url == "http://localhost:8080"
        assert config.token_ttl_seconds == 604800


class TestNotificationConfig:
    """Tests for NotificationConfig.from_env."""

    def test_defaults(self) -> None:
        """The log backend is selected by default."""
        config = NotificationConfig.from_env()
        assert config.backend == "log"
        assert config.event_type == "REPORT_READY_FOR_DOWNLOAD"
        assert config.delivery_level == "IMMEDIATELY"

    def test_backend_is_case_insensitive(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Backend names are normalized to lower case."""
        monkeypatch.setenv("COURIER_NOTIFICATION_BACKEND", "Dramatiq")
        monkeypatch.setenv("COURIER_NOTIFICATION_QUEUE", "alerts")
        config = NotificationConfig.from_env()
        assert config.backend == "dramatiq"
        assert config.queue_name == "alerts"

    def test_unknown_backend_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Unknown backends are rejected."""
        monkeypatch.setenv("COURIER_NOTIFICATION_BACKEND", "pigeon")
        with pytest.raises(NotificationConfigError, match="pigeon"):
            NotificationConfig.from_env()


class TestObjectStoreConfig:
    """Tests for ObjectStoreConfig.from_env."""

    def test_filesystem_requires_path(self) -> None:
        """The default filesystem backend needs an artifact path."""
        with pytest.raises(ObjectStoreConfigError, match="COURIER_ARTIFACT_PATH"):
            ObjectStoreConfig.from_env()

    def test_filesystem_path(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        """The artifact path is read as a Path."""
        monkeypatch.setenv("COURIER_ARTIFACT_PATH", str(tmp_path))
        config = ObjectStoreConfig.from_env()
        assert config.backend == "filesystem"
        assert config.artifact_path == Path(str(tmp_path))

    def test_s3_requires_bucket(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """The S3 backend needs a bucket."""
        monkeypatch.setenv("COURIER_OBJECT_STORE_BACKEND", "s3")
        with pytest.raises(ObjectStoreConfigError, match="COURIER_S3_BUCKET"):
            ObjectStoreConfig.from_env()

    def test_s3_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Bucket, region, and endpoint are read for S3."""
        monkeypatch.setenv("COURIER_OBJECT_STORE_BACKEND", "S3")
        monkeypatch.setenv("COURIER_S3_BUCKET", "reports")
        monkeypatch.setenv("COURIER_S3_REGION", "eu-west-1")
        monkeypatch.setenv("COURIER_S3_ENDPOINT_URL", "http://localhost:4566")
        config = ObjectStoreConfig.from_env()
        assert config.bucket == "reports"
        assert config.region == "eu-west-1"
        assert config.endpoint_url == "http://localhost:4566"

    def test_unknown_backend(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Unknown backends are rejected."""
        monkeypatch.setenv("COURIER_OBJECT_STORE_BACKEND", "ftp")
        with pytest.raises(ObjectStoreConfigError, match="ftp"):
            ObjectStoreConfig.from_env()
