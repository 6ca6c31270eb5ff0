"""Configuration for the artifact object store."""

from __future__ import annotations

import dataclasses as dc
from pathlib import Path

from courier.config import read_str
from courier.objectstore.errors import ObjectStoreConfigError

_VALID_BACKENDS = frozenset({"s3", "filesystem"})


@dc.dataclass(frozen=True, slots=True)
class ObjectStoreConfig:
    """Backend selection and connection settings.

    Attributes
    ----------
    backend
        ``"s3"`` or ``"filesystem"``.
    bucket
        S3 bucket holding artifacts.
    region
        AWS region for the S3 client.
    endpoint_url
        Custom S3 endpoint, for example LocalStack or MinIO.
    artifact_path
        Root directory for the filesystem backend.

    """

    backend: str = "filesystem"
    bucket: str | None = None
    region: str | None = None
    endpoint_url: str | None = None
    artifact_path: Path | None = None

    @classmethod
    def from_env(cls) -> ObjectStoreConfig:
        """Create configuration from environment variables.

        Reads ``COURIER_OBJECT_STORE_BACKEND`` and then either
        ``COURIER_S3_BUCKET``/``COURIER_S3_REGION``/``COURIER_S3_ENDPOINT_URL``
        or ``COURIER_ARTIFACT_PATH``.

        Raises
        ------
        ObjectStoreConfigError
            If the backend is unknown or its required setting is missing.

        """
        backend = (read_str("COURIER_OBJECT_STORE_BACKEND", "filesystem") or "").lower()
        if backend not in _VALID_BACKENDS:
            raise ObjectStoreConfigError.invalid_backend(backend)

        if backend == "s3":
            bucket = read_str("COURIER_S3_BUCKET")
            if bucket is None:
                raise ObjectStoreConfigError.missing("COURIER_S3_BUCKET")
            return cls(
                backend=backend,
                bucket=bucket,
                region=read_str("COURIER_S3_REGION"),
                endpoint_url=read_str("COURIER_S3_ENDPOINT_URL"),
            )

        raw_path = read_str("COURIER_ARTIFACT_PATH")
        if raw_path is None:
            raise ObjectStoreConfigError.missing("COURIER_ARTIFACT_PATH")
        return cls(backend=backend, artifact_path=Path(raw_path))
