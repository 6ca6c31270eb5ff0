"""Factory for creating ObjectStore implementations from environment settings."""

from __future__ import annotations

import typing as typ

from courier.objectstore.config import ObjectStoreConfig
from courier.objectstore.errors import ObjectStoreConfigError

if typ.TYPE_CHECKING:
    from courier.objectstore.protocol import ObjectStore


def create_object_store(config: ObjectStoreConfig | None = None) -> ObjectStore:
    """Create the object store selected by ``COURIER_OBJECT_STORE_BACKEND``.

    Raises
    ------
    ObjectStoreConfigError
        If the configuration is incomplete for the selected backend.

    """
    resolved = config or ObjectStoreConfig.from_env()

    if resolved.backend == "s3":
        if resolved.bucket is None:
            raise ObjectStoreConfigError.missing("COURIER_S3_BUCKET")
        from courier.objectstore.s3 import S3ObjectStore

        return S3ObjectStore(
            bucket=resolved.bucket,
            region=resolved.region,
            endpoint_url=resolved.endpoint_url,
        )

    if resolved.artifact_path is None:
        raise ObjectStoreConfigError.missing("COURIER_ARTIFACT_PATH")
    from courier.objectstore.filesystem import FilesystemObjectStore

    return FilesystemObjectStore(resolved.artifact_path)
