"""Object storage for report artifacts."""

from __future__ import annotations

from .config import ObjectStoreConfig
from .errors import ObjectStoreConfigError, ObjectStoreError
from .factory import create_object_store
from .filesystem import FilesystemObjectStore
from .protocol import (
    ARTIFACT_PREFIX,
    ArtifactLocation,
    ObjectStore,
    PresignedUrl,
    artifact_key,
)

__all__ = [
    "ARTIFACT_PREFIX",
    "ArtifactLocation",
    "FilesystemObjectStore",
    "ObjectStore",
    "ObjectStoreConfig",
    "ObjectStoreConfigError",
    "ObjectStoreError",
    "PresignedUrl",
    "artifact_key",
    "create_object_store",
]
