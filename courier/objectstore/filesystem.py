"""Filesystem adapter for the ObjectStore protocol.

Stores artifacts beneath a local directory using the same key layout as S3::

    {base_path}/reports/{scope_id}/{job_id}/{filename}

Presigned URLs are ``file://`` URLs carrying an ``expires`` query parameter;
they are meant for local development, not for serving users.
"""

from __future__ import annotations

import asyncio
import typing as typ
import urllib.parse

from courier.common.time import utcnow
from courier.objectstore.errors import ObjectStoreError
from courier.objectstore.protocol import PresignedUrl

if typ.TYPE_CHECKING:
    import datetime as dt
    from pathlib import Path

    from courier.objectstore.protocol import ArtifactLocation


class FilesystemObjectStore:
    """Store artifacts in a local directory tree."""

    def __init__(self, base_path: Path) -> None:
        """Initialise the store with its root directory."""
        self._base_path = base_path

    def _resolve(self, key: str) -> Path:
        root = self._base_path.resolve()
        target = (root / key).resolve()
        if not target.is_relative_to(root):
            raise ObjectStoreError.invalid_location(key)
        return target

    async def put(
        self,
        location: ArtifactLocation,
        payload: bytes,
        *,
        content_type: str,
    ) -> str:
        """Write ``payload`` to disk and return its key."""
        del content_type
        key = location.key
        target = self._resolve(key)
        try:
            await asyncio.to_thread(target.parent.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread(target.write_bytes, payload)
        except OSError as exc:
            raise ObjectStoreError.wrapping("put", key, exc) from exc
        return key

    async def presign(self, location: str, ttl: dt.timedelta) -> PresignedUrl:
        """Return a ``file://`` URL annotated with its expiry."""
        target = self._resolve(location)
        expires_at = utcnow() + ttl
        query = urllib.parse.urlencode({"expires": int(expires_at.timestamp())})
        return PresignedUrl(url=f"{target.as_uri()}?{query}", expires_at=expires_at)

    async def get(self, location: str) -> bytes:
        """Read the artifact stored at ``location``."""
        target = self._resolve(location)
        try:
            return await asyncio.to_thread(target.read_bytes)
        except FileNotFoundError as exc:
            raise ObjectStoreError.not_found(location) from exc
        except OSError as exc:
            raise ObjectStoreError.wrapping("get", location, exc) from exc
