"""ObjectStore protocol for report artifacts.

Artifacts are written under ``reports/{scope_id}/{job_id}/{filename}``. The
key is what the job row stores; signed URLs are derived from it on demand.
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

if typ.TYPE_CHECKING:
    import datetime as dt

ARTIFACT_PREFIX = "reports"


def artifact_key(scope_id: str, job_id: str, filename: str) -> str:
    """Return the object key for an artifact.

    >>> artifact_key("7", "abc", "DUMMY_TEST_abc.xlsx")
    'reports/7/abc/DUMMY_TEST_abc.xlsx'

    """
    return f"{ARTIFACT_PREFIX}/{scope_id}/{job_id}/{filename}"


@dc.dataclass(frozen=True, slots=True)
class ArtifactLocation:
    """Scope, job, and filename identifying one artifact."""

    scope_id: str
    job_id: str
    filename: str

    @property
    def key(self) -> str:
        """Return the object key for this artifact."""
        return artifact_key(self.scope_id, self.job_id, self.filename)


@dc.dataclass(frozen=True, slots=True)
class PresignedUrl:
    """Time-limited URL granting read access to one object."""

    url: str
    expires_at: dt.datetime


@typ.runtime_checkable
class ObjectStore(typ.Protocol):
    """Protocol for artifact storage backends."""

    async def put(
        self,
        location: ArtifactLocation,
        payload: bytes,
        *,
        content_type: str,
    ) -> str:
        """Store ``payload`` for ``location`` and return the object key."""
        ...

    async def presign(self, location: str, ttl: dt.timedelta) -> PresignedUrl:
        """Return a URL granting read access to ``location`` for ``ttl``."""
        ...

    async def get(self, location: str) -> bytes:
        """Return the bytes stored at ``location``."""
        ...
