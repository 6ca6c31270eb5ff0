"""ArtifactMaterializer protocol for serializing tabular report data."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from courier.handlers.protocol import TabularData


@typ.runtime_checkable
class ArtifactMaterializer(typ.Protocol):
    """Protocol for turning ``TabularData`` into file bytes.

    Attributes
    ----------
    content_type
        MIME type of the produced file.
    file_extension
        Extension, without a leading dot, used in artifact filenames.

    """

    content_type: str
    file_extension: str

    async def materialize(self, data: TabularData) -> bytes:
        """Return the serialized file for ``data``."""
        ...


def artifact_filename(report_type: str, job_id: str, extension: str) -> str:
    """Return the download filename for a job's artifact.

    >>> artifact_filename("DUMMY_TEST", "abc", "xlsx")
    'DUMMY_TEST_abc.xlsx'

    """
    return f"{report_type}_{job_id}.{extension}"
