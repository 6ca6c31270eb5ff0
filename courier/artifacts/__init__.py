"""Serialization of generated report data into downloadable files."""

from __future__ import annotations

from .errors import ArtifactError
from .protocol import ArtifactMaterializer, artifact_filename
from .xlsx import XLSX_CONTENT_TYPE, XlsxMaterializer

__all__ = [
    "XLSX_CONTENT_TYPE",
    "ArtifactError",
    "ArtifactMaterializer",
    "XlsxMaterializer",
    "artifact_filename",
]
