"""Errors raised while turning report data into a downloadable file."""

from __future__ import annotations

from courier.errors import CourierError


class ArtifactError(CourierError):
    """Raised when report data cannot be serialized."""

    @classmethod
    def serialization_failed(cls, file_format: str, detail: str) -> ArtifactError:
        """Return an error for a failed ``file_format`` serialization."""
        return cls(f"Failed to write {file_format} artifact: {detail}")
