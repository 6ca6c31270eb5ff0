"""Errors raised by object store adapters."""

from __future__ import annotations

from courier.errors import CourierError


class ObjectStoreError(CourierError):
    """Raised when an object store operation fails.

    Attributes
    ----------
    operation
        Operation that failed, for example ``"put"``.
    location
        Object key involved, when known.

    """

    def __init__(self, operation: str, location: str, detail: str) -> None:
        """Record the failing operation, key, and description."""
        self.operation = operation
        self.location = location
        super().__init__(f"Object store {operation} failed for {location}: {detail}")

    @classmethod
    def wrapping(
        cls, operation: str, location: str, error: BaseException
    ) -> ObjectStoreError:
        """Return an error describing ``error`` raised by the backend."""
        return cls(operation, location, str(error) or type(error).__name__)

    @classmethod
    def not_found(cls, location: str) -> ObjectStoreError:
        """Return an error for a missing object."""
        return cls("get", location, "object does not exist")

    @classmethod
    def invalid_location(cls, location: str) -> ObjectStoreError:
        """Return an error for a key that escapes the store root."""
        return cls("resolve", location, "location is outside the store")


class ObjectStoreConfigError(CourierError, ValueError):
    """Raised when object store settings are missing or invalid."""

    @classmethod
    def invalid_backend(cls, backend: str) -> ObjectStoreConfigError:
        """Return an error naming an unknown backend."""
        return cls(
            f"Invalid COURIER_OBJECT_STORE_BACKEND {backend!r}; "
            "expected 's3' or 'filesystem'"
        )

    @classmethod
    def missing(cls, env_var: str) -> ObjectStoreConfigError:
        """Return an error for a required variable that is unset."""
        return cls(f"{env_var} is required for the selected object store backend")
