"""Text helpers for persisted diagnostic fields."""

from __future__ import annotations

TRUNCATION_MARKER = "... (truncated)"
UNKNOWN_ERROR = "Unknown error"


def bounded_error_message(error: BaseException | str | None, limit: int) -> str:
    """Render ``error`` as a message no longer than ``limit`` plus a marker.

    Empty messages fall back to the exception class name, and a missing error
    becomes ``"Unknown error"``.

    Examples
    --------
    >>> bounded_error_message("x" * 5, 3)
    'xxx... (truncated)'
    >>> bounded_error_message(None, 10)
    'Unknown error'

    """
    if error is None:
        return UNKNOWN_ERROR
    if isinstance(error, BaseException):
        message = str(error).strip() or type(error).__name__
    else:
        message = error.strip() or UNKNOWN_ERROR
    if len(message) <= limit:
        return message
    return f"{message[:limit]}{TRUNCATION_MARKER}"
