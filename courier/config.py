"""Environment parsing helpers shared by Courier configuration classes.

Each subsystem owns a frozen dataclass with a ``from_env()`` classmethod;
the helpers here keep the error messages for malformed variables uniform.
"""

from __future__ import annotations

import os

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def parse_positive_int(env_var: str, default: int) -> int:
    """Read a positive integer env var, falling back to a default.

    Raises
    ------
    ValueError
        If the variable is set but is not an integer, or is less than one.

    """
    raw = os.environ.get(env_var, "")
    if not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        msg = f"{env_var} must be an integer, got: {raw!r}"
        raise ValueError(msg) from exc
    if value < 1:
        msg = f"{env_var} must be positive, got: {value}"
        raise ValueError(msg)
    return value


def read_str(env_var: str, default: str | None = None) -> str | None:
    """Return the stripped value of ``env_var`` or ``default`` when blank."""
    raw = os.environ.get(env_var, "")
    return raw.strip() or default


def read_flag(env_var: str) -> bool:
    """Return whether ``env_var`` holds a truthy value."""
    return os.environ.get(env_var, "").strip().lower() in _TRUTHY


def read_database_url() -> str | None:
    """Return ``COURIER_DATABASE_URL`` when it is set."""
    return read_str("COURIER_DATABASE_URL")
