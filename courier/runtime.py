"""Courier runtime entrypoint for container deployments.

The Granian entrypoint ``courier.runtime:create_app`` delegates to
:func:`courier.api.app.create_app`. When ``COURIER_DATABASE_URL`` is set the
runtime builds the full dependency set so the report and redirect routes
are served; otherwise it starts in health-only mode.

Configuration is driven by environment variables:

- ``COURIER_HOST``: Bind address (default ``0.0.0.0``)
- ``COURIER_PORT``: Listen port (default ``8080``)
- ``COURIER_LOG_LEVEL``: Log level (default ``INFO``)
- ``COURIER_DATABASE_URL``: Database connection URL (optional; enables
  domain endpoints when set)

Run the service directly with ``python -m courier.runtime``.
"""

from __future__ import annotations

import typing as typ

from courier.config import read_database_url, read_str
from courier.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    import falcon.asgi

__all__ = ["create_app", "main"]

logger = get_logger(__name__)

# TCP port number range limits
_MIN_PORT = 1
_MAX_PORT = 65535


def _parse_port(port_str: str) -> int:
    """Parse and validate a port number string.

    Raises
    ------
    SystemExit
        If port_str is not a valid integer in range 1-65535.

    """
    try:
        port = int(port_str)
        if not (_MIN_PORT <= port <= _MAX_PORT):
            msg = f"port {port} outside valid range {_MIN_PORT}-{_MAX_PORT}"
            raise ValueError(msg)  # noqa: TRY301 - unify conversion and range errors
    except ValueError as exc:
        log_error(
            logger,
            "Invalid COURIER_PORT value: %r (must be %d-%d): %s",
            port_str,
            _MIN_PORT,
            _MAX_PORT,
            exc,
        )
        raise SystemExit(1) from exc
    return port


def create_app() -> falcon.asgi.App:
    """Create the Falcon ASGI application from the environment.

    Returns
    -------
    falcon.asgi.App
        Full application when ``COURIER_DATABASE_URL`` is set, otherwise a
        health-only application.

    """
    from courier.api.app import create_app as _create_api_app

    database_url = read_database_url()
    if database_url is None:
        log_warning(logger, "COURIER_DATABASE_URL unset; serving health probes only")
        return _create_api_app()

    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from courier.api.factory import build_app_dependencies

    engine = create_async_engine(database_url)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    return _create_api_app(build_app_dependencies(session_factory))


def main() -> None:
    """Start the Courier API server using Granian."""
    from granian import Granian
    from granian.constants import Interfaces

    host = read_str("COURIER_HOST", "0.0.0.0") or "0.0.0.0"  # noqa: S104 - container bind
    port = _parse_port(read_str("COURIER_PORT", "8080") or "8080")
    log_level_str = read_str("COURIER_LOG_LEVEL", "INFO") or "INFO"

    normalized_level, invalid_level = configure_logging(log_level_str)
    if invalid_level:
        log_warning(
            logger,
            "Invalid COURIER_LOG_LEVEL %r, falling back to %s",
            log_level_str,
            normalized_level,
        )

    log_info(
        logger,
        "Starting Courier runtime on %s:%d (log_level=%s)",
        host,
        port,
        normalized_level,
    )

    server = Granian(
        "courier.runtime:create_app",
        address=host,
        port=port,
        interface=Interfaces.ASGI,
        factory=True,
    )
    server.serve()


if __name__ == "__main__":
    main()
