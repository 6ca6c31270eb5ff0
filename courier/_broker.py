"""Broker configuration helpers for Dramatiq actor setup.

The actor module calls :func:`ensure_broker_configured` when it is imported,
since Dramatiq binds actors to the global broker at declaration. The
dispatch queue and the Dramatiq notification channel call it again before
enqueueing.
"""

from __future__ import annotations

import os
import sys
import threading

import dramatiq
from dramatiq.brokers.stub import StubBroker

from courier.config import read_flag, read_str

_BROKER_LOCK = threading.Lock()
_broker_configured = False


def _is_running_tests() -> bool:
    """Return True when the process runs under pytest."""
    return "pytest" in sys.modules or any(
        key in os.environ
        for key in ["PYTEST_CURRENT_TEST", "PYTEST_XDIST_WORKER", "PYTEST_ADDOPTS"]
    )


def _should_use_stub_broker() -> bool:
    """Return True when ``COURIER_ALLOW_STUB_BROKER`` is set or under pytest."""
    return read_flag("COURIER_ALLOW_STUB_BROKER") or _is_running_tests()


def ensure_broker_configured() -> dramatiq.Broker:
    """Return the global Dramatiq broker, installing one when none is set.

    A Redis broker is created when ``COURIER_BROKER_URL`` is set; otherwise a
    StubBroker is installed for tests and local runs.

    Thread-safe and idempotent across Dramatiq worker threads.

    Raises
    ------
    RuntimeError
        If no broker is configured outside a test or stub-allowed context.

    """
    global _broker_configured

    if _broker_configured:
        return dramatiq.get_broker()

    with _BROKER_LOCK:
        if _broker_configured:
            return dramatiq.get_broker()

        try:  # pragma: no cover - exercised in tests and worker startup
            current_broker = dramatiq.get_broker()
        except (ImportError, LookupError):
            # ImportError: RabbitMQ/Redis extras missing; LookupError: unset.
            current_broker = None

        broker_url = read_str("COURIER_BROKER_URL")
        if current_broker is None and broker_url is not None:
            from dramatiq.brokers.redis import RedisBroker

            current_broker = RedisBroker(url=broker_url)
            dramatiq.set_broker(current_broker)

        if current_broker is None:
            if not _should_use_stub_broker():  # pragma: no cover - prod guard
                message = (
                    "No Dramatiq broker configured. "
                    "Set COURIER_ALLOW_STUB_BROKER=1 for "
                    "local/test runs or configure a real broker."
                )
                raise RuntimeError(message)
            current_broker = StubBroker()
            dramatiq.set_broker(current_broker)

        _broker_configured = True
        return current_broker
