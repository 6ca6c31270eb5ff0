"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import os
import typing as typ

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from tests.helpers.database import init_all_storage, sqlite_url

if typ.TYPE_CHECKING:
    from pathlib import Path


async def _setup_sqlite(tmp_path: Path) -> AsyncEngine:
    """Create a SQLite engine and initialise every table."""
    engine = create_async_engine(sqlite_url(tmp_path))
    try:
        await init_all_storage(engine)
    except Exception:
        await engine.dispose()
        raise
    return engine


@pytest_asyncio.fixture
async def session_factory(
    tmp_path: Path,
) -> typ.AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Yield a fresh async session factory backed by sqlite."""
    engine = await _setup_sqlite(tmp_path)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest.fixture(autouse=True)
def _isolate_courier_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove Courier settings inherited from the developer's shell."""
    for key in list(os.environ):
        if key.startswith("COURIER_"):
            monkeypatch.delenv(key, raising=False)
