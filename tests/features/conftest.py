"""Shared fixtures for BDD feature tests.

Steps drive async code with ``asyncio.run`` and the Falcon test client runs
its own loop, so the engine uses ``NullPool`` and never shares a connection
between event loops.
"""

from __future__ import annotations

import asyncio
import typing as typ

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from tests.helpers.database import init_all_storage, sqlite_url

if typ.TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def bdd_session_factory(
    tmp_path: Path,
) -> typ.Iterator[async_sessionmaker[AsyncSession]]:
    """Yield a session factory over a fresh sqlite file."""
    engine = create_async_engine(
        sqlite_url(tmp_path, "features.db"), poolclass=NullPool
    )
    asyncio.run(init_all_storage(engine))
    try:
        yield async_sessionmaker(engine, expire_on_commit=False)
    finally:
        asyncio.run(engine.dispose())
