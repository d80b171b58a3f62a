"""Shared fixtures for lockstep tests."""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

import pytest

from lockstep.backends import DatabaseStore, LocalDiskStore, create_database_engine
from lockstep.config import SimulationConfig
from lockstep.executor import DualExecutor
from lockstep.index import ShadowIndex
from lockstep.oplog import MemoryOperationLog
from lockstep.pairs import FileSystemPair, FileSystems

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine


@pytest.fixture
async def async_engine() -> AsyncIterator[AsyncEngine]:
    """Async in-memory SQLite engine."""
    eng = create_database_engine("sqlite+aiosqlite://")
    yield eng
    await eng.dispose()


@pytest.fixture
async def database_store(async_engine: AsyncEngine) -> DatabaseStore:
    """Database store with all tables created."""
    store = DatabaseStore(async_engine)
    await store.create_tables()
    return store


@pytest.fixture
def disk_store(tmp_path: Path) -> LocalDiskStore:
    """Local-disk store rooted at a fresh temporary directory."""
    host_dir = tmp_path / "disk"
    host_dir.mkdir()
    return LocalDiskStore(host_dir)


@pytest.fixture(params=["database", "local_disk"])
def store(
    request: pytest.FixtureRequest,
    database_store: DatabaseStore,
    disk_store: LocalDiskStore,
) -> DatabaseStore | LocalDiskStore:
    """Each backend in turn; both must behave identically."""
    return database_store if request.param == "database" else disk_store


@pytest.fixture
def pairs(database_store: DatabaseStore, disk_store: LocalDiskStore) -> list[FileSystemPair]:
    """One (database, local disk) pair for each of "left" and "right"."""
    return [
        FileSystemPair(test=database_store.handle(user), reference=disk_store.handle(user))
        for user in ("left", "right")
    ]


@pytest.fixture
def oplog() -> MemoryOperationLog:
    return MemoryOperationLog()


@pytest.fixture
async def executor(pairs: list[FileSystemPair], oplog: MemoryOperationLog) -> DualExecutor:
    """Executor over the "left"/"right" pairs, already initialized."""
    rng = random.Random(1)
    ex = DualExecutor(
        FileSystems(pairs, rng),
        ShadowIndex(rng),
        rng,
        oplog,
        SimulationConfig(),
    )
    await ex.init()
    return ex
