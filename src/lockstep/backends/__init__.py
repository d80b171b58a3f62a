"""Concrete backends — SQL system under test and local-disk reference model."""

from __future__ import annotations

from typing import TYPE_CHECKING

from lockstep.pairs import FileSystemPair

from .access import AccessControl
from .database import DatabaseFileSystem, DatabaseStore, create_database_engine
from .local_disk import LocalDiskFileSystem, LocalDiskStore
from .sharing import SharingService

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine


async def build_pairs(
    users: Iterable[str],
    host_dir: Path | str,
    engine: AsyncEngine | None = None,
) -> list[FileSystemPair]:
    """One (database, local disk) pair per user over shared stores.

    Creates the database tables if needed.  *host_dir* must exist.
    """
    database = DatabaseStore(engine or create_database_engine())
    await database.create_tables()
    disk = LocalDiskStore(host_dir)
    return [
        FileSystemPair(test=database.handle(user), reference=disk.handle(user))
        for user in users
    ]


__all__ = [
    "AccessControl",
    "DatabaseFileSystem",
    "DatabaseStore",
    "LocalDiskFileSystem",
    "LocalDiskStore",
    "SharingService",
    "build_pairs",
    "create_database_engine",
]
