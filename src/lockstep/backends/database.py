"""DatabaseFileSystem — the system under test, files and grants in SQL.

All users share one async engine.  Every operation opens its own session
and commits before returning, so each call is one transaction.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, select

from lockstep.actions import PermissionKind
from lockstep.exceptions import (
    AccessDeniedError,
    NothingSharedError,
    NotAFileError,
    PathNotFoundError,
    StorageError,
)
from lockstep.paths import normalize_path, owner_of, split_path, user_root

from .models import FileRecord
from .sharing import SharingService, in_subtree

if TYPE_CHECKING:
    import random
    from collections.abc import AsyncIterator, Callable

    from sqlalchemy.ext.asyncio import AsyncEngine

    from lockstep.protocol import SimulatedFileSystem

logger = logging.getLogger(__name__)


def create_database_engine(url: str = "sqlite+aiosqlite://") -> AsyncEngine:
    """Create an async engine; in-memory SQLite shares one connection."""
    if url.startswith("sqlite") and (url.endswith("://") or ":memory:" in url):
        return create_async_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(url, echo=False)


class DatabaseStore:
    """Engine, session factory and sharing service shared by every handle."""

    def __init__(self, engine: AsyncEngine, sharing: SharingService | None = None) -> None:
        self.engine = engine
        self.sharing = sharing or SharingService()
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_tables(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Session that commits on success and rolls back on error."""
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise StorageError(f"Database operation failed: {e}") from e
            except Exception:
                await session.rollback()
                raise

    def handle(self, user: str) -> DatabaseFileSystem:
        return DatabaseFileSystem(self, user)


class DatabaseFileSystem:
    """One user's view of a ``DatabaseStore``.

    Implements the ``SimulatedFileSystem`` protocol.
    """

    def __init__(self, store: DatabaseStore, user: str) -> None:
        self._store = store
        self._user = user

    @property
    def user(self) -> str:
        return self._user

    def __repr__(self) -> str:
        return f"DatabaseFileSystem(user={self._user!r})"

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _get(session: AsyncSession, path: str) -> FileRecord | None:
        result = await session.execute(select(FileRecord).where(FileRecord.path == path))
        return result.scalar_one_or_none()

    async def _is_directory(self, session: AsyncSession, path: str) -> bool:
        if path == "/":
            return True
        record = await self._get(session, path)
        return record is not None and record.is_directory

    def _require_owner(self, path: str) -> None:
        if owner_of(path) != self._user:
            raise AccessDeniedError(f"Access denied: {self._user!r} does not own {path}")

    async def _require_access(
        self,
        session: AsyncSession,
        path: str,
        required: PermissionKind,
    ) -> None:
        if owner_of(path) == self._user:
            return
        if not await self._store.sharing.check_permission(session, path, self._user, required):
            raise AccessDeniedError(
                f"Access denied: {self._user!r} does not have "
                f"{required.value!r} permission on {path}"
            )

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    async def read(self, path: str) -> bytes:
        path = normalize_path(path)
        async with self._store.session() as session:
            await self._require_access(session, path, PermissionKind.READ)
            record = await self._get(session, path)
            if record is None:
                raise PathNotFoundError(f"File not found: {path}")
            if record.is_directory:
                raise NotAFileError(f"Cannot read directory: {path}")
            return record.content or b""

    async def write(self, path: str, content: bytes) -> None:
        path = normalize_path(path)
        parent, name = split_path(path)
        async with self._store.session() as session:
            await self._require_access(session, path, PermissionKind.WRITE)
            record = await self._get(session, path)
            if record is not None:
                if record.is_directory:
                    raise NotAFileError(f"Cannot write directory: {path}")
                record.content = content
                record.size_bytes = len(content)
                record.updated_at = datetime.now(UTC)
                session.add(record)
                return
            if owner_of(path) != self._user:
                raise PathNotFoundError(f"File not found: {path}")
            if not await self._is_directory(session, parent):
                raise PathNotFoundError(f"Parent directory not found: {parent}")
            session.add(
                FileRecord(
                    path=path,
                    parent_path=parent,
                    name=name,
                    owner_id=self._user,
                    content=content,
                    size_bytes=len(content),
                )
            )

    async def mkdir(self, path: str) -> None:
        path = normalize_path(path)
        self._require_owner(path)
        parent, name = split_path(path)
        async with self._store.session() as session:
            record = await self._get(session, path)
            if record is not None:
                if record.is_directory:
                    return
                raise NotAFileError(f"Path exists as file: {path}")
            if not await self._is_directory(session, parent):
                raise PathNotFoundError(f"Parent directory not found: {parent}")
            session.add(
                FileRecord(
                    path=path,
                    parent_path=parent,
                    name=name,
                    owner_id=self._user,
                    is_directory=True,
                )
            )

    async def delete(self, path: str) -> None:
        """Delete a file or directory (recursively) and every grant below it."""
        path = normalize_path(path)
        self._require_owner(path)
        async with self._store.session() as session:
            result = await session.execute(
                select(FileRecord).where(in_subtree(FileRecord.path, path))
            )
            records = list(result.scalars().all())
            if not any(r.path == path for r in records):
                raise PathNotFoundError(f"File not found: {path}")
            for record in records:
                await session.delete(record)
            removed = await self._store.sharing.remove_shares_under(session, path)
        logger.debug("Deleted %d record(s) and %d share(s) under %s", len(records), removed, path)

    # ------------------------------------------------------------------
    # Sharing
    # ------------------------------------------------------------------

    async def grant(self, path: str, grantee: str, permission: PermissionKind) -> None:
        path = normalize_path(path)
        self._require_owner(path)
        async with self._store.session() as session:
            if grantee == self._user or not await self._store.sharing.follows(
                session, self._user, grantee
            ):
                raise AccessDeniedError(
                    f"Cannot share with {grantee!r}: not a friend of {self._user!r}"
                )
            if await self._get(session, path) is None:
                raise PathNotFoundError(f"File not found: {path}")
            await self._store.sharing.create_share(
                session, path, grantee, permission, granted_by=self._user
            )

    async def revoke(self, path: str, grantee: str, permission: PermissionKind) -> None:
        path = normalize_path(path)
        self._require_owner(path)
        async with self._store.session() as session:
            await self._store.sharing.remove_share(session, path, grantee, permission)

    async def get_sharees(self, path: str, permission: PermissionKind) -> set[str]:
        path = normalize_path(path)
        self._require_owner(path)
        async with self._store.session() as session:
            return await self._store.sharing.list_sharees(session, path, permission)

    async def get_random_shared_path(
        self,
        rng: random.Random,
        permission: PermissionKind,
        grantee: str,
    ) -> str:
        async with self._store.session() as session:
            paths = await self._store.sharing.list_shared_paths(
                session, self._user, grantee, permission
            )
        if not paths:
            raise NothingSharedError(
                f"{self._user!r} has shared nothing with {grantee!r} for {permission.value}"
            )
        return paths[rng.randrange(len(paths))]

    async def follow(self, other: SimulatedFileSystem) -> None:
        async with self._store.session() as session:
            await self._store.sharing.follow(session, self._user, other.user)

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    async def walk(self, visitor: Callable[[str], object]) -> None:
        root = user_root(self._user)
        async with self._store.session() as session:
            result = await session.execute(
                select(FileRecord.path).where(in_subtree(FileRecord.path, root))
            )
            paths = sorted(result.scalars().all())
        for path in paths:
            visitor(path)
