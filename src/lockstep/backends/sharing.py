"""SharingService — grant CRUD and permission resolution over SQL.

Stateless service that receives a session at call time.  Callers own the
transaction: methods flush but never commit.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import func, or_
from sqlmodel import select

from lockstep.actions import PermissionKind
from lockstep.paths import ancestors, normalize_path

from .models import FileShare, Follow

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement
    from sqlalchemy.ext.asyncio import AsyncSession


def in_subtree(column: Any, prefix: str) -> ColumnElement[bool]:
    """Match *prefix* itself and every path below it at a segment boundary.

    Compares a leading substring with ``=`` so the match stays
    case-sensitive; SQLite's ``LIKE`` folds ASCII case.
    """
    below = prefix.rstrip("/") + "/"
    return or_(column == prefix, func.substr(column, 1, len(below)) == below)


class SharingService:
    """Manages grants and follow relations between users."""

    # ------------------------------------------------------------------
    # Follow relation
    # ------------------------------------------------------------------

    async def follow(self, session: AsyncSession, a: str, b: str) -> None:
        """Record a mutual follow between *a* and *b* (idempotent)."""
        for follower, followee in ((a, b), (b, a)):
            if not await self.follows(session, follower, followee):
                session.add(Follow(follower_id=follower, followee_id=followee))
        await session.flush()

    async def follows(self, session: AsyncSession, follower: str, followee: str) -> bool:
        result = await session.execute(
            select(Follow).where(
                Follow.follower_id == follower,
                Follow.followee_id == followee,
            )
        )
        return result.first() is not None

    # ------------------------------------------------------------------
    # Grants
    # ------------------------------------------------------------------

    async def _find(
        self,
        session: AsyncSession,
        path: str,
        grantee_id: str,
        permission: PermissionKind,
    ) -> FileShare | None:
        result = await session.execute(
            select(FileShare).where(
                FileShare.path == path,
                FileShare.grantee_id == grantee_id,
                FileShare.permission == permission.value,
            )
        )
        return result.scalars().first()

    async def create_share(
        self,
        session: AsyncSession,
        path: str,
        grantee_id: str,
        permission: PermissionKind,
        granted_by: str,
    ) -> FileShare:
        """Create a share record, or return the existing identical one."""
        path = normalize_path(path)
        existing = await self._find(session, path, grantee_id, permission)
        if existing is not None:
            return existing
        share = FileShare(
            path=path,
            grantee_id=grantee_id,
            permission=permission.value,
            granted_by=granted_by,
        )
        session.add(share)
        await session.flush()
        return share

    async def remove_share(
        self,
        session: AsyncSession,
        path: str,
        grantee_id: str,
        permission: PermissionKind,
    ) -> bool:
        """Remove an exact share match. Returns True if found."""
        share = await self._find(session, normalize_path(path), grantee_id, permission)
        if share is None:
            return False
        await session.delete(share)
        await session.flush()
        return True

    async def list_sharees(
        self,
        session: AsyncSession,
        path: str,
        permission: PermissionKind,
    ) -> set[str]:
        """Grantees holding *permission* on exactly *path*."""
        result = await session.execute(
            select(FileShare.grantee_id).where(
                FileShare.path == normalize_path(path),
                FileShare.permission == permission.value,
            )
        )
        return set(result.scalars().all())

    async def list_shared_paths(
        self,
        session: AsyncSession,
        owner: str,
        grantee_id: str,
        permission: PermissionKind,
    ) -> list[str]:
        """Paths *owner* granted to *grantee_id* with *permission*, sorted."""
        result = await session.execute(
            select(FileShare.path).where(
                FileShare.granted_by == owner,
                FileShare.grantee_id == grantee_id,
                FileShare.permission == permission.value,
            )
        )
        return sorted(set(result.scalars().all()))

    async def check_permission(
        self,
        session: AsyncSession,
        path: str,
        grantee_id: str,
        required: PermissionKind,
    ) -> bool:
        """Check if *grantee_id* has *required* permission on *path*.

        Permission resolution walks ancestor paths: a share on
        ``/alice/0`` grants access to ``/alice/0/1``.
        Write shares imply read access.
        """
        result = await session.execute(
            select(FileShare.permission).where(
                FileShare.grantee_id == grantee_id,
                FileShare.path.in_(ancestors(path)),  # type: ignore[union-attr]
            )
        )
        granted = set(result.scalars().all())
        if PermissionKind.WRITE.value in granted:
            return True
        return required is PermissionKind.READ and PermissionKind.READ.value in granted

    async def remove_shares_under(self, session: AsyncSession, prefix: str) -> int:
        """Delete every share on *prefix* or below. Returns the number removed."""
        prefix = normalize_path(prefix)
        result = await session.execute(
            select(FileShare).where(in_subtree(FileShare.path, prefix))
        )
        shares = list(result.scalars().all())
        for share in shares:
            await session.delete(share)
        if shares:
            await session.flush()
        return len(shares)
