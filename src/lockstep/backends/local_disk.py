"""LocalDiskFileSystem — the reference model, files on the host disk.

All users share one host directory (``{host_dir}/{user}/...``) and one
in-memory ``AccessControl``.  Each ``LocalDiskFileSystem`` is a handle that
acts as a single user over that shared store.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from lockstep.actions import PermissionKind
from lockstep.exceptions import (
    AccessDeniedError,
    NothingSharedError,
    NotAFileError,
    PathNotFoundError,
    StorageError,
)
from lockstep.paths import normalize_path, owner_of, split_path, user_root

from .access import AccessControl

if TYPE_CHECKING:
    import random
    from collections.abc import Callable

    from lockstep.protocol import SimulatedFileSystem


class LocalDiskStore:
    """Host directory plus access control shared by every user's handle."""

    def __init__(self, host_dir: Path | str, access: AccessControl | None = None) -> None:
        self.host_dir = Path(host_dir).resolve()
        self.access = access or AccessControl()

        if not self.host_dir.exists():
            raise FileNotFoundError(f"Host directory does not exist: {self.host_dir}")
        if not self.host_dir.is_dir():
            raise NotADirectoryError(f"Host path is not a directory: {self.host_dir}")

    def handle(self, user: str) -> LocalDiskFileSystem:
        return LocalDiskFileSystem(self, user)

    # =========================================================================
    # Path Resolution & Security
    # =========================================================================

    def resolve(self, virtual_path: str) -> Path:
        """Resolve a virtual path to a physical path under host_dir.

        Symlinks anywhere along the path are rejected.
        """
        virtual_path = normalize_path(virtual_path)
        rel = virtual_path.lstrip("/")
        if not rel:
            return self.host_dir

        current = self.host_dir
        for part in Path(rel).parts:
            current = current / part
            if current.is_symlink():
                raise AccessDeniedError(f"Symlinks not allowed: {virtual_path}")

        resolved = (self.host_dir / rel).resolve()
        try:
            resolved.relative_to(self.host_dir)
        except ValueError:
            raise AccessDeniedError(
                f"Path traversal detected: {virtual_path} resolves outside host directory"
            ) from None
        return resolved

    def to_virtual_path(self, physical_path: Path) -> str:
        rel = physical_path.relative_to(self.host_dir)
        return normalize_path("/" + str(rel).replace("\\", "/"))


class LocalDiskFileSystem:
    """One user's view of a ``LocalDiskStore``.

    Implements the ``SimulatedFileSystem`` protocol.
    """

    def __init__(self, store: LocalDiskStore, user: str) -> None:
        self._store = store
        self._user = user

    @property
    def user(self) -> str:
        return self._user

    def __repr__(self) -> str:
        return f"LocalDiskFileSystem(user={self._user!r}, host_dir={str(self._store.host_dir)!r})"

    # =========================================================================
    # Access checks
    # =========================================================================

    def _require_owner(self, path: str) -> None:
        if owner_of(path) != self._user:
            raise AccessDeniedError(f"Access denied: {self._user!r} does not own {path}")

    def _require_access(self, path: str, required: PermissionKind) -> None:
        if owner_of(path) == self._user:
            return
        if not self._store.access.check_permission(path, self._user, required):
            raise AccessDeniedError(
                f"Access denied: {self._user!r} does not have "
                f"{required.value!r} permission on {path}"
            )

    # =========================================================================
    # Content
    # =========================================================================

    async def read(self, path: str) -> bytes:
        path = normalize_path(path)
        self._require_access(path, PermissionKind.READ)
        resolved = self._store.resolve(path)
        if not resolved.exists():
            raise PathNotFoundError(f"File not found: {path}")
        if resolved.is_dir():
            raise NotAFileError(f"Cannot read directory: {path}")
        try:
            return await asyncio.to_thread(resolved.read_bytes)
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    async def write(self, path: str, content: bytes) -> None:
        """Write content to a file on disk. Atomic via tempfile + replace."""
        path = normalize_path(path)
        self._require_access(path, PermissionKind.WRITE)
        resolved = self._store.resolve(path)
        if resolved.is_dir():
            raise NotAFileError(f"Cannot write directory: {path}")
        if owner_of(path) != self._user and not resolved.exists():
            raise PathNotFoundError(f"File not found: {path}")
        if not resolved.parent.is_dir():
            raise PathNotFoundError(f"Parent directory not found: {split_path(path)[0]}")

        def _write() -> None:
            fd, tmp_path = tempfile.mkstemp(dir=str(resolved.parent), suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(content)
                Path(tmp_path).replace(resolved)
            except Exception:
                with contextlib.suppress(OSError):
                    Path(tmp_path).unlink()
                raise

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e

    async def mkdir(self, path: str) -> None:
        path = normalize_path(path)
        self._require_owner(path)
        resolved = self._store.resolve(path)
        if resolved.exists():
            if resolved.is_dir():
                return
            raise NotAFileError(f"Path exists as file: {path}")
        if not resolved.parent.is_dir():
            raise PathNotFoundError(f"Parent directory not found: {split_path(path)[0]}")
        try:
            await asyncio.to_thread(resolved.mkdir)
        except OSError as e:
            raise StorageError(f"Failed to create directory {path}: {e}") from e

    async def delete(self, path: str) -> None:
        """Delete a file or directory (recursively) and every grant below it."""
        path = normalize_path(path)
        self._require_owner(path)
        resolved = self._store.resolve(path)
        if not resolved.exists():
            raise PathNotFoundError(f"File not found: {path}")

        is_dir = resolved.is_dir()

        def _delete() -> None:
            if is_dir:
                shutil.rmtree(resolved)
            else:
                resolved.unlink()

        try:
            await asyncio.to_thread(_delete)
        except OSError as e:
            raise StorageError(f"Failed to delete {path}: {e}") from e
        self._store.access.drop_under(path)

    # =========================================================================
    # Sharing
    # =========================================================================

    async def grant(self, path: str, grantee: str, permission: PermissionKind) -> None:
        path = normalize_path(path)
        self._require_owner(path)
        if grantee == self._user or not self._store.access.are_friends(self._user, grantee):
            raise AccessDeniedError(f"Cannot share with {grantee!r}: not a friend of {self._user!r}")
        if not self._store.resolve(path).exists():
            raise PathNotFoundError(f"File not found: {path}")
        self._store.access.grant(path, grantee, permission)

    async def revoke(self, path: str, grantee: str, permission: PermissionKind) -> None:
        path = normalize_path(path)
        self._require_owner(path)
        self._store.access.revoke(path, grantee, permission)

    async def get_sharees(self, path: str, permission: PermissionKind) -> set[str]:
        path = normalize_path(path)
        self._require_owner(path)
        return self._store.access.sharees(path, permission)

    async def get_random_shared_path(
        self,
        rng: random.Random,
        permission: PermissionKind,
        grantee: str,
    ) -> str:
        paths = [
            p
            for p in self._store.access.shared_paths(self._user, grantee, permission)
            if self._store.resolve(p).exists()
        ]
        if not paths:
            raise NothingSharedError(
                f"{self._user!r} has shared nothing with {grantee!r} for {permission.value}"
            )
        return paths[rng.randrange(len(paths))]

    async def follow(self, other: SimulatedFileSystem) -> None:
        self._store.access.follow(self._user, other.user)

    # =========================================================================
    # Traversal
    # =========================================================================

    async def walk(self, visitor: Callable[[str], object]) -> None:
        root = self._store.resolve(user_root(self._user))
        if not root.is_dir():
            return

        def _scan() -> list[str]:
            found = [root]
            for dirpath, dirnames, filenames in os.walk(root):
                base = Path(dirpath)
                found.extend(base / name for name in dirnames)
                found.extend(base / name for name in filenames)
            return sorted(self._store.to_virtual_path(p) for p in found)

        for path in await asyncio.to_thread(_scan):
            visitor(path)
