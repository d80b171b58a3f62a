"""SimulatedFileSystem protocol — the capability surface the engine drives.

Both the system under test and the reference model implement this
protocol.  Every method is a coroutine; the engine awaits each call before
issuing the next one.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    import random
    from collections.abc import Callable

    from .actions import PermissionKind


@runtime_checkable
class SimulatedFileSystem(Protocol):
    """One user's handle onto a filesystem backend.

    Paths are absolute and each user's tree lives under ``/{user}``.
    Another user's paths are reachable only through sharing.
    """

    @property
    def user(self) -> str:
        """Identity of the user this handle acts as."""
        ...

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    async def read(self, path: str) -> bytes:
        """Return the file's bytes.

        Raises ``PathNotFoundError`` or ``AccessDeniedError``.
        """
        ...

    async def write(self, path: str, content: bytes) -> None:
        """Create or overwrite a file."""
        ...

    async def mkdir(self, path: str) -> None: ...

    async def delete(self, path: str) -> None:
        """Delete a file, or a directory recursively."""
        ...

    # ------------------------------------------------------------------
    # Sharing
    # ------------------------------------------------------------------

    async def grant(self, path: str, grantee: str, permission: PermissionKind) -> None: ...

    async def revoke(self, path: str, grantee: str, permission: PermissionKind) -> None: ...

    async def get_sharees(self, path: str, permission: PermissionKind) -> set[str]: ...

    async def get_random_shared_path(
        self,
        rng: random.Random,
        permission: PermissionKind,
        grantee: str,
    ) -> str:
        """Pick a path this user shared with *grantee*.

        Raises ``NothingSharedError`` when there is none.
        """
        ...

    async def follow(self, other: SimulatedFileSystem) -> None:
        """Establish a mutual trust relation with *other*'s user."""
        ...

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    async def walk(self, visitor: Callable[[str], object]) -> None:
        """Call *visitor* once per path in this user's tree, root included."""
        ...
