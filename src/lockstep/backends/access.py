"""AccessControl — in-memory grants and follow relations for the disk backend."""

from __future__ import annotations

from collections import defaultdict

from lockstep.actions import PermissionKind
from lockstep.paths import ancestors, is_under, normalize_path


class AccessControl:
    """Path-based grants between users, held in memory.

    Permission resolution walks ancestor paths: a grant on ``/alice/0``
    covers ``/alice/0/1``.  A write grant implies read access.  Sharee
    listings are exact: only grants made on the path itself are reported.
    """

    def __init__(self) -> None:
        self._grants: dict[tuple[str, PermissionKind], set[str]] = defaultdict(set)
        self._friends: set[frozenset[str]] = set()

    # ------------------------------------------------------------------
    # Follow relation
    # ------------------------------------------------------------------

    def follow(self, a: str, b: str) -> None:
        self._friends.add(frozenset((a, b)))

    def are_friends(self, a: str, b: str) -> bool:
        return frozenset((a, b)) in self._friends

    # ------------------------------------------------------------------
    # Grants
    # ------------------------------------------------------------------

    def grant(self, path: str, grantee: str, permission: PermissionKind) -> None:
        self._grants[(normalize_path(path), permission)].add(grantee)

    def revoke(self, path: str, grantee: str, permission: PermissionKind) -> bool:
        """Remove an exact grant. Returns True if it existed."""
        key = (normalize_path(path), permission)
        grantees = self._grants.get(key)
        if not grantees or grantee not in grantees:
            return False
        grantees.discard(grantee)
        if not grantees:
            del self._grants[key]
        return True

    def sharees(self, path: str, permission: PermissionKind) -> set[str]:
        return set(self._grants.get((normalize_path(path), permission), ()))

    def shared_paths(self, owner: str, grantee: str, permission: PermissionKind) -> list[str]:
        """Paths under *owner*'s root granted to *grantee* with *permission*, sorted."""
        root = f"/{owner}"
        return sorted(
            path
            for (path, kind), grantees in self._grants.items()
            if kind is permission and grantee in grantees and is_under(path, root)
        )

    def check_permission(self, path: str, grantee: str, required: PermissionKind) -> bool:
        """Check if *grantee* holds *required* on *path* or an ancestor."""
        for candidate in ancestors(path):
            if grantee in self._grants.get((candidate, PermissionKind.WRITE), ()):
                return True
            if required is PermissionKind.READ and grantee in self._grants.get(
                (candidate, PermissionKind.READ), ()
            ):
                return True
        return False

    def drop_under(self, prefix: str) -> int:
        """Remove every grant on *prefix* or below. Returns the number removed."""
        prefix = normalize_path(prefix)
        doomed = [key for key in self._grants if is_under(key[0], prefix)]
        count = 0
        for key in doomed:
            count += len(self._grants.pop(key))
        return count
