"""Action catalog — the vocabulary of simulated operations."""

from __future__ import annotations

from enum import Enum

from .exceptions import UnexpectedActionError


class PermissionKind(str, Enum):
    """Independently grantable capability on a path."""

    READ = "read"
    WRITE = "write"


class Action(str, Enum):
    """A simulated operation.

    Declaration order is the enumeration order used by the scheduler.
    """

    READ_OWN_FILE = "read_own_file"
    WRITE_OWN_FILE = "write_own_file"
    READ_SHARED_FILE = "read_shared_file"
    WRITE_SHARED_FILE = "write_shared_file"
    MKDIR = "mkdir"
    RM = "rm"
    RMDIR = "rmdir"
    GRANT_READ_FILE = "grant_read_file"
    GRANT_READ_DIR = "grant_read_dir"
    GRANT_WRITE_FILE = "grant_write_file"
    GRANT_WRITE_DIR = "grant_write_dir"
    REVOKE_READ = "revoke_read"
    REVOKE_WRITE = "revoke_write"

    @property
    def permission(self) -> PermissionKind | None:
        """The permission kind this action concerns, or None."""
        return permission_of(self)

    @classmethod
    def parse(cls, name: str) -> Action:
        """Resolve an action from its value or member name, case-insensitive."""
        key = name.strip().lower().replace("-", "_")
        for action in cls:
            if action.value == key:
                return action
        raise UnexpectedActionError(f"Unknown action: {name!r}")


_READ_ACTIONS = frozenset(
    {
        Action.GRANT_READ_FILE,
        Action.GRANT_READ_DIR,
        Action.REVOKE_READ,
        Action.READ_SHARED_FILE,
    }
)
_WRITE_ACTIONS = frozenset(
    {
        Action.GRANT_WRITE_FILE,
        Action.GRANT_WRITE_DIR,
        Action.REVOKE_WRITE,
        Action.WRITE_SHARED_FILE,
    }
)


def permission_of(action: Action) -> PermissionKind | None:
    """Map *action* to the permission kind it grants, revokes or exercises."""
    if action in _READ_ACTIONS:
        return PermissionKind.READ
    if action in _WRITE_ACTIONS:
        return PermissionKind.WRITE
    return None
