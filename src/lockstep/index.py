"""ShadowIndex — the engine's own record of what should exist.

The index is maintained purely from the operations the executor issues
and never queries a backend.  It is the oracle the verifier compares both
backends against.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import TYPE_CHECKING

from .exceptions import ConfigurationError, NoCandidateError
from .paths import is_under, join_path, normalize_path, user_root

if TYPE_CHECKING:
    import random
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

RETRY_FACTOR = 64
"""Attempts per known directory before ``random_existing_file`` stops retrying."""


class ShadowIndex:
    """Per-user mapping of directory path → file names directly inside it.

    Every directory ever created (the user's root included) has an entry,
    possibly empty.  Every written file appears once, under its parent.
    Candidate directories are sorted before indexing so that draws from
    the shared random source are reproducible regardless of dict order.
    """

    def __init__(self, rng: random.Random) -> None:
        self._rng = rng
        self._index: dict[str, dict[str, list[str]]] = {}

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def add_user(self, user: str) -> None:
        """Create an empty directory map for *user*."""
        if user in self._index:
            raise ConfigurationError(f"User already registered: {user!r}")
        self._index[user] = {}

    @property
    def users(self) -> list[str]:
        return list(self._index)

    @staticmethod
    def root(user: str) -> str:
        return user_root(user)

    def _dirs(self, user: str) -> dict[str, list[str]]:
        try:
            return self._index[user]
        except KeyError:
            raise ConfigurationError(f"Unknown user: {user!r}") from None

    # ------------------------------------------------------------------
    # Random selection
    # ------------------------------------------------------------------

    def random_existing_directory(self, user: str, skip_root: bool = False) -> str:
        """Pick one of *user*'s known directories uniformly at random.

        With *skip_root* the user's root is excluded; it is structurally
        special and must always exist.
        """
        dirs = sorted(self._dirs(user))
        if skip_root:
            root = user_root(user)
            dirs = [d for d in dirs if d != root]
        if not dirs:
            raise NoCandidateError(f"No directories available for {user!r}")
        return dirs[self._rng.randrange(len(dirs))]

    def random_existing_file(self, user: str) -> str:
        """Pick a random directory, then a random file inside it.

        Empty directories are redrawn.  At least one non-empty directory
        must exist; after ``RETRY_FACTOR`` attempts per directory the draw
        falls back to the non-empty directories only, so the loop is bounded.
        """
        dir_to_files = self._dirs(user)
        non_empty = sorted(d for d, names in dir_to_files.items() if names)
        if not non_empty:
            raise NoCandidateError(f"No files available for {user!r}")

        for _ in range(RETRY_FACTOR * len(dir_to_files)):
            directory = self.random_existing_directory(user)
            names = dir_to_files[directory]
            if names:
                break
        else:
            logger.debug("Retry cap reached picking a file for %s", user)
            directory = non_empty[self._rng.randrange(len(non_empty))]
            names = dir_to_files[directory]

        return join_path(directory, names[self._rng.randrange(len(names))])

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def register(self, user: str, directory: str) -> None:
        """Record *directory* as existing (no-op if already known)."""
        self._dirs(user).setdefault(normalize_path(directory), [])

    def unregister(self, user: str, directory: str) -> list[str]:
        """Forget *directory* and every directory rooted under it.

        Returns the removed directory paths, sorted.
        """
        directory = normalize_path(directory)
        dir_to_files = self._dirs(user)
        removed = sorted(p for p in dir_to_files if is_under(p, directory))
        for path in removed:
            del dir_to_files[path]
        return removed

    def add_file(self, user: str, directory: str, name: str) -> None:
        directory = normalize_path(directory)
        dir_to_files = self._dirs(user)
        if directory not in dir_to_files:
            raise NoCandidateError(f"Unknown directory for {user!r}: {directory}")
        names = dir_to_files[directory]
        if name not in names:
            names.append(name)

    def remove_file(self, user: str, directory: str, name: str) -> bool:
        """Remove *name* from *directory*. Returns True if it was listed."""
        names = self._dirs(user).get(normalize_path(directory))
        if names is None or name not in names:
            return False
        names.remove(name)
        return True

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    def dir_to_files(self, user: str) -> Mapping[str, list[str]]:
        """Read-only view of *user*'s directory map."""
        return MappingProxyType(self._dirs(user))

    def directories(self, user: str) -> set[str]:
        return set(self._dirs(user))

    def expected_files(self, user: str) -> set[str]:
        """Every file path the index believes *user* owns."""
        return {
            join_path(directory, name)
            for directory, names in self._dirs(user).items()
            for name in names
        }

    def expected_paths(self, user: str) -> set[str]:
        """Expected files plus every known directory."""
        return self.expected_files(user) | self.directories(user)

    def has_files(self, user: str) -> bool:
        return any(self._dirs(user).values())

    def snapshot(self) -> dict[str, dict[str, list[str]]]:
        """Deep copy of the whole index, for comparisons between runs."""
        return {
            user: {d: list(names) for d, names in dirs.items()}
            for user, dirs in self._index.items()
        }
