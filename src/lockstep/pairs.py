"""FileSystemPair and FileSystems — one test/reference handle pair per user."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .exceptions import ConfigurationError, NoCandidateError

if TYPE_CHECKING:
    import random
    from collections.abc import Iterable

    from .protocol import SimulatedFileSystem


@dataclass(frozen=True)
class FileSystemPair:
    """The system under test and the reference model for one user."""

    test: SimulatedFileSystem
    """Backend whose correctness is being evaluated."""

    reference: SimulatedFileSystem
    """Independently implemented backend used as the oracle."""

    def __post_init__(self) -> None:
        if self.test.user != self.reference.user:
            raise ConfigurationError(
                f"Pair users differ: test={self.test.user!r} "
                f"reference={self.reference.user!r}"
            )

    @property
    def user(self) -> str:
        return self.reference.user

    @property
    def handles(self) -> tuple[SimulatedFileSystem, SimulatedFileSystem]:
        return self.test, self.reference


class FileSystems:
    """Registry of pairs, keyed by user, in construction order."""

    def __init__(self, pairs: Iterable[FileSystemPair], rng: random.Random) -> None:
        self._rng = rng
        self._pairs: dict[str, FileSystemPair] = {}
        for pair in pairs:
            if pair.user in self._pairs:
                raise ConfigurationError(f"Duplicate user: {pair.user!r}")
            self._pairs[pair.user] = pair
        if not self._pairs:
            raise ConfigurationError("At least one file-system pair is required")

    @property
    def users(self) -> list[str]:
        return list(self._pairs)

    def pair(self, user: str) -> FileSystemPair:
        try:
            return self._pairs[user]
        except KeyError:
            raise ConfigurationError(f"Unknown user: {user!r}") from None

    def test(self, user: str) -> SimulatedFileSystem:
        return self.pair(user).test

    def reference(self, user: str) -> SimulatedFileSystem:
        return self.pair(user).reference

    def next_user(self, not_this: str | None = None) -> str:
        """Pick a user uniformly at random, optionally excluding *not_this*.

        Rejection sampling keeps the draw sequence identical to a plain
        pick whenever the first draw is acceptable.
        """
        users = self.users
        if not_this is not None and not any(u != not_this for u in users):
            raise NoCandidateError(f"No user other than {not_this!r}")
        while True:
            user = users[self._rng.randrange(len(users))]
            if user != not_this:
                return user
