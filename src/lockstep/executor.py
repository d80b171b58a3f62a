"""DualExecutor — applies each action to the system under test and the reference.

The executor resolves an action into concrete paths and principals from
the ``ShadowIndex``, issues the same call to both backends of the pair, and
keeps the index in step.  Exhausted candidates skip the action; inline
read mismatches and rejected shared accesses are counted as warnings.
Anything else propagates and aborts the run.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .actions import Action, PermissionKind
from .exceptions import (
    BackendError,
    ExhaustedCandidateError,
    UnexpectedActionError,
)
from .oplog import OperationLogEntry
from .paths import join_path, split_path, user_root

if TYPE_CHECKING:
    import random
    from collections.abc import Awaitable, Callable

    from .config import SimulationConfig
    from .index import ShadowIndex
    from .oplog import OperationLog
    from .pairs import FileSystems
    from .protocol import SimulatedFileSystem

logger = logging.getLogger(__name__)


class DualExecutor:
    """Drives both backends of every pair through identical operations."""

    def __init__(
        self,
        file_systems: FileSystems,
        index: ShadowIndex,
        rng: random.Random,
        log: OperationLog,
        config: SimulationConfig,
    ) -> None:
        self.file_systems = file_systems
        self.index = index
        self._rng = rng
        self._log = log
        self._config = config
        self._name_counter = 0
        self.warnings = 0
        self._handlers: dict[Action, Callable[[Action, str], Awaitable[None]]] = {
            Action.READ_OWN_FILE: self._read_own_file,
            Action.WRITE_OWN_FILE: self._write_own_file,
            Action.READ_SHARED_FILE: self._read_shared_file,
            Action.WRITE_SHARED_FILE: self._write_shared_file,
            Action.MKDIR: self._mkdir,
            Action.RM: self._rm,
            Action.RMDIR: self._rmdir,
            Action.GRANT_READ_FILE: self._grant_file,
            Action.GRANT_WRITE_FILE: self._grant_file,
            Action.GRANT_READ_DIR: self._grant_dir,
            Action.GRANT_WRITE_DIR: self._grant_dir,
            Action.REVOKE_READ: self._revoke,
            Action.REVOKE_WRITE: self._revoke,
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def init(self) -> None:
        """Create and seed every user's root, then make all users friends.

        Each root ends up holding one directory and at least one file, so
        later "pick an existing file" draws start from a non-empty set.
        """
        users = sorted(self.file_systems.users)
        for user in users:
            root = user_root(user)
            self.index.add_user(user)
            self.index.register(user, root)
            pair = self.file_systems.pair(user)
            await pair.test.mkdir(root)
            await pair.reference.mkdir(root)

            await self.apply(Action.MKDIR, user)
            await self.apply(Action.WRITE_OWN_FILE, user)

            for other in users:
                if user >= other:
                    continue
                await pair.test.follow(self.file_systems.test(other))
                await pair.reference.follow(self.file_systems.reference(other))
        logger.info("Initialized %d user(s): %s", len(users), ", ".join(users))

    async def apply(self, action: Action, user: str) -> bool:
        """Run *action* for *user* on both backends.

        Returns False when the action was skipped because nothing could be
        targeted (no directory, no file, nothing shared yet).
        """
        handler = self._handlers.get(action) if isinstance(action, Action) else None
        if handler is None:
            raise UnexpectedActionError(f"Unexpected action {action!r}")
        try:
            await handler(action, user)
        except ExhaustedCandidateError as e:
            logger.debug("Skipped %s for %s: %s", action.name, user, e)
            return False
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _next_name(self) -> str:
        name = str(self._name_counter)
        self._name_counter += 1
        return name

    def _next_contents(self) -> bytes:
        length = self._config.file_length(self._rng.gauss(0.0, 1.0))
        return self._rng.randbytes(length)

    def _record(self, user: str, action: Action, path: str, annotation: str = "") -> None:
        self._log.append(
            OperationLogEntry(user=user, action=action, path=path, annotation=annotation)
        )

    def _warn(self, message: str, *args: object) -> None:
        self.warnings += 1
        logger.warning(message, *args)

    async def _shared_path(self, owner: str, grantee: str, permission: PermissionKind) -> str:
        """Ask the reference for a path *owner* shared with *grantee*.

        Raises ``NothingSharedError`` when there is none.
        """
        reference = self.file_systems.reference(owner)
        return await reference.get_random_shared_path(self._rng, permission, grantee)

    async def _try_read(self, fs: SimulatedFileSystem, role: str, path: str) -> bytes | None:
        try:
            return await fs.read(path)
        except BackendError as e:
            self._warn("%s backend refused read of %s by %s: %s", role, path, fs.user, e)
            return None

    async def _compare_read(self, user: str, path: str) -> bool:
        pair = self.file_systems.pair(user)
        reference = await self._try_read(pair.reference, "reference", path)
        test = await self._try_read(pair.test, "test", path)
        if reference is None or test is None:
            return False
        if reference != test:
            self._warn(
                "Read of %s by %s differs: test %d bytes, reference %d bytes",
                path,
                user,
                len(test),
                len(reference),
            )
            return False
        return True

    async def _write_both(self, user: str, path: str, contents: bytes) -> None:
        pair = self.file_systems.pair(user)
        await pair.test.write(path, contents)
        await pair.reference.write(path, contents)

    # ------------------------------------------------------------------
    # Reads and writes
    # ------------------------------------------------------------------

    async def _read_own_file(self, action: Action, user: str) -> None:
        path = self.index.random_existing_file(user)
        self._record(user, action, path)
        await self._compare_read(user, path)

    async def _read_shared_file(self, action: Action, user: str) -> None:
        owner = self.file_systems.next_user(not_this=user)
        path = await self._shared_path(owner, user, PermissionKind.READ)
        self._record(user, action, path, f"owned by {owner}")
        await self._compare_read(user, path)

    async def _write_own_file(self, action: Action, user: str) -> None:
        directory = self.index.random_existing_directory(user)
        path = join_path(directory, self._next_name())
        self._record(user, action, path)
        contents = self._next_contents()
        self.index.add_file(user, *split_path(path))
        await self._write_both(user, path, contents)

    async def _write_shared_file(self, action: Action, user: str) -> None:
        owner = self.file_systems.next_user(not_this=user)
        path = await self._shared_path(owner, user, PermissionKind.WRITE)
        self._record(user, action, path, f"owned by {owner}")
        contents = self._next_contents()
        # The index tracks each file once, under its owner.
        for role, fs in zip(("test", "reference"), self.file_systems.pair(user).handles):
            try:
                await fs.write(path, contents)
            except BackendError as e:
                self._warn("%s backend refused write of %s by %s: %s", role, path, user, e)

    # ------------------------------------------------------------------
    # Tree shape
    # ------------------------------------------------------------------

    async def _mkdir(self, action: Action, user: str) -> None:
        name = self._next_name()
        path = join_path(self.index.random_existing_directory(user), name)
        self.index.register(user, path)
        self._record(user, action, path)
        pair = self.file_systems.pair(user)
        await pair.test.mkdir(path)
        await pair.reference.mkdir(path)

    async def _rm(self, action: Action, user: str) -> None:
        path = self.index.random_existing_file(user)
        self.index.remove_file(user, *split_path(path))
        self._record(user, action, path)
        pair = self.file_systems.pair(user)
        await pair.test.delete(path)
        await pair.reference.delete(path)

    async def _rmdir(self, action: Action, user: str) -> None:
        path = self.index.random_existing_directory(user, skip_root=True)
        self._record(user, action, path)
        self.index.unregister(user, path)
        pair = self.file_systems.pair(user)
        await pair.test.delete(path)
        await pair.reference.delete(path)

    # ------------------------------------------------------------------
    # Sharing
    # ------------------------------------------------------------------

    async def _grant(self, action: Action, user: str, path: str) -> None:
        grantee = self.file_systems.next_user(not_this=user)
        permission = action.permission
        assert permission is not None
        self._record(user, action, path, f"with grantee {grantee}")
        pair = self.file_systems.pair(user)
        await pair.test.grant(path, grantee, permission)
        await pair.reference.grant(path, grantee, permission)

    async def _grant_file(self, action: Action, user: str) -> None:
        await self._grant(action, user, self.index.random_existing_file(user))

    async def _grant_dir(self, action: Action, user: str) -> None:
        await self._grant(action, user, self.index.random_existing_directory(user, skip_root=True))

    async def _revoke(self, action: Action, user: str) -> None:
        permission = action.permission
        assert permission is not None
        revokee = self.file_systems.next_user(not_this=user)
        path = await self._shared_path(user, revokee, permission)
        self._record(user, action, path, f"from {revokee}")
        pair = self.file_systems.pair(user)
        await pair.test.revoke(path, revokee, permission)
        await pair.reference.revoke(path, revokee, permission)
