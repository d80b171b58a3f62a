"""Verifier — reconciles both backends against the ShadowIndex after a run.

For every user the verifier compares each backend's tree with the paths
the index expects, compares file contents between the backends, compares
sharee sets per permission kind, and probes that every sharee reported by
the system under test can really use its grant.

The write probe overwrites the shared file on the system under test with a
single zero byte.  Verification is therefore not read-only: a second
``verify()`` after a run with write grants sees different content on the
two backends.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .actions import PermissionKind
from .exceptions import ConfigurationError

if TYPE_CHECKING:
    from .index import ShadowIndex
    from .pairs import FileSystems
    from .protocol import SimulatedFileSystem

logger = logging.getLogger(__name__)

WRITE_PROBE = b"\x00"


@dataclass(frozen=True)
class VerificationFailure:
    """One discrepancy found during verification.

    Attributes:
        kind: ``index``, ``extra``, ``missing``, ``walk``, ``content``,
            ``read``, ``sharees`` or ``probe``.
        user: Owner of the path under verification.
        path: The offending path.
        backend: ``test`` or ``reference`` when the failure is one-sided.
        permission: Permission kind for sharing failures.
        detail: Human-readable description.
    """

    kind: str
    user: str
    path: str
    backend: str | None = None
    permission: PermissionKind | None = None
    detail: str = ""


@dataclass
class VerificationReport:
    """Outcome of a verification pass."""

    users: dict[str, bool] = field(default_factory=dict)
    failures: list[VerificationFailure] = field(default_factory=list)

    @property
    def verified(self) -> bool:
        return all(self.users.values())

    def failures_for(self, user: str, kind: str | None = None) -> list[VerificationFailure]:
        return [
            f
            for f in self.failures
            if f.user == user and (kind is None or f.kind == kind)
        ]

    def kinds(self) -> set[str]:
        return {f.kind for f in self.failures}

    def __bool__(self) -> bool:
        return self.verified


class Verifier:
    """Compares both backends of every pair with the index and each other.

    Never raises: every backend error is caught, logged and recorded as a
    failure so the report covers everything that went wrong.
    """

    def __init__(self, file_systems: FileSystems, index: ShadowIndex) -> None:
        self.file_systems = file_systems
        self.index = index

    async def verify(self) -> VerificationReport:
        report = VerificationReport()
        for user in self.file_systems.users:
            ok = await self._verify_user(user, report)
            report.users[user] = ok
            if not ok:
                logger.info("User %s is not verified!", user)
        logger.info("System verified = %s", report.verified)
        return report

    # ------------------------------------------------------------------
    # Per-user checks
    # ------------------------------------------------------------------

    async def _verify_user(self, user: str, report: VerificationReport) -> bool:
        pair = self.file_systems.pair(user)
        try:
            expected_files = self.index.expected_files(user)
            expected = self.index.expected_paths(user)
        except ConfigurationError as e:
            logger.warning("User %s is not in the index: %s", user, e)
            report.failures.append(VerificationFailure("index", user, f"/{user}", detail=str(e)))
            return False

        ok = True
        for role, fs in (("test", pair.test), ("reference", pair.reference)):
            ok &= await self._verify_tree(user, role, fs, expected, report)

        for path in sorted(expected_files):
            ok &= await self._verify_contents(user, path, report)
            ok &= await self._verify_sharing(user, path, report)
        return ok

    async def _verify_tree(
        self,
        user: str,
        role: str,
        fs: SimulatedFileSystem,
        expected: set[str],
        report: VerificationReport,
    ) -> bool:
        walked: set[str] = set()
        try:
            await fs.walk(walked.add)
        except Exception as e:
            logger.warning("Walk of %s failed on %s backend", user, role, exc_info=True)
            report.failures.append(
                VerificationFailure("walk", user, f"/{user}", backend=role, detail=str(e))
            )
            return False

        ok = True
        for path in sorted(walked - expected):
            logger.info("%s filesystem of %s has an extra path %s", role, user, path)
            report.failures.append(VerificationFailure("extra", user, path, backend=role))
            ok = False
        for path in sorted(expected - walked):
            logger.info("%s filesystem of %s is missing the path %s", role, user, path)
            report.failures.append(VerificationFailure("missing", user, path, backend=role))
            ok = False
        return ok

    async def _verify_contents(self, user: str, path: str, report: VerificationReport) -> bool:
        pair = self.file_systems.pair(user)
        try:
            test_data = await pair.test.read(path)
            reference_data = await pair.reference.read(path)
        except Exception as e:
            logger.info("Failed to read path %s of %s: %s", path, user, e)
            report.failures.append(VerificationFailure("read", user, path, detail=str(e)))
            return False
        if test_data != reference_data:
            logger.info("Path %s has different contents between the file-systems", path)
            report.failures.append(
                VerificationFailure(
                    "content",
                    user,
                    path,
                    detail=f"test {len(test_data)} bytes, reference {len(reference_data)} bytes",
                )
            )
            return False
        return True

    async def _verify_sharing(self, user: str, path: str, report: VerificationReport) -> bool:
        pair = self.file_systems.pair(user)
        ok = True
        for permission in PermissionKind:
            try:
                test_sharees = set(await pair.test.get_sharees(path, permission))
                reference_sharees = set(await pair.reference.get_sharees(path, permission))
            except Exception as e:
                logger.warning(
                    "Could not list %s sharees of %s", permission.value, path, exc_info=True
                )
                report.failures.append(
                    VerificationFailure(
                        "sharees", user, path, permission=permission, detail=str(e)
                    )
                )
                ok = False
                continue

            if test_sharees != reference_sharees:
                detail = (
                    f"test {permission.value}ers {sorted(test_sharees)} and "
                    f"reference {permission.value}ers {sorted(reference_sharees)}"
                )
                logger.info("User %s path %s has %s", user, path, detail)
                report.failures.append(
                    VerificationFailure(
                        "sharees", user, path, permission=permission, detail=detail
                    )
                )
                ok = False

            for sharee in sorted(test_sharees):
                ok &= await self._probe(user, path, sharee, permission, report)
        return ok

    async def _probe(
        self,
        user: str,
        path: str,
        sharee: str,
        permission: PermissionKind,
        report: VerificationReport,
    ) -> bool:
        """Check *sharee* can really read (or overwrite) *path* on the system under test."""
        try:
            fs = self.file_systems.test(sharee)
            if permission is PermissionKind.READ:
                await fs.read(path)
            else:
                await fs.write(path, WRITE_PROBE)
        except Exception as e:
            logger.warning(
                "User %s could not %s shared-path %s!",
                sharee,
                permission.value,
                path,
                exc_info=True,
            )
            report.failures.append(
                VerificationFailure(
                    "probe",
                    user,
                    path,
                    backend="test",
                    permission=permission,
                    detail=f"{sharee}: {e}",
                )
            )
            return False
        return True
