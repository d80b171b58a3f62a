"""Tests for Verifier — post-run reconciliation of both backends."""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

import pytest

from lockstep.actions import PermissionKind
from lockstep.exceptions import AccessDeniedError, StorageError
from lockstep.index import ShadowIndex
from lockstep.pairs import FileSystems
from lockstep.verifier import WRITE_PROBE, VerificationFailure, VerificationReport, Verifier

if TYPE_CHECKING:
    from lockstep.executor import DualExecutor
    from lockstep.pairs import FileSystemPair


def _verifier(executor: DualExecutor) -> Verifier:
    return Verifier(executor.file_systems, executor.index)


def _only_file(executor: DualExecutor, user: str) -> str:
    (path,) = executor.index.expected_files(user)
    return path


async def _grant_both(executor: DualExecutor, owner: str, path: str, grantee: str, kind) -> None:
    for fs in executor.file_systems.pair(owner).handles:
        await fs.grant(path, grantee, kind)


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------


class TestVerificationReport:
    def test_empty_report_is_verified(self) -> None:
        report = VerificationReport()
        assert report.verified
        assert bool(report)

    def test_failures_for(self) -> None:
        report = VerificationReport(
            users={"left": False, "right": True},
            failures=[
                VerificationFailure("extra", "left", "/left/x", backend="test"),
                VerificationFailure("content", "left", "/left/y"),
            ],
        )
        assert not report
        assert report.kinds() == {"extra", "content"}
        assert len(report.failures_for("left")) == 2
        assert report.failures_for("left", "content")[0].path == "/left/y"
        assert report.failures_for("right") == []


# ---------------------------------------------------------------------------
# Verifier
# ---------------------------------------------------------------------------


class TestTree:
    async def test_clean_state_verifies(self, executor: DualExecutor) -> None:
        report = await _verifier(executor).verify()
        assert report.verified
        assert report.users == {"left": True, "right": True}
        assert report.failures == []

    async def test_missing_on_reference(self, executor: DualExecutor) -> None:
        path = _only_file(executor, "left")
        await executor.file_systems.reference("left").delete(path)

        report = await _verifier(executor).verify()

        assert report.users == {"left": False, "right": True}
        (missing,) = report.failures_for("left", "missing")
        assert missing.path == path
        assert missing.backend == "reference"
        assert report.failures_for("left", "read")

    async def test_extra_on_test(self, executor: DualExecutor) -> None:
        await executor.file_systems.test("right").write("/right/stray", b"x")

        report = await _verifier(executor).verify()

        assert report.users == {"left": True, "right": False}
        (extra,) = report.failures
        assert extra.kind == "extra"
        assert extra.path == "/right/stray"
        assert extra.backend == "test"

    async def test_extra_and_missing_are_logged(
        self, executor: DualExecutor, caplog: pytest.LogCaptureFixture
    ) -> None:
        await executor.file_systems.test("right").write("/right/stray", b"x")
        await executor.file_systems.reference("left").delete(_only_file(executor, "left"))

        with caplog.at_level("INFO", logger="lockstep.verifier"):
            await _verifier(executor).verify()

        assert "has an extra path /right/stray" in caplog.text
        assert "is missing the path" in caplog.text
        assert "System verified = False" in caplog.text

    async def test_walk_error_is_recorded(
        self, executor: DualExecutor, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        async def broken_walk(visitor) -> None:
            raise StorageError("disk on fire")

        monkeypatch.setattr(executor.file_systems.test("left"), "walk", broken_walk)

        report = await _verifier(executor).verify()

        (failure,) = report.failures_for("left", "walk")
        assert failure.backend == "test"
        assert "disk on fire" in failure.detail
        assert not report.users["left"]

    async def test_user_missing_from_index(self, pairs: list[FileSystemPair]) -> None:
        rng = random.Random(1)
        verifier = Verifier(FileSystems(pairs, rng), ShadowIndex(rng))

        report = await verifier.verify()

        assert report.users == {"left": False, "right": False}
        assert report.kinds() == {"index"}


class TestContents:
    async def test_content_divergence(self, executor: DualExecutor) -> None:
        path = _only_file(executor, "left")
        await executor.file_systems.test("left").write(path, b"diverged")

        report = await _verifier(executor).verify()

        assert report.kinds() == {"content"}
        assert report.failures[0].path == path


class TestSharing:
    async def test_matching_grants_verify(self, executor: DualExecutor) -> None:
        path = _only_file(executor, "left")
        await _grant_both(executor, "left", path, "right", PermissionKind.READ)

        report = await _verifier(executor).verify()

        assert report.verified

    async def test_grant_only_on_test(self, executor: DualExecutor) -> None:
        path = _only_file(executor, "left")
        await executor.file_systems.test("left").grant(path, "right", PermissionKind.READ)

        report = await _verifier(executor).verify()

        (failure,) = report.failures
        assert failure.kind == "sharees"
        assert failure.permission is PermissionKind.READ
        assert "['right']" in failure.detail

    async def test_sharee_error_is_recorded(
        self, executor: DualExecutor, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        async def broken_sharees(path: str, permission: PermissionKind) -> set[str]:
            raise StorageError("no sharees today")

        monkeypatch.setattr(executor.file_systems.reference("right"), "get_sharees", broken_sharees)

        report = await _verifier(executor).verify()

        assert {f.kind for f in report.failures_for("right")} == {"sharees"}
        assert len(report.failures_for("right")) == len(PermissionKind)
        assert report.users["left"]

    async def test_unusable_read_grant(
        self, executor: DualExecutor, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        path = _only_file(executor, "left")
        await _grant_both(executor, "left", path, "right", PermissionKind.READ)
        right = executor.file_systems.test("right")
        original_read = right.read

        async def denied_read(p: str) -> bytes:
            if p.startswith("/left/"):
                raise AccessDeniedError(f"Access denied: {p}")
            return await original_read(p)

        monkeypatch.setattr(right, "read", denied_read)

        report = await _verifier(executor).verify()

        (failure,) = report.failures
        assert failure.kind == "probe"
        assert failure.user == "left"
        assert failure.permission is PermissionKind.READ
        assert failure.detail.startswith("right:")
        assert report.users == {"left": False, "right": True}

    async def test_write_check_mutates_test_content(self, executor: DualExecutor) -> None:
        path = _only_file(executor, "left")
        await _grant_both(executor, "left", path, "right", PermissionKind.WRITE)
        verifier = _verifier(executor)

        first = await verifier.verify()
        assert first.verified
        assert await executor.file_systems.test("left").read(path) == WRITE_PROBE

        second = await verifier.verify()
        assert second.kinds() == {"content"}
