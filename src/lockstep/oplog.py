"""Operation log — append-only record of every action the executor issues."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .actions import Action

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class OperationLogEntry:
    """Immutable record of one applied action.

    Attributes:
        user: The user the action was applied for.
        action: The action that was applied.
        path: Concrete target path.
        annotation: Free-form detail, e.g. the grantee.
        timestamp: When the entry was recorded (UTC).
    """

    user: str
    action: Action
    path: str
    annotation: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def format(self) -> str:
        line = f"OP: <{self.user}> {self.action.name} {self.path}"
        return f"{line} {self.annotation}" if self.annotation else line


@runtime_checkable
class OperationLog(Protocol):
    """Sink for operation log entries. Entries are never read back by the engine."""

    def append(self, entry: OperationLogEntry) -> None: ...


class MemoryOperationLog:
    """Keeps entries in a list so tests can inspect them."""

    def __init__(self) -> None:
        self._entries: list[OperationLogEntry] = []

    def append(self, entry: OperationLogEntry) -> None:
        self._entries.append(entry)

    @property
    def entries(self) -> list[OperationLogEntry]:
        return list(self._entries)

    def __iter__(self) -> Iterator[OperationLogEntry]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)


class LoggingOperationLog:
    """Emits each entry through the ``lockstep.oplog`` logger."""

    def __init__(self, level: int = logging.INFO) -> None:
        self._level = level

    def append(self, entry: OperationLogEntry) -> None:
        logger.log(self._level, entry.format())


class TeeOperationLog:
    """Forwards each entry to several sinks, in order."""

    def __init__(self, *sinks: OperationLog) -> None:
        self._sinks = sinks

    def append(self, entry: OperationLogEntry) -> None:
        for sink in self._sinks:
            sink.append(entry)
