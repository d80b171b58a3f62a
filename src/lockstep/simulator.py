"""Simulator — run the randomized operation sequence, then verify.

One ``random.Random`` seeded from the config is threaded explicitly through
the scheduler, index, pair registry and executor, so a run is fully
reproducible from its seed and weight table.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .config import SimulationConfig
from .executor import DualExecutor
from .index import ShadowIndex
from .oplog import LoggingOperationLog
from .pairs import FileSystems
from .scheduler import WeightedScheduler
from .verifier import Verifier

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .actions import Action
    from .oplog import OperationLog
    from .pairs import FileSystemPair
    from .verifier import VerificationReport

logger = logging.getLogger(__name__)


@dataclass
class SimulationResult:
    """Outcome of a full simulate-then-verify run."""

    report: VerificationReport
    index: ShadowIndex
    actions: list[Action]
    applied: int = 0
    skipped: int = 0
    warnings: int = 0

    @property
    def verified(self) -> bool:
        return self.report.verified


class Simulator:
    """Drives every pair through ``config.op_count`` random actions.

    Usage::

        simulator = Simulator(pairs, SimulationConfig(op_count=100, seed=1))
        result = await simulator.run()
        assert result.verified
    """

    def __init__(
        self,
        pairs: Iterable[FileSystemPair],
        config: SimulationConfig | None = None,
        *,
        rng: random.Random | None = None,
        log: OperationLog | None = None,
    ) -> None:
        self.config = config if config is not None else SimulationConfig()
        self.rng = rng if rng is not None else random.Random(self.config.seed)
        self.log = log if log is not None else LoggingOperationLog()
        self.file_systems = FileSystems(pairs, self.rng)
        self.scheduler = WeightedScheduler(self.config.weights, self.rng)
        self.index = ShadowIndex(self.rng)
        self.executor = DualExecutor(
            self.file_systems, self.index, self.rng, self.log, self.config
        )
        self.verifier = Verifier(self.file_systems, self.index)

    async def simulate(self) -> tuple[list[Action], int]:
        """Initialize, then apply ``op_count`` actions.

        Returns the drawn actions and how many of them were applied.
        """
        logger.info("Running file-system IO-simulation")
        await self.executor.init()

        actions: list[Action] = []
        applied = 0
        for _ in range(self.config.op_count):
            action = self.scheduler.next()
            user = self.file_systems.next_user()
            actions.append(action)
            if await self.executor.apply(action, user):
                applied += 1
        return actions, applied

    async def run(self) -> SimulationResult:
        actions, applied = await self.simulate()

        logger.info("Running file-system verification")
        report = await self.verifier.verify()

        result = SimulationResult(
            report=report,
            index=self.index,
            actions=actions,
            applied=applied,
            skipped=len(actions) - applied,
            warnings=self.executor.warnings,
        )
        logger.info(
            "Applied %d action(s), skipped %d, %d warning(s), verified=%s",
            result.applied,
            result.skipped,
            result.warnings,
            result.verified,
        )
        return result
