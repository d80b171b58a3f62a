"""WeightedScheduler — deterministic weighted sampling of actions."""

from __future__ import annotations

import bisect
from collections.abc import Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING

from .actions import Action
from .exceptions import ConfigurationError

if TYPE_CHECKING:
    import random
    from collections.abc import Iterator

ProbabilityTable = Mapping[Action, float]

DEFAULT_WEIGHTS: Mapping[Action, float] = MappingProxyType(
    {
        Action.READ_OWN_FILE: 0.0,
        Action.WRITE_OWN_FILE: 0.4,
        Action.RM: 0.0,
        Action.MKDIR: 0.1,
        Action.RMDIR: 0.0,
        Action.GRANT_READ_FILE: 0.2,
        Action.GRANT_WRITE_FILE: 0.1,
        Action.GRANT_READ_DIR: 0.05,
        Action.GRANT_WRITE_DIR: 0.05,
        Action.REVOKE_READ: 0.05,
        Action.REVOKE_WRITE: 0.05,
    }
)
"""Weights of the standard two-user scenario. Shared reads and writes are off."""


class WeightedScheduler:
    """Infinite, seed-deterministic stream of actions drawn by relative weight.

    Zero-weight entries never appear.  Cumulative bounds are laid out in
    ``Action`` declaration order, so the table's own insertion order does
    not affect the sequence.  Restart by constructing a new scheduler with
    a freshly seeded random source.
    """

    def __init__(self, table: ProbabilityTable, rng: random.Random) -> None:
        self._rng = rng
        self._actions: list[Action] = []
        self._bounds: list[float] = []

        total = 0.0
        for action in Action:
            weight = float(table.get(action, 0.0))
            if weight < 0:
                raise ConfigurationError(
                    f"Negative weight {weight} for {action.value}"
                )
            if weight == 0:
                continue
            total += weight
            self._actions.append(action)
            self._bounds.append(total)

        if not self._actions:
            raise ConfigurationError("Probability table has no positive weights")
        self._total = total

    @property
    def actions(self) -> tuple[Action, ...]:
        """Actions that can be drawn, in sampling order."""
        return tuple(self._actions)

    @property
    def total_weight(self) -> float:
        return self._total

    def select(self, value: float) -> Action:
        """Return the action for a draw *value* in ``[0, total_weight)``.

        Picks the first cumulative bound ``>= value``; a value landing exactly
        on a bound selects that bound's action.
        """
        pos = bisect.bisect_left(self._bounds, value)
        # float rounding can leave the last bound a hair below the total
        return self._actions[min(pos, len(self._actions) - 1)]

    def next(self) -> Action:
        return self.select(self._rng.random() * self._total)

    def __next__(self) -> Action:
        return self.next()

    def __iter__(self) -> Iterator[Action]:
        return self
