"""SimulationConfig — knobs for one simulation run."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from .exceptions import ConfigurationError
from .scheduler import DEFAULT_WEIGHTS

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .actions import Action

MIN_FILE_LENGTH = 256
MAX_FILE_LENGTH = 16 * 1024 * 1024


@dataclass
class SimulationConfig:
    """Configuration for a single simulation run."""

    op_count: int = 100
    """Number of steady-state actions drawn after initialization."""

    seed: int = 1
    """Seed of the single random source shared by every component."""

    mean_file_length: int = 256
    """Scale of the Gaussian used to size written files."""

    min_file_length: int = MIN_FILE_LENGTH
    """Lower clamp for file sizes, in bytes."""

    max_file_length: int = MAX_FILE_LENGTH
    """Upper clamp for file sizes, in bytes."""

    weights: Mapping[Action, float] = field(default_factory=lambda: DEFAULT_WEIGHTS)
    """Relative weight of each action. Zero-weight actions never run."""

    def __post_init__(self) -> None:
        if self.op_count < 0:
            raise ConfigurationError(f"op_count must be >= 0, got {self.op_count}")
        if self.mean_file_length < 0:
            raise ConfigurationError(
                f"mean_file_length must be >= 0, got {self.mean_file_length}"
            )
        if not 0 <= self.min_file_length <= self.max_file_length:
            raise ConfigurationError(
                "file length bounds must satisfy 0 <= min_file_length <= max_file_length"
            )
        self.weights = MappingProxyType(dict(self.weights))
        negative = sorted(a.value for a, w in self.weights.items() if w < 0)
        if negative:
            raise ConfigurationError(f"Negative weight for {', '.join(negative)}")
        if not any(w > 0 for w in self.weights.values()):
            raise ConfigurationError("Probability table has no positive weights")

    def file_length(self, gaussian: float) -> int:
        """Clamp ``gaussian * mean_file_length`` into the configured bounds."""
        target = int(gaussian * self.mean_file_length)
        return min(self.max_file_length, max(target, self.min_file_length))
