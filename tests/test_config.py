"""Tests for SimulationConfig."""

from __future__ import annotations

import pytest

from lockstep.actions import Action
from lockstep.config import MIN_FILE_LENGTH, SimulationConfig
from lockstep.exceptions import ConfigurationError
from lockstep.scheduler import DEFAULT_WEIGHTS

# ---------------------------------------------------------------------------
# SimulationConfig
# ---------------------------------------------------------------------------


class TestSimulationConfig:
    def test_defaults(self) -> None:
        config = SimulationConfig()
        assert config.op_count == 100
        assert config.seed == 1
        assert config.mean_file_length == 256
        assert config.min_file_length == MIN_FILE_LENGTH == 256
        assert dict(config.weights) == dict(DEFAULT_WEIGHTS)

    def test_weights_are_frozen(self) -> None:
        table = {Action.MKDIR: 1.0}
        config = SimulationConfig(weights=table)
        table[Action.RM] = 1.0
        assert Action.RM not in config.weights
        with pytest.raises(TypeError):
            config.weights[Action.RM] = 1.0  # type: ignore[index]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"op_count": -1},
            {"mean_file_length": -5},
            {"min_file_length": 10, "max_file_length": 5},
            {"min_file_length": -1},
            {"weights": {}},
            {"weights": {Action.RM: 0.0}},
            {"weights": {Action.RM: -1.0, Action.MKDIR: 1.0}},
        ],
    )
    def test_invalid(self, kwargs: dict) -> None:
        with pytest.raises(ConfigurationError):
            SimulationConfig(**kwargs)

    def test_file_length_clamps_low(self) -> None:
        config = SimulationConfig()
        assert config.file_length(-1.5) == 256
        assert config.file_length(0.5) == 256

    def test_file_length_scales_with_mean(self) -> None:
        config = SimulationConfig(mean_file_length=1000)
        assert config.file_length(2.0) == 2000

    def test_file_length_clamps_high(self) -> None:
        config = SimulationConfig(mean_file_length=1000, max_file_length=300)
        assert config.file_length(5.0) == 300
