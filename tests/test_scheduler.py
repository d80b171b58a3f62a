"""Tests for WeightedScheduler — weighted, seed-deterministic sampling."""

from __future__ import annotations

import itertools
import random
from collections import Counter

import pytest

from lockstep.actions import Action
from lockstep.exceptions import ConfigurationError
from lockstep.scheduler import DEFAULT_WEIGHTS, WeightedScheduler

# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestConstruction:
    def test_zero_weights_excluded(self) -> None:
        scheduler = WeightedScheduler(
            {Action.RM: 0.0, Action.WRITE_OWN_FILE: 1.0}, random.Random(1)
        )
        assert scheduler.actions == (Action.WRITE_OWN_FILE,)
        assert set(itertools.islice(scheduler, 200)) == {Action.WRITE_OWN_FILE}

    def test_negative_weight_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="Negative weight"):
            WeightedScheduler({Action.MKDIR: -0.1}, random.Random(1))

    def test_all_zero_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="no positive weights"):
            WeightedScheduler({Action.MKDIR: 0.0}, random.Random(1))

    def test_empty_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            WeightedScheduler({}, random.Random(1))

    def test_total_weight_need_not_be_one(self) -> None:
        scheduler = WeightedScheduler(
            {Action.MKDIR: 3.0, Action.RM: 5.0}, random.Random(1)
        )
        assert scheduler.total_weight == 8.0

    def test_declaration_order(self) -> None:
        scheduler = WeightedScheduler(
            {Action.REVOKE_WRITE: 1.0, Action.READ_OWN_FILE: 1.0, Action.MKDIR: 1.0},
            random.Random(1),
        )
        assert scheduler.actions == (Action.READ_OWN_FILE, Action.MKDIR, Action.REVOKE_WRITE)

    def test_default_weights(self) -> None:
        scheduler = WeightedScheduler(DEFAULT_WEIGHTS, random.Random(1))
        assert Action.READ_OWN_FILE not in scheduler.actions
        assert Action.RM not in scheduler.actions
        assert Action.RMDIR not in scheduler.actions
        assert Action.WRITE_OWN_FILE in scheduler.actions
        assert scheduler.total_weight == pytest.approx(1.0)


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------


class TestSelect:
    @pytest.fixture
    def scheduler(self) -> WeightedScheduler:
        return WeightedScheduler(
            {Action.READ_OWN_FILE: 1.0, Action.WRITE_OWN_FILE: 1.0, Action.MKDIR: 2.0},
            random.Random(1),
        )

    def test_zero_selects_first(self, scheduler: WeightedScheduler) -> None:
        assert scheduler.select(0.0) is Action.READ_OWN_FILE

    def test_draw_on_bound_selects_that_bound(self, scheduler: WeightedScheduler) -> None:
        assert scheduler.select(1.0) is Action.READ_OWN_FILE
        assert scheduler.select(2.0) is Action.WRITE_OWN_FILE

    def test_draw_past_bound_selects_next(self, scheduler: WeightedScheduler) -> None:
        assert scheduler.select(1.000001) is Action.WRITE_OWN_FILE
        assert scheduler.select(2.5) is Action.MKDIR

    def test_draw_at_total_selects_last(self, scheduler: WeightedScheduler) -> None:
        assert scheduler.select(4.0) is Action.MKDIR


# ---------------------------------------------------------------------------
# Sequences
# ---------------------------------------------------------------------------


class TestSequence:
    def test_same_seed_same_sequence(self) -> None:
        a = WeightedScheduler(DEFAULT_WEIGHTS, random.Random(1))
        b = WeightedScheduler(DEFAULT_WEIGHTS, random.Random(1))
        assert [a.next() for _ in range(300)] == [b.next() for _ in range(300)]

    def test_insertion_order_does_not_matter(self) -> None:
        reversed_table = dict(reversed(list(DEFAULT_WEIGHTS.items())))
        a = WeightedScheduler(DEFAULT_WEIGHTS, random.Random(5))
        b = WeightedScheduler(reversed_table, random.Random(5))
        assert list(itertools.islice(a, 300)) == list(itertools.islice(b, 300))

    def test_different_seeds_differ(self) -> None:
        a = WeightedScheduler(DEFAULT_WEIGHTS, random.Random(1))
        b = WeightedScheduler(DEFAULT_WEIGHTS, random.Random(2))
        assert list(itertools.islice(a, 100)) != list(itertools.islice(b, 100))

    def test_weights_shape_distribution(self) -> None:
        scheduler = WeightedScheduler(
            {Action.WRITE_OWN_FILE: 3.0, Action.MKDIR: 1.0}, random.Random(11)
        )
        counts = Counter(itertools.islice(scheduler, 4000))
        assert 2800 < counts[Action.WRITE_OWN_FILE] < 3200
        assert counts[Action.WRITE_OWN_FILE] + counts[Action.MKDIR] == 4000

    def test_is_its_own_iterator(self) -> None:
        scheduler = WeightedScheduler(DEFAULT_WEIGHTS, random.Random(1))
        assert iter(scheduler) is scheduler
        assert isinstance(next(scheduler), Action)
