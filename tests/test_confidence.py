"""
Tests for the confidence radius and the optimistic index.
"""

import math

import pytest

from accucb.bandit import UNBOUNDED, ConfidenceModel, PartitionTree, confidence_radius


def _model(**kwargs):
    params = dict(rounds=100, v1=1.0, rho=0.5)
    params.update(kwargs)
    return ConfidenceModel(**params)


class TestConfidenceRadius:
    def test_unvisited_is_unbounded(self):
        assert confidence_radius(0.0, 100) == UNBOUNDED
        assert math.isinf(confidence_radius(0.0, 100))

    def test_non_increasing_in_count(self):
        radii = [confidence_radius(c, 100) for c in (1, 2, 3, 5, 10, 50, 1000)]
        assert all(a >= b for a, b in zip(radii, radii[1:]))

    def test_count_four_horizon_hundred(self):
        # sqrt(2 * ln(100) / 4) ~= 1.517
        assert confidence_radius(4.0, 100) == pytest.approx(1.517, abs=1e-3)

    def test_horizon_one_gives_zero(self):
        assert confidence_radius(1.0, 1) == 0.0


class TestHorizon:
    def test_budget_mode_uses_round_budget(self):
        model = _model(rounds=250)
        assert model.horizon(0) == 250.0
        assert model.horizon(1000) == 250.0

    def test_plays_mode_uses_total_plays_plus_one(self):
        model = _model(horizon_mode="plays")
        assert model.horizon(0) == 1.0
        assert model.horizon(4) == 5.0


class TestOptimisticIndex:
    def test_unvisited_root_is_unbounded(self):
        tree = PartitionTree()
        assert math.isinf(_model().optimistic_index(tree.root, None, 100.0))

    def test_root_uses_own_bound_plus_bonus(self):
        tree = PartitionTree()
        tree.root.mean = 0.5
        tree.root.count = 4.0
        model = _model()

        expected = 0.5 + math.sqrt(2 * math.log(100) / 4) + 1.0 * 0.5 ** 0
        assert model.optimistic_index(tree.root, None, 100.0) == pytest.approx(expected)

    def test_child_takes_min_of_own_and_parent_bound(self):
        tree = PartitionTree()
        tree.root.mean = 0.6
        tree.root.count = 8.0
        child = tree.split(0, 2)[0]
        child.mean = 0.5
        child.count = 2.0
        model = _model()

        own = 0.5 + math.sqrt(2 * math.log(100) / 2)
        parent = 0.6 + math.sqrt(2 * math.log(100) / 8) + 1.0 * 0.5 ** 0
        bonus = 1.0 * 0.5 ** 1
        got = model.optimistic_index(child, tree.root, 100.0)
        assert got == pytest.approx(min(own, parent) + bonus)

    def test_fresh_child_is_capped_by_parent(self):
        tree = PartitionTree()
        tree.root.mean = 0.4
        tree.root.count = 50.0
        child = tree.split(0, 2)[1]
        model = _model()

        parent_bound = 0.4 + math.sqrt(2 * math.log(100) / 50) + 1.0
        got = model.optimistic_index(child, tree.root, 100.0)
        assert math.isfinite(got)
        assert got == pytest.approx(parent_bound + 0.5)

    def test_bonus_scale_v2(self):
        tree = PartitionTree()
        tree.root.mean = 0.0
        tree.root.count = 1.0
        model = _model(rounds=1, bonus_coef=0.25)
        # horizon 1 -> radius 0, index is the bonus alone
        assert model.optimistic_index(tree.root, None, 1.0) == pytest.approx(0.25)

    def test_zero_exploration_weight_drops_own_radius(self):
        tree = PartitionTree()
        tree.root.mean = 0.3
        tree.root.count = 0.0
        model = _model(exploration_weight=0.0)
        assert model.optimistic_index(tree.root, None, 100.0) == pytest.approx(0.3 + 1.0)

    def test_threshold(self):
        model = _model(v1=2.0, rho=0.5)
        assert model.threshold(0) == pytest.approx(2.0)
        assert model.threshold(3) == pytest.approx(0.25)
