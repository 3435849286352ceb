import math

import pytest

from conftest import SUBSET_TARGET, SUBSET_VALUES
from setswarm.cost.adapters import IntEvaluator
from setswarm.cost.problems.multimode import Multimode
from setswarm.cost.problems.simplefactor import SimpleFactor
from setswarm.cost.problems.subsetsum import SubsetSum


def test_documented_subset_sum_instance(subset_problem, subset_evaluator):
    assert subset_problem.target == 1776
    assert subset_problem.max_len() == 8
    assert subset_problem.n_bits == 10
    candidate = subset_evaluator.new_try()
    subset_evaluator.set_try(candidate, 0b10101100)
    assert candidate.cost == 121
    assert subset_evaluator.decode(candidate) == "10101100"
    assert "1776" in subset_evaluator.about()


def test_hidden_subset_costs_nothing(subset_problem):
    assert subset_problem.cost(subset_problem.decode(SUBSET_TARGET)) == 0
    assert subset_problem.cost(0) == 1776


def test_generated_instances_are_reproducible():
    first = SubsetSum.generate(100, 20, 3142)
    second = SubsetSum.generate(100, 20, 3142)
    assert first.values == second.values
    assert first.target_subset == second.target_subset
    assert first.target == first.subset_sum(first.target_subset)
    assert all(0 <= value < (1 << 20) - 1 for value in first.values)
    assert SubsetSum.generate(100, 20, 3143).values != first.values


def test_target_subset_must_fit_the_items():
    with pytest.raises(ValueError):
        SubsetSum(SUBSET_VALUES, 1 << 8, 10)


def test_simple_factor_repair_and_cost():
    problem = SimpleFactor(51647, 97859, 20000)
    evaluator = IntEvaluator(problem)
    assert evaluator.max_len() == 16
    start = evaluator.new_try()
    assert start.parameter == 20001
    assert evaluator.repair(start, 20000) is None
    assert evaluator.repair(start, 30000) == 30001
    evaluator.set_try(start, 51647)
    assert start.cost == 0
    assert start.data.q == 97859
    evaluator.set_try(start, 51649)
    assert start.cost == (51647 * 97859) % 51649


def test_multimode_shape():
    problem = Multimode(n_modes=4, n_bits=16, margin=1.0, sigma=0.0, seed=3142)
    assert problem.noiseless_cost(problem.best_x) == pytest.approx(0.0, abs=1e-12)
    assert problem.decode(1 << 15) == pytest.approx(0.5)
    for x in (0.3, 0.5, 0.9):
        assert problem.noiseless_cost(x) >= -1e-12
    assert problem.omega == pytest.approx(5 * math.pi)


def test_multimode_noise_is_seeded():
    first = Multimode(sigma=0.1, seed=7)
    second = Multimode(sigma=0.1, seed=7)
    assert [first.cost(0.25) for _ in range(5)] == [second.cost(0.25) for _ in range(5)]
    with pytest.raises(ValueError):
        Multimode(margin=7.0)
