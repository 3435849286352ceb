import pytest

from conftest import ConstantProblem, IdentityFloatProblem, ScriptedRng
from setswarm.cost.adapters import FloatEvaluator, IntEvaluator, NoisyEvaluator
from setswarm.cost.base import CmpMode
from setswarm.cost.problems.subsetsum import SubsetSum
from setswarm.sim.core.heuristics import Heuristics
from setswarm.sim.core.rng import DeterministicRng
from setswarm.sim.core.swarm import ROOT_GROUP, Swarm
from setswarm.sim.strategies.global_best import GlobalBestStrategy


class RecordingRng(DeterministicRng):
    def __init__(self, seed: int):
        super().__init__(seed)
        self.floats = 0

    def next_float(self) -> float:
        self.floats += 1
        return super().next_float()


def _assert_membership_consistent(swarm: Swarm) -> None:
    seen = []
    for group in swarm.groups:
        for member in group.members:
            assert swarm.particle(member).group is group
            seen.append(member)
    assert sorted(seen) == list(range(swarm.n_particles))


def test_construction_puts_everyone_in_root(subset_evaluator):
    swarm = Swarm(6, subset_evaluator, seed=578)
    root = swarm.group(ROOT_GROUP)
    assert swarm.n_particles == 6
    assert swarm.max_len == 8
    assert root.members == list(range(6))
    assert root.heuristics is swarm.heuristics
    for i in range(6):
        particle = swarm.particle(i)
        assert particle.best.parameter == particle.current.parameter
        assert particle.best is not particle.current
        assert particle.velocity == [0.0] * 8
        assert particle.current.parameter < (1 << 8)
    _assert_membership_consistent(swarm)


def test_global_best_is_cheapest_personal_best(subset_evaluator):
    swarm = Swarm(10, subset_evaluator, seed=11)
    strategy = GlobalBestStrategy(swarm)
    for _ in range(5):
        strategy.update()
        best_cost = swarm.best_try(swarm.best_particle).cost
        assert all(best_cost <= swarm.best_try(i).cost for i in range(swarm.n_particles))


def test_ties_go_to_the_first_member_in_group_order():
    swarm = Swarm(4, IntEvaluator(ConstantProblem()), seed=1)
    assert swarm.best_particle == 0
    group = swarm.create_group("late", 1)
    swarm.move_to(group, 0)
    swarm.update_global()
    assert swarm.group_best(swarm.group(ROOT_GROUP)) == 1
    assert swarm.group_best(group) == 0
    assert swarm.best_particle == 1


def test_move_to_keeps_membership_consistent(subset_evaluator):
    swarm = Swarm(5, subset_evaluator, seed=2)
    group = swarm.create_group("side", 2)
    swarm.move_to(group, 3)
    swarm.move_to(group, 1)
    swarm.move_to(group, 1)
    assert group.members == [3, 1]
    assert swarm.group(ROOT_GROUP).members == [0, 2, 4]
    assert swarm.group_of(1) is group
    assert group.targets == [0, 0]
    _assert_membership_consistent(swarm)


def test_empty_group_has_no_best(subset_evaluator):
    swarm = Swarm(2, subset_evaluator, seed=2)
    group = swarm.create_group("empty", 1)
    swarm.update_global()
    assert group.best_member is None


def test_group_registry_fails_fast(subset_evaluator):
    swarm = Swarm(3, subset_evaluator, seed=2)
    group = swarm.create_group("a", 1)
    with pytest.raises(ValueError):
        swarm.create_group("a", 1)
    with pytest.raises(KeyError):
        swarm.group("missing")
    with pytest.raises(IndexError):
        swarm.set_group_targets(group, 3)
    with pytest.raises(ValueError):
        swarm.set_group_targets(group, 0, 1)
    with pytest.raises(IndexError):
        swarm.particle(-1)
    swarm.set_group_targets(group, 2)
    assert group.targets == [2]


def test_groups_share_the_master_heuristics(subset_evaluator):
    swarm = Swarm(3, subset_evaluator, seed=2)
    group = swarm.create_group("a", 1)
    swarm.heuristics.omega = 0.5
    assert group.heuristics.omega == 0.5

    snapshot = swarm.snapshot_heuristics()
    assert snapshot is not swarm.heuristics

    replacement = Heuristics(omega=0.6)
    swarm.set_heuristics(replacement)
    assert swarm.heuristics is replacement
    assert group.heuristics is replacement
    assert swarm.group(ROOT_GROUP).heuristics is replacement
    with pytest.raises(ValueError):
        swarm.set_heuristics(Heuristics(omega=1.5))

    private = Heuristics(phi=0.5)
    swarm.set_group_heuristics(group, private)
    assert group.heuristics is private
    assert swarm.group(ROOT_GROUP).heuristics is replacement
    swarm.set_heuristics(Heuristics())
    assert group.heuristics is private


def test_repair_failure_leaves_particles_untouched():
    problem = ConstantProblem()
    swarm = Swarm(4, IntEvaluator(problem), seed=5)
    before = [(swarm.current_try(i).parameter, swarm.best_try(i).parameter) for i in range(4)]
    problem.accept = False
    metrics = swarm.p_update()
    after = [(swarm.current_try(i).parameter, swarm.best_try(i).parameter) for i in range(4)]
    assert after == before
    assert metrics.repair_failures == 4
    assert metrics.iteration == 1


def test_hint_draw_order(subset_evaluator):
    swarm = Swarm(3, subset_evaluator, seed=9)
    root = swarm.group(ROOT_GROUP)
    swarm.set_group_targets(root, 2)
    recorder = RecordingRng(9)
    swarm._rng = recorder
    swarm._compute_hint(swarm.particle(0))
    # blur and shot for the personal best, the same for the one target, then one draw per bit
    assert recorder.floats == 2 + 2 + swarm.max_len


def test_identical_seeds_give_identical_runs():
    def trace(seed: int) -> list:
        swarm = Swarm(8, IntEvaluator(SubsetSum.generate(30, 12, 3142)), seed=seed)
        strategy = GlobalBestStrategy(swarm)
        steps = []
        for _ in range(15):
            strategy.update()
            steps.append(
                [(swarm.current_try(i).parameter, swarm.best_try(i).cost) for i in range(swarm.n_particles)]
            )
        return steps

    assert trace(578) == trace(578)
    assert trace(578) != trace(612)


def test_iteration_hooks_run_after_commit(subset_evaluator):
    swarm = Swarm(3, subset_evaluator, seed=4)
    seen = []
    swarm.add_iteration_hook(lambda s, metrics: seen.append((metrics.iteration, s.best_particle)))
    for _ in range(3):
        swarm.p_update()
    assert [item[0] for item in seen] == [1, 2, 3]
    assert seen[-1][1] == swarm.best_particle


def test_personal_best_never_gets_worse(subset_evaluator):
    swarm = Swarm(6, subset_evaluator, seed=8)
    strategy = GlobalBestStrategy(swarm)
    previous = [swarm.best_try(i).cost for i in range(6)]
    for _ in range(20):
        strategy.update()
        current = [swarm.best_try(i).cost for i in range(6)]
        assert all(now <= before for now, before in zip(current, previous))
        previous = current
        assert all(not swarm.particle(i).trials for i in range(6))


def test_compare_convention_used_for_promotion(subset_evaluator):
    swarm = Swarm(1, subset_evaluator, seed=3)
    particle = swarm.particle(0)
    subset_evaluator.set_try(particle.best, 0)
    particle.hint = 0b10101101
    swarm.set_params(0)
    assert particle.best.parameter == 0b10101101
    assert particle.best.cost == 0
    assert subset_evaluator.compare(particle.current, particle.best, CmpMode.COST) == 1.0
    subset_evaluator.set_try(particle.best, 0b10101101)
    particle.hint = 0b10101100
    swarm.set_params(0)
    assert particle.current.parameter == 0b10101100
    assert particle.best.parameter == 0b10101101


def test_equal_cost_hint_becomes_the_personal_best():
    swarm = Swarm(1, IntEvaluator(ConstantProblem(value=7)), seed=3)
    particle = swarm.particle(0)
    old_best = particle.best.parameter
    particle.hint = old_best ^ 1
    swarm.set_params(0)
    assert particle.current.parameter == old_best ^ 1
    assert particle.best.parameter == old_best ^ 1
    assert particle.trials == []


def test_equal_float_cost_hint_becomes_a_trial():
    swarm = Swarm(1, FloatEvaluator(ConstantProblem(value=4.0)), seed=3)
    particle = swarm.particle(0)
    old_best = particle.best.parameter
    particle.hint = old_best ^ 1
    swarm.set_params(0)
    assert particle.best.parameter == old_best
    assert [trial.parameter for trial in particle.trials] == [old_best ^ 1]


def test_delete_item_is_forwarded():
    problem = ConstantProblem()
    swarm = Swarm(2, IntEvaluator(problem), seed=1)
    assert swarm.delete_item(3) is True
    assert problem.deleted == [3]


def test_debug_report_sections(subset_evaluator):
    swarm = Swarm(3, subset_evaluator, seed=4)
    assert "group data:" in swarm.debug_report("group")
    assert swarm.debug_report("group0").startswith("best member = ")
    assert "bestparam = " in swarm.debug_report("particles")
    assert swarm.debug_report("velocity").startswith("vel 0")
    with pytest.raises(ValueError):
        swarm.debug_report("nope")


def test_snapshot_describes_swarm(subset_evaluator):
    swarm = Swarm(3, subset_evaluator, seed=4)
    swarm.p_update()
    snapshot = swarm.snapshot()
    assert snapshot.iteration == 1
    assert len(snapshot.particles) == 3
    assert snapshot.groups[0].id == ROOT_GROUP
    assert snapshot.best.particle == swarm.best_particle
    assert len(snapshot.best.parameter) == 8
    assert snapshot.metadata.heuristics["omega"] == 0.73


def test_noisy_commits_fill_promote_and_cap_the_trial_list():
    evaluator = NoisyEvaluator(IdentityFloatProblem(), time_constant=100.0, sigma_margin=1.0)
    swarm = Swarm(1, evaluator, seed=3, heuristics=Heuristics(n_tries=2))
    particle = swarm.particle(0)
    evaluator.set_try(particle.best, 3)

    # a noisy COST comparison is only ever +/-0.5, so every commit lands in the trial band
    particle.hint = 1
    swarm.set_params(0)
    assert particle.best.parameter == 3
    assert [trial.parameter for trial in particle.trials] == [1]

    particle.hint = 2
    swarm.set_params(0)
    assert [trial.parameter for trial in particle.trials] == [1, 2]

    particle.hint = 4
    swarm.set_params(0)
    assert [trial.parameter for trial in particle.trials] == [1, 2]

    # trial 1 has now won enough sequential comparisons to replace the personal best
    particle.hint = 5
    swarm.set_params(0)
    assert particle.best.parameter == 1
    assert particle.best.cost.mean == pytest.approx(1.0)
    assert [trial.parameter for trial in particle.trials] == [2, 5]


def test_compute_hint_combines_blur_pulls_and_inertia():
    evaluator = IntEvaluator(ConstantProblem())
    swarm = Swarm(2, evaluator, seed=1)
    particle = swarm.particle(0)
    evaluator.set_try(particle.current, 0b0011)
    evaluator.set_try(particle.best, 0b0001)
    evaluator.set_try(swarm.best_try(1), 0b0100)
    swarm.set_group_targets(swarm.group(ROOT_GROUP), 1)
    # blur, shot for the personal best, blur, shot for the target, then four bit draws
    swarm._rng = ScriptedRng([0.5, 0.4, 0.2, 0.6, 0.99, 0.99, 0.99, 0.99])

    swarm._compute_hint(particle)

    blur = 0.5 * (0.15 * 1 + 2.0) / 4
    target_blur = 0.2 * (0.15 * 3 + 2.0) / 4
    kept = (blur * (1.0 - target_blur) + target_blur) * 0.73
    pulls = [0.6, 0.4 * (1.0 - 0.6) + 0.6, 0.6, 0.0]
    expected = [kept * (1.0 - pull) + pull for pull in pulls]
    assert particle.velocity == pytest.approx(expected)
    assert particle.hint == 0b0011
