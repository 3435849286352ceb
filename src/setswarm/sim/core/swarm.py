from __future__ import annotations

import logging
from time import perf_counter
from typing import Callable, Dict, List, Optional

from ...cost.base import CmpMode, Evaluator, Try
from ..systems import metrics as metrics_system, trials, velocity
from ..types.metrics import IterationMetrics
from ..types.snapshot import Snapshot, SnapshotBest, SnapshotGroup, SnapshotMetadata
from ..utils.bits import to_binary
from .group import Group
from .heuristics import Heuristics
from .particle import Particle
from .rng import DeterministicRng

logger = logging.getLogger(__name__)

ROOT_GROUP = "root"

IterationHook = Callable[["Swarm", IterationMetrics], None]


class Swarm:
    """Set based particle swarm over ``max_len`` bit candidates.

    Every particle starts in the ``root`` group. Strategies regroup particles
    and set group targets, then call :meth:`p_update` once per iteration.
    Groups are kept in creation order, which is the order every group scan
    uses, and all random draws come from one stream seeded at construction.
    """

    def __init__(
        self,
        n_particles: int,
        evaluator: Evaluator,
        seed: int,
        heuristics: Optional[Heuristics] = None,
    ):
        if n_particles <= 0:
            raise ValueError(f"swarm needs at least one particle, got {n_particles}")
        self._evaluator = evaluator
        self._seed = seed
        self._rng = DeterministicRng(seed)
        self._max_len = evaluator.max_len()
        if self._max_len <= 0:
            raise ValueError(f"evaluator max_len must be positive, got {self._max_len}")
        self._heuristics = heuristics if heuristics is not None else Heuristics()
        self._heuristics.validate()
        self._groups: Dict[str, Group] = {}
        self._particles: List[Particle] = []
        self._temp = 0
        self._temp_vel: List[float] = [0.0] * self._max_len
        self._best_particle = 0
        self._iteration = 0
        self._hooks: List[IterationHook] = []
        self._metrics: IterationMetrics | None = None
        self._promotions = 0
        self._trial_promotions = 0
        self._repair_failures = 0
        root = Group(ROOT_GROUP, self._heuristics, [0])
        self._groups[ROOT_GROUP] = root
        self._bootstrap_particles(n_particles, root)
        self.update_global()

    def _bootstrap_particles(self, n_particles: int, root: Group) -> None:
        evaluator = self._evaluator
        for index in range(n_particles):
            current = evaluator.new_try()
            # an evaluator that never accepts random hints stalls here
            while True:
                hint = self._rng.next_bits(self._max_len)
                repaired = evaluator.repair(current, hint)
                if repaired is not None:
                    break
            evaluator.set_try(current, repaired)
            best = evaluator.new_try()
            evaluator.copy(best, current)
            particle = Particle(index, current, best, [0.0] * self._max_len, root, hint)
            self._particles.append(particle)
            root.members.append(index)

    @property
    def n_particles(self) -> int:
        return len(self._particles)

    @property
    def max_len(self) -> int:
        return self._max_len

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def evaluator(self) -> Evaluator:
        return self._evaluator

    @property
    def rng(self) -> DeterministicRng:
        return self._rng

    @property
    def particles(self) -> List[Particle]:
        return self._particles

    @property
    def groups(self) -> List[Group]:
        return list(self._groups.values())

    @property
    def best_particle(self) -> int:
        return self._best_particle

    @property
    def iteration(self) -> int:
        return self._iteration

    @property
    def metrics(self) -> IterationMetrics | None:
        return self._metrics

    @property
    def heuristics(self) -> Heuristics:
        """Master heuristics; changes made through it reach every group sharing it."""
        return self._heuristics

    def particle(self, index: int) -> Particle:
        if not 0 <= index < len(self._particles):
            raise IndexError(f"particle id {index} out of range 0..{len(self._particles) - 1}")
        return self._particles[index]

    def current_try(self, index: int) -> Try:
        return self.particle(index).current

    def best_try(self, index: int) -> Try:
        return self.particle(index).best

    def best(self) -> Try:
        return self._particles[self._best_particle].best

    def snapshot_heuristics(self) -> Heuristics:
        return self._heuristics.copy()

    def set_heuristics(self, heuristics: Heuristics) -> None:
        """Replace the master heuristics, rebinding every group that shared the old one."""
        heuristics.validate()
        previous = self._heuristics
        for group in self._groups.values():
            if group.heuristics is previous:
                group.heuristics = heuristics
        self._heuristics = heuristics

    def set_group_heuristics(self, group: Group, heuristics: Heuristics) -> None:
        self._check_group(group)
        heuristics.validate()
        group.heuristics = heuristics

    def add_iteration_hook(self, hook: IterationHook) -> None:
        self._hooks.append(hook)

    def group(self, name: str) -> Group:
        try:
            return self._groups[name]
        except KeyError:
            raise KeyError(f"Unknown group: {name}") from None

    def group_of(self, index: int) -> Group:
        return self.particle(index).group

    def group_best(self, group: Group) -> Optional[int]:
        return group.best_member

    def create_group(self, name: str, n_targets: int) -> Group:
        if name in self._groups:
            raise ValueError(f"Group already exists: {name}")
        if n_targets < 0:
            raise ValueError(f"n_targets must be non-negative, got {n_targets}")
        group = Group(name, self._groups[ROOT_GROUP].heuristics, [0] * n_targets)
        self._groups[name] = group
        return group

    def set_group_targets(self, group: Group, *targets: int) -> None:
        """Fill the first ``len(targets)`` slots; remaining slots keep their ids."""
        self._check_group(group)
        if len(targets) > len(group.targets):
            raise ValueError(
                f"group {group.id} has {len(group.targets)} target slots, got {len(targets)} targets"
            )
        for target in targets:
            self.particle(target)
        group.targets[: len(targets)] = targets

    def move_to(self, group: Group, index: int) -> None:
        self._check_group(group)
        particle = self.particle(index)
        source = particle.group
        if source is group:
            return
        source.members.remove(index)
        group.members.append(index)
        particle.group = group

    def _check_group(self, group: Group) -> None:
        if self._groups.get(group.id) is not group:
            raise ValueError(f"group {group.id} does not belong to this swarm")

    def delete_item(self, item: int) -> bool:
        return self._evaluator.delete(item)

    def update_group(self, group: Group) -> None:
        """Cache the member whose personal best is cheapest; the earliest member wins ties."""
        if not group.members:
            group.best_member = None
            return
        evaluator = self._evaluator
        best = group.members[0]
        for member in group.members[1:]:
            # negative when ``member`` is cheaper than the current best
            result = evaluator.compare(
                self._particles[member].best, self._particles[best].best, CmpMode.COST
            )
            if result < 0.0:
                best = member
        group.best_member = best

    def update_global(self) -> None:
        evaluator = self._evaluator
        for group in self._groups.values():
            self.update_group(group)
        best: Optional[int] = None
        for group in self._groups.values():
            member = group.best_member
            if member is None:
                continue
            if best is None:
                best = member
                continue
            result = evaluator.compare(self._particles[member].best, self._particles[best].best, CmpMode.COST)
            if result < 0.0:
                best = member
        if best is not None:
            self._best_particle = best

    def p_update(self) -> IterationMetrics:
        """Run one iteration with the current group targets.

        Every hint is computed from last iteration's state before any particle
        commits, then each particle commits in id order and the bests are
        refreshed.
        """
        start = perf_counter()
        self._promotions = 0
        self._trial_promotions = 0
        self._repair_failures = 0
        for particle in self._particles:
            self._compute_hint(particle)
        for index in range(len(self._particles)):
            self.set_params(index)
        self.update_global()
        self._iteration += 1
        duration_ms = (perf_counter() - start) * 1000.0
        self._metrics = metrics_system.create_metrics(
            self._iteration,
            self._particles,
            self._best_particle,
            self._evaluator,
            (self._promotions, self._trial_promotions, self._repair_failures),
            duration_ms,
        )
        for hook in self._hooks:
            hook(self, self._metrics)
        return self._metrics

    def _compute_hint(self, particle: Particle) -> None:
        hu = particle.group.heuristics
        rng = self._rng
        current = particle.current.parameter
        vel = particle.velocity
        contribution = self._temp_vel

        self._temp = current ^ particle.best.parameter
        velocity.blur(vel, self._temp, self._max_len, hu.lfactor, hu.loffset, rng)
        shot = velocity.shot_probability(hu.phi, rng)
        velocity.set_contribution(contribution, self._temp, shot)

        for target in particle.group.targets:
            self._temp = current ^ self._particles[target].best.parameter
            velocity.blur(vel, self._temp, self._max_len, hu.lfactor, hu.loffset, rng)
            shot = velocity.shot_probability(hu.phi, rng)
            velocity.add_contribution(contribution, self._temp, shot)

        velocity.apply_inertia(vel, contribution, hu.omega)
        particle.hint = velocity.sample_mutation(vel, current, rng)

    def set_params(self, index: int) -> None:
        """Commit a particle's hint and decide whether it replaces the personal best."""
        particle = self.particle(index)
        hu = particle.group.heuristics
        evaluator = self._evaluator
        repaired = evaluator.repair(particle.current, particle.hint)
        if repaired is None:
            self._repair_failures += 1
            logger.debug("particle %d: hint %s rejected by evaluator", index, to_binary(particle.hint))
            return
        evaluator.set_try(particle.current, repaired)
        evaluator.update_cost(particle.best)
        for trial in particle.trials:
            evaluator.update_cost(trial)
        if trials.look_for_better_trial(particle, evaluator):
            self._trial_promotions += 1
        result = evaluator.compare(particle.best, particle.current, CmpMode.COST)
        if result > hu.threshold:
            evaluator.copy(particle.best, particle.current)
            self._promotions += 1
        elif result > -hu.threshold:
            trials.push_trial(particle, particle.current, evaluator, hu.n_tries)

    def debug_report(self, section: str) -> str:
        evaluator = self._evaluator
        lines: List[str] = []
        if section == "group":
            lines.append("group data:")
            for particle in self._particles:
                lines.append(f" {particle.id} group = {particle.group!r}")
        elif section == "group0":
            root = self.group(ROOT_GROUP)
            if root.best_member is None:
                lines.append("best member = none")
            else:
                cost = evaluator.cost_text(self._particles[root.best_member].best)
                lines.append(f"best member = {root.best_member}, cost = {cost}")
        elif section == "particles":
            for particle in self._particles:
                lines.append(f"{particle.id} bestcost= {evaluator.cost_text(particle.best)}")
                lines.append(f"bestparam = {to_binary(particle.best.parameter)}")
                lines.append(f"param = {to_binary(particle.current.parameter)}")
        elif section == "velocity":
            for particle in self._particles:
                lines.append(f"vel {particle.id}")
                for start in range(0, len(particle.velocity), 5):
                    chunk = particle.velocity[start : start + 5]
                    lines.append("  " + "  ".join(f"{value:f}" for value in chunk))
        else:
            raise ValueError(f"Unknown debug section: {section}")
        return "\n".join(lines)

    def snapshot(self) -> Snapshot:
        evaluator = self._evaluator
        particles = [
            {
                "id": particle.id,
                "group": particle.group.id,
                "current": to_binary(particle.current.parameter, self._max_len),
                "best": to_binary(particle.best.parameter, self._max_len),
                "cost": evaluator.cost_text(particle.best),
                "fbits": evaluator.fbits(particle.best),
                "trials": len(particle.trials),
            }
            for particle in self._particles
        ]
        groups = [
            SnapshotGroup(
                id=group.id,
                members=list(group.members),
                targets=list(group.targets),
                best_member=group.best_member,
            )
            for group in self._groups.values()
        ]
        best_try = self.best()
        best = SnapshotBest(
            particle=self._best_particle,
            parameter=to_binary(best_try.parameter, self._max_len),
            cost=evaluator.cost_text(best_try),
            fbits=evaluator.fbits(best_try),
            decoded=evaluator.decode(best_try),
        )
        metadata = SnapshotMetadata(
            n_particles=len(self._particles),
            max_len=self._max_len,
            seed=self._seed,
            heuristics=self._heuristics.as_dict(),
        )
        return Snapshot(
            iteration=self._iteration,
            metrics=self._metrics,
            particles=particles,
            groups=groups,
            best=best,
            metadata=metadata,
        )
