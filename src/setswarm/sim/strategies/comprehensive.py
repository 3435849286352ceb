from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List

from ...cost.base import CmpMode, Try
from ..core.swarm import Swarm
from ..types.metrics import IterationMetrics

logger = logging.getLogger(__name__)

_EXP10_SPAN = math.exp(10.0) - 1.0


def learning_probability(index: int, n_particles: int) -> float:
    """Chance that particle ``index`` looks for an outside exemplar, rising from 0.05 to 0.5."""
    if n_particles <= 1:
        return 0.05
    x = (math.exp(10.0 * index / (n_particles - 1)) - 1.0) / _EXP10_SPAN
    return 0.05 + 0.45 * x


@dataclass(slots=True)
class LearnerState:
    probability: float
    # current candidate when the present target was chosen or last improved on
    last_best: Try
    # iterations without improvement; -1 until the first update
    gap_count: int = -1


class ComprehensiveLearningStrategy:
    """Each particle owns a one-slot group and picks its own exemplar.

    A particle that has gone more than ``try_gap`` iterations without beating
    its last recorded candidate retargets. With its learning probability it
    runs a two way tournament on personal bests over the whole swarm (itself
    included), otherwise it targets itself.
    """

    name = "clpso-0"

    def __init__(self, swarm: Swarm):
        self._swarm = swarm
        evaluator = swarm.evaluator
        n = swarm.n_particles
        self._states: List[LearnerState] = []
        for index in range(n):
            group = swarm.create_group(str(index), 1)
            swarm.move_to(group, index)
            swarm.set_group_targets(group, index)
            self._states.append(LearnerState(learning_probability(index, n), evaluator.new_try()))
        swarm.update_global()

    @property
    def swarm(self) -> Swarm:
        return self._swarm

    @property
    def states(self) -> List[LearnerState]:
        return self._states

    def update(self) -> IterationMetrics:
        swarm = self._swarm
        evaluator = swarm.evaluator
        rng = swarm.rng
        n = swarm.n_particles
        for index, state in enumerate(self._states):
            evaluator.update_cost(state.last_best)
            particle = swarm.particle(index)
            group = particle.group
            current = particle.current
            try_gap = group.heuristics.try_gap
            if state.gap_count > try_gap:
                state.gap_count = 0
                evaluator.copy(state.last_best, current)
                if rng.next_float() < state.probability:
                    first = rng.next_int(n)
                    second = rng.next_int(n)
                    result = evaluator.compare(swarm.best_try(first), swarm.best_try(second), CmpMode.COST)
                    target = second if result > 0.0 else first
                else:
                    target = index
                swarm.set_group_targets(group, target)
                logger.debug("particle %d: retargeted to %d", index, target)
            elif state.gap_count < 0:
                evaluator.copy(state.last_best, current)
                state.gap_count = try_gap + 1
            elif evaluator.compare(state.last_best, current, CmpMode.COST) > 0.0:
                evaluator.copy(state.last_best, current)
                state.gap_count = 0
            else:
                state.gap_count += 1
        return swarm.p_update()
