from __future__ import annotations

import logging
from typing import Optional

from ...cost.base import CmpMode, Evaluator, Try
from ..core.particle import Particle

logger = logging.getLogger(__name__)

# a TRIES score above this means the trial has confidently beaten the personal best
PROMOTION_SCORE = 1.0


def look_for_better_trial(particle: Particle, evaluator: Evaluator) -> bool:
    """Promote the strongest trial over the personal best if its evidence is conclusive."""
    chosen = -1
    best_score = 0.0
    for index, trial in enumerate(particle.trials):
        score = evaluator.compare(particle.best, trial, CmpMode.TRIES)
        if score > best_score:
            chosen = index
            best_score = score
    if chosen < 0 or best_score <= PROMOTION_SCORE:
        return False
    evaluator.copy(particle.best, particle.trials[chosen])
    del particle.trials[chosen]
    logger.debug("particle %d: promoted trial with score %.3f", particle.id, best_score)
    return True


def push_trial(particle: Particle, candidate: Try, evaluator: Evaluator, capacity: int) -> Optional[Try]:
    """Store a copy of ``candidate``; returns the evicted trial when over capacity."""
    trial = evaluator.new_try()
    evaluator.copy(trial, candidate)
    particle.trials.append(trial)
    if len(particle.trials) > capacity:
        return remove_worst_trial(particle, evaluator)
    return None


def remove_worst_trial(particle: Particle, evaluator: Evaluator) -> Optional[Try]:
    chosen = -1
    worst_score = float("inf")
    for index, trial in enumerate(particle.trials):
        score = evaluator.compare(particle.best, trial, CmpMode.TRIES)
        if score < worst_score:
            chosen = index
            worst_score = score
    if chosen < 0:
        return None
    logger.debug("particle %d: evicted trial with score %.3f", particle.id, worst_score)
    return particle.trials.pop(chosen)
