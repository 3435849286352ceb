from __future__ import annotations

from typing import Iterable, Tuple

from ...cost.base import Evaluator
from ..core.particle import Particle
from ..types.metrics import IterationMetrics
from ..utils.bits import hamming


def velocity_stats(particles: Iterable[Particle]) -> Tuple[float, float, float]:
    total = 0.0
    count = 0
    low = float("inf")
    high = 0.0
    for particle in particles:
        for value in particle.velocity:
            total += value
            count += 1
            if value < low:
                low = value
            if value > high:
                high = value
    if count == 0:
        return 0.0, 0.0, 0.0
    return total / count, low, high


def best_spread(particles: Iterable[Particle], reference: int) -> Tuple[float, int]:
    """Mean and maximum Hamming distance from each personal best to ``reference``."""
    total = 0
    count = 0
    widest = 0
    for particle in particles:
        distance = hamming(particle.best.parameter, reference)
        total += distance
        count += 1
        if distance > widest:
            widest = distance
    if count == 0:
        return 0.0, 0
    return total / count, widest


def create_metrics(
    iteration: int,
    particles: list[Particle],
    best_particle: int,
    evaluator: Evaluator,
    counters: Tuple[int, int, int],
    duration_ms: float,
) -> IterationMetrics:
    promotions, trial_promotions, repair_failures = counters
    best = particles[best_particle].best
    fbits_total = sum(evaluator.fbits(particle.best) for particle in particles)
    average_velocity, _, _ = velocity_stats(particles)
    return IterationMetrics(
        iteration=iteration,
        best_particle=best_particle,
        best_cost=evaluator.cost_text(best),
        best_fbits=evaluator.fbits(best),
        average_best_fbits=fbits_total / len(particles),
        promotions=promotions,
        trial_promotions=trial_promotions,
        repair_failures=repair_failures,
        trials_held=sum(len(particle.trials) for particle in particles),
        average_velocity=average_velocity,
        iteration_duration_ms=duration_ms,
    )
