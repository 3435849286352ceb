from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class IterationMetrics:
    iteration: int
    best_particle: int
    best_cost: str
    best_fbits: float
    average_best_fbits: float
    promotions: int
    trial_promotions: int
    repair_failures: int
    trials_held: int
    average_velocity: float
    iteration_duration_ms: float = 0.0
