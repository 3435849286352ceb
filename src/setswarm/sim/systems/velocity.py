from __future__ import annotations

from typing import List

from ..core.rng import DeterministicRng
from ..utils.bits import popcount


def pseudo_add(x: float, y: float) -> float:
    """Probabilistic OR: the chance that at least one of two independent events fires."""
    return x * (1.0 - y) + y


def blur(
    velocity: List[float],
    distance: int,
    max_len: int,
    lfactor: float,
    loffset: float,
    rng: DeterministicRng,
) -> float:
    """Pseudo-add a distance scaled flip probability into every velocity component.

    ``distance`` is the XOR of a particle with an attractor, so farther
    attractors raise the mutation pressure on all bits.
    """
    prob = rng.next_float() * (lfactor * popcount(distance) + loffset) / max_len
    keep = 1.0 - prob
    for i in range(len(velocity)):
        velocity[i] = velocity[i] * keep + prob
    return prob


def shot_probability(phi: float, rng: DeterministicRng) -> float:
    shot = phi * rng.next_float()
    if shot > 1.0:
        shot = 2.0 - shot
    return shot


def set_contribution(contribution: List[float], distance: int, prob: float) -> None:
    for i in range(len(contribution)):
        contribution[i] = prob if (distance >> i) & 1 else 0.0


def add_contribution(contribution: List[float], distance: int, prob: float) -> None:
    keep = 1.0 - prob
    for i in range(len(contribution)):
        if (distance >> i) & 1:
            contribution[i] = contribution[i] * keep + prob


def apply_inertia(velocity: List[float], contribution: List[float], omega: float) -> None:
    for i in range(len(velocity)):
        pull = contribution[i]
        velocity[i] = velocity[i] * omega * (1.0 - pull) + pull


def sample_mutation(velocity: List[float], current: int, rng: DeterministicRng) -> int:
    """Flip each bit with its velocity as probability; a flipped bit's velocity drops to zero."""
    hint = current
    for i in range(len(velocity)):
        if rng.next_float() < velocity[i]:
            velocity[i] = 0.0
            hint ^= 1 << i
    return hint
