from __future__ import annotations

import math

from .base import CmpMode, Ordering
from ..sim.utils.bits import capped_fbits


class SFloatCostValue:
    """Cost of a noisy evaluation, kept as forgetting statistics.

    The mean and the variance of the mean are smoothed with a gain that falls
    like 1/n while samples accumulate and is then held at 1/Tc, so evidence
    older than roughly Tc updates fades out and the value can follow a
    drifting cost function.

    Alongside the mean, the value records how often it beat an incumbent when
    it was the challenger in TRIES comparisons. Those counts decay with the
    same time constant and are cleared by every COST comparison.
    """

    __slots__ = (
        "time_constant",
        "sigma_threshold",
        "mean",
        "variance",
        "samples",
        "comparisons",
        "successes",
        "epsilon",
        "_alpha",
        "_min_gain",
        "_threshold2",
        "_memory",
        "_gain",
        "_delta",
        "_isum",
    )

    def __init__(self, time_constant: float = 100.0, sigma_threshold: float = 1.0):
        if time_constant <= 1.0:
            raise ValueError(f"time_constant must exceed 1, got {time_constant}")
        if sigma_threshold <= 0.0:
            raise ValueError(f"sigma_threshold must be positive, got {sigma_threshold}")
        self.time_constant = float(time_constant)
        self.sigma_threshold = float(sigma_threshold)
        self._alpha = 1.0 - 1.0 / self.time_constant
        self._min_gain = 1.0 / self.time_constant
        self._threshold2 = self.sigma_threshold * self.sigma_threshold
        self.mean = 0.0
        self.variance = math.inf
        self.samples = 0
        self.comparisons = 0.0
        self.successes = 0.0
        self.epsilon = 0.0
        self._memory = 1.0
        self._gain = 1.0
        self._delta = 1.0
        self._isum = 0.0

    @property
    def gain(self) -> float:
        return self._gain

    @property
    def settled(self) -> bool:
        """True once the gain has reached its 1/Tc floor."""
        return self._gain <= self._min_gain

    def set(self, x: float) -> None:
        self.mean = x
        self.variance = math.inf
        self.samples = 1
        self._memory = 1.0
        self._gain = 1.0
        self._delta = 1.0
        self._isum = x * x

    def update(self, x: float) -> None:
        if self.samples == 0:
            self.set(x)
            return
        self.samples += 1
        self._gain = self._gain / (self._gain + self._memory)
        if self._gain < self._min_gain:
            self._gain = self._min_gain
            self._memory = 1.0 - self._min_gain
        self._delta = self._memory * self._memory * self._delta + 1.0
        keep = 1.0 - self._gain
        self.mean = keep * self.mean + self._gain * x
        self._isum = keep * self._isum + self._gain * x * x
        dl = self._delta * self._gain * self._gain
        if dl < 1.0:
            # rounding can push the raw estimate slightly below zero
            self.variance = max(0.0, (self._isum - self.mean * self.mean) * dl / (1.0 - dl))

    def cmp(self, other: "SFloatCostValue") -> Ordering:
        d = self.mean - other.mean
        limit = self._threshold2 * (self.variance + other.variance)
        if d * d <= limit:
            if d == 0.0 and self.variance == other.variance:
                return Ordering.INDISTINGUISHABLE
            self_learning = not self.settled
            other_learning = not other.settled
            if self_learning and other_learning:
                if self.variance < other.variance:
                    return Ordering.SAMPLE_OTHER
                return Ordering.SAMPLE_SELF
            if self_learning:
                return Ordering.SAMPLE_SELF
            if other_learning:
                return Ordering.SAMPLE_OTHER
            return Ordering.INDISTINGUISHABLE
        if d > 0:
            return Ordering.GREATER
        return Ordering.LESS

    def score_against(self, incumbent: "SFloatCostValue", mode: CmpMode) -> float:
        """Score this value as a challenger to ``incumbent``; positive means it is cheaper."""
        d = incumbent.mean - self.mean
        if mode is CmpMode.COST:
            self.comparisons = 0.0
            self.successes = 0.0
            if d > 0:
                return 0.5
            return -0.5
        self.comparisons = self.comparisons * self._alpha + 1.0
        self.successes *= self._alpha
        if d > 0:
            self.successes += 1.0
        self.epsilon = 0.5 * (2.0 * self.successes - self.comparisons) / (self.comparisons + 2.0)
        epsilon2 = self.epsilon * self.epsilon
        score = self.comparisons * epsilon2 / (0.25 - epsilon2)
        if self.epsilon >= 0:
            return score
        return -score

    def copy_from(self, other: "SFloatCostValue") -> None:
        for name in self.__slots__:
            setattr(self, name, getattr(other, name))

    def fbits(self) -> float:
        return capped_fbits(self.mean)

    def __str__(self) -> str:
        return (
            f"mean={self.mean:f} variance={self.variance:f} samples={self.samples} "
            f"comparisons={self.comparisons:f} epsilon={self.epsilon:f}"
        )
