from __future__ import annotations

import math
from typing import Optional

from ...sim.core.rng import DeterministicRng


class Multimode:
    """Noisy one dimensional cost with ``n_modes`` local minima on [0, 1).

    y = slope*x + bias - sin(omega*x) + noise

    omega fixes the number of minima, slope makes successive minima differ by
    ``margin`` and bias puts the first (global) minimum at zero. The noise is
    gaussian with standard deviation ``sigma`` drawn from the problem's own
    stream. ``margin`` must stay below 2*pi.
    """

    def __init__(self, n_modes: int = 4, n_bits: int = 16, margin: float = 1.0, sigma: float = 0.1, seed: int = 3142):
        if not 0.0 < margin < 2.0 * math.pi:
            raise ValueError(f"margin must lie in (0, 2*pi), got {margin}")
        self.n_modes = n_modes
        self.n_bits = n_bits
        self.margin = margin
        self.sigma = sigma
        self.seed = seed
        self._rng = DeterministicRng(seed)
        self.omega = (n_modes + 1.0) * math.pi
        self.slope = self.omega * margin / (2.0 * math.pi)
        a = self.slope / self.omega
        self.bias = math.sqrt(1.0 - a * a) - a * math.acos(a)
        self.best_x = math.acos(a) / self.omega
        self._scale = 1.0 / (1 << n_bits)

    def max_len(self) -> int:
        return self.n_bits

    def default_parameter(self) -> int:
        return 0

    def decode(self, parameter: int) -> float:
        return parameter * self._scale

    def copy_data(self, data: float) -> float:
        return data

    def constrain(self, previous: float, hint: int) -> Optional[int]:
        return hint

    def noiseless_cost(self, x: float) -> float:
        return self.slope * x + self.bias - math.sin(self.omega * x)

    def cost(self, data: float) -> float:
        return self.noiseless_cost(data) + self.sigma * self._rng.next_gauss()

    def describe(self, data: float) -> str:
        return f"x = {data:f}"

    def about(self) -> str:
        return "\n".join(
            [
                "multimode function with noise",
                f"number of minima = {self.n_modes} resolution in bits = {self.n_bits}",
                f"local minima margin = {self.margin:f} noise sigma = {self.sigma:f}",
                f"best value for x = {self.best_x:f}",
            ]
        )

    def delete(self, item: int) -> bool:
        return False
