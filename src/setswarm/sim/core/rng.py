from __future__ import annotations

import random


class DeterministicRng:
    def __init__(self, seed: int):
        self._seed = seed
        self._random = random.Random(seed)

    @property
    def seed(self) -> int:
        return self._seed

    def next_float(self) -> float:
        return self._random.random()

    def next_int(self, max_value: int) -> int:
        return self._random.randrange(max_value)

    def next_bits(self, width: int) -> int:
        if width <= 0:
            return 0
        return self._random.getrandbits(width)

    def next_gauss(self) -> float:
        return self._random.gauss(0.0, 1.0)
