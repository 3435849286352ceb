from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional


@dataclass(slots=True, frozen=True)
class FactorData:
    p: int
    q: int
    remainder: int


class SimpleFactor:
    """Search for the smaller factor ``p`` of ``pq``; cost is ``pq mod p``.

    Candidates at or below ``p_min`` are rejected and even candidates are made
    odd, so the trivial factors never appear.
    """

    def __init__(self, p: int, q: int, p_min: int = 2000):
        if p <= p_min:
            raise ValueError(f"p={p} must exceed p_min={p_min}")
        self.p = p
        self.q = q
        self.pq = p * q
        self.p_min = p_min
        self.n_bits = p.bit_length()

    def max_len(self) -> int:
        return self.n_bits

    def default_parameter(self) -> int:
        return (self.p_min + 1) | 1

    def decode(self, parameter: int) -> FactorData:
        q, remainder = divmod(self.pq, parameter)
        return FactorData(parameter, q, remainder)

    def copy_data(self, data: FactorData) -> FactorData:
        return replace(data)

    def constrain(self, previous: FactorData, hint: int) -> Optional[int]:
        if hint <= self.p_min:
            return None
        return hint | 1

    def cost(self, data: FactorData) -> int:
        return data.remainder

    def describe(self, data: FactorData) -> str:
        return f"p={data.p}\nq={data.q}"

    def about(self) -> str:
        return "\n".join(
            [
                "simple factorise problem",
                f"pq={self.pq}",
                f"p={self.p}",
                f"q={self.q}",
                f"p_min={self.p_min}",
                f"number of bits {self.n_bits}",
            ]
        )

    def delete(self, item: int) -> bool:
        return False
