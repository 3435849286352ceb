from __future__ import annotations

from typing import List, Optional, Sequence

from ...sim.core.rng import DeterministicRng
from ...sim.utils.bits import bit_is_set, to_binary


class SubsetSum:
    """Find a subset of non-negative item values adding up to a target.

    Bit i of a candidate selects item i. The target is the sum of a hidden
    subset chosen when the instance is built, so at least one zero-cost
    solution exists.
    """

    def __init__(self, values: Sequence[int], target_subset: int, n_bits: int, seed: Optional[int] = None):
        if not values:
            raise ValueError("subset sum needs at least one item")
        if target_subset >> len(values):
            raise ValueError("target subset selects items beyond the value list")
        self.values: List[int] = list(values)
        self.target_subset = target_subset
        self.n_bits = n_bits
        self.seed = seed
        self.target = self.subset_sum(target_subset)

    @classmethod
    def generate(cls, n_items: int, n_bits: int, seed: int) -> "SubsetSum":
        """Draw an instance from ``random.Random(seed)``.

        The values are specific to Python's generator, so a published instance
        such as the seed 3142 reference case is rebuilt with :meth:`from_values`
        rather than regenerated from its seed.
        """
        rng = DeterministicRng(seed)
        max_value = (1 << n_bits) - 1
        values = [rng.next_int(max_value) for _ in range(n_items)]
        picks = rng.next_int(n_items) + 1
        subset = 0
        for _ in range(picks):
            subset |= 1 << rng.next_int(n_items)
        return cls(values, subset, n_bits, seed)

    @classmethod
    def from_values(cls, values: Sequence[int], target_subset: int) -> "SubsetSum":
        n_bits = max(value.bit_length() for value in values)
        return cls(values, target_subset, n_bits)

    def subset_sum(self, subset: int) -> int:
        return sum(value for i, value in enumerate(self.values) if bit_is_set(subset, i))

    def max_len(self) -> int:
        return len(self.values)

    def default_parameter(self) -> int:
        return 0

    def decode(self, parameter: int) -> int:
        return parameter

    def copy_data(self, data: int) -> int:
        return data

    def constrain(self, previous: int, hint: int) -> Optional[int]:
        return hint

    def cost(self, data: int) -> int:
        return abs(self.subset_sum(data) - self.target)

    def describe(self, data: int) -> str:
        return to_binary(data)

    def about(self) -> str:
        lines = [
            "subset sum problem parameters:",
            f"items={self.max_len()} bits={self.n_bits} seed={self.seed}",
            f"target value: {self.target}",
            "subset solution:",
            to_binary(self.target_subset),
            "values:",
        ]
        lines.extend(f"{i}\t{value}" for i, value in enumerate(self.values))
        return "\n".join(lines)

    def delete(self, item: int) -> bool:
        return False
