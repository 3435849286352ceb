from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Optional, Protocol


class CmpMode(Enum):
    """How two costed tries are compared.

    COST is the cheap directional comparison used for ranking. It also starts
    a fresh evidence epoch for noisy costs. TRIES accumulates evidence across
    repeated comparisons of the same pair and scores how confident the
    challenger's win is.
    """

    COST = "cost"
    TRIES = "tries"


class Ordering(IntEnum):
    """Result of comparing two noisy cost values, read from the left operand."""

    LESS = -1
    GREATER = 1
    INDISTINGUISHABLE = 0
    # gap is inside the combined uncertainty and the left value needs more samples
    SAMPLE_SELF = -2
    # same, but the right value needs more samples
    SAMPLE_OTHER = 2

    @property
    def decided(self) -> bool:
        return self in (Ordering.LESS, Ordering.GREATER)


@dataclass(slots=True)
class Try:
    """One costed candidate: the bit-vector, its decoded form and its cost."""

    parameter: int
    data: Any
    cost: Any


class Evaluator(Protocol):
    def max_len(self) -> int: ...

    def new_try(self) -> Try: ...

    def set_try(self, target: Try, parameter: int) -> None: ...

    def copy(self, dest: Try, src: Try) -> None: ...

    def update_cost(self, target: Try) -> None: ...

    def compare(self, incumbent: Try, challenger: Try, mode: CmpMode) -> float: ...

    def repair(self, previous: Try, hint: int) -> Optional[int]: ...

    def decode(self, target: Try) -> str: ...

    def cost_text(self, target: Try) -> str: ...

    def fbits(self, target: Try) -> float: ...

    def about(self) -> str: ...

    def delete(self, item: int) -> bool: ...


class Problem(Protocol):
    """What a cost function supplies so an evaluator adapter can drive it."""

    def max_len(self) -> int: ...

    def default_parameter(self) -> int: ...

    def decode(self, parameter: int) -> Any: ...

    def copy_data(self, data: Any) -> Any: ...

    def constrain(self, previous: Any, hint: int) -> Optional[int]: ...

    def cost(self, data: Any) -> Any: ...

    def describe(self, data: Any) -> str: ...

    def about(self) -> str: ...

    def delete(self, item: int) -> bool: ...
