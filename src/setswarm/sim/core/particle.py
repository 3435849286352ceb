from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List

from ...cost.base import Try

if TYPE_CHECKING:
    from .group import Group


@dataclass(slots=True, eq=False)
class Particle:
    id: int
    current: Try
    best: Try
    velocity: List[float]
    group: "Group"
    # raw mutation result awaiting repair by the evaluator
    hint: int = 0
    trials: List[Try] = field(default_factory=list)

    @property
    def parameter(self) -> int:
        return self.current.parameter

    @property
    def best_parameter(self) -> int:
        return self.best.parameter
