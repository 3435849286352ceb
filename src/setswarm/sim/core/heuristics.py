from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Dict


@dataclass(slots=True)
class Heuristics:
    """Tunables shared by reference between groups.

    phi: shot probability scale for personal best and target pulls.
    omega: velocity inertia applied every update, strictly between 0 and 1.
    lfactor, loffset: blur scale per differing bit and blur offset.
    threshold: comparison margin needed to replace a personal best.
    n_tries: capacity of each particle's trial list.
    try_gap: stagnation window used by comprehensive learning.
    """

    phi: float = 1.0
    omega: float = 0.73
    lfactor: float = 0.15
    loffset: float = 2.0
    threshold: float = 0.99
    n_tries: int = 250
    try_gap: int = 100

    def validate(self) -> None:
        if not 0.0 < self.omega < 1.0:
            raise ValueError(f"omega must lie in (0, 1), got {self.omega}")
        if not 0.0 <= self.phi <= 2.0:
            raise ValueError(f"phi must lie in [0, 2], got {self.phi}")
        for name in ("lfactor", "loffset", "threshold"):
            value = getattr(self, name)
            if value < 0.0:
                raise ValueError(f"{name} must be non-negative, got {value}")
        if self.n_tries < 0:
            raise ValueError(f"n_tries must be non-negative, got {self.n_tries}")
        if self.try_gap < 0:
            raise ValueError(f"try_gap must be non-negative, got {self.try_gap}")

    def update(self, **values: Any) -> None:
        """Set named tunables in place; every holder of this instance sees the change."""
        known = {item.name for item in fields(self)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise KeyError(f"Unknown heuristics: {', '.join(unknown)}")
        previous = self.as_dict()
        for name, value in values.items():
            setattr(self, name, value)
        try:
            self.validate()
        except ValueError:
            for name, value in previous.items():
                setattr(self, name, value)
            raise

    def copy(self) -> "Heuristics":
        return replace(self)

    def as_dict(self) -> Dict[str, Any]:
        return {item.name: getattr(self, item.name) for item in fields(self)}

    @classmethod
    def from_mapping(cls, raw: Dict[str, Any]) -> "Heuristics":
        heuristics = cls(**raw)
        heuristics.validate()
        return heuristics
