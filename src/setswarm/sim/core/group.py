from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from .heuristics import Heuristics


@dataclass(slots=True, eq=False)
class Group:
    id: str
    heuristics: Heuristics
    # fixed number of slots, each holding a particle id
    targets: List[int]
    members: List[int] = field(default_factory=list)
    best_member: Optional[int] = None

    @property
    def empty(self) -> bool:
        return not self.members

    def __repr__(self) -> str:
        return (
            f"Group(id={self.id!r}, members={self.members}, targets={self.targets}, "
            f"best_member={self.best_member})"
        )
