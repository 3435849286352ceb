from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .metrics import IterationMetrics


@dataclass(slots=True)
class Snapshot:
    iteration: int
    metrics: Optional[IterationMetrics]
    particles: List[Dict[str, Any]]
    groups: List["SnapshotGroup"]
    best: "SnapshotBest"
    metadata: "SnapshotMetadata"


@dataclass(slots=True)
class SnapshotGroup:
    id: str
    members: List[int]
    targets: List[int]
    best_member: Optional[int]


@dataclass(slots=True)
class SnapshotBest:
    particle: int
    parameter: str
    cost: str
    fbits: float
    decoded: str


@dataclass(slots=True)
class SnapshotMetadata:
    n_particles: int
    max_len: int
    seed: int
    heuristics: Dict[str, Any]
