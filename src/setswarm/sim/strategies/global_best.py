from __future__ import annotations

from ..core.swarm import ROOT_GROUP, Swarm
from ..types.metrics import IterationMetrics


class GlobalBestStrategy:
    """Every particle stays in ``root`` and is pulled toward the root group's best."""

    name = "gpso-0"

    def __init__(self, swarm: Swarm):
        self._swarm = swarm

    @property
    def swarm(self) -> Swarm:
        return self._swarm

    def update(self) -> IterationMetrics:
        swarm = self._swarm
        root = swarm.group(ROOT_GROUP)
        best = swarm.group_best(root)
        if best is not None:
            swarm.set_group_targets(root, best)
        return swarm.p_update()
