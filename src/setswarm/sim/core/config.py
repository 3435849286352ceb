from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path

import yaml

from .heuristics import Heuristics


@dataclass
class HeuristicsConfig:
    phi: float = 1.0
    omega: float = 0.73
    lfactor: float = 0.15
    loffset: float = 2.0
    threshold: float = 0.99
    n_tries: int = 250
    try_gap: int = 100

    def build(self) -> Heuristics:
        return Heuristics.from_mapping(asdict(self))


@dataclass
class NoiseConfig:
    # forgetting time constant of noisy cost statistics, in updates
    time_constant: float = 100.0
    sigma_margin: float = 1.0
    # noise level of the multimode reference problem
    sigma: float = 0.1


@dataclass
class RunConfig:
    runs: int = 1
    n_particles: int = 10
    iterations: int = 300
    swarm_seed: int = 578
    swarm_seed_step: int = 34
    problem_seed: int = 3142
    problem_seed_step: int = 0
    strategy: str = "gpso-0"
    problem: str = "subsetsum-0"
    log_interval: int = 1

    def swarm_seed_for(self, run_id: int) -> int:
        return self.swarm_seed + self.swarm_seed_step * run_id

    def problem_seed_for(self, run_id: int) -> int:
        return self.problem_seed + self.problem_seed_step * run_id


@dataclass
class SwarmConfig:
    config_version: str = "v1"
    run: RunConfig = field(default_factory=RunConfig)
    heuristics: HeuristicsConfig = field(default_factory=HeuristicsConfig)
    noise: NoiseConfig = field(default_factory=NoiseConfig)

    @staticmethod
    def from_yaml(path: Path) -> "SwarmConfig":
        data = yaml.safe_load(Path(path).read_text())
        return load_config(data or {})

    def to_yaml(self, path: Path) -> None:
        Path(path).write_text(yaml.safe_dump(asdict(self), sort_keys=False))


@dataclass
class AppConfig:
    swarm: SwarmConfig = field(default_factory=SwarmConfig)
    broadcast_interval: int = 1
    # seconds between live iterations
    iteration_delay: float = 0.05
    snapshot_queue_limit: int = 100


def load_config(raw: dict) -> SwarmConfig:
    run = RunConfig(**raw.get("run", {}))
    heuristics = HeuristicsConfig(**raw.get("heuristics", {}))
    noise = NoiseConfig(**raw.get("noise", {}))
    values = {k: v for k, v in raw.items() if k not in {"run", "heuristics", "noise"}}
    return SwarmConfig(run=run, heuristics=heuristics, noise=noise, **values)
