from __future__ import annotations

from typing import Callable, Dict, Protocol, Tuple

from ..cost.adapters import IntEvaluator, NoisyEvaluator
from ..cost.base import Evaluator
from ..cost.problems.multimode import Multimode
from ..cost.problems.simplefactor import SimpleFactor
from ..cost.problems.subsetsum import SubsetSum
from ..sim.core.config import NoiseConfig
from ..sim.core.swarm import Swarm
from ..sim.strategies.comprehensive import ComprehensiveLearningStrategy
from ..sim.strategies.global_best import GlobalBestStrategy
from ..sim.types.metrics import IterationMetrics


class Strategy(Protocol):
    name: str

    def update(self) -> IterationMetrics: ...


ProblemFactory = Callable[[int, NoiseConfig], Evaluator]

_FACTOR_CASES: Dict[str, Tuple[int, int, int]] = {
    "simplefactor-16": (51647, 97859, 20000),
    "simplefactor-25": (30158671, 26919701, 500000),
    "simplefactor-30": (1059652519, 929636291, 50000000),
}


def _factor_case(name: str) -> ProblemFactory:
    p, q, p_min = _FACTOR_CASES[name]
    return lambda seed, noise: IntEvaluator(SimpleFactor(p, q, p_min))


def _multimode(seed: int, noise: NoiseConfig) -> Evaluator:
    problem = Multimode(n_modes=4, n_bits=16, margin=1.0, sigma=noise.sigma, seed=seed)
    return NoisyEvaluator(problem, noise.time_constant, noise.sigma_margin)


PROBLEMS: Dict[str, ProblemFactory] = {
    "subsetsum-0": lambda seed, noise: IntEvaluator(SubsetSum.generate(100, 20, seed)),
    "subsetsum-small": lambda seed, noise: IntEvaluator(SubsetSum.generate(8, 10, seed)),
    "simplefactor-16": _factor_case("simplefactor-16"),
    "simplefactor-25": _factor_case("simplefactor-25"),
    "simplefactor-30": _factor_case("simplefactor-30"),
    "multimode-0": _multimode,
}

PROBLEM_DESCRIPTIONS: Dict[str, str] = {
    "subsetsum-0": "basic subset sum case 100 elements with up to 20 bit int",
    "subsetsum-small": "8 element subset sum with up to 10 bit int",
    "simplefactor-16": "16 bit prime factorisation",
    "simplefactor-25": "25 bit prime factorisation",
    "simplefactor-30": "30 bit prime factorisation",
    "multimode-0": "4 minima function on 16 bits with gaussian noise",
}

STRATEGIES: Dict[str, Callable[[Swarm], Strategy]] = {
    GlobalBestStrategy.name: GlobalBestStrategy,
    ComprehensiveLearningStrategy.name: ComprehensiveLearningStrategy,
}

STRATEGY_DESCRIPTIONS: Dict[str, str] = {
    GlobalBestStrategy.name: "set based PSO targeting the global best particle",
    ComprehensiveLearningStrategy.name: "comprehensive learning set based PSO with per particle exemplars",
}


def create_problem(name: str, seed: int, noise: NoiseConfig | None = None) -> Evaluator:
    try:
        factory = PROBLEMS[name]
    except KeyError:
        raise KeyError(f"Unknown problem: {name}") from None
    return factory(seed, noise if noise is not None else NoiseConfig())


def create_strategy(name: str, swarm: Swarm) -> Strategy:
    try:
        factory = STRATEGIES[name]
    except KeyError:
        raise KeyError(f"Unknown strategy: {name}") from None
    return factory(swarm)


def _describe(title: str, descriptions: Dict[str, str]) -> str:
    lines = [title]
    for name in sorted(descriptions):
        lines.append(f"{name} :")
        lines.append(f"  {descriptions[name]}")
    return "\n".join(lines)


def describe_problems() -> str:
    return _describe("Problem description:", PROBLEM_DESCRIPTIONS)


def describe_strategies() -> str:
    return _describe("Strategy description:", STRATEGY_DESCRIPTIONS)
