from __future__ import annotations

from typing import Any, Optional

from .base import CmpMode, Problem, Try
from .values import SFloatCostValue
from ..sim.utils.bits import float_fbits, int_fbits


class _ProblemEvaluator:
    """Shared plumbing that turns a Problem into an Evaluator.

    Subclasses decide how a raw cost is stored on a try and how two stored
    costs compare.
    """

    def __init__(self, problem: Problem):
        self._problem = problem

    @property
    def problem(self) -> Problem:
        return self._problem

    def max_len(self) -> int:
        return self._problem.max_len()

    def new_try(self) -> Try:
        parameter = self._problem.default_parameter()
        data = self._problem.decode(parameter)
        return Try(parameter, data, self._initial_cost(self._problem.cost(data)))

    def set_try(self, target: Try, parameter: int) -> None:
        target.parameter = parameter
        target.data = self._problem.decode(parameter)
        self._assign_cost(target, self._problem.cost(target.data))

    def copy(self, dest: Try, src: Try) -> None:
        dest.parameter = src.parameter
        dest.data = self._problem.copy_data(src.data)
        self._copy_cost(dest, src)

    def update_cost(self, target: Try) -> None:
        self._refresh_cost(target, self._problem.cost(target.data))

    def repair(self, previous: Try, hint: int) -> Optional[int]:
        return self._problem.constrain(previous.data, hint)

    def decode(self, target: Try) -> str:
        return self._problem.describe(target.data)

    def cost_text(self, target: Try) -> str:
        return str(target.cost)

    def about(self) -> str:
        return self._problem.about()

    def delete(self, item: int) -> bool:
        return self._problem.delete(item)

    def _initial_cost(self, raw: Any) -> Any:
        return raw

    def _assign_cost(self, target: Try, raw: Any) -> None:
        target.cost = raw

    def _refresh_cost(self, target: Try, raw: Any) -> None:
        target.cost = raw

    def _copy_cost(self, dest: Try, src: Try) -> None:
        dest.cost = src.cost


class IntEvaluator(_ProblemEvaluator):
    """Exact integer costs; both comparison modes give a hard +/-1.

    An equal cost counts for the challenger, so a particle can walk across a
    flat region of the cost landscape.
    """

    def compare(self, incumbent: Try, challenger: Try, mode: CmpMode) -> float:
        if incumbent.cost < challenger.cost:
            return -1.0
        return 1.0

    def fbits(self, target: Try) -> float:
        return int_fbits(target.cost)


class FloatEvaluator(_ProblemEvaluator):
    def compare(self, incumbent: Try, challenger: Try, mode: CmpMode) -> float:
        if incumbent.cost < challenger.cost:
            return -1.0
        if incumbent.cost > challenger.cost:
            return 1.0
        # a tie lands inside the threshold band and becomes a trial
        return 0.0

    def cost_text(self, target: Try) -> str:
        return f"{target.cost:f}"

    def fbits(self, target: Try) -> float:
        return float_fbits(target.cost)


class NoisyEvaluator(_ProblemEvaluator):
    """Float costs measured with noise, stored as SFloatCostValue statistics.

    TRIES scores are divided by sigma_margin squared, so a score above 1 means
    the challenger has won by the configured margin.
    """

    def __init__(self, problem: Problem, time_constant: float = 100.0, sigma_margin: float = 1.0):
        super().__init__(problem)
        if sigma_margin <= 0.0:
            raise ValueError(f"sigma_margin must be positive, got {sigma_margin}")
        self.time_constant = time_constant
        self.sigma_margin = sigma_margin
        self._margin2 = sigma_margin * sigma_margin

    def compare(self, incumbent: Try, challenger: Try, mode: CmpMode) -> float:
        result = challenger.cost.score_against(incumbent.cost, mode)
        if mode is CmpMode.TRIES:
            result /= self._margin2
        return result

    def fbits(self, target: Try) -> float:
        return target.cost.fbits()

    def _new_value(self) -> SFloatCostValue:
        return SFloatCostValue(self.time_constant, self.sigma_margin)

    def _initial_cost(self, raw: float) -> SFloatCostValue:
        value = self._new_value()
        value.set(raw)
        return value

    def _assign_cost(self, target: Try, raw: float) -> None:
        target.cost.set(raw)
        # second measurement so the fresh value carries a variance estimate
        target.cost.update(self._problem.cost(target.data))

    def _refresh_cost(self, target: Try, raw: float) -> None:
        target.cost.update(raw)

    def _copy_cost(self, dest: Try, src: Try) -> None:
        dest.cost.copy_from(src.cost)
