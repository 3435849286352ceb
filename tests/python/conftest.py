import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
src_root = ROOT / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))

from setswarm.cost.adapters import IntEvaluator  # noqa: E402
from setswarm.cost.problems.subsetsum import SubsetSum  # noqa: E402

# 8 items of up to 10 bits; the hidden subset 0b10101101 sums to 1776
SUBSET_VALUES = [121, 133, 377, 762, 172, 158, 196, 358]
SUBSET_TARGET = 0b10101101


class ScriptedRng:
    """Stand-in random stream that replays fixed draws."""

    def __init__(self, floats):
        self._floats = list(floats)

    def next_float(self) -> float:
        return self._floats.pop(0)


class ConstantProblem:
    """Every candidate is valid and costs the same."""

    def __init__(self, width: int = 4, value: int = 0):
        self.width = width
        self.value = value
        self.accept = True
        self.deleted = []

    def max_len(self) -> int:
        return self.width

    def default_parameter(self) -> int:
        return 0

    def decode(self, parameter: int) -> int:
        return parameter

    def copy_data(self, data: int) -> int:
        return data

    def constrain(self, previous: int, hint: int):
        return hint if self.accept else None

    def cost(self, data: int) -> int:
        return self.value

    def describe(self, data: int) -> str:
        return format(data, "b")

    def about(self) -> str:
        return "constant cost"

    def delete(self, item: int) -> bool:
        self.deleted.append(item)
        return True


class IdentityFloatProblem(ConstantProblem):
    """Cost equals the candidate read as a number, without noise."""

    def cost(self, data: int) -> float:
        return float(data)


@pytest.fixture
def subset_problem() -> SubsetSum:
    return SubsetSum.from_values(SUBSET_VALUES, SUBSET_TARGET)


@pytest.fixture
def subset_evaluator(subset_problem: SubsetSum) -> IntEvaluator:
    return IntEvaluator(subset_problem)


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-config-tests",
        action="store_true",
        default=False,
        help="run tests that are intended only for configuration changes",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "config_change: marks tests that should only run when configuration files change",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--run-config-tests"):
        return

    skip_marker = pytest.mark.skip(
        reason="Run only when configuration is modified (use --run-config-tests)",
    )

    for item in items:
        if "config_change" in item.keywords:
            item.add_marker(skip_marker)
