from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..sim.core.config import SwarmConfig
from ..sim.core.swarm import Swarm
from ..sim.systems import metrics as metrics_system
from ..sim.types.metrics import IterationMetrics
from .registry import create_problem, create_strategy, describe_problems, describe_strategies

logger = logging.getLogger(__name__)

DEBUG_SECTIONS = ("group", "group0", "particles", "velocity")

_BASIC_HEADER = [
    "run",
    "iteration",
    "best_particle",
    "best_cost",
    "best_fbits",
    "iteration_ms",
]

_DETAILED_HEADER = [
    "run",
    "iteration",
    "best_particle",
    "best_cost",
    "best_fbits",
    "iteration_ms",
    "avg_best_fbits",
    "promotions",
    "trial_promotions",
    "repair_failures",
    "trials_held",
    "avg_velocity",
    "min_velocity",
    "max_velocity",
    "avg_spread",
    "max_spread",
    "active_groups",
]


def _format_basic_row(run_id: int, metrics: IterationMetrics, iteration_ms: float) -> list[object]:
    return [
        run_id,
        metrics.iteration,
        metrics.best_particle,
        metrics.best_cost,
        f"{metrics.best_fbits:.4f}",
        f"{iteration_ms:.3f}",
    ]


def _format_detailed_row(run_id: int, swarm: Swarm, metrics: IterationMetrics, iteration_ms: float) -> list[object]:
    particles = swarm.particles
    _, min_velocity, max_velocity = metrics_system.velocity_stats(particles)
    avg_spread, max_spread = metrics_system.best_spread(particles, swarm.best().parameter)
    active_groups = sum(1 for group in swarm.groups if group.members)
    return _format_basic_row(run_id, metrics, iteration_ms) + [
        f"{metrics.average_best_fbits:.4f}",
        metrics.promotions,
        metrics.trial_promotions,
        metrics.repair_failures,
        metrics.trials_held,
        f"{metrics.average_velocity:.4f}",
        f"{min_velocity:.4f}",
        f"{max_velocity:.4f}",
        f"{avg_spread:.4f}",
        max_spread,
        active_groups,
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0}
    sorted_values = sorted(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / len(values)),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
    }


def _run_once(
    config: SwarmConfig,
    run_id: int,
    writer: Optional[Any],
    log_mode: str,
    deterministic_log: bool,
    iteration_ms_series: list[float],
) -> tuple[Dict[str, Any], Swarm]:
    run = config.run
    problem_seed = run.problem_seed_for(run_id)
    swarm_seed = run.swarm_seed_for(run_id)
    evaluator = create_problem(run.problem, problem_seed, config.noise)
    swarm = Swarm(run.n_particles, evaluator, swarm_seed, config.heuristics.build())
    strategy = create_strategy(run.strategy, swarm)
    logger.info(
        "run %d: problem=%s strategy=%s particles=%d problem_seed=%d swarm_seed=%d",
        run_id,
        run.problem,
        run.strategy,
        run.n_particles,
        problem_seed,
        swarm_seed,
    )

    interval = max(1, int(run.log_interval))
    best_fbits = evaluator.fbits(swarm.best())
    last_improvement = 0
    for _ in range(run.iterations):
        metrics = strategy.update()
        iteration_ms = 0.0 if deterministic_log else metrics.iteration_duration_ms
        iteration_ms_series.append(iteration_ms)
        if metrics.best_fbits < best_fbits:
            best_fbits = metrics.best_fbits
            last_improvement = metrics.iteration
        if writer and metrics.iteration % interval == 0:
            if log_mode == "detailed":
                writer.writerow(_format_detailed_row(run_id, swarm, metrics, iteration_ms))
            else:
                writer.writerow(_format_basic_row(run_id, metrics, iteration_ms))

    best = swarm.best()
    result = {
        "run": run_id,
        "problem_seed": problem_seed,
        "swarm_seed": swarm_seed,
        "best_particle": swarm.best_particle,
        "best_cost": evaluator.cost_text(best),
        "best_fbits": evaluator.fbits(best),
        "best_parameter": format(best.parameter, "b"),
        "decoded": evaluator.decode(best),
        "last_improvement": last_improvement,
    }
    logger.info("run %d finished: cost=%s fbits=%.4f", run_id, result["best_cost"], result["best_fbits"])
    return result, swarm


def run_headless(
    config: SwarmConfig,
    log_path: Optional[Path] = None,
    summary_path: Optional[Path] = None,
    log_format: str = "basic",
    deterministic_log: bool = False,
    debug_path: Optional[Path] = None,
) -> List[Dict[str, Any]]:
    """Run ``config.run.runs`` independent seeded runs and return one result per run."""
    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)

    debug_chunks: list[str] = []
    iteration_ms_series: list[float] = []
    results: List[Dict[str, Any]] = []
    try:
        for run_id in range(config.run.runs):
            result, swarm = _run_once(config, run_id, writer, log_mode, deterministic_log, iteration_ms_series)
            results.append(result)
            if debug_path:
                debug_chunks.append(f"=== run {run_id} ===")
                debug_chunks.append(swarm.evaluator.about())
                debug_chunks.extend(swarm.debug_report(section) for section in DEBUG_SECTIONS)
    finally:
        if csv_file:
            csv_file.close()

    if debug_path:
        Path(debug_path).write_text("\n".join(debug_chunks) + "\n")

    if summary_path:
        summary = {
            "runs": config.run.runs,
            "iterations": config.run.iterations,
            "n_particles": config.run.n_particles,
            "problem": config.run.problem,
            "strategy": config.run.strategy,
            "log_format": log_mode,
            "deterministic_log": deterministic_log,
            "heuristics": config.heuristics.build().as_dict(),
            "results": results,
            "best_fbits": _summary_stats([float(item["best_fbits"]) for item in results]),
            "last_improvement": _summary_stats([float(item["last_improvement"]) for item in results]),
            "iteration_ms": _summary_stats(iteration_ms_series),
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))

    return results


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless set based particle swarm runs")
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    parser.add_argument("--runs", type=int, default=None)
    parser.add_argument("--iterations", type=int, default=None)
    parser.add_argument("--particles", type=int, default=None)
    parser.add_argument("--problem", default=None)
    parser.add_argument("--strategy", default=None)
    parser.add_argument("--seed", type=int, default=None, help="Swarm seed of the first run")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write per iteration metrics")
    parser.add_argument("--log-format", choices=["basic", "detailed"], default="basic")
    parser.add_argument("--summary", type=Path, default=None, help="Optional JSON file for run results.")
    parser.add_argument("--debug-dump", type=Path, default=None, help="Write end of run debug reports here.")
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (iteration_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--list", action="store_true", help="Describe problems and strategies, then exit.")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.list:
        print(describe_problems())
        print(describe_strategies())
        return

    config = SwarmConfig.from_yaml(args.config) if args.config else SwarmConfig()
    run = config.run
    if args.runs is not None:
        run.runs = args.runs
    if args.iterations is not None:
        run.iterations = args.iterations
    if args.particles is not None:
        run.n_particles = args.particles
    if args.problem is not None:
        run.problem = args.problem
    if args.strategy is not None:
        run.strategy = args.strategy
    if args.seed is not None:
        run.swarm_seed = args.seed

    run_headless(
        config,
        log_path=args.log,
        summary_path=args.summary,
        log_format=args.log_format,
        deterministic_log=args.deterministic_log,
        debug_path=args.debug_dump,
    )


if __name__ == "__main__":
    main()
