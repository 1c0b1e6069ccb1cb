from __future__ import annotations

import argparse
import csv
import json
from pathlib import Path
from typing import Optional

from loguru import logger

from ..config import SimulationConfig
from ..sim.core.engine import GameEngine
from ..sim.types.metrics import GenerationSummary
from ..sim.types.snapshot import SnapshotDecodeError


_GENERATION_HEADER = [
    "generation",
    "ticks",
    "escapers",
    "escapers_alive",
    "escapers_escaped",
    "pursuers",
    "best_escaper_fitness",
    "best_pursuer_fitness",
    "avg_escaper_fitness",
    "avg_pursuer_fitness",
    "orbs_collected",
    "reseeded",
    "generation_ms",
]


def _format_generation_row(summary: GenerationSummary, generation_ms: float) -> list[object]:
    return [
        summary.generation,
        summary.ticks,
        summary.escapers,
        summary.escapers_alive,
        summary.escapers_escaped,
        summary.pursuers,
        f"{summary.best_escaper_fitness:.4f}",
        f"{summary.best_pursuer_fitness:.4f}",
        f"{summary.average_escaper_fitness:.4f}",
        f"{summary.average_pursuer_fitness:.4f}",
        summary.orbs_collected,
        "|".join(summary.reseeded),
        f"{generation_ms:.3f}",
    ]


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "last": 0.0}
    return {
        "min": float(min(values)),
        "max": float(max(values)),
        "avg": float(sum(values) / len(values)),
        "last": float(values[-1]),
    }


def run_headless(
    generations: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    config_path: Optional[Path] = None,
    summary_path: Optional[Path] = None,
    load_path: Optional[Path] = None,
    save_path: Optional[Path] = None,
    max_ticks: Optional[int] = None,
) -> GameEngine:
    """Run until ``generations`` evolution events happened (or ``max_ticks`` ticks).

    Writes one CSV row per finished generation. A snapshot given by
    ``load_path`` is applied before the first tick; ``save_path`` receives the
    final state.
    """
    config = SimulationConfig.from_yaml(config_path) if config_path else SimulationConfig()
    if seed is not None:
        config.seed = seed
    engine = GameEngine(config=config)
    if load_path:
        engine.load_state(Path(load_path).read_text())

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_GENERATION_HEADER)

    summaries: list[GenerationSummary] = []
    ticks = 0
    generation_ms = 0.0
    try:
        while len(summaries) < generations and (max_ticks is None or ticks < max_ticks):
            metrics = engine.step()
            ticks += 1
            generation_ms += metrics.tick_duration_ms
            if metrics.summary is None:
                continue
            summaries.append(metrics.summary)
            if writer:
                writer.writerow(_format_generation_row(metrics.summary, 0.0 if deterministic_log else generation_ms))
            generation_ms = 0.0
    finally:
        if csv_file:
            csv_file.close()

    logger.info("[Headless] finished {} generation(s) in {} tick(s)", len(summaries), ticks)

    if save_path:
        Path(save_path).write_text(engine.save_state())

    if summary_path:
        state = engine.get_state()
        summary = {
            "generations": len(summaries),
            "ticks": ticks,
            "seed": config.seed,
            "final_generation": state.generation,
            "final_time_step": state.time_step,
            "best_escaper_fitness": _summary_stats([s.best_escaper_fitness for s in summaries]),
            "best_pursuer_fitness": _summary_stats([s.best_pursuer_fitness for s in summaries]),
            "escapers_escaped": _summary_stats([float(s.escapers_escaped) for s in summaries]),
            "generation_ticks": _summary_stats([float(s.ticks) for s in summaries]),
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
    return engine


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless escaper/pursuer maze evolution")
    parser.add_argument("--generations", type=int, default=10)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML file overriding SimulationConfig")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write one row per generation")
    parser.add_argument("--summary", type=Path, default=None, help="Optional JSON file with run summary stats.")
    parser.add_argument("--load", type=Path, default=None, help="Snapshot to resume from.")
    parser.add_argument("--save", type=Path, default=None, help="Where to write the final snapshot.")
    parser.add_argument("--max-ticks", type=int, default=None, help="Stop after this many ticks even mid-generation.")
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (generation_ms is forced to 0.000 so identical seeds match).",
    )
    args = parser.parse_args()
    try:
        run_headless(
            args.generations,
            args.seed,
            args.log,
            deterministic_log=args.deterministic_log,
            config_path=args.config,
            summary_path=args.summary,
            load_path=args.load,
            save_path=args.save,
            max_ticks=args.max_ticks,
        )
    except SnapshotDecodeError as exc:
        parser.exit(2, f"error: could not load {args.load}: {exc}\n")


if __name__ == "__main__":
    main()
