from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

from ..errors import ConfigError
from ..sim.core.config import SimulationConfig
from ..sim.core.world import World
from ..sim.telemetry import CsvSink, MemorySink, NullSink, TelemetrySink

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = Path("configs") / "default.yaml"


def _average(values: List[float]) -> float:
    if not values:
        return 0.0
    return float(sum(values) / len(values))


def _summary(world: World, steps: int, averages: MemorySink, metrics: list) -> dict:
    last = averages.averages[-1] if averages.averages else None
    return {
        "steps": steps,
        "seed": world.config.seed,
        "map": world.config.map,
        "best_herbivore_score": world.best_herbivore_score,
        "best_carnivore_score": world.best_carnivore_score,
        "respawns": sum(m.respawns for m in metrics),
        "foods_eaten": sum(m.foods_eaten for m in metrics),
        "predations": sum(m.predations for m in metrics),
        "shared_hunts": sum(m.shared_hunts for m in metrics),
        "tick_ms": {
            "avg": _average([m.tick_duration_ms for m in metrics]),
            "max": max((m.tick_duration_ms for m in metrics), default=0.0),
        },
        "final_averages": {
            "prey_score": last.prey_avg_score if last else 0.0,
            "hunter1_score": last.hunter1_avg_score if last else 0.0,
            "hunter2_score": last.hunter2_avg_score if last else 0.0,
            "prey_health": last.prey_avg_health if last else 0.0,
            "hunter1_health": last.hunter1_avg_health if last else 0.0,
            "hunter2_health": last.hunter2_avg_health if last else 0.0,
        },
    }


class _TeeSink(TelemetrySink):
    """Forwards every record to the output sink and keeps averages for the summary."""

    def __init__(self, output: TelemetrySink, averages: MemorySink):
        self._output = output
        self._averages = averages

    def write_agent(self, record) -> None:
        self._output.write_agent(record)

    def write_event(self, record) -> None:
        self._output.write_event(record)

    def write_average(self, record) -> None:
        self._output.write_average(record)
        self._averages.write_average(record)

    def close(self) -> None:
        self._output.close()


def run_headless(
    config: SimulationConfig,
    steps: int,
    output_dir: Optional[Path] = None,
    summary_path: Optional[Path] = None,
    realtime: bool = False,
) -> World:
    output: TelemetrySink = CsvSink(output_dir) if output_dir else NullSink()
    averages = MemorySink()
    sink = _TeeSink(output, averages) if summary_path else output
    world = World(config, sink)
    logger.info(
        "Running %d ticks (seed %d, map %s, %d herbivores, %d+%d carnivores)",
        steps,
        config.seed,
        config.map,
        config.herbivore_amount,
        config.carnivore_amount_1,
        config.carnivore_amount_2,
    )
    metrics = []
    interval = config.seconds_per_update
    try:
        for tick in range(1, steps + 1):
            started = time.perf_counter()
            metrics.append(world.step(tick))
            if realtime:
                remaining = interval - (time.perf_counter() - started)
                if remaining > 0:
                    time.sleep(remaining)
    finally:
        sink.close()

    if summary_path:
        summary = _summary(world, steps, averages, metrics)
        Path(summary_path).write_text(json.dumps(summary, indent=2))
    logger.info(
        "Finished: best herbivore %d, best carnivore %d",
        world.best_herbivore_score,
        world.best_carnivore_score,
    )
    return world


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Headless cooperative predator/prey simulation")
    parser.add_argument("--config", type=Path, default=None, help="YAML parameter file (walls/<map>.yaml next to it)")
    parser.add_argument("--steps", type=int, default=3000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory for simulation.csv, event.csv and average.csv.",
    )
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--realtime",
        action="store_true",
        help="Throttle ticks to updates_per_second.",
    )
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        if args.config is not None:
            config = SimulationConfig.from_yaml(args.config)
        elif DEFAULT_CONFIG.is_file():
            config = SimulationConfig.from_yaml(DEFAULT_CONFIG)
        else:
            config = SimulationConfig()
        if args.seed is not None:
            config.seed = args.seed
        if args.steps < 0:
            raise ConfigError(f"--steps must not be negative, got {args.steps}")
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    run_headless(
        config,
        args.steps,
        output_dir=args.output_dir,
        summary_path=args.summary,
        realtime=args.realtime,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
