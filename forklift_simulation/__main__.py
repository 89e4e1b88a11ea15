"""Command-line entry point.

Run with::

    python -m forklift_simulation --ticks 500 --seed 7
    python -m forklift_simulation --live 30 --data-dir warehouse_data
"""

from __future__ import annotations

import argparse
import logging
import time

from .config import SimulationConfig
from .headless import run_headless
from .map_builder import verify_grid
from .persistence import JsonPersistence
from .scheduler import Simulation

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Warehouse forklift fleet simulation")
    parser.add_argument("--ticks", type=int, default=500,
                        help="Number of ticks for a headless run (default: 500)")
    parser.add_argument("--forklifts", type=int, default=None,
                        help="Fleet size, 1-5 (default: from config)")
    parser.add_argument("--tasks", type=int, default=12,
                        help="Initial task count (default: 12)")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed for layout-independent generation")
    parser.add_argument("--speed", type=float, default=None,
                        help="Speed multiplier, 0.1-3 (default: from config)")
    parser.add_argument("--live", type=float, default=None, metavar="SECONDS",
                        help="Run on the wall clock with the periodic timer for SECONDS")
    parser.add_argument("--data-dir", type=str, default=None,
                        help="Directory for JSON persistence (live mode only)")
    parser.add_argument("--resume", action="store_true",
                        help="Continue from the records in --data-dir (live mode only)")
    parser.add_argument("--verify", action="store_true",
                        help="Log grid diagnostics before running")
    parser.add_argument("--verbose", action="store_true",
                        help="Enable DEBUG logging")
    return parser.parse_args(argv)


def _print_metrics(metrics: dict) -> None:
    for key, value in metrics.items():
        if isinstance(value, float):
            print(f"  {key:<26} {value:.3f}")
        else:
            print(f"  {key:<26} {value}")


def main(argv: list[str] | None = None) -> None:
    """Run the simulation headless, or live on the wall clock."""
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
    )

    changes = {}
    if args.forklifts is not None:
        changes["forklift_count"] = args.forklifts
    if args.speed is not None:
        changes["speed"] = args.speed
    config = SimulationConfig.from_env().updated(**changes)

    if args.live is None:
        metrics = run_headless(
            num_forklifts=config.forklift_count,
            num_tasks=args.tasks,
            ticks=args.ticks,
            seed=args.seed,
            config=config,
        )
        print("Headless run:")
        _print_metrics(metrics)
        return

    persistence = JsonPersistence(args.data_dir) if args.data_dir else None
    if args.resume and persistence is not None:
        sim = Simulation.restore(persistence, config, seed=args.seed)
    else:
        sim = Simulation.create(config, seed=args.seed, persistence=persistence, num_tasks=args.tasks)
    if args.verify:
        verify_grid(sim.grid)
    for forklift in sim.registry.forklifts:
        sim.login_forklift(forklift.id)

    sim.start()
    try:
        time.sleep(args.live)
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        sim.stop()

    print(f"Live run ({sim.tick_count} ticks):")
    _print_metrics(sim.metrics.to_dict())


if __name__ == "__main__":
    main()
