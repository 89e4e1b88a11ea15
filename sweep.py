#!/usr/bin/env python3
"""
Fleet sizing sweep for the warehouse forklift simulation.

Each fleet size is run with collision avoidance on and off over several
seeds. Per-combination averages of delivered weight, collisions and
blocked time are printed, and optionally written to CSV, so the cost of
turning avoidance off can be read against the throughput it buys.

Usage:
    python sweep.py
    python sweep.py --forklifts 2,4,6 --seeds 1,2,3 --ticks 2000
    python sweep.py --avoidance on --csv fleet.csv --workers 4
"""
import argparse
import csv
import logging
import multiprocessing
from statistics import mean

from forklift_simulation import SimulationConfig, run_headless

AVOIDANCE_MODES = {"on": (True,), "off": (False,), "both": (True, False)}

# Metrics averaged across seeds for each (fleet, avoidance) pair.
AVERAGED = (
    "completed_tasks", "total_weight_moved", "collision_count",
    "blocked_paths", "forklift_blocked_fraction", "fuel_efficiency",
)


def _run(job):
    fleet, avoidance, seed, ticks, tasks = job
    result = run_headless(
        num_forklifts=fleet,
        num_tasks=tasks,
        ticks=ticks,
        seed=seed,
        config=SimulationConfig(collision_avoidance=avoidance),
    )
    result["collision_avoidance"] = avoidance
    return result


def summarise(results):
    """Group raw runs by (fleet, avoidance) and average them over seeds."""
    groups = {}
    for r in results:
        groups.setdefault((r["num_forklifts"], r["collision_avoidance"]), []).append(r)
    rows = []
    for (fleet, avoidance), runs in sorted(groups.items()):
        row = {"num_forklifts": fleet, "collision_avoidance": avoidance, "runs": len(runs)}
        for key in AVERAGED:
            row[key] = mean(r[key] for r in runs)
        row["weight_per_forklift"] = row["total_weight_moved"] / fleet
        rows.append(row)
    return rows


def _print_table(rows):
    print(f"{'Fleet':>5}  {'Avoid':>5}  {'Done':>6}  {'Moved(t)':>9}  {'t/lift':>7}  "
          f"{'Coll':>6}  {'Blocked%':>8}  {'Fuel eff':>8}")
    for row in rows:
        print(f"{row['num_forklifts']:>5}  {'on' if row['collision_avoidance'] else 'off':>5}  "
              f"{row['completed_tasks']:>6.1f}  {row['total_weight_moved'] / 1000:>9.2f}  "
              f"{row['weight_per_forklift'] / 1000:>7.2f}  {row['collision_count']:>6.1f}  "
              f"{row['forklift_blocked_fraction'] * 100:>7.1f}%  {row['fuel_efficiency']:>8.1f}")

    safe = [r for r in rows if r["collision_count"] == 0]
    if safe:
        best = max(safe, key=lambda r: r["total_weight_moved"])
        print(f"\nMost weight moved with no collisions: {best['total_weight_moved'] / 1000:.2f} t "
              f"by {best['num_forklifts']} forklifts")
    else:
        print("\nEvery combination had at least one collision")


def _write_csv(path, rows):
    fieldnames = ["num_forklifts", "collision_avoidance", "runs", *AVERAGED, "weight_per_forklift"]
    with open(path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(rows)


def main():
    parser = argparse.ArgumentParser(description="Forklift fleet sizing sweep")
    parser.add_argument("--forklifts", default="1,2,3,4,5",
                        help="Comma-separated fleet sizes (default: 1,2,3,4,5)")
    parser.add_argument("--avoidance", choices=sorted(AVOIDANCE_MODES), default="both",
                        help="Collision avoidance setting(s) to run (default: both)")
    parser.add_argument("--seeds", default="1,2,3",
                        help="Comma-separated seeds averaged per combination (default: 1,2,3)")
    parser.add_argument("--ticks", type=int, default=2000,
                        help="Ticks per run (default: 2000 = 1000 sim-seconds)")
    parser.add_argument("--tasks", type=int, default=12,
                        help="Initial task pool size (default: 12)")
    parser.add_argument("--workers", type=int, default=0,
                        help="Worker processes; 0 runs serially (default: 0)")
    parser.add_argument("--csv", default=None, help="Optional CSV output path")
    parser.add_argument("--verbose", action="store_true", help="Show scheduler logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(message)s",
    )

    fleets = [int(x) for x in args.forklifts.split(",")]
    seeds = [int(x) for x in args.seeds.split(",")]
    jobs = [
        (fleet, avoidance, seed, args.ticks, args.tasks)
        for fleet in fleets
        for avoidance in AVOIDANCE_MODES[args.avoidance]
        for seed in seeds
    ]
    print(f"{len(jobs)} runs of {args.ticks} ticks "
          f"({'serial' if args.workers <= 0 else f'{args.workers} workers'})\n")

    if args.workers > 0:
        with multiprocessing.Pool(processes=args.workers) as pool:
            results = pool.map(_run, jobs)
    else:
        results = [_run(job) for job in jobs]

    rows = summarise(results)
    _print_table(rows)
    if args.csv:
        _write_csv(args.csv, rows)
        print(f"CSV written to: {args.csv}")


if __name__ == "__main__":
    main()
