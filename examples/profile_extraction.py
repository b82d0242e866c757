"""Profile piece extraction using :mod:`human_tetris.perf`.

Run with::

    PYTHONPATH=src python examples/profile_extraction.py

Random occupancy grids are fed through :class:`ShapeExtractor`; each beam
search size is timed separately and checked against the recognition budget.
Pass ``--help`` to see options for running multiple rounds and enabling
periodic performance logging summaries.
"""

from __future__ import annotations

import argparse
import logging
import random

import numpy as np

from human_tetris.config import GRID_COLS, GRID_ROWS, GameConfig
from human_tetris.extractor import ShapeExtractor
from human_tetris.grid import Grid
from human_tetris.perf import LatencyTracker


LOGGER = logging.getLogger(__name__)


def random_grid(rng: np.random.Generator, density: float) -> Grid:
    heat = rng.random((GRID_ROWS, GRID_COLS)).astype(np.float32)
    return Grid(heat < density, heatmap=1.0 - heat)


def run_round(grids: int, tracker: LatencyTracker, *, density: float, seed: int) -> int:
    """Extract from ``grids`` random grids; return how many produced a piece."""

    rng = np.random.default_rng(seed)
    extractor = ShapeExtractor(profiler=tracker)
    produced = 0
    for _ in range(grids):
        if extractor.extract(random_grid(rng, density)) is not None:
            produced += 1
    return produced


def _format_summary(summary: list[dict[str, float | int | str]], limit: int = 10) -> str:
    if not summary:
        return "No timings recorded."
    parts: list[str] = []
    for row in summary[:limit]:
        total_ms = row["total"] * 1000.0
        avg_ms = row["average"] * 1000.0
        max_ms = row["max"] * 1000.0
        parts.append(
            (
                f"{row['name']}: total={total_ms:.3f}ms, avg={avg_ms:.3f}ms, "
                f"max={max_ms:.3f}ms, count={int(row['count'])}, over={int(row['over_budget'])}"
            )
        )
    return "; ".join(parts)


def print_summary(tracker: LatencyTracker, limit: int = 10) -> None:
    summary = tracker.summary(sort_by="total")
    if not summary:
        print("No timings recorded.")
        return
    width = max(len(row["name"]) for row in summary[:limit])
    header = f"{'Section':<{width}}  Total (ms)  Avg (ms)  Max (ms)  Count  Over"
    print(header)
    print("-" * len(header))
    for row in summary[:limit]:
        total_ms = row["total"] * 1000.0
        avg_ms = row["average"] * 1000.0
        max_ms = row["max"] * 1000.0
        print(
            f"{row['name']:<{width}}  {total_ms:10.3f}  {avg_ms:8.3f}  {max_ms:8.3f}"
            f"  {int(row['count']):5d}  {int(row['over_budget']):4d}"
        )


def log_summary(
    tracker: LatencyTracker, *, limit: int, index: int
) -> list[dict[str, float | int | str]]:
    summary = tracker.summary(sort_by="total")
    limit = max(0, limit)
    limited_summary = summary[:limit] if limit else []
    message = _format_summary(limited_summary, limit=limit)
    LOGGER.info("Round %d extraction latency: %s", index, message)
    return limited_summary


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--grids", type=int, default=200, help="Number of grids per round.")
    parser.add_argument("--rounds", type=int, default=1, help="How many rounds to run.")
    parser.add_argument(
        "--density",
        type=float,
        default=0.5,
        help="Probability that a grid cell is switched on.",
    )
    parser.add_argument("--seed", type=int, default=None, help="Base random seed.")
    parser.add_argument(
        "--log-interval",
        type=int,
        default=20,
        help="Emit a performance summary every N rounds (0 disables periodic logging).",
    )
    parser.add_argument(
        "--summary-limit",
        type=int,
        default=10,
        help="Maximum number of sections to include in summaries.",
    )
    parser.add_argument(
        "--no-table",
        dest="print_table",
        action="store_false",
        help="Skip printing the final tabular summary (logging only).",
    )
    parser.set_defaults(print_table=True)
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (e.g. DEBUG, INFO, WARNING).",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO), format="%(message)s")

    tracker = LatencyTracker(budget=GameConfig().max_recognition_latency)
    base_seed = args.seed if args.seed is not None else random.randrange(2**32)
    last_summary: list[dict[str, float | int | str]] = []
    for round_idx in range(1, args.rounds + 1):
        produced = run_round(
            args.grids, tracker, density=args.density, seed=base_seed + round_idx
        )
        LOGGER.debug("Round %d produced %d/%d pieces", round_idx, produced, args.grids)
        should_log = False
        if args.log_interval > 0 and round_idx % args.log_interval == 0:
            should_log = True
        elif round_idx == args.rounds:
            should_log = True
        if should_log:
            last_summary = log_summary(tracker, limit=args.summary_limit, index=round_idx)
            if round_idx != args.rounds:
                tracker.reset()

    if args.print_table and last_summary:
        print_summary(tracker, limit=args.summary_limit)


if __name__ == "__main__":
    main()
