"""Simple ASCII demo for the game core.

Run with: `python -m human_tetris`

Hard-drops a handful of pieces without an event loop and prints the final
frame, which is enough to check that placement, line clears and rendering
agree with each other.
"""

from __future__ import annotations

import argparse
import logging
import random

from . import GameCore, render_grid


def _print_grid(grid: list[list[int]]) -> None:
    for row in grid:
        print("".join("#" if cell else "." for cell in row))


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--seed", type=int, default=None, help="Random seed for piece choice.")
    parser.add_argument("--pieces", type=int, default=12, help="Number of pieces to hard-drop.")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level (e.g. DEBUG, INFO, WARNING).",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING), format="%(message)s"
    )

    core = GameCore(rng=random.Random(args.seed))
    core.start_game()
    for _ in range(args.pieces):
        if core.state.game_over:
            break
        core.hard_drop()

    state = core.state
    _print_grid(render_grid(state.board, state.current_piece, state.current_position))
    print(f"score={state.score} lines={state.lines_cleared} level={state.level} phase={core.phase.value}")


if __name__ == "__main__":
    main()
