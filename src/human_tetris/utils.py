"""Utility helpers for the game core."""

from __future__ import annotations

from typing import List, Optional

from .board import Board, color_for
from .game_state import Position
from .polyomino import Polyomino
from .tension import TensionLevel


def drop_interval(
    base_interval: float,
    drop_speed_multiplier: float = 1.0,
    tension: TensionLevel = TensionLevel.CALM,
    *,
    soft_drop_interval: Optional[float] = None,
) -> float:
    """Return the seconds between automatic drops.

    A soft-drop interval, when given, overrides the computed cadence.
    """

    if soft_drop_interval is not None:
        return soft_drop_interval
    return base_interval * drop_speed_multiplier * tension.speed_multiplier


def render_grid(
    board: Board,
    piece: Optional[Polyomino] = None,
    position: Optional[Position] = None,
) -> List[List[int]]:
    """Return a copy of the board grid with ``piece`` overlaid at ``position``.

    Renderers get a single 2D array to draw without the piece being locked
    into the board.
    """

    grid = [[int(v) for v in row] for row in board.grid]
    if piece is not None and position is not None:
        value = color_for(piece)
        for x, y in piece.translated(*position):
            if 0 <= y < board.height and 0 <= x < board.width:
                grid[y][x] = value
    return grid
