"""Read-only board-shape features used for tension derivation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from .board import Board, HEIGHT, WIDTH

GridLike = Sequence[Sequence[int]]


@dataclass(frozen=True)
class BoardFeatures:
    """Column heights, hole count and bumpiness of a board."""

    heights: List[int]
    holes: int
    bumpiness: int

    @property
    def max_height(self) -> int:
        return max(self.heights) if self.heights else 0


def _cell_filled(grid: GridLike, row: int, col: int) -> bool:
    return bool(grid[row][col])


def column_heights(grid: GridLike) -> list[int]:
    """Height of each column measured from the bottom to its topmost filled cell."""

    heights = [0] * WIDTH
    for col in range(WIDTH):
        row = 0
        while row < HEIGHT and not _cell_filled(grid, row, col):
            row += 1
        heights[col] = HEIGHT - row
    return heights


def count_holes(grid: GridLike) -> int:
    """Count empty cells lying below the first filled cell of their column."""

    holes = 0
    for col in range(WIDTH):
        seen_block = False
        for row in range(HEIGHT):
            if _cell_filled(grid, row, col):
                seen_block = True
            elif seen_block:
                holes += 1
    return holes


def bumpiness(heights: Sequence[int]) -> int:
    total = 0
    for col in range(len(heights) - 1):
        total += abs(heights[col] - heights[col + 1])
    return total


def board_features(board: Board) -> BoardFeatures:
    heights = column_heights(board.grid)
    return BoardFeatures(heights=heights, holes=count_holes(board.grid), bumpiness=bumpiness(heights))


__all__ = [
    "BoardFeatures",
    "board_features",
    "bumpiness",
    "column_heights",
    "count_holes",
]
