"""Board representation for the playfield."""

from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np
from numpy.typing import NDArray

from .config import BOARD_HEIGHT, BOARD_WIDTH
from .polyomino import STANDARD_PIECES, Polyomino

WIDTH = BOARD_WIDTH
HEIGHT = BOARD_HEIGHT

BoardArray = NDArray[np.uint8]

# Cell states: ``EMPTY`` or any positive colour tag meaning "filled".
EMPTY = 0

# Colour tags for the standard pieces; extracted pieces use one tag per size
# starting after them.
PIECE_VALUES = {name: i + 1 for i, name in enumerate(STANDARD_PIECES)}
_EXTRACTED_BASE = len(PIECE_VALUES) + 1


def color_for(piece: Polyomino) -> int:
    """Return the colour tag stored on the board for ``piece``."""

    if piece.name in PIECE_VALUES:
        return PIECE_VALUES[piece.name]
    return _EXTRACTED_BASE + max(0, piece.size - 3)


def create_empty_grid() -> BoardArray:
    """Return a new empty board grid filled with zeros."""

    return np.zeros((HEIGHT, WIDTH), dtype=np.uint8)


class Board:
    """Playfield holding the filled cells, indexed ``grid[row, col]``."""

    width: int = WIDTH
    height: int = HEIGHT

    def __init__(self) -> None:
        self.grid: BoardArray = create_empty_grid()

    def get_cell(self, row: int, col: int) -> int:
        """Return the value at ``(row, col)``.

        Raises:
            IndexError: If the coordinates are outside the board.
        """
        if 0 <= row < self.height and 0 <= col < self.width:
            return int(self.grid[row, col])
        raise IndexError("Cell out of bounds")

    def set_cell(self, row: int, col: int, value: int) -> None:
        """Set the value at ``(row, col)``.

        Raises:
            IndexError: If the coordinates are outside the board.
        """
        if 0 <= row < self.height and 0 <= col < self.width:
            self.grid[row, col] = np.uint8(value)
        else:
            raise IndexError("Cell out of bounds")

    def is_empty(self, row: int, col: int) -> bool:
        """Return ``True`` if the cell at ``(row, col)`` is empty.

        Coordinates outside the board count as occupied, so off-board
        positions are rejected by collision checks for free.
        """

        if 0 <= row < self.height and 0 <= col < self.width:
            return bool(self.grid[row, col] == EMPTY)
        return False

    def fill_cells(self, cells: Iterable[Tuple[int, int]], value: int) -> None:
        """Write ``value`` at every ``(x, y)`` cell that lies on the board.

        Off-board cells are skipped; callers validate positions first.
        """

        coordinates = np.asarray(list(cells), dtype=np.int16)
        if coordinates.size == 0:
            return
        xs, ys = coordinates.T
        inside = (xs >= 0) & (xs < self.width) & (ys >= 0) & (ys < self.height)
        self.grid[ys[inside], xs[inside]] = np.uint8(value)

    def clear_full_rows(self) -> int:
        """Drop completed rows, pad the top with empty rows and return the count."""

        full_rows = np.all(self.grid != EMPTY, axis=1)
        cleared = int(np.count_nonzero(full_rows))
        if cleared:
            remaining = self.grid[~full_rows]
            new_rows = np.zeros((cleared, self.width), dtype=self.grid.dtype)
            self.grid = np.vstack((new_rows, remaining))
        return cleared

    def row_has_filled(self, row: int) -> bool:
        return bool(np.any(self.grid[row] != EMPTY))
