"""Occupancy grid handed over by the capture pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from .config import (
    GRID_COLS,
    GRID_ROWS,
    MAX_PIECE_SIZE,
    MIN_PIECE_SIZE,
    QUANTIZE_PRESETS,
    Difficulty,
)

GridCell = Tuple[int, int]  # (row, col)


class Grid:
    """Fixed-size boolean occupancy grid (4 rows x 3 columns).

    An optional ``heatmap`` carries the pre-threshold occupancy values of the
    quantisation stage.  When present, :meth:`occupancy_rate` reports the
    heatmap value for "on" cells instead of ``1.0``.
    """

    rows: int = GRID_ROWS
    cols: int = GRID_COLS

    def __init__(
        self,
        on: Optional[Sequence[Sequence[bool]] | NDArray[np.bool_]] = None,
        *,
        heatmap: Optional[Sequence[Sequence[float]] | NDArray[np.floating]] = None,
    ) -> None:
        if on is None:
            self.on: NDArray[np.bool_] = np.zeros((self.rows, self.cols), dtype=bool)
        else:
            self.on = np.array(on, dtype=bool)
        if self.on.shape != (self.rows, self.cols):
            raise ValueError(
                f"Grid must be {self.rows} rows x {self.cols} columns, got {self.on.shape}"
            )
        self.heatmap: Optional[NDArray[np.float32]] = None
        if heatmap is not None:
            values = np.clip(np.array(heatmap, dtype=np.float32), 0.0, 1.0)
            if values.shape != self.on.shape:
                raise ValueError("heatmap must match the grid dimensions")
            self.heatmap = values

    @classmethod
    def from_cells(cls, cells: Iterable[GridCell]) -> "Grid":
        """Build a grid with the given ``(row, col)`` cells switched on."""

        grid = cls()
        for row, col in cells:
            grid[row, col] = True
        return grid

    def __getitem__(self, key: GridCell) -> bool:
        row, col = key
        return bool(self.on[row, col])

    def __setitem__(self, key: GridCell, value: bool) -> None:
        row, col = key
        self.on[row, col] = bool(value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Grid):
            return NotImplemented
        return bool(np.array_equal(self.on, other.on))

    def __repr__(self) -> str:
        rows = ["".join("#" if v else "." for v in row) for row in self.on]
        return f"Grid({'/'.join(rows)})"

    @property
    def on_cells(self) -> List[GridCell]:
        """Return the "on" cells in row-major order."""

        rows, cols = np.nonzero(self.on)
        return [(int(r), int(c)) for r, c in zip(rows, cols)]

    @property
    def centroid_x(self) -> float:
        """Mean column of the "on" cells normalised to ``[0, 1]``."""

        cells = self.on_cells
        if not cells:
            return 0.0
        mean_col = sum(col for _, col in cells) / len(cells)
        return mean_col / (self.cols - 1)

    def occupancy_rate(self, row: int, col: int) -> float:
        if not self.on[row, col]:
            return 0.0
        if self.heatmap is None:
            return 1.0
        return float(self.heatmap[row, col])

    @property
    def valid_cell_count(self) -> int:
        return int(np.count_nonzero(self.on))

    @property
    def is_valid_for_piece(self) -> bool:
        return MIN_PIECE_SIZE <= self.valid_cell_count <= MAX_PIECE_SIZE

    @property
    def piece_generation_result(self) -> "PieceGenerationResult":
        count = self.valid_cell_count
        if count < MIN_PIECE_SIZE:
            return PieceGenerationResult("too_few", count)
        if count > MAX_PIECE_SIZE:
            return PieceGenerationResult("too_many", count)
        return PieceGenerationResult("valid", count)


@dataclass(frozen=True)
class PieceGenerationResult:
    """Classification of a grid's on-cell count against the piece size range."""

    status: str  # "valid", "too_few" or "too_many"
    cell_count: int

    @property
    def is_valid(self) -> bool:
        return self.status == "valid"

    @property
    def status_message(self) -> str:
        if self.status == "too_few":
            return f"not enough cells ({self.cell_count}, need at least {MIN_PIECE_SIZE})"
        if self.status == "too_many":
            return f"too many cells ({self.cell_count}, need at most {MAX_PIECE_SIZE})"
        return f"valid ({self.cell_count} cells)"


@dataclass
class CaptureState:
    """Latest capture reading: grid, IoU of its best candidate and stable time."""

    grid: Grid = field(default_factory=Grid)
    iou: float = 0.0
    stable_ms: int = 0

    def is_stable(
        self,
        threshold_sec: Optional[float] = None,
        *,
        difficulty: Difficulty = Difficulty.NORMAL,
    ) -> bool:
        """Whether the grid held still long enough; defaults to the preset for ``difficulty``."""

        if threshold_sec is None:
            threshold_sec = QUANTIZE_PRESETS[difficulty].stable_sec
        return self.stable_ms >= int(round(threshold_sec * 1000))

    @property
    def stable_time(self) -> float:
        """Stable time in seconds, as consumed by :func:`~human_tetris.scoring.calculate_score`."""

        return self.stable_ms / 1000.0


__all__ = ["Grid", "GridCell", "PieceGenerationResult", "CaptureState"]
