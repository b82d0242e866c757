"""Integer bitmask helpers for the extractor's hot path.

Each cell of the capture grid is encoded as ``index = row * cols + col`` and a
cell set becomes a plain ``int`` with one bit per index.  Neighbour masks are
precomputed per grid geometry so that expansion, connectivity and adjacency
counting reduce to a handful of bitwise operations.

``CellMaskLayout.for_shape``
    Return the (cached) layout for a ``rows x cols`` grid.

``CellMaskLayout.is_connected``
    Flood fill restricted to the set's own cells.

``CellMaskLayout.adjacency_count``
    Directed count of internal 4-neighbour links.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, Iterator, List, Tuple

import numpy as np

from .grid import Grid, GridCell


def iter_bits(mask: int) -> Iterator[int]:
    """Yield the set bit indices of ``mask`` in ascending order."""

    while mask:
        low = mask & -mask
        yield low.bit_length() - 1
        mask ^= low


def popcount(mask: int) -> int:
    return bin(mask).count("1")


@dataclass(frozen=True)
class CellMaskLayout:
    """Precomputed neighbour masks for one grid geometry."""

    rows: int
    cols: int
    neighbours: Tuple[int, ...]

    @staticmethod
    @lru_cache(maxsize=8)
    def for_shape(rows: int, cols: int) -> "CellMaskLayout":
        neighbours: List[int] = []
        for row in range(rows):
            for col in range(cols):
                mask = 0
                for dr, dc in ((-1, 0), (1, 0), (0, -1), (0, 1)):
                    r, c = row + dr, col + dc
                    if 0 <= r < rows and 0 <= c < cols:
                        mask |= 1 << (r * cols + c)
                neighbours.append(mask)
        return CellMaskLayout(rows=rows, cols=cols, neighbours=tuple(neighbours))

    @classmethod
    def for_grid(cls, grid: Grid) -> "CellMaskLayout":
        return cls.for_shape(grid.rows, grid.cols)

    def index(self, cell: GridCell) -> int:
        row, col = cell
        return row * self.cols + col

    def cell(self, index: int) -> GridCell:
        return divmod(index, self.cols)

    def mask_of(self, cells: Iterable[GridCell]) -> int:
        mask = 0
        for cell in cells:
            mask |= 1 << self.index(cell)
        return mask

    def cells_of(self, mask: int) -> List[GridCell]:
        return [self.cell(i) for i in iter_bits(mask)]

    def on_mask(self, grid: Grid) -> int:
        flat = np.flatnonzero(grid.on.reshape(-1))
        mask = 0
        for i in flat:
            mask |= 1 << int(i)
        return mask

    def frontier(self, mask: int) -> int:
        """Return every cell 4-adjacent to ``mask`` but not in it."""

        out = 0
        for i in iter_bits(mask):
            out |= self.neighbours[i]
        return out & ~mask

    def is_connected(self, mask: int) -> bool:
        return _is_connected(self.neighbours, mask)

    def adjacency_count(self, mask: int) -> int:
        """Count internal neighbour links, each undirected edge counted twice."""

        return sum(popcount(self.neighbours[i] & mask) for i in iter_bits(mask))

    def bounding_box(self, mask: int) -> Tuple[int, int]:
        """Return ``(height, width)`` of the cells in ``mask``."""

        cells = self.cells_of(mask)
        rows = [r for r, _ in cells]
        cols = [c for _, c in cells]
        return max(rows) - min(rows) + 1, max(cols) - min(cols) + 1


@lru_cache(maxsize=4096)
def _is_connected(neighbours: Tuple[int, ...], mask: int) -> bool:
    if mask == 0:
        return False
    start = mask & -mask
    visited = start
    stack = [start.bit_length() - 1]
    while stack:
        i = stack.pop()
        fresh = neighbours[i] & mask & ~visited
        visited |= fresh
        stack.extend(iter_bits(fresh))
    return visited == mask


__all__ = ["CellMaskLayout", "iter_bits", "popcount"]
