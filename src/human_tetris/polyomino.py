"""Polyomino pieces and their orientation-independent shape ids.

A :class:`Polyomino` is an immutable, connected set of 3-6 cells.  Cells are
``(x, y)`` offsets that are always normalised so the bounding box touches the
origin; translating a piece onto the board produces absolute coordinates but
never a new piece.

The canonical shape id is the lexicographically smallest string among the
eight rotation/mirror variants of the cell set.  Two pieces share an id exactly
when one can be turned or flipped into the other, which is what the shape
history uses to suppress repeats.
"""

from __future__ import annotations

import logging
import random
from dataclasses import InitVar, dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .config import MAX_PIECE_SIZE, MIN_PIECE_SIZE

LOGGER = logging.getLogger(__name__)

Cell = Tuple[int, int]  # (x, y)

SLENDER_ASPECT = 2.0
WIDE_ASPECT = 1.2


class AspectType(str, Enum):
    SLENDER = "slender"
    WIDE = "wide"
    BALANCED = "balanced"


class ConvexityType(str, Enum):
    NONE = "none"
    LEFT = "left"
    RIGHT = "right"
    CENTER = "center"


def _normalize(cells: Iterable[Cell]) -> List[Cell]:
    """Shift ``cells`` so that the minimum x and y are zero."""

    cells = list(cells)
    if not cells:
        return cells
    min_x = min(x for x, _ in cells)
    min_y = min(y for _, y in cells)
    return [(x - min_x, y - min_y) for x, y in cells]


def _rotate_cells(cells: Iterable[Cell]) -> List[Cell]:
    """Rotate by 90 degrees: ``(x, y) -> (-y, x)``."""

    return [(-y, x) for x, y in cells]


def _flip_horizontally(cells: Sequence[Cell]) -> List[Cell]:
    if not cells:
        return list(cells)
    max_x = max(x for x, _ in cells)
    return [(max_x - x, y) for x, y in cells]


def _variant_key(cells: Iterable[Cell]) -> str:
    return ";".join(f"{x},{y}" for x, y in sorted(cells))


def _is_connected(cells: Sequence[Cell]) -> bool:
    if not cells:
        return False
    remaining = set(cells)
    stack = [cells[0]]
    remaining.discard(cells[0])
    while stack:
        x, y = stack.pop()
        for neighbour in ((x - 1, y), (x + 1, y), (x, y - 1), (x, y + 1)):
            if neighbour in remaining:
                remaining.discard(neighbour)
                stack.append(neighbour)
    return not remaining


@dataclass(frozen=True)
class Polyomino:
    """Immutable connected piece of 3-6 cells.

    Pass ``validate=False`` to skip the size and connectivity checks; this is
    how validation code represents malformed pieces coming from outside.
    Duplicate cells are always rejected.
    """

    cells: Tuple[Cell, ...]
    rotation: int = 0
    name: Optional[str] = field(default=None, compare=False)
    validate: InitVar[bool] = True

    def __post_init__(self, validate: bool) -> None:
        raw = [(int(x), int(y)) for x, y in self.cells]
        if not raw:
            raise ValueError("Polyomino needs at least one cell")
        if len(set(raw)) != len(raw):
            raise ValueError("Polyomino cells must be unique")
        if validate:
            if not MIN_PIECE_SIZE <= len(raw) <= MAX_PIECE_SIZE:
                raise ValueError(
                    f"Polyomino must have {MIN_PIECE_SIZE}-{MAX_PIECE_SIZE} cells, got {len(raw)}"
                )
            if not _is_connected(raw):
                raise ValueError("Polyomino cells must be 4-connected")
        object.__setattr__(self, "cells", tuple(sorted(_normalize(raw))))
        object.__setattr__(self, "rotation", self.rotation % 4)

    # Geometry -----------------------------------------------------------
    @property
    def size(self) -> int:
        return len(self.cells)

    @property
    def bounds(self) -> Tuple[int, int, int, int]:
        """Return ``(min_x, max_x, min_y, max_y)``."""

        xs = [x for x, _ in self.cells]
        ys = [y for _, y in self.cells]
        return min(xs), max(xs), min(ys), max(ys)

    @property
    def width(self) -> int:
        min_x, max_x, _, _ = self.bounds
        return max_x - min_x + 1

    @property
    def height(self) -> int:
        _, _, min_y, max_y = self.bounds
        return max_y - min_y + 1

    @property
    def aspect_ratio(self) -> float:
        w, h = self.width, self.height
        return max(w, h) / min(w, h)

    @property
    def is_slender(self) -> bool:
        return self.aspect_ratio >= SLENDER_ASPECT

    @property
    def is_wide(self) -> bool:
        return self.aspect_ratio <= WIDE_ASPECT

    @property
    def is_balanced(self) -> bool:
        return WIDE_ASPECT < self.aspect_ratio < SLENDER_ASPECT

    @property
    def aspect_type(self) -> AspectType:
        if self.is_slender:
            return AspectType.SLENDER
        if self.is_wide:
            return AspectType.WIDE
        return AspectType.BALANCED

    @property
    def centroid(self) -> Tuple[float, float]:
        n = len(self.cells)
        return (
            sum(x for x, _ in self.cells) / n,
            sum(y for _, y in self.cells) / n,
        )

    # Transforms ---------------------------------------------------------
    def rotated(self) -> "Polyomino":
        """Return the piece turned by 90 degrees.

        The cell count must survive the rotation.  If it does not, the rotation
        is recomputed once and, failing that, the unrotated piece is returned.
        """

        rotated = _normalize(_rotate_cells(self.cells))
        unique = list(dict.fromkeys(rotated))
        if len(unique) != len(self.cells):
            LOGGER.warning(
                "Cell count changed during rotation: %d -> %d", len(self.cells), len(unique)
            )
            return self._rotate_with_compactness()
        return Polyomino(tuple(unique), self.rotation + 1, self.name, validate=False)

    def _rotate_with_compactness(self) -> "Polyomino":
        rotated = _normalize(_rotate_cells(self.cells))
        if len(set(rotated)) != len(self.cells):
            LOGGER.error("Rotation failed to preserve cell count; keeping original piece")
            return self
        return Polyomino(tuple(rotated), self.rotation + 1, self.name, validate=False)

    def translated(self, dx: int, dy: int) -> Tuple[Cell, ...]:
        """Return the absolute cells of the piece placed at offset ``(dx, dy)``."""

        return tuple((x + dx, y + dy) for x, y in self.cells)

    # Shape signature ----------------------------------------------------
    def calculate_shape_id(self) -> str:
        """Return the canonical id shared by all rotations and reflections."""

        base = _normalize(self.cells)
        variants: List[str] = []
        for start in (base, _flip_horizontally(base)):
            current = start
            for _ in range(4):
                variants.append(_variant_key(_normalize(current)))
                current = _rotate_cells(current)
        return min(variants)

    @property
    def shape_id(self) -> str:
        return self.calculate_shape_id()

    def is_equivalent_shape(self, other: "Polyomino") -> bool:
        return self.calculate_shape_id() == other.calculate_shape_id()


# Standard pieces in their spawn orientation as (x, y) offsets.
_BASE_SHAPES: Dict[str, Tuple[Cell, ...]] = {
    "I": ((0, 0), (1, 0), (2, 0), (3, 0)),
    "O": ((0, 0), (1, 0), (0, 1), (1, 1)),
    "T": ((0, 0), (1, 0), (2, 0), (1, 1)),
    "L": ((2, 0), (0, 1), (1, 1), (2, 1)),
    "J": ((0, 0), (0, 1), (1, 1), (2, 1)),
    "S": ((1, 0), (2, 0), (0, 1), (1, 1)),
    "Z": ((0, 0), (1, 0), (1, 1), (2, 1)),
}

STANDARD_PIECES: Dict[str, Polyomino] = {
    name: Polyomino(cells, name=name) for name, cells in _BASE_SHAPES.items()
}


def random_standard_piece(
    rng: Optional[random.Random] = None,
    exclude_shape_ids: Iterable[str] = (),
) -> Polyomino:
    """Return a random standard piece whose shape id is not excluded.

    When every standard piece is excluded the choice is unconstrained.
    """

    rng = rng or random
    excluded = set(exclude_shape_ids)
    pool = [p for p in STANDARD_PIECES.values() if p.calculate_shape_id() not in excluded]
    if not pool:
        pool = list(STANDARD_PIECES.values())
    return rng.choice(pool)


__all__ = [
    "AspectType",
    "Cell",
    "ConvexityType",
    "Polyomino",
    "STANDARD_PIECES",
    "random_standard_piece",
]
