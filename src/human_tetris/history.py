"""Recent-shape bookkeeping: validation, diversity and fallback pieces."""

from __future__ import annotations

import logging
import random
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional

from .config import MAX_PIECE_SIZE, MIN_PIECE_SIZE
from .errors import DuplicateShape, PieceValidationError, TooFewCells, TooManyCells
from .polyomino import Polyomino, random_standard_piece

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of :meth:`ShapeHistoryManager.validate_piece`."""

    error: Optional[PieceValidationError] = None

    @classmethod
    def success(cls) -> "ValidationResult":
        return cls()

    @classmethod
    def failure(cls, error: PieceValidationError) -> "ValidationResult":
        return cls(error)

    @property
    def is_valid(self) -> bool:
        return self.error is None

    @property
    def error_message(self) -> Optional[str]:
        return str(self.error) if self.error is not None else None


class ShapeHistoryManager:
    """Sliding window of the canonical ids of recently accepted pieces."""

    def __init__(self, max_history_size: int = 3, *, rng: Optional[random.Random] = None) -> None:
        self.max_history_size = max_history_size
        self._recent: Deque[str] = deque()
        self._rng = rng or random.Random()

    @property
    def recent_shapes(self) -> List[str]:
        """Shape ids, oldest first."""

        return list(self._recent)

    def add_shape(self, piece: Polyomino) -> None:
        self.add_shape_id(piece.calculate_shape_id())

    def add_shape_id(self, shape_id: str) -> None:
        self._recent.append(shape_id)
        while len(self._recent) > self.max_history_size:
            self._recent.popleft()
        LOGGER.debug("Added shape %s, recent shapes: %s", shape_id, list(self._recent))

    def is_shape_allowed(self, piece: Polyomino) -> bool:
        return self.is_shape_id_allowed(piece.calculate_shape_id())

    def is_shape_id_allowed(self, shape_id: str) -> bool:
        return shape_id not in self._recent

    def clear_history(self) -> None:
        self._recent.clear()
        LOGGER.debug("Shape history cleared")

    def validate_piece(self, piece: Polyomino) -> ValidationResult:
        """Check the size bounds, then reject shapes still in the window."""

        count = piece.size
        if count < MIN_PIECE_SIZE:
            return ValidationResult.failure(TooFewCells(count))
        if count > MAX_PIECE_SIZE:
            return ValidationResult.failure(TooManyCells(count))

        shape_id = piece.calculate_shape_id()
        if not self.is_shape_id_allowed(shape_id):
            return ValidationResult.failure(DuplicateShape(shape_id))
        return ValidationResult.success()

    # Statistics -------------------------------------------------------
    @property
    def diversity_score(self) -> float:
        """Unique ids over total ids in the window; ``1.0`` when empty."""

        if not self._recent:
            return 1.0
        return len(set(self._recent)) / len(self._recent)

    @property
    def consecutive_duplicates(self) -> int:
        """Length of the trailing run of identical ids, minus one."""

        if len(self._recent) < 2:
            return 0
        last = self._recent[-1]
        run = 0
        for shape_id in reversed(self._recent):
            if shape_id != last:
                break
            run += 1
        return run - 1

    # Fallback ---------------------------------------------------------
    def generate_fallback_piece(self) -> Polyomino:
        """Return a standard piece whose shape is not in the window."""

        return random_standard_piece(self._rng, exclude_shape_ids=self._recent)

    def should_use_fallback(self, error: PieceValidationError) -> bool:
        return isinstance(error, PieceValidationError)


__all__ = ["ShapeHistoryManager", "ValidationResult"]
