"""Error taxonomy for piece production and gameplay.

Validation errors are recoverable: producers resolve them into a fallback
piece.  Only :class:`InvalidSpawnPosition` is terminal and ends the game.
"""

from __future__ import annotations


class HumanTetrisError(Exception):
    """Base class for all errors raised by this package."""


class PieceValidationError(HumanTetrisError):
    """A produced piece (or its source capture) cannot be used."""


class TooFewCells(PieceValidationError):
    def __init__(self, count: int) -> None:
        super().__init__(f"too few cells ({count} < 3)")
        self.count = count


class TooManyCells(PieceValidationError):
    def __init__(self, count: int) -> None:
        super().__init__(f"too many cells ({count} > 6)")
        self.count = count


class DuplicateShape(PieceValidationError):
    def __init__(self, shape_id: str) -> None:
        super().__init__(f"same shape as a recent piece ({shape_id})")
        self.shape_id = shape_id


class HumanNotDetected(PieceValidationError):
    def __init__(self) -> None:
        super().__init__("no person detected")


class SegmentationFailed(PieceValidationError):
    def __init__(self) -> None:
        super().__init__("segmentation failed")


class ExtractionEmpty(HumanTetrisError):
    """The beam search produced no candidate for any target size."""


class PieceRequestTimeout(HumanTetrisError):
    """The piece provider did not answer before the request deadline."""


class InvalidSpawnPosition(HumanTetrisError):
    """A new piece cannot be placed at its spawn position."""


__all__ = [
    "HumanTetrisError",
    "PieceValidationError",
    "TooFewCells",
    "TooManyCells",
    "DuplicateShape",
    "HumanNotDetected",
    "SegmentationFailed",
    "ExtractionEmpty",
    "PieceRequestTimeout",
    "InvalidSpawnPosition",
]
