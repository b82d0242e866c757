"""Desired-shape hints used to bias the extractor's ranking."""

from __future__ import annotations

from dataclasses import dataclass

from .config import BOARD_WIDTH, MAX_PIECE_SIZE, MIN_PIECE_SIZE
from .polyomino import AspectType, ConvexityType, Polyomino


@dataclass(frozen=True)
class TargetSpec:
    """Shape the hinting stage would like the player to form.

    ``centroid_x`` is a board column in ``[0, 9]``; ``rot`` is stored modulo 4.
    """

    k: int
    aspect: AspectType
    convexity: ConvexityType = ConvexityType.NONE
    rot: int = 0
    centroid_x: int = BOARD_WIDTH // 2

    def __post_init__(self) -> None:
        if not MIN_PIECE_SIZE <= self.k <= MAX_PIECE_SIZE:
            raise ValueError(f"Target size must be {MIN_PIECE_SIZE}-{MAX_PIECE_SIZE} cells")
        if not 0 <= self.centroid_x <= BOARD_WIDTH - 1:
            raise ValueError("Target centroid must be a board column")
        object.__setattr__(self, "aspect", AspectType(self.aspect))
        object.__setattr__(self, "convexity", ConvexityType(self.convexity))
        object.__setattr__(self, "rot", self.rot % 4)

    def match(self, piece: Polyomino, spawn_column: int) -> float:
        """Return how well ``piece`` spawned at ``spawn_column`` fits, in ``[0, 1]``."""

        score = 0.0
        if piece.size == self.k:
            score += 0.3
        else:
            score -= 0.1 * abs(piece.size - self.k)

        if piece.aspect_type == self.aspect:
            score += 0.3

        distance = abs(spawn_column - self.centroid_x)
        if distance <= 1:
            score += 0.2
        else:
            score -= 0.05 * distance

        if piece.rotation % 4 == self.rot:
            score += 0.1

        return max(0.0, min(1.0, score))


__all__ = ["TargetSpec"]
