"""Score formulas: in-game line awards and the presentation score."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .config import ScoreWeights

LINE_BONUS = (0, 1, 3, 5, 7)


def line_bonus(lines_cleared: int) -> int:
    return LINE_BONUS[max(0, min(lines_cleared, len(LINE_BONUS) - 1))]


def line_clear_award(lines_cleared: int, level: int) -> int:
    """Points added to the running score for one lock."""

    return line_bonus(lines_cleared) * 100 * level


@dataclass(frozen=True)
class ScoreBreakdown:
    lines: float
    iou: float
    stability: float
    diversity: float

    @property
    def total(self) -> float:
        return self.lines + self.iou + self.stability + self.diversity


def score_breakdown(
    iou: float,
    stable_time: float,
    lines_cleared: int,
    diversity_index: float,
    weights: Optional[ScoreWeights] = None,
) -> ScoreBreakdown:
    w = weights or ScoreWeights()
    return ScoreBreakdown(
        lines=w.alpha * line_bonus(lines_cleared),
        iou=w.beta * iou,
        stability=w.gamma * min(stable_time, 1.0),
        diversity=w.delta * diversity_index,
    )


def calculate_score(
    iou: float,
    stable_time: float,
    lines_cleared: int,
    diversity_index: float,
    weights: Optional[ScoreWeights] = None,
) -> int:
    """Presentation score, truncated toward zero.

    ``calculate_score(0.6, 0.4, 2, 0.75)`` is ``int(22.95) == 22``.
    """

    return int(score_breakdown(iou, stable_time, lines_cleared, diversity_index, weights).total)


__all__ = [
    "LINE_BONUS",
    "ScoreBreakdown",
    "calculate_score",
    "line_bonus",
    "line_clear_award",
    "score_breakdown",
]
