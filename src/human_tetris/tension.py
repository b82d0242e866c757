"""Board danger classification driving the drop cadence."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .game_state import GameState

HEIGHT_WEIGHT = 0.7
HOLE_WEIGHT = 0.3
HOLES_AT_FULL_DANGER = 10


class TensionLevel(str, Enum):
    CALM = "calm"
    TENSE = "tense"
    DANGER = "danger"
    CRITICAL = "critical"

    @property
    def speed_multiplier(self) -> float:
        """Factor applied to the drop interval; lower means faster drops."""

        return _SPEED_MULTIPLIERS[self]


_SPEED_MULTIPLIERS = {
    TensionLevel.CALM: 1.0,
    TensionLevel.TENSE: 0.9,
    TensionLevel.DANGER: 0.8,
    TensionLevel.CRITICAL: 0.7,
}


@dataclass(frozen=True)
class TensionReading:
    level: TensionLevel = TensionLevel.CALM
    height_danger: float = 0.0
    hole_danger: float = 0.0
    total_danger: float = 0.0

    @property
    def is_danger_zone(self) -> bool:
        return self.level in (TensionLevel.DANGER, TensionLevel.CRITICAL)

    @property
    def is_critical_warning(self) -> bool:
        return self.level is TensionLevel.CRITICAL


def classify(total_danger: float) -> TensionLevel:
    if total_danger < 0.3:
        return TensionLevel.CALM
    if total_danger < 0.6:
        return TensionLevel.TENSE
    if total_danger < 0.8:
        return TensionLevel.DANGER
    return TensionLevel.CRITICAL


def derive_tension(state: GameState) -> TensionReading:
    """Classify ``state`` from its tallest column and its hole count."""

    heights = state.get_column_heights()
    height_danger = max(heights, default=0) / state.board_height
    hole_danger = min(state.get_holes() / HOLES_AT_FULL_DANGER, 1.0)
    total = HEIGHT_WEIGHT * height_danger + HOLE_WEIGHT * hole_danger
    return TensionReading(
        level=classify(total),
        height_danger=height_danger,
        hole_danger=hole_danger,
        total_danger=total,
    )


__all__ = ["TensionLevel", "TensionReading", "classify", "derive_tension"]
