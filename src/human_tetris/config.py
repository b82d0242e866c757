"""Tunable constants for piece extraction and game timing.

Values are grouped into small frozen dataclasses so callers can swap a whole
preset (see :func:`game_config_for`) without touching individual literals.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict


# Dimensions of the playfield.
BOARD_WIDTH = 10
BOARD_HEIGHT = 20

# Dimensions of the occupancy grid delivered by the capture pipeline.
GRID_ROWS = 4
GRID_COLS = 3

MIN_PIECE_SIZE = 3
MAX_PIECE_SIZE = 6


class Difficulty(str, Enum):
    """Difficulty presets selectable by the surrounding application."""

    EASY = "easy"
    NORMAL = "normal"
    HARD = "hard"


@dataclass(frozen=True)
class QuantizeConfig:
    """Capture thresholds owned by the quantisation stage.

    Only ``stable_sec`` is consumed by the core (see
    :class:`~human_tetris.grid.CaptureState`); the other values are carried so
    a preset stays a single object.
    """

    theta: float
    iou: float
    stable_sec: float


QUANTIZE_PRESETS: Dict[Difficulty, QuantizeConfig] = {
    Difficulty.EASY: QuantizeConfig(theta=0.40, iou=0.55, stable_sec=0.30),
    Difficulty.NORMAL: QuantizeConfig(theta=0.45, iou=0.60, stable_sec=0.40),
    Difficulty.HARD: QuantizeConfig(theta=0.50, iou=0.70, stable_sec=0.50),
}


@dataclass(frozen=True)
class ScoreWeights:
    """Weights for candidate ranking (``w*``) and the presentation score."""

    w1: float = 1.0  # occupancy sum
    w2: float = 0.45  # connectivity
    w3: float = 0.25  # diversity contribution, reserved for the hinting stage
    w4: float = 0.60  # TargetSpec match
    w5: float = 0.35  # slenderness penalty

    alpha: float = 4.0  # line clear bonus
    beta: float = 10.0  # IoU
    gamma: float = 3.0  # stable time
    delta: float = 5.0  # diversity index


@dataclass(frozen=True)
class SearchConfig:
    """Beam search limits."""

    beam_width: int = 8
    max_beam_width: int = 12
    min_piece_size: int = MIN_PIECE_SIZE
    max_piece_size: int = MAX_PIECE_SIZE
    aspect_penalty_threshold: float = 1.8


@dataclass(frozen=True)
class GameConfig:
    """Timing and bookkeeping constants for :class:`~human_tetris.game_core.GameCore`.

    All durations are in seconds.
    """

    base_drop_interval: float = 1.0
    soft_drop_interval: float = 0.05
    lock_animation_duration: float = 0.3
    line_clear_animation_duration: float = 0.4
    piece_request_timeout: float = 5.0
    max_recognition_latency: float = 0.25

    expression_confidence_floor: float = 0.4
    expression_min_delta: float = 0.05
    expression_blend: float = 0.5

    lines_per_level: int = 10
    queue_size: int = 3
    history_size: int = 3


_DROP_INTERVALS: Dict[Difficulty, float] = {
    Difficulty.EASY: 1.2,
    Difficulty.NORMAL: 1.0,
    Difficulty.HARD: 0.8,
}


def game_config_for(difficulty: Difficulty | str) -> GameConfig:
    """Return the :class:`GameConfig` preset for ``difficulty``."""

    difficulty = Difficulty(difficulty)
    return replace(GameConfig(), base_drop_interval=_DROP_INTERVALS[difficulty])


__all__ = [
    "BOARD_WIDTH",
    "BOARD_HEIGHT",
    "GRID_ROWS",
    "GRID_COLS",
    "MIN_PIECE_SIZE",
    "MAX_PIECE_SIZE",
    "Difficulty",
    "QuantizeConfig",
    "QUANTIZE_PRESETS",
    "ScoreWeights",
    "SearchConfig",
    "GameConfig",
    "game_config_for",
]
