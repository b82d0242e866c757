from __future__ import annotations

import pytest

from human_tetris.expression import FacialExpression
from human_tetris.game_state import GameState
from human_tetris.tension import TensionLevel, classify, derive_tension
from human_tetris.utils import drop_interval


@pytest.mark.parametrize(
    "danger, level",
    [
        (0.0, TensionLevel.CALM),
        (0.29, TensionLevel.CALM),
        (0.3, TensionLevel.TENSE),
        (0.59, TensionLevel.TENSE),
        (0.6, TensionLevel.DANGER),
        (0.8, TensionLevel.CRITICAL),
        (1.0, TensionLevel.CRITICAL),
    ],
)
def test_classify_thresholds(danger: float, level: TensionLevel) -> None:
    assert classify(danger) is level


def test_empty_board_is_calm() -> None:
    reading = derive_tension(GameState())
    assert reading.level is TensionLevel.CALM
    assert reading.total_danger == 0.0
    assert not reading.is_danger_zone


def test_tall_column_is_danger() -> None:
    state = GameState()
    state.board.grid[2:, 0] = 1
    reading = derive_tension(state)
    assert reading.height_danger == pytest.approx(0.9)
    assert reading.total_danger == pytest.approx(0.63)
    assert reading.level is TensionLevel.DANGER
    assert reading.is_danger_zone
    assert not reading.is_critical_warning


def test_holes_push_to_critical() -> None:
    state = GameState()
    state.board.grid[2:, 0] = 1
    state.board.grid[2, 1] = 1
    reading = derive_tension(state)
    assert reading.hole_danger == pytest.approx(1.0)
    assert reading.level is TensionLevel.CRITICAL
    assert reading.is_critical_warning


def test_drop_interval_combines_factors() -> None:
    assert drop_interval(1.0) == pytest.approx(1.0)
    assert drop_interval(1.0, 1.5, TensionLevel.CRITICAL) == pytest.approx(1.05)
    assert drop_interval(0.8, 0.8, TensionLevel.TENSE) == pytest.approx(0.576)
    assert drop_interval(1.0, 1.5, TensionLevel.DANGER, soft_drop_interval=0.05) == 0.05


def test_expression_multipliers() -> None:
    assert FacialExpression.HAPPY.drop_speed_multiplier < FacialExpression.NEUTRAL.drop_speed_multiplier
    assert FacialExpression.ANGRY.drop_speed_multiplier == pytest.approx(1.5)
    assert FacialExpression("sad") is FacialExpression.SAD
