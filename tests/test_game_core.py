from __future__ import annotations

import asyncio
import random
from dataclasses import replace

import pytest

from human_tetris.config import GameConfig
from human_tetris.expression import FacialExpression
from human_tetris.game_core import GameCore, GamePhase
from human_tetris.polyomino import STANDARD_PIECES
from human_tetris.tension import TensionLevel


def _running_core(seed: int = 0) -> GameCore:
    core = GameCore(rng=random.Random(seed))
    core.start_game()
    return core


def _activate(core: GameCore, name: str, position) -> None:
    core.state.current_piece = STANDARD_PIECES[name]
    core.state.current_position = position


async def _until(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


def test_start_game_spawns_first_piece_without_event_loop() -> None:
    core = GameCore(rng=random.Random(1))
    assert core.phase is GamePhase.IDLE
    core.start_game()
    assert core.phase is GamePhase.RUNNING
    assert core.state.current_piece is not None
    x, y = core.state.current_position
    assert y == 0
    assert 0 <= x <= core.state.board_width - core.state.current_piece.width


def test_rotation_uses_first_valid_kick() -> None:
    core = _running_core()
    _activate(core, "I", (3, 5))
    core.state.board.set_cell(6, 3, 1)

    assert core.rotate_piece()

    assert core.state.current_position == (4, 5)
    assert core.state.current_piece.width == 1
    assert core.state.current_piece.height == 4


def test_blocked_rotation_keeps_piece() -> None:
    core = _running_core()
    _activate(core, "I", (0, 18))
    core.state.board.grid[:18, :] = 1
    core.state.board.grid[:18, 9] = 0

    assert not core.rotate_piece()
    assert core.state.current_piece == STANDARD_PIECES["I"]
    assert core.state.current_position == (0, 18)


def test_lock_scores_lines_and_spawns_next_piece() -> None:
    core = _running_core()
    core.state.board.grid[19, 4:] = 1
    _activate(core, "I", (0, 19))

    assert core.lock_current_piece() == 1

    assert core.state.score == 100
    assert core.state.lines_cleared == 1
    assert not core.state.board.grid.any()
    assert core.state.current_piece is not None
    assert core.phase is GamePhase.RUNNING


def test_four_lines_use_level_before_update() -> None:
    core = _running_core()
    core.state.lines_cleared = 6
    core.state.board.grid[16:, 1:] = 1
    core.state.current_piece = STANDARD_PIECES["I"].rotated()
    core.state.current_position = (0, 0)

    assert core.hard_drop() == 16

    assert core.state.score == 700
    assert core.state.lines_cleared == 10
    assert core.state.level == 2


def test_move_and_soft_fall() -> None:
    core = _running_core()
    _activate(core, "O", (4, 0))
    assert core.move_piece(1)
    assert core.state.current_position == (5, 0)
    assert not core.move_piece(4)
    core.drop_current_piece()
    assert core.state.current_position == (5, 1)


def test_drop_locks_when_piece_rests() -> None:
    core = _running_core()
    _activate(core, "O", (0, 18))
    core.drop_current_piece()
    assert core.state.board.get_cell(19, 0) != 0
    assert core.state.current_piece is not None
    assert core.state.current_position[1] == 0


def test_spawn_clamps_column_and_fails_into_game_over() -> None:
    core = _running_core()
    assert core.spawn_piece(STANDARD_PIECES["I"], 9)
    assert core.state.current_position == (6, 0)

    core.state.board.set_cell(0, 0, 1)
    assert not core.spawn_piece(STANDARD_PIECES["O"], 0)
    assert core.phase is GamePhase.GAME_OVER
    assert core.state.game_over


def test_locking_into_top_row_ends_game() -> None:
    core = _running_core()
    core.state.board.grid[1:, :4] = 1
    _activate(core, "I", (0, 0))

    core.lock_current_piece()

    assert core.phase is GamePhase.GAME_OVER
    assert not core.move_piece(1)
    assert core.hard_drop() == 0


def test_pause_and_resume() -> None:
    core = GameCore()
    core.pause_game()
    assert core.phase is GamePhase.IDLE

    core.start_game()
    core.pause_game()
    assert core.phase is GamePhase.PAUSED
    assert not core.move_piece(1)
    assert not core.rotate_piece()

    core.resume_game()
    assert core.phase is GamePhase.RUNNING


def test_restart_resets_state() -> None:
    core = _running_core()
    core.state.score = 500
    core.end_game()
    core.start_game()
    assert core.state.score == 0
    assert not core.state.game_over
    assert core.phase is GamePhase.RUNNING


def test_expression_updates_blend_toward_target() -> None:
    core = GameCore()
    assert not core.update_drop_speed_for_expression(FacialExpression.ANGRY, 0.3)
    assert core.drop_speed_multiplier == 1.0

    assert core.update_drop_speed_for_expression(FacialExpression.ANGRY, 0.9)
    assert core.drop_speed_multiplier == pytest.approx(1.25)

    updates = 0
    while core.update_drop_speed_for_expression(FacialExpression.ANGRY, 0.9):
        updates += 1
        assert updates < 10
    assert core.drop_speed_multiplier == pytest.approx(1.5)
    assert not core.update_drop_speed_for_expression(FacialExpression.NEUTRAL, 0.1)


def test_small_expression_changes_are_ignored() -> None:
    core = GameCore()
    core.drop_speed_multiplier = 0.97
    assert not core.update_drop_speed_for_expression(FacialExpression.NEUTRAL, 1.0)
    assert core.drop_speed_multiplier == 0.97


def test_drop_interval_tracks_expression_tension_and_soft_drop() -> None:
    core = _running_core()
    core.drop_speed_multiplier = 1.5
    assert core.current_drop_interval == pytest.approx(1.5)

    core.state.board.grid[2:, 0] = 1
    _activate(core, "O", (4, 18))
    core.lock_current_piece()
    assert core.tension.level is TensionLevel.DANGER
    assert core.current_drop_interval == pytest.approx(1.5 * 0.8)

    core.start_soft_drop()
    assert core.current_drop_interval == pytest.approx(0.05)
    core.stop_soft_drop()
    assert core.current_drop_interval == pytest.approx(1.2)


def test_snapshot_and_listeners() -> None:
    core = GameCore(rng=random.Random(2))
    snapshots = []
    core.add_listener(snapshots.append)
    core.start_game()
    assert snapshots
    snap = snapshots[-1]
    assert snap.phase is GamePhase.RUNNING
    assert snap.current_piece is core.state.current_piece
    assert snap.ghost_position[0] == core.state.current_position[0]
    assert snap.board.shape == (20, 10)
    snap.board[0, 0] = 9
    assert core.state.board.get_cell(0, 0) == 0

    core.remove_listener(snapshots.append)
    count = len(snapshots)
    core.move_piece(0, 1)
    assert len(snapshots) == count


def test_board_features_and_score_helper() -> None:
    core = _running_core()
    core.state.board.set_cell(19, 3, 1)
    features = core.get_board_features()
    assert features.heights[3] == 1
    assert core.calculate_score(0.6, 0.4, 2, 0.75) == 22


def test_horizontal_input_is_replayed_after_lock_animation() -> None:
    config = replace(GameConfig(), base_drop_interval=10.0, lock_animation_duration=0.05)

    async def scenario() -> None:
        core = GameCore(config=config, rng=random.Random(3))
        core.start_game()
        await _until(lambda: core.state.current_piece is not None)

        core.hard_drop()
        assert core.is_animating
        assert not core.move_piece(1)
        assert not core.rotate_piece()
        assert core.pending_operation_count == 2

        await _until(lambda: core.state.current_piece is not None)
        _activate(core, "O", (0, 0))

        await _until(lambda: not core.is_animating)
        assert core.pending_operation_count == 0
        assert core.state.current_position == (1, 0)

        core.shutdown()
        await core.piece_queue.aclose()

    asyncio.run(scenario())


def test_drop_timer_moves_piece_and_stops_on_pause() -> None:
    config = replace(GameConfig(), base_drop_interval=0.01)

    async def scenario() -> None:
        core = GameCore(config=config, rng=random.Random(4))
        core.start_game()
        await _until(lambda: core.state.current_piece is not None)
        _activate(core, "O", (4, 0))
        await _until(lambda: core.state.current_position[1] >= 2)

        core.pause_game()
        await asyncio.sleep(0)
        y = core.state.current_position[1]
        await asyncio.sleep(0.05)
        assert core.state.current_position[1] == y

        core.shutdown()
        core.shutdown()
        await core.piece_queue.aclose()

    asyncio.run(scenario())


def test_vertical_moves_are_not_held_during_lock_animation() -> None:
    config = replace(GameConfig(), base_drop_interval=10.0, lock_animation_duration=0.5)

    async def scenario() -> None:
        core = GameCore(config=config, rng=random.Random(5))
        core.start_game()
        await _until(lambda: core.state.current_piece is not None)

        core.hard_drop()
        await _until(lambda: core.state.current_piece is not None)
        _activate(core, "O", (0, 0))
        assert core.is_animating
        pending = core.pending_operation_count

        assert core.move_piece(0, 1)
        assert core.state.current_position == (0, 1)
        core.drop_current_piece()
        assert core.state.current_position == (0, 2)
        assert core.pending_operation_count == pending
        assert core.is_animating

        core.shutdown()
        await core.piece_queue.aclose()

    asyncio.run(scenario())


def test_input_queued_before_pause_is_replayed_on_resume() -> None:
    config = replace(GameConfig(), base_drop_interval=10.0, lock_animation_duration=0.05)

    async def scenario() -> None:
        core = GameCore(config=config, rng=random.Random(6))
        core.start_game()
        await _until(lambda: core.state.current_piece is not None)

        core.hard_drop()
        assert not core.move_piece(1)
        await _until(lambda: core.state.current_piece is not None)
        _activate(core, "O", (0, 0))

        core.pause_game()
        await _until(lambda: not core.is_animating)
        assert core.pending_operation_count == 1
        assert core.state.current_position == (0, 0)

        core.resume_game()
        assert core.pending_operation_count == 0
        assert core.state.current_position == (1, 0)

        core.shutdown()
        await core.piece_queue.aclose()

    asyncio.run(scenario())


class UnsteadyProvider:
    def request_next_piece(self, completion) -> None:
        completion(STANDARD_PIECES["T"])

    def is_available(self) -> bool:
        raise RuntimeError("camera state unknown")


def test_game_keeps_spawning_when_provider_availability_fails() -> None:
    config = replace(GameConfig(), base_drop_interval=10.0, lock_animation_duration=0.0)

    async def scenario() -> None:
        core = GameCore(config=config, rng=random.Random(7))
        core.set_piece_provider(UnsteadyProvider())
        core.start_game()
        await _until(lambda: core.state.current_piece is not None)
        assert core.phase is GamePhase.RUNNING

        core.hard_drop()
        await _until(lambda: core.state.current_piece is not None)
        assert not core.piece_queue.is_waiting_for_piece

        core.shutdown()
        await core.piece_queue.aclose()

    asyncio.run(scenario())
