from __future__ import annotations

import numpy as np

from human_tetris.board import Board
from human_tetris.game_state import GameState
from human_tetris.polyomino import STANDARD_PIECES, Polyomino


def test_single_cell_in_top_row_sets_game_over() -> None:
    state = GameState()
    state.board.grid[1:, :] = 1
    dot = Polyomino(((0, 0),), validate=False)

    assert state.is_valid_position(dot, (0, 0))
    state.place_piece(dot, (0, 0))

    assert state.game_over
    assert state.check_game_over()


def test_game_over_is_sticky() -> None:
    state = GameState()
    state.place_piece(Polyomino(((0, 0),), validate=False), (4, 0))
    assert state.game_over
    state.board.grid[0, :] = 0
    state.place_piece(STANDARD_PIECES["O"], (0, 18))
    assert state.game_over


def test_clear_lines_removes_full_rows_and_pads_top() -> None:
    state = GameState()
    grid = state.board.grid
    grid[5, :] = 1
    grid[10, :] = 1
    grid[4, 0] = 2
    grid[7, 1] = 3
    grid[19, 2] = 4

    assert state.clear_lines() == 2

    grid = state.board.grid
    assert grid.shape == (Board.height, Board.width)
    assert not grid[:2].any()
    assert grid[6, 0] == 2
    assert grid[8, 1] == 3
    assert grid[19, 2] == 4
    assert np.count_nonzero(grid) == 3
    assert state.lines_cleared == 2


def test_clear_lines_without_full_rows() -> None:
    state = GameState()
    state.board.grid[19, :9] = 1
    assert state.clear_lines() == 0
    assert state.lines_cleared == 0


def test_collisions_and_bounds() -> None:
    state = GameState()
    piece = STANDARD_PIECES["I"]
    assert state.is_valid_position(piece, (6, 0))
    assert not state.is_valid_position(piece, (7, 0))
    assert not state.is_valid_position(piece, (-1, 0))
    assert not state.is_valid_position(piece, (0, 20))
    state.board.set_cell(0, 3, 1)
    assert not state.can_spawn_piece(piece, (0, 0))
    assert state.can_spawn_piece(piece, (4, 0))


def test_place_piece_uses_colour_and_heights() -> None:
    state = GameState()
    state.place_piece(STANDARD_PIECES["O"], (3, 18), color=5)
    assert state.board.get_cell(18, 3) == 5
    assert state.board.get_cell(19, 4) == 5
    heights = state.get_column_heights()
    assert heights[3] == 2 and heights[4] == 2
    assert sum(heights) == 4
    assert state.get_holes() == 0
    assert not state.game_over


def test_holes_are_counted_below_blocks() -> None:
    state = GameState()
    state.board.set_cell(15, 0, 1)
    state.board.set_cell(18, 1, 1)
    assert state.get_holes() == 4 + 1


def test_ghost_position_rests_on_stack() -> None:
    state = GameState()
    assert state.ghost_position() is None
    state.board.grid[17, :] = 1
    state.current_piece = STANDARD_PIECES["T"]
    state.current_position = (2, 0)
    assert state.ghost_position() == (2, 15)
