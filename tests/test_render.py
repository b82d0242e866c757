from __future__ import annotations

from human_tetris.board import PIECE_VALUES, Board, color_for
from human_tetris.polyomino import STANDARD_PIECES, Polyomino
from human_tetris.utils import render_grid


def test_render_grid_overlays_piece_without_mutating_board() -> None:
    board = Board()
    board.set_cell(19, 0, 1)
    piece = STANDARD_PIECES["T"]

    grid = render_grid(board, piece, (3, 0))

    value = PIECE_VALUES["T"]
    assert grid[0][3:6] == [value, value, value]
    assert grid[1][4] == value
    assert grid[19][0] == 1
    assert board.get_cell(0, 3) == 0


def test_render_grid_without_piece_copies_board() -> None:
    board = Board()
    board.set_cell(5, 5, 2)
    grid = render_grid(board)
    assert grid[5][5] == 2
    assert sum(map(sum, grid)) == 2


def test_extracted_pieces_get_colour_per_size() -> None:
    tromino = Polyomino(((0, 0), (1, 0), (1, 1)))
    hexomino = Polyomino(tuple((x, y) for x in range(3) for y in range(2)))
    assert color_for(tromino) == len(PIECE_VALUES) + 1
    assert color_for(hexomino) == len(PIECE_VALUES) + 4
    assert color_for(STANDARD_PIECES["I"]) == PIECE_VALUES["I"]


def test_fill_cells_skips_off_board_cells() -> None:
    board = Board()
    board.fill_cells([(0, 0), (-1, 0), (10, 3), (9, 19)], 7)
    assert board.get_cell(0, 0) == 7
    assert board.get_cell(19, 9) == 7
    assert int((board.grid != 0).sum()) == 2
    assert not board.is_empty(-1, 0)
