"""Mutable board state for one game: placement, collision and line clears."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .board import Board
from .features import column_heights, count_holes
from .polyomino import Polyomino

Position = Tuple[int, int]  # (x, y) of the piece's bounding-box origin


@dataclass
class GameState:
    """Board, active piece and counters of a game session.

    ``game_over`` is sticky: once set by a placement it stays set until a new
    state is created.
    """

    board: Board = field(default_factory=Board)
    current_piece: Optional[Polyomino] = None
    current_position: Position = (0, 0)
    score: int = 0
    lines_cleared: int = 0
    level: int = 1
    game_over: bool = False

    board_width = Board.width
    board_height = Board.height

    def is_valid_position(self, piece: Polyomino, position: Position) -> bool:
        """Return ``True`` if every cell of ``piece`` at ``position`` is on the board and empty."""

        px, py = position
        for x, y in piece.translated(px, py):
            if not (0 <= x < self.board_width and 0 <= y < self.board_height):
                return False
            if not self.board.is_empty(y, x):
                return False
        return True

    def can_spawn_piece(self, piece: Polyomino, position: Position) -> bool:
        return self.is_valid_position(piece, position)

    def place_piece(self, piece: Polyomino, position: Position, color: int = 1) -> None:
        """Write ``piece`` onto the board and re-evaluate game over."""

        px, py = position
        self.board.fill_cells(piece.translated(px, py), color)
        if self.check_game_over():
            self.game_over = True

    def check_game_over(self) -> bool:
        """Return ``True`` when the top row holds any filled cell."""

        return self.board.row_has_filled(0)

    def clear_lines(self) -> int:
        """Remove full rows, compacting the rest downwards; return how many."""

        cleared = self.board.clear_full_rows()
        self.lines_cleared += cleared
        return cleared

    def get_column_heights(self) -> List[int]:
        return column_heights(self.board.grid)

    def get_holes(self) -> int:
        return count_holes(self.board.grid)

    def ghost_position(self) -> Optional[Position]:
        """Return where the current piece would land if dropped straight down."""

        if self.current_piece is None:
            return None
        x, y = self.current_position
        while self.is_valid_position(self.current_piece, (x, y + 1)):
            y += 1
        return (x, y)
