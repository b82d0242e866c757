"""Game orchestration: drop timer, locking, rotation kicks and cadence control.

``GameCore`` is the single owner of the mutable game state.  It lives on one
asyncio event loop; the drop timer is a task on that loop, user input calls its
methods directly from the loop thread, and piece deliveries arrive as loop
callbacks (the :class:`~human_tetris.piece_queue.PieceQueue` marshals provider
completions from worker threads).  Code running on other threads must use
:meth:`GameCore.post` instead of calling mutators directly.

Lifecycle::

    IDLE --start_game--> RUNNING <--pause/resume--> PAUSED
                            |                          |
                            +------> GAME_OVER <-------+

``GAME_OVER`` is terminal until ``start_game`` is called again.

Without a running event loop (plain synchronous use, the ASCII demo, tests)
the drop timer is not scheduled, no post-lock animation window is opened and
next pieces are served synchronously from the queue buffer or the standard
set.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Callable, Deque, List, Optional, Tuple

import numpy as np

from .board import color_for
from .config import GameConfig, ScoreWeights
from .errors import InvalidSpawnPosition
from .expression import FacialExpression
from .features import BoardFeatures, board_features
from .game_state import GameState, Position
from .piece_queue import PieceQueue
from .polyomino import Polyomino
from .provider import PieceProvider
from .scoring import calculate_score, line_clear_award
from .tension import TensionLevel, TensionReading, derive_tension
from .utils import drop_interval

LOGGER = logging.getLogger(__name__)

# Offsets tried in order when a rotation collides; the first valid one wins.
KICK_TABLE: Tuple[Tuple[int, int], ...] = (
    (0, 0),
    (1, 0),
    (-1, 0),
    (0, 1),
    (0, -1),
    (2, 0),
    (-2, 0),
    (1, 1),
    (-1, 1),
    (0, 2),
)


class GamePhase(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    GAME_OVER = "game_over"


@dataclass(frozen=True, eq=False)
class GameSnapshot:
    """Read-only view of the game for renderers."""

    phase: GamePhase
    score: int
    lines_cleared: int
    level: int
    game_over: bool
    tension_level: TensionLevel
    is_danger_zone: bool
    is_critical_warning: bool
    current_piece: Optional[Polyomino]
    current_position: Position
    ghost_position: Optional[Position]
    next_piece_preview: Optional[Polyomino]
    board: np.ndarray = field(repr=False)


Listener = Callable[[GameSnapshot], None]


class GameCore:
    """Drive one falling-block game fed by an asynchronous piece queue."""

    def __init__(
        self,
        *,
        config: Optional[GameConfig] = None,
        piece_queue: Optional[PieceQueue] = None,
        weights: Optional[ScoreWeights] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config or GameConfig()
        self.weights = weights or ScoreWeights()
        self._rng = rng or random.Random()
        self.piece_queue = piece_queue or PieceQueue(
            max_size=self.config.queue_size,
            request_timeout=self.config.piece_request_timeout,
            rng=self._rng,
        )
        self.state = GameState()
        self.phase = GamePhase.IDLE
        self.tension = TensionReading()
        self.drop_speed_multiplier = 1.0
        self.is_soft_dropping = False
        self.waiting_for_next_piece = False

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._drop_task: Optional[asyncio.Task] = None
        self._timer_generation = 0
        self._game_id = 0
        self._piece_task: Optional[asyncio.Task] = None
        self._animating = False
        self._animation_handle: Optional[asyncio.TimerHandle] = None
        self._pending_ops: Deque[Callable[[], bool]] = deque()
        self._listeners: List[Listener] = []

    # Wiring -----------------------------------------------------------
    def set_piece_provider(self, provider: Optional[PieceProvider]) -> None:
        """Install ``provider`` and start prefetching when a loop is running."""

        LOGGER.info("Setting piece provider %s", type(provider).__name__)
        self.piece_queue.set_provider(provider)
        loop = _running_loop()
        if loop is not None:
            loop.create_task(self.piece_queue.preload())

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    def post(self, callback: Callable[..., object], *args: object) -> None:
        """Run ``callback(*args)`` on the owning loop; safe from any thread."""

        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(callback, *args)
        else:
            callback(*args)

    # Lifecycle --------------------------------------------------------
    @property
    def is_game_running(self) -> bool:
        return self.phase is GamePhase.RUNNING

    def start_game(self) -> None:
        """Reset the board and tension, enter RUNNING and request the first piece."""

        self._cancel_piece_request()
        self._close_animation_window(replay=False)
        self._game_id += 1
        self._loop = _running_loop()
        self.state = GameState()
        self.tension = TensionReading()
        self.is_soft_dropping = False
        self.waiting_for_next_piece = False
        self.phase = GamePhase.RUNNING
        LOGGER.info("Game started")
        self._start_drop_timer()
        self.request_next_piece()
        self._notify()

    def pause_game(self) -> None:
        if self.phase is not GamePhase.RUNNING:
            LOGGER.debug("Pause ignored: game not running")
            return
        self.phase = GamePhase.PAUSED
        self._stop_drop_timer()
        LOGGER.info("Paused")
        self._notify()

    def resume_game(self) -> None:
        if self.phase is not GamePhase.PAUSED:
            LOGGER.debug("Resume ignored: game not paused")
            return
        self.phase = GamePhase.RUNNING
        self._start_drop_timer()
        LOGGER.info("Resumed")
        if not self._animating:
            self._replay_pending_ops()
        self._notify()

    def end_game(self) -> None:
        """Enter GAME_OVER and halt all timers."""

        self._stop_drop_timer()
        self._cancel_piece_request()
        self._close_animation_window(replay=False)
        self.state.game_over = True
        self.waiting_for_next_piece = False
        if self.phase is not GamePhase.GAME_OVER:
            self.phase = GamePhase.GAME_OVER
            LOGGER.info(
                "Game over: score=%d lines=%d level=%d",
                self.state.score,
                self.state.lines_cleared,
                self.state.level,
            )
            self._notify()

    def shutdown(self) -> None:
        """Stop timers and pending work; safe to call any number of times."""

        self._stop_drop_timer()
        self._cancel_piece_request()
        self._close_animation_window(replay=False)

    # Drop timer -------------------------------------------------------
    @property
    def current_drop_interval(self) -> float:
        return drop_interval(
            self.config.base_drop_interval,
            self.drop_speed_multiplier,
            self.tension.level,
            soft_drop_interval=self.config.soft_drop_interval if self.is_soft_dropping else None,
        )

    def _start_drop_timer(self) -> None:
        self._stop_drop_timer()
        if self.phase is not GamePhase.RUNNING:
            return
        loop = _running_loop()
        if loop is None:
            LOGGER.debug("No running event loop; drop timer not scheduled")
            return
        interval = self.current_drop_interval
        LOGGER.debug(
            "Starting drop timer: interval=%.3fs (multiplier=%.2f, tension=%s, soft drop=%s)",
            interval,
            self.drop_speed_multiplier,
            self.tension.level.value,
            self.is_soft_dropping,
        )
        self._drop_task = loop.create_task(self._drop_loop(self._timer_generation, interval))

    def _stop_drop_timer(self) -> None:
        # Bumping the generation turns any tick already in flight into a no-op.
        self._timer_generation += 1
        task, self._drop_task = self._drop_task, None
        if task is not None and not task.done():
            task.cancel()

    async def _drop_loop(self, generation: int, interval: float) -> None:
        while generation == self._timer_generation:
            await asyncio.sleep(interval)
            if generation != self._timer_generation:
                return
            self.drop_current_piece()

    # Pieces -----------------------------------------------------------
    def spawn_piece(self, piece: Polyomino, column: int) -> bool:
        """Place ``piece`` at the top of the board; an invalid spot ends the game."""

        spawn_x = max(0, min(column, self.state.board_width - piece.width))
        position = (spawn_x, 0)
        try:
            self._activate(piece, position)
        except InvalidSpawnPosition as exc:
            LOGGER.warning("%s", exc)
            self.end_game()
            return False
        LOGGER.debug("Spawned %d-cell piece at %s", piece.size, position)
        self._notify()
        return True

    def _activate(self, piece: Polyomino, position: Position) -> None:
        if not self.state.can_spawn_piece(piece, position):
            raise InvalidSpawnPosition(f"cannot spawn {piece.size}-cell piece at {position}")
        self.state.current_piece = piece
        self.state.current_position = position
        self.waiting_for_next_piece = False

    def request_next_piece(self) -> None:
        """Ask the queue for the next piece and spawn it when it arrives."""

        if self.phase not in (GamePhase.RUNNING, GamePhase.PAUSED) or self.state.game_over:
            LOGGER.debug("Game not running or over; skipping piece request")
            return
        self.waiting_for_next_piece = True
        loop = _running_loop()
        if loop is None:
            piece = self.piece_queue.pop_buffered() or self.piece_queue.fallback_piece()
            self._deliver_piece(piece, self._game_id)
            return
        if self._piece_task is not None and not self._piece_task.done():
            return
        self._piece_task = loop.create_task(self._fetch_next_piece(self._game_id))

    async def _fetch_next_piece(self, game_id: int) -> None:
        piece = await self.piece_queue.next_piece()
        self._deliver_piece(piece, game_id)

    def _deliver_piece(self, piece: Polyomino, game_id: int) -> None:
        if (
            game_id != self._game_id
            or self.phase not in (GamePhase.RUNNING, GamePhase.PAUSED)
            or self.state.game_over
        ):
            LOGGER.debug("Game ended while waiting for piece")
            return
        column = self._rng.randint(0, max(0, self.state.board_width - piece.width))
        self.spawn_piece(piece, column)

    def _cancel_piece_request(self) -> None:
        task, self._piece_task = self._piece_task, None
        if task is not None and not task.done():
            task.cancel()

    @property
    def next_piece_preview(self) -> Optional[Polyomino]:
        return self.piece_queue.next_piece_preview

    # Movement ---------------------------------------------------------
    @property
    def is_animating(self) -> bool:
        return self._animating

    @property
    def pending_operation_count(self) -> int:
        return len(self._pending_ops)

    def move_piece(self, dx: int, dy: int = 0) -> bool:
        """Translate the active piece if the target position is valid.

        Horizontal moves requested during the post-lock animation window are
        queued and replayed when it closes; they return ``False`` here.
        """

        if self.phase is not GamePhase.RUNNING:
            return False
        if self._animating and dx != 0:
            self._pending_ops.append(partial(self.move_piece, dx, dy))
            return False
        piece = self.state.current_piece
        if piece is None:
            return False
        x, y = self.state.current_position
        target = (x + dx, y + dy)
        if not self.state.is_valid_position(piece, target):
            return False
        self.state.current_position = target
        self._notify()
        return True

    def rotate_piece(self) -> bool:
        """Rotate using the kick table; returns ``False`` and keeps the piece when blocked."""

        if self.phase is not GamePhase.RUNNING:
            return False
        if self._animating:
            self._pending_ops.append(self.rotate_piece)
            return False
        piece = self.state.current_piece
        if piece is None:
            return False
        rotated = piece.rotated()
        x, y = self.state.current_position
        for dx, dy in KICK_TABLE:
            target = (x + dx, y + dy)
            if self.state.is_valid_position(rotated, target):
                self.state.current_piece = rotated
                self.state.current_position = target
                self._notify()
                return True
        return False

    def drop_current_piece(self) -> None:
        """One timer tick: fall by one row or lock."""

        if self.phase is not GamePhase.RUNNING or self.state.current_piece is None:
            return
        if not self.move_piece(0, 1):
            self.lock_current_piece()

    def hard_drop(self) -> int:
        """Drop the active piece as far as it goes and lock it; return the distance."""

        piece = self.state.current_piece
        if self.phase is not GamePhase.RUNNING or piece is None:
            return 0
        x, y = self.state.current_position
        distance = 0
        while self.state.is_valid_position(piece, (x, y + distance + 1)):
            distance += 1
        self.state.current_position = (x, y + distance)
        self.lock_current_piece()
        return distance

    def start_soft_drop(self) -> None:
        if self.phase is not GamePhase.RUNNING or self.is_soft_dropping:
            return
        self.is_soft_dropping = True
        self._start_drop_timer()

    def stop_soft_drop(self) -> None:
        if not self.is_soft_dropping:
            return
        self.is_soft_dropping = False
        self._start_drop_timer()

    def ghost_position(self) -> Optional[Position]:
        return self.state.ghost_position()

    # Locking ----------------------------------------------------------
    def lock_current_piece(self) -> int:
        """Write the active piece into the board, clear lines and score.

        Returns the number of lines cleared.
        """

        piece = self.state.current_piece
        if piece is None:
            return 0
        self.state.place_piece(piece, self.state.current_position, color_for(piece))
        self.state.current_piece = None

        lines = self.state.clear_lines()
        if lines:
            self.state.score += line_clear_award(lines, self.state.level)
            LOGGER.debug("Cleared %d line(s). Score: %d", lines, self.state.score)
        self._update_level()
        self._refresh_tension()

        if self.state.game_over:
            self.end_game()
            return lines

        self._open_animation_window(
            self.config.line_clear_animation_duration
            if lines
            else self.config.lock_animation_duration
        )
        self.request_next_piece()
        self._notify()
        return lines

    def _update_level(self) -> None:
        level = 1 + self.state.lines_cleared // self.config.lines_per_level
        if level != self.state.level:
            LOGGER.info("Level %d -> %d", self.state.level, level)
            self.state.level = level

    def _refresh_tension(self) -> None:
        reading = derive_tension(self.state)
        changed = reading.level is not self.tension.level
        self.tension = reading
        if changed:
            LOGGER.info(
                "Tension %s (danger=%.2f)", reading.level.value, reading.total_danger
            )
            if self.phase is GamePhase.RUNNING and not self.is_soft_dropping:
                self._start_drop_timer()

    # Animation window -------------------------------------------------
    def _open_animation_window(self, duration: float) -> None:
        if duration <= 0:
            return
        loop = _running_loop()
        if loop is None:
            return
        if self._animation_handle is not None:
            self._animation_handle.cancel()
        self._animating = True
        self._animation_handle = loop.call_later(duration, self._close_animation_window)

    def _close_animation_window(self, replay: bool = True) -> None:
        if self._animation_handle is not None:
            self._animation_handle.cancel()
            self._animation_handle = None
        self._animating = False
        if not replay:
            self._pending_ops.clear()
            return
        # queued input waits for resume while paused
        if self.phase is GamePhase.RUNNING:
            self._replay_pending_ops()

    def _replay_pending_ops(self) -> None:
        while self._pending_ops:
            op = self._pending_ops.popleft()
            op()

    # Emotion modulation -----------------------------------------------
    def update_drop_speed_for_expression(
        self, expression: FacialExpression, confidence: float
    ) -> bool:
        """Blend the drop-speed multiplier toward ``expression``'s factor.

        Low-confidence readings and changes below the minimum delta are
        ignored.  Returns ``True`` when the multiplier changed.
        """

        cfg = self.config
        name = getattr(expression, "value", expression)
        if confidence < cfg.expression_confidence_floor:
            LOGGER.debug("Expression confidence too low (%.2f); keeping speed", confidence)
            return False

        target = float(expression.drop_speed_multiplier)
        current = self.drop_speed_multiplier
        if abs(target - current) <= cfg.expression_min_delta:
            return False

        updated = current + (target - current) * cfg.expression_blend
        if abs(target - updated) <= cfg.expression_min_delta:
            updated = target
        LOGGER.info(
            "Drop speed multiplier %.2f -> %.2f for expression %s", current, updated, name
        )
        self.drop_speed_multiplier = updated
        if self.phase is GamePhase.RUNNING and not self.is_soft_dropping:
            self._start_drop_timer()
        return True

    # Read-only views --------------------------------------------------
    def calculate_score(
        self, iou: float, stable_time: float, lines_cleared: int, diversity_index: float
    ) -> int:
        return calculate_score(iou, stable_time, lines_cleared, diversity_index, self.weights)

    def get_board_features(self) -> BoardFeatures:
        return board_features(self.state.board)

    def snapshot(self) -> GameSnapshot:
        return GameSnapshot(
            phase=self.phase,
            score=self.state.score,
            lines_cleared=self.state.lines_cleared,
            level=self.state.level,
            game_over=self.state.game_over,
            tension_level=self.tension.level,
            is_danger_zone=self.tension.is_danger_zone,
            is_critical_warning=self.tension.is_critical_warning,
            current_piece=self.state.current_piece,
            current_position=self.state.current_position,
            ghost_position=self.state.ghost_position(),
            next_piece_preview=self.next_piece_preview,
            board=self.state.board.grid.copy(),
        )

    def _notify(self) -> None:
        if not self._listeners:
            return
        snap = self.snapshot()
        for listener in list(self._listeners):
            listener(snap)


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


__all__ = ["GameCore", "GamePhase", "GameSnapshot", "KICK_TABLE"]
