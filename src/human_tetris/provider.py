"""Piece providers: the producer side of the piece queue.

Providers are interchangeable strategy objects satisfying the
:class:`PieceProvider` protocol.  The game only ever sees
``request_next_piece(completion)`` and ``is_available()``; how a piece is made
is up to the provider chosen when the game is wired together.

``completion`` may be invoked from a worker thread, or synchronously on the
caller's thread when the piece is ready before ``request_next_piece``
returns.  The queue marshals results back onto its own event loop either way.
"""

from __future__ import annotations

import logging
import random
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, runtime_checkable

from .config import GameConfig
from .errors import ExtractionEmpty, HumanNotDetected, PieceValidationError
from .extractor import ShapeExtractor
from .grid import Grid
from .history import ShapeHistoryManager
from .polyomino import Polyomino, random_standard_piece
from .target_spec import TargetSpec

LOGGER = logging.getLogger(__name__)

CompletionHandler = Callable[[Optional[Polyomino]], None]


@runtime_checkable
class PieceProvider(Protocol):
    def request_next_piece(self, completion: CompletionHandler) -> None: ...

    def is_available(self) -> bool: ...


@dataclass(frozen=True)
class GridCapture:
    """One recognition cycle: the quantised grid and an optional shape hint."""

    grid: Grid
    target_spec: Optional[TargetSpec] = None


@runtime_checkable
class GridSource(Protocol):
    """Occupancy grid provider (camera + segmentation + quantisation)."""

    def capture(self) -> Optional[GridCapture]: ...

    def is_ready(self) -> bool: ...


class StandardPieceProvider:
    """Answer every request immediately with a random standard piece."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    def request_next_piece(self, completion: CompletionHandler) -> None:
        completion(random_standard_piece(self._rng))

    def is_available(self) -> bool:
        return True


class ExtractorPieceProvider:
    """Build pieces from captured grids on a worker pool.

    Each request captures a grid, runs the beam search, validates the result
    against the shape history and records it.  Any recoverable failure
    (nobody detected, nothing extractable, duplicate shape...) is replaced by a
    history-aware standard piece, so a request always completes with a piece.
    """

    def __init__(
        self,
        source: GridSource,
        *,
        extractor: Optional[ShapeExtractor] = None,
        history: Optional[ShapeHistoryManager] = None,
        history_size: int = GameConfig.history_size,
        executor: Optional[ThreadPoolExecutor] = None,
        max_workers: int = 3,
    ) -> None:
        self.source = source
        self.extractor = extractor or ShapeExtractor()
        self.history = history or ShapeHistoryManager(history_size)
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="piece-extract"
        )
        # Guards history and statistics; several requests run concurrently.
        self._lock = threading.Lock()
        self._ious: List[float] = []
        self.fallback_count = 0

    def is_available(self) -> bool:
        return self.source.is_ready()

    def request_next_piece(self, completion: CompletionHandler) -> None:
        future = self._executor.submit(self.produce_piece)
        future.add_done_callback(lambda f: completion(self._result_or_none(f)))

    @staticmethod
    def _result_or_none(future: "Future[Polyomino]") -> Optional[Polyomino]:
        exc = future.exception()
        if exc is not None:
            LOGGER.error("Piece production failed", exc_info=exc)
            return None
        return future.result()

    def produce_piece(self) -> Polyomino:
        """Extract, validate and record one piece; fall back on any recoverable error.

        The piece enters the history as soon as it is produced, even when the
        requester has already given up on it (a queue timeout, say).  Such a
        piece is never played, but it still counts toward the repeat window.
        """

        piece: Optional[Polyomino] = None
        iou = 0.0
        try:
            piece, iou = self._extract()
        except (PieceValidationError, ExtractionEmpty) as exc:
            LOGGER.warning("Extraction failed (%s); using fallback piece", exc)

        with self._lock:
            if piece is not None:
                result = self.history.validate_piece(piece)
                if not result.is_valid:
                    LOGGER.info("Rejected extracted piece: %s", result.error_message)
                    piece = None
                else:
                    self._ious.append(iou)
            if piece is None:
                piece = self.history.generate_fallback_piece()
                self.fallback_count += 1
            self.history.add_shape(piece)
        return piece

    def _extract(self) -> tuple[Polyomino, float]:
        capture = self.source.capture()
        if capture is None:
            raise HumanNotDetected()
        candidate = self.extractor.extract(capture.grid, capture.target_spec)
        if candidate is None:
            raise ExtractionEmpty(f"no candidate in {capture.grid!r}")
        return candidate.to_polyomino(), candidate.iou

    # Statistics -------------------------------------------------------
    @property
    def iou_history(self) -> List[float]:
        with self._lock:
            return list(self._ious)

    @property
    def max_iou(self) -> float:
        return max(self.iou_history, default=0.0)

    @property
    def average_iou(self) -> float:
        ious = self.iou_history
        return sum(ious) / len(ious) if ious else 0.0

    def shutdown(self, wait: bool = True) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=wait)


__all__ = [
    "CompletionHandler",
    "ExtractorPieceProvider",
    "GridCapture",
    "GridSource",
    "PieceProvider",
    "StandardPieceProvider",
]
