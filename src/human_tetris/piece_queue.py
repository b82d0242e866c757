"""Asynchronous prefetch buffer in front of a :class:`PieceProvider`.

The queue keeps up to ``max_size`` pieces ready.  Serving a piece never waits
for the provider when the buffer has one; refills fan out one provider request
per missing slot and gather them concurrently so slow extraction does not
serialise.

Every provider request is bounded by ``request_timeout``.  A timeout, a
provider error, an empty answer or a missing/unavailable provider all resolve
to a uniformly random standard piece.  That fallback deliberately ignores the
shape history: repeat suppression is the provider's job.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections import deque
from typing import Callable, Deque, Optional, Set, Tuple

from .errors import PieceRequestTimeout
from .polyomino import Polyomino, random_standard_piece
from .provider import PieceProvider

LOGGER = logging.getLogger(__name__)


def _resolve(future: "asyncio.Future[Optional[Polyomino]]", piece: Optional[Polyomino]) -> None:
    if not future.done():
        future.set_result(piece)


class PieceQueue:
    """Prefetching piece buffer owned by one event loop."""

    def __init__(
        self,
        provider: Optional[PieceProvider] = None,
        *,
        max_size: int = 3,
        request_timeout: float = 5.0,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._provider = provider
        self.max_size = max_size
        self.request_timeout = request_timeout
        self._rng = rng or random.Random()
        self._buffer: Deque[Polyomino] = deque()
        self._in_flight = 0
        self._waiting = False
        self._tasks: Set["asyncio.Task[object]"] = set()

    def set_provider(self, provider: Optional[PieceProvider]) -> None:
        self._provider = provider

    @property
    def provider(self) -> Optional[PieceProvider]:
        return self._provider

    @property
    def pieces(self) -> Tuple[Polyomino, ...]:
        return tuple(self._buffer)

    @property
    def next_piece_preview(self) -> Optional[Polyomino]:
        return self._buffer[0] if self._buffer else None

    @property
    def is_waiting_for_piece(self) -> bool:
        return self._waiting

    def pop_buffered(self) -> Optional[Polyomino]:
        """Remove and return the buffer head without touching the provider."""

        return self._buffer.popleft() if self._buffer else None

    def fallback_piece(self) -> Polyomino:
        return random_standard_piece(self._rng)

    # Serving ----------------------------------------------------------
    async def next_piece(self) -> Polyomino:
        """Return the next piece, waiting on the provider only when the buffer is empty."""

        piece = self.pop_buffered()
        if piece is None:
            self._waiting = True
            try:
                piece = await self._request_piece()
            finally:
                self._waiting = False
        self._schedule_refill()
        return piece

    def get_next_piece(self, completion: Callable[[Polyomino], None]) -> "asyncio.Task[Polyomino]":
        """Callback flavour of :meth:`next_piece`; must be called on the owning loop."""

        task = self._spawn(self.next_piece())

        def _done(t: "asyncio.Task[Polyomino]") -> None:
            if not t.cancelled():
                completion(t.result())

        task.add_done_callback(_done)
        return task

    async def preload(self) -> None:
        await self.fill()

    async def fill(self) -> None:
        """Request the missing pieces concurrently and append what arrives."""

        needed = self.max_size - len(self._buffer) - self._in_flight
        if needed <= 0:
            return
        self._in_flight += needed
        try:
            results = await asyncio.gather(*(self._request_piece() for _ in range(needed)))
        finally:
            self._in_flight -= needed
        for piece in results:
            if len(self._buffer) < self.max_size:
                self._buffer.append(piece)
        LOGGER.debug("Piece queue refilled to %d", len(self._buffer))

    def clear(self) -> None:
        self._buffer.clear()

    async def aclose(self) -> None:
        """Cancel background refills."""

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # Internal helpers -------------------------------------------------
    def _spawn(self, coro) -> "asyncio.Task":
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _schedule_refill(self) -> None:
        self._spawn(self.fill())

    async def _request_piece(self) -> Polyomino:
        provider = self._provider
        if provider is None:
            return self.fallback_piece()
        try:
            available = provider.is_available()
        except Exception:
            LOGGER.exception("Piece provider availability check failed; using fallback piece")
            return self.fallback_piece()
        if not available:
            return self.fallback_piece()

        loop = asyncio.get_running_loop()
        future: "asyncio.Future[Optional[Polyomino]]" = loop.create_future()

        def completion(piece: Optional[Polyomino]) -> None:
            try:
                loop.call_soon_threadsafe(_resolve, future, piece)
            except RuntimeError:
                LOGGER.debug("Event loop closed; dropping late piece")

        try:
            provider.request_next_piece(completion)
        except Exception:
            LOGGER.exception("Piece provider raised; using fallback piece")
            return self.fallback_piece()

        try:
            piece = await asyncio.wait_for(future, self.request_timeout)
        except asyncio.TimeoutError:
            LOGGER.warning(
                "%s", PieceRequestTimeout(f"no piece within {self.request_timeout:.1f}s")
            )
            return self.fallback_piece()

        if piece is None:
            LOGGER.warning("Provider returned no piece; using fallback piece")
            return self.fallback_piece()
        return piece


__all__ = ["PieceQueue"]
