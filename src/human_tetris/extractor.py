"""Beam-search extraction of a polyomino from an occupancy grid.

For every target size ``k`` in ``[3, 6]`` an independent beam search grows
connected cell sets out of the grid's "on" cells:

1. The frontier starts with one singleton node per "on" cell.
2. Each of the remaining ``k - 1`` steps adds one 4-neighbouring "on" cell to
   every node.  Expansions are checked for connectivity with a flood fill over
   the candidate's own cells; identical cell sets reached through different
   growth orders are merged.
3. Nodes are ranked by an optimistic bound: the partial score
   (``w1 * occupancy + w2 * connectivity``) plus the best occupancy the
   remaining slots could still contribute.  Only the top ``beam_width`` survive;
   the width grows up to ``max_beam_width`` while ties straddle the cut.

Surviving nodes of size ``k`` receive their final score (aspect penalty and
optional :class:`~human_tetris.target_spec.TargetSpec` bonus).  Candidates of
all sizes are merged and ranked; the best is returned with its
intersection-over-union against the full "on" set.

Cell sets are handled as integer bitmasks (see :mod:`human_tetris.cellmask`),
which keeps the inner loops free of tuple and set allocations.
"""

from __future__ import annotations

import logging
import math
from contextlib import nullcontext
from dataclasses import dataclass
from typing import ContextManager, Dict, List, Optional, Tuple

from .cellmask import CellMaskLayout, iter_bits, popcount
from .config import BOARD_WIDTH, ScoreWeights, SearchConfig
from .grid import Grid, GridCell
from .perf import LatencyTracker
from .polyomino import Polyomino
from .target_spec import TargetSpec

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateShape:
    """Ranked extraction result; ``cells`` are ``(row, col)`` grid cells."""

    cells: Tuple[GridCell, ...]
    score: float
    iou: float

    @property
    def size(self) -> int:
        return len(self.cells)

    def to_polyomino(self) -> Polyomino:
        return Polyomino(tuple((col, row) for row, col in self.cells))


@dataclass(frozen=True)
class BeamNode:
    """Partial candidate kept on the beam."""

    mask: int
    size: int
    score: float
    upper_bound: float


@dataclass(frozen=True)
class _SearchContext:
    grid: Grid
    layout: CellMaskLayout
    on_mask: int
    occupancy: Tuple[float, ...]
    target_spec: Optional[TargetSpec]
    spawn_column: int


class ShapeExtractor:
    """Find the best-scoring connected piece contained in a grid.

    The extractor holds no per-call state, so one instance can be shared by
    several worker threads.
    """

    def __init__(
        self,
        *,
        weights: Optional[ScoreWeights] = None,
        search: Optional[SearchConfig] = None,
        profiler: Optional[LatencyTracker] = None,
    ) -> None:
        self.weights = weights or ScoreWeights()
        self.search = search or SearchConfig()
        self.profiler = profiler

    # Public API -------------------------------------------------------
    def extract(
        self, grid: Grid, target_spec: Optional[TargetSpec] = None
    ) -> Optional[CandidateShape]:
        """Return the top candidate or ``None`` when nothing can be formed."""

        candidates = self.find_candidates(grid, target_spec)
        return candidates[0] if candidates else None

    def extract_best_shape(
        self, grid: Grid, target_spec: Optional[TargetSpec] = None
    ) -> Optional[Polyomino]:
        best = self.extract(grid, target_spec)
        return best.to_polyomino() if best is not None else None

    def find_candidates(
        self, grid: Grid, target_spec: Optional[TargetSpec] = None
    ) -> List[CandidateShape]:
        """Return candidates of every size, best first."""

        with self._section("extract"):
            ctx = self._context(grid, target_spec)
            if ctx.on_mask == 0:
                return []
            candidates: List[CandidateShape] = []
            for k in range(self.search.min_piece_size, self.search.max_piece_size + 1):
                with self._section(f"beam_search[{k}]"):
                    candidates.extend(self._beam_search(k, ctx))
            candidates.sort(key=lambda c: c.score, reverse=True)
        LOGGER.debug(
            "Extracted %d candidate(s) from %d on-cell(s)", len(candidates), popcount(ctx.on_mask)
        )
        return candidates

    # Search -----------------------------------------------------------
    def _context(self, grid: Grid, target_spec: Optional[TargetSpec]) -> _SearchContext:
        layout = CellMaskLayout.for_grid(grid)
        occupancy = tuple(
            grid.occupancy_rate(*layout.cell(i)) for i in range(grid.rows * grid.cols)
        )
        return _SearchContext(
            grid=grid,
            layout=layout,
            on_mask=layout.on_mask(grid),
            occupancy=occupancy,
            target_spec=target_spec,
            spawn_column=int(grid.centroid_x * (BOARD_WIDTH - 1)),
        )

    def _beam_search(self, k: int, ctx: _SearchContext) -> List[CandidateShape]:
        beam = [self._node(1 << i, k, ctx) for i in iter_bits(ctx.on_mask)]

        for _ in range(1, k):
            expansions: Dict[int, BeamNode] = {}
            for node in beam:
                for i in iter_bits(ctx.layout.frontier(node.mask) & ctx.on_mask):
                    mask = node.mask | (1 << i)
                    if mask in expansions or not ctx.layout.is_connected(mask):
                        continue
                    expansions[mask] = self._node(mask, k, ctx)
            beam = self._truncate(sorted(expansions.values(), key=_beam_order))
            if not beam:
                break

        return [
            CandidateShape(
                cells=tuple(ctx.layout.cells_of(node.mask)),
                score=self._final_score(node.mask, ctx),
                iou=self._iou(node.mask, ctx.on_mask),
            )
            for node in beam
            if node.size == k
        ]

    def _truncate(self, ranked: List[BeamNode]) -> List[BeamNode]:
        width = self.search.beam_width
        while (
            width < self.search.max_beam_width
            and width < len(ranked)
            and math.isclose(ranked[width].upper_bound, ranked[width - 1].upper_bound)
        ):
            width += 1
        return ranked[:width]

    def _node(self, mask: int, k: int, ctx: _SearchContext) -> BeamNode:
        score = self._partial_score(mask, ctx)
        return BeamNode(
            mask=mask,
            size=popcount(mask),
            score=score,
            upper_bound=score + self._remaining_bound(mask, k, ctx),
        )

    # Scoring ----------------------------------------------------------
    def _occupancy_sum(self, mask: int, ctx: _SearchContext) -> float:
        return sum(ctx.occupancy[i] for i in iter_bits(mask))

    def _connectivity(self, mask: int, ctx: _SearchContext) -> float:
        size = popcount(mask)
        if size <= 1:
            return 0.0
        return ctx.layout.adjacency_count(mask) / (2 * size)

    def _partial_score(self, mask: int, ctx: _SearchContext) -> float:
        w = self.weights
        return w.w1 * self._occupancy_sum(mask, ctx) + w.w2 * self._connectivity(mask, ctx)

    def _remaining_bound(self, mask: int, k: int, ctx: _SearchContext) -> float:
        remaining = k - popcount(mask)
        if remaining <= 0:
            return 0.0
        available = sorted(
            (ctx.occupancy[i] for i in iter_bits(ctx.on_mask & ~mask)), reverse=True
        )
        return self.weights.w1 * sum(available[:remaining])

    def _aspect_penalty(self, mask: int, ctx: _SearchContext) -> float:
        height, width = ctx.layout.bounding_box(mask)
        aspect = max(height, width) / min(height, width)
        return max(0.0, aspect - self.search.aspect_penalty_threshold)

    def _final_score(self, mask: int, ctx: _SearchContext) -> float:
        w = self.weights
        score = self._partial_score(mask, ctx) - w.w5 * self._aspect_penalty(mask, ctx)
        if ctx.target_spec is not None:
            piece = Polyomino(tuple((col, row) for row, col in ctx.layout.cells_of(mask)))
            score += w.w4 * ctx.target_spec.match(piece, ctx.spawn_column)
        return score

    @staticmethod
    def _iou(mask: int, on_mask: int) -> float:
        union = popcount(mask | on_mask)
        if union == 0:
            return 0.0
        return popcount(mask & on_mask) / union

    def _section(self, name: str) -> ContextManager[object]:
        if self.profiler is None:
            return nullcontext()
        return self.profiler.section(name)


def _beam_order(node: BeamNode) -> Tuple[float, int]:
    return (-node.upper_bound, node.mask)


__all__ = ["BeamNode", "CandidateShape", "ShapeExtractor"]
