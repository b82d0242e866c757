"""Latency measurement for the real-time piece pipeline.

The extractor must answer within the recognition budget (250 ms by default).
:class:`LatencyTracker` aggregates per-section timings and counts how many
samples overran the budget so callers can log or tune the beam width.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterator, List, Optional


@dataclass
class LatencyStat:
    """Aggregated timings for one labelled section."""

    count: int = 0
    total: float = 0.0
    min_time: Optional[float] = None
    max_time: float = 0.0
    over_budget: int = 0

    def add(self, elapsed: float, budget: Optional[float]) -> None:
        self.count += 1
        self.total += elapsed
        if self.min_time is None or elapsed < self.min_time:
            self.min_time = elapsed
        if elapsed > self.max_time:
            self.max_time = elapsed
        if budget is not None and elapsed > budget:
            self.over_budget += 1

    @property
    def average(self) -> float:
        return self.total / self.count if self.count else 0.0


class _Section:
    """Context manager timing one section."""

    __slots__ = ("_tracker", "_name", "_start")

    def __init__(self, tracker: "LatencyTracker", name: str) -> None:
        self._tracker = tracker
        self._name = name
        self._start: Optional[float] = None

    def __enter__(self) -> "_Section":
        if self._tracker.enabled:
            self._start = self._tracker._clock()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._start is not None:
            self._tracker.record(self._name, self._tracker._clock() - self._start)
            self._start = None
        return None


class LatencyTracker:
    """Collect latency statistics for labelled sections.

    Sections may be recorded from worker threads; updates are serialised with
    an internal lock.
    """

    def __init__(
        self,
        *,
        clock: Optional[Callable[[], float]] = None,
        budget: Optional[float] = None,
        enabled: bool = True,
    ) -> None:
        self._clock = clock or time.perf_counter
        self.budget = budget
        self.enabled = enabled
        self._stats: Dict[str, LatencyStat] = {}
        self._lock = threading.Lock()

    def enable(self) -> None:
        self.enabled = True

    def disable(self) -> None:
        self.enabled = False

    def reset(self) -> None:
        with self._lock:
            self._stats.clear()

    def record(self, name: str, elapsed: float) -> None:
        """Add one ``elapsed`` sample (seconds) to ``name``."""

        if not self.enabled:
            return
        with self._lock:
            stat = self._stats.get(name)
            if stat is None:
                stat = self._stats[name] = LatencyStat()
            stat.add(elapsed, self.budget)

    def section(self, name: str) -> _Section:
        """Return a context manager timing ``name``."""

        return _Section(self, name)

    def snapshot(self) -> Dict[str, LatencyStat]:
        with self._lock:
            return {name: replace(stat) for name, stat in self._stats.items()}

    def iter_stats(self) -> Iterator[tuple[str, LatencyStat]]:
        yield from self.snapshot().items()

    def summary(
        self, *, sort_by: str = "total", descending: bool = True
    ) -> List[Dict[str, float | int | str]]:
        """Return one row per section sorted by ``sort_by``."""

        key_map = {
            "total": lambda item: item[1].total,
            "count": lambda item: item[1].count,
            "average": lambda item: item[1].average,
            "max": lambda item: item[1].max_time,
            "over_budget": lambda item: item[1].over_budget,
        }
        if sort_by not in key_map:
            raise ValueError(f"Unknown sort key: {sort_by}")
        items = sorted(self.snapshot().items(), key=key_map[sort_by], reverse=descending)
        return [
            {
                "name": name,
                "count": stat.count,
                "total": stat.total,
                "average": stat.average,
                "min": stat.min_time if stat.min_time is not None else 0.0,
                "max": stat.max_time,
                "over_budget": stat.over_budget,
            }
            for name, stat in items
        ]

    def time_function(self, name: str, func: Callable[..., object], *args, **kwargs):
        """Execute ``func`` inside a named section and return its result."""

        with self.section(name):
            return func(*args, **kwargs)


__all__ = ["LatencyStat", "LatencyTracker"]
