import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from examples.profile_extraction import log_summary, run_round
from human_tetris.perf import LatencyTracker


class FakeClock:
    def __init__(self) -> None:
        self.current = 0.0

    def advance(self, delta: float) -> None:
        self.current += delta

    def __call__(self) -> float:
        return self.current


def test_log_summary_limits_rows_and_output(caplog):
    clock = FakeClock()
    tracker = LatencyTracker(clock=clock)
    with tracker.section("slow"):
        clock.advance(0.5)
    with tracker.section("fast"):
        clock.advance(0.1)

    with caplog.at_level(logging.INFO, logger="examples.profile_extraction"):
        summary = log_summary(tracker, limit=1, index=7)

    assert len(summary) == 1
    assert summary[0]["name"] == "slow"
    message = "".join(caplog.messages)
    assert "slow" in message
    assert "fast" not in message


def test_run_round_times_every_search_size():
    tracker = LatencyTracker()
    produced = run_round(5, tracker, density=1.0, seed=3)
    assert produced == 5
    names = {row["name"] for row in tracker.summary()}
    assert "extract" in names
    assert "beam_search[6]" in names
