"""
Wall-clock stopwatches for render sessions.

`start_timer` returns a `Stopwatch` value that is handed back to `stop_timer`;
there is no shared registry of running timers.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

Clock = Callable[[], float]

TOTAL_LABEL = "Render total"


@dataclass(frozen=True, slots=True)
class Stopwatch:
    label: str
    started_at: float


def iteration_label(index: int) -> str:
    return f"Execution time {index}"


def start_timer(label: str, clock: Clock = time.perf_counter) -> Stopwatch:
    return Stopwatch(label=label, started_at=clock())


def stop_timer(stopwatch: Stopwatch, clock: Clock = time.perf_counter) -> float:
    """Return the elapsed milliseconds since `stopwatch` was started."""
    return (clock() - stopwatch.started_at) * 1000.0


def format_elapsed(label: str, elapsed_ms: float) -> str:
    return f"{label}: {elapsed_ms:.3f}ms"
