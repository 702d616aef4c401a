from __future__ import annotations

import time
from collections.abc import Callable
from enum import Enum


class TripPhase(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class TripClock:
    """Elapsed simulated time across start/pause/resume/reset.

    Time already accounted for is kept apart from the wall-clock anchor of the
    running segment, so a pause followed by a resume neither drifts nor jumps.
    Invalid transitions are silent no-ops and report ``False``.
    """

    def __init__(self, clock: Callable[[], float] = monotonic_ms) -> None:
        self.clock = clock
        self.phase = TripPhase.IDLE
        self.elapsed_before_current_run_ms = 0.0
        self.current_run_started_at_ms: float | None = None

    def start(self) -> bool:
        if self.phase is TripPhase.IDLE:
            self.elapsed_before_current_run_ms = 0.0
        elif self.phase is not TripPhase.PAUSED:
            return False

        self.current_run_started_at_ms = self.clock()
        self.phase = TripPhase.RUNNING
        return True

    def pause(self) -> bool:
        if self.phase is not TripPhase.RUNNING:
            return False

        self._fold_current_run()
        self.phase = TripPhase.PAUSED
        return True

    def complete(self) -> bool:
        if self.phase is not TripPhase.RUNNING:
            return False

        self._fold_current_run()
        self.phase = TripPhase.COMPLETED
        return True

    def reset(self) -> None:
        self.elapsed_before_current_run_ms = 0.0
        self.current_run_started_at_ms = None
        self.phase = TripPhase.IDLE

    def elapsed_ms(self, now: float | None = None) -> float:
        if self.phase is not TripPhase.RUNNING or self.current_run_started_at_ms is None:
            return self.elapsed_before_current_run_ms

        if now is None:
            now = self.clock()
        return self.elapsed_before_current_run_ms + (now - self.current_run_started_at_ms)

    def _fold_current_run(self) -> None:
        self.elapsed_before_current_run_ms = self.elapsed_ms()
        self.current_run_started_at_ms = None
