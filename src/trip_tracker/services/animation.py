from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass

from trip_tracker.services.geo import distance_km
from trip_tracker.services.route_model import RouteModel
from trip_tracker.services.scheduling import FrameHandle, FrameScheduler
from trip_tracker.services.trip_clock import TripClock, TripPhase, monotonic_ms
from trip_tracker.services.types import TripConfig, TripSnapshot

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[TripSnapshot], None]


@dataclass(slots=True)
class ReadinessGate:
    map_ready: bool = False
    map_error: str | None = None

    @property
    def is_open(self) -> bool:
        return self.map_ready and self.map_error is None

    def mark_ready(self) -> None:
        self.map_ready = True
        self.map_error = None

    def mark_failed(self, message: str) -> None:
        self.map_error = message


class AnimationDriver:
    """Samples a route at frame cadence while the trip clock runs.

    Exactly one sample is scheduled at a time. ``on_pause`` and ``on_reset``
    cancel the pending sample before touching the clock, so a stale callback
    never observes post-command state. All methods must be called from the
    same thread as the scheduler's callbacks.
    """

    def __init__(
        self,
        route_model: RouteModel,
        *,
        config: TripConfig,
        scheduler: FrameScheduler,
        clock: Callable[[], float] = monotonic_ms,
        readiness: ReadinessGate | None = None,
    ) -> None:
        self.config = config
        self.scheduler = scheduler
        self.readiness = readiness or ReadinessGate()
        self.trip_clock = TripClock(clock)
        self.follow_enabled = False
        self._route_model = route_model
        self._handle: FrameHandle | None = None
        self._subscribers: list[SnapshotCallback] = []

    @property
    def route_model(self) -> RouteModel:
        return self._route_model

    @property
    def phase(self) -> TripPhase:
        return self.trip_clock.phase

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def subscribe(self, callback: SnapshotCallback) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def set_follow_enabled(self, enabled: bool) -> None:
        self.follow_enabled = bool(enabled)

    def replace_route_model(self, route_model: RouteModel) -> None:
        self._route_model = route_model
        if self.phase is not TripPhase.RUNNING:
            self._publish(self.current_snapshot())

    def on_start(self) -> None:
        if not self.readiness.is_open:
            logger.debug("Start ignored: map is not ready")
            return

        resuming = self.phase is TripPhase.PAUSED
        if not self.trip_clock.start():
            return

        logger.info("Trip %s", "resumed" if resuming else "started")
        self._cancel_pending()
        self._handle = self.scheduler.schedule(self._sample)

    def on_pause(self) -> None:
        if self.phase is not TripPhase.RUNNING:
            return

        self._cancel_pending()
        self.trip_clock.pause()
        snapshot = self.current_snapshot()
        logger.info("Trip paused at %.1f%%", snapshot.progress_percent)
        self._publish(snapshot)

    def on_reset(self) -> None:
        self._cancel_pending()
        self.trip_clock.reset()
        self._publish(self.snapshot_at(0.0))

    def progress(self, now: float | None = None) -> float:
        elapsed = self.trip_clock.elapsed_ms(now)
        return min(max(elapsed / self.config.duration_ms, 0.0), 1.0)

    def current_snapshot(self) -> TripSnapshot:
        if self.phase is TripPhase.COMPLETED:
            return self.snapshot_at(1.0)
        return self.snapshot_at(self.progress())

    def snapshot_at(self, t: float, route_model: RouteModel | None = None) -> TripSnapshot:
        model = route_model if route_model is not None else self._route_model
        t = min(max(t, 0.0), 1.0)
        position = model.position_at_progress(t)

        remaining = model.total_distance_km * (1.0 - t)
        if not (math.isfinite(remaining) and remaining >= 0):
            remaining = distance_km(position, self.config.destination)

        return TripSnapshot(position=position, progress=t, distance_remaining_km=remaining)

    def _sample(self) -> None:
        self._handle = None
        if self.phase is not TripPhase.RUNNING:
            return

        # One read of the route reference per sample.
        model = self._route_model
        t = self.progress()

        if t >= 1.0:
            self.trip_clock.complete()
            logger.info("Trip completed: %.2f km", model.total_distance_km)
            self._publish(self.snapshot_at(1.0, model))
            return

        self._publish(self.snapshot_at(t, model))
        self._handle = self.scheduler.schedule(self._sample)

    def _cancel_pending(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _publish(self, snapshot: TripSnapshot) -> None:
        for callback in list(self._subscribers):
            callback(snapshot)
