from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal, TypeVar

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from trip_tracker.services.animation import AnimationDriver
from trip_tracker.services.osrm import OsrmRouteSource, RouteResolution, resolve_route
from trip_tracker.services.route_model import RouteModel, straight_line_route
from trip_tracker.services.scheduling import AsyncioFrameScheduler
from trip_tracker.services.trip_clock import TripPhase
from trip_tracker.services.types import GeoPoint, TripConfig, TripSnapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")


def trip_config_from_settings() -> TripConfig:
    duration_ms = float(settings.TRIP_DURATION_MS)
    if duration_ms <= 0:
        raise ImproperlyConfigured("TRIP_DURATION_MS must be a positive number")

    return TripConfig(
        origin=GeoPoint(
            longitude=float(settings.TRIP_ORIGIN_LONGITUDE),
            latitude=float(settings.TRIP_ORIGIN_LATITUDE),
        ),
        destination=GeoPoint(
            longitude=float(settings.TRIP_DESTINATION_LONGITUDE),
            latitude=float(settings.TRIP_DESTINATION_LATITUDE),
        ),
        duration_ms=duration_ms,
    )


@dataclass(slots=True, frozen=True)
class TripStatus:
    phase: TripPhase
    follow_enabled: bool
    map_ready: bool
    map_error: str | None
    snapshot: TripSnapshot
    route: RouteModel
    route_source: Literal["osrm", "fallback"]
    route_advisory: str | None
    route_loading: bool


class TripRuntime:
    """Hosts the single trip of this process on a private event loop thread.

    Request threads never touch the driver directly: each public method is
    marshalled onto the loop and waited for, so the driver, its clock, and the
    frame callbacks all run on one thread.
    """

    def __init__(
        self,
        config: TripConfig | None = None,
        route_source: OsrmRouteSource | None = None,
        frame_interval_seconds: float | None = None,
        command_timeout_seconds: float | None = None,
    ) -> None:
        self.config = config or trip_config_from_settings()
        self.route_source = route_source or OsrmRouteSource()
        self.frame_interval_seconds = (
            frame_interval_seconds
            if frame_interval_seconds is not None
            else float(settings.TRIP_FRAME_INTERVAL_SECONDS)
        )
        self.command_timeout_seconds = (
            command_timeout_seconds
            if command_timeout_seconds is not None
            else float(settings.TRIP_COMMAND_TIMEOUT_SECONDS)
        )

        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._driver: AnimationDriver | None = None
        self._latest: TripSnapshot | None = None
        self._route_task: asyncio.Task[RouteResolution] | None = None
        self._route_source_name: Literal["osrm", "fallback"] = "fallback"
        self._route_advisory: str | None = None

    def start(self) -> TripStatus:
        return self._call(self._command, "on_start")

    def pause(self) -> TripStatus:
        return self._call(self._command, "on_pause")

    def reset(self) -> TripStatus:
        return self._call(self._command, "on_reset")

    def set_follow_enabled(self, enabled: bool) -> TripStatus:
        return self._call(self._set_follow, enabled)

    def report_map_status(self, ready: bool, error: str | None = None) -> TripStatus:
        return self._call(self._map_status, ready, error)

    def refresh_route(self) -> TripStatus:
        return self._call(self._refresh_route)

    def state(self) -> TripStatus:
        return self._call(self._state)

    def shutdown(self) -> None:
        with self._lock:
            loop, thread = self._loop, self._thread
            self._loop = self._thread = None
        if loop is None or thread is None:
            return

        loop.call_soon_threadsafe(loop.stop)
        thread.join(timeout=self.command_timeout_seconds)
        if thread.is_alive():
            logger.warning(
                "Trip runtime loop did not stop within %.1fs", self.command_timeout_seconds
            )
            return
        loop.close()

    def _call(self, fn: Callable[..., T], *args: Any) -> T:
        loop = self._ensure_loop()

        async def invoke() -> T:
            return fn(*args)

        future = asyncio.run_coroutine_threadsafe(invoke(), loop)
        return future.result(timeout=self.command_timeout_seconds)

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._loop is None:
                loop = asyncio.new_event_loop()
                thread = threading.Thread(
                    target=self._run_loop, args=(loop,), name="trip-runtime", daemon=True
                )
                thread.start()
                self._loop, self._thread = loop, thread
            return self._loop

    @staticmethod
    def _run_loop(loop: asyncio.AbstractEventLoop) -> None:
        asyncio.set_event_loop(loop)
        loop.run_forever()

    # Everything below runs on the loop thread.

    def _get_driver(self) -> AnimationDriver:
        if self._driver is None:
            driver = AnimationDriver(
                straight_line_route(self.config),
                config=self.config,
                scheduler=AsyncioFrameScheduler(interval_seconds=self.frame_interval_seconds),
            )
            driver.subscribe(self._remember)
            self._driver = driver
            self._latest = driver.current_snapshot()
        return self._driver

    def _remember(self, snapshot: TripSnapshot) -> None:
        self._latest = snapshot

    def _command(self, name: str) -> TripStatus:
        getattr(self._get_driver(), name)()
        return self._state()

    def _set_follow(self, enabled: bool) -> TripStatus:
        self._get_driver().set_follow_enabled(enabled)
        return self._state()

    def _map_status(self, ready: bool, error: str | None) -> TripStatus:
        driver = self._get_driver()
        if error:
            logger.warning("Map reported an error: %s", error)
            driver.readiness.mark_failed(error)
        elif ready:
            first_ready = not driver.readiness.map_ready
            driver.readiness.mark_ready()
            if first_ready:
                self._refresh_route()
        return self._state()

    def _refresh_route(self) -> TripStatus:
        driver = self._get_driver()
        if self._route_task is not None and not self._route_task.done():
            self._route_task.cancel()

        task = asyncio.get_running_loop().create_task(resolve_route(self.route_source, self.config))
        task.add_done_callback(self._apply_route)
        self._route_task = task
        return self._state(driver)

    def _apply_route(self, task: asyncio.Task[RouteResolution]) -> None:
        if task.cancelled() or task is not self._route_task:
            return

        resolution = task.result()
        self._route_source_name = resolution.source
        self._route_advisory = resolution.advisory
        self._get_driver().replace_route_model(resolution.model)

    def _state(self, driver: AnimationDriver | None = None) -> TripStatus:
        driver = driver or self._get_driver()
        snapshot = self._latest
        if driver.phase is not TripPhase.RUNNING or snapshot is None:
            snapshot = driver.current_snapshot()

        return TripStatus(
            phase=driver.phase,
            follow_enabled=driver.follow_enabled,
            map_ready=driver.readiness.map_ready,
            map_error=driver.readiness.map_error,
            snapshot=snapshot,
            route=driver.route_model,
            route_source=self._route_source_name,
            route_advisory=self._route_advisory,
            route_loading=self._route_task is not None and not self._route_task.done(),
        )


_trip_runtime: TripRuntime | None = None
_trip_runtime_lock = threading.Lock()


def get_trip_runtime() -> TripRuntime:
    global _trip_runtime
    with _trip_runtime_lock:
        if _trip_runtime is None:
            _trip_runtime = TripRuntime()
        return _trip_runtime
