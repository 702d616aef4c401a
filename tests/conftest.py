from __future__ import annotations

from collections.abc import Callable, Iterator

import pytest
from django.core.cache import cache
from django.test import Client

from trip_tracker.exceptions import ExternalServiceError
from trip_tracker.services.runtime import TripRuntime
from trip_tracker.services.types import GeoPoint, TripConfig

ORIGIN = GeoPoint(longitude=91.7889, latitude=26.1548)
DESTINATION = GeoPoint(longitude=91.7362, latitude=26.1445)
ROAD_POINTS = [
    ORIGIN,
    GeoPoint(longitude=91.7700, latitude=26.1600),
    GeoPoint(longitude=91.7500, latitude=26.1500),
    DESTINATION,
]


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class ManualHandle:
    def __init__(self, callback: Callable[[], None]) -> None:
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Queues frame callbacks until the test fires them."""

    def __init__(self) -> None:
        self.handles: list[ManualHandle] = []

    def schedule(self, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle(callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> list[ManualHandle]:
        return [handle for handle in self.handles if not handle.cancelled]

    def fire(self) -> None:
        pending = self.pending
        assert len(pending) == 1, f"expected exactly one pending frame, found {len(pending)}"
        handle = pending[0]
        self.handles.remove(handle)
        handle.callback()


class StubRouteSource:
    def __init__(self, points: list[GeoPoint] | None = None, fail: bool = False) -> None:
        self.points = points or ROAD_POINTS
        self.fail = fail
        self.calls = 0

    async def fetch_polyline(self, origin: GeoPoint, destination: GeoPoint) -> list[GeoPoint]:
        self.calls += 1
        if self.fail:
            raise ExternalServiceError("OSRM request failed")
        return list(self.points)


@pytest.fixture(autouse=True)
def clear_cache() -> Iterator[None]:
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client() -> Client:
    return Client()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def trip_config() -> TripConfig:
    return TripConfig(origin=ORIGIN, destination=DESTINATION, duration_ms=10_000.0)


@pytest.fixture
def route_source() -> StubRouteSource:
    return StubRouteSource()


@pytest.fixture
def trip_runtime(route_source: StubRouteSource) -> Iterator[TripRuntime]:
    runtime = TripRuntime(
        config=TripConfig(origin=ORIGIN, destination=DESTINATION, duration_ms=300.0),
        route_source=route_source,
        frame_interval_seconds=0.005,
        command_timeout_seconds=5.0,
    )
    yield runtime
    runtime.shutdown()
