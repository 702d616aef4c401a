from __future__ import annotations

import asyncio

import pytest

from conftest import DESTINATION, ORIGIN, ROAD_POINTS, FakeClock, ManualScheduler
from trip_tracker.services.animation import AnimationDriver, ReadinessGate
from trip_tracker.services.geo import distance_km
from trip_tracker.services.route_model import RouteModel, build_route_model
from trip_tracker.services.scheduling import AsyncioFrameScheduler
from trip_tracker.services.trip_clock import TripPhase
from trip_tracker.services.types import TripConfig, TripSnapshot


@pytest.fixture
def driver(trip_config, scheduler, fake_clock) -> AnimationDriver:
    driver = AnimationDriver(
        build_route_model(ROAD_POINTS),
        config=trip_config,
        scheduler=scheduler,
        clock=fake_clock,
    )
    driver.readiness.mark_ready()
    return driver


@pytest.fixture
def published(driver) -> list[TripSnapshot]:
    snapshots: list[TripSnapshot] = []
    driver.subscribe(snapshots.append)
    return snapshots


def test_start_is_gated_by_map_readiness(trip_config, scheduler, fake_clock) -> None:
    driver = AnimationDriver(
        build_route_model(ROAD_POINTS), config=trip_config, scheduler=scheduler, clock=fake_clock
    )

    driver.on_start()
    assert driver.phase is TripPhase.IDLE
    assert scheduler.pending == []

    driver.readiness.mark_ready()
    driver.readiness.mark_failed("Failed to load map")
    driver.on_start()
    assert driver.phase is TripPhase.IDLE

    driver.readiness.mark_ready()
    driver.on_start()
    assert driver.phase is TripPhase.RUNNING


def test_readiness_gate_flags() -> None:
    gate = ReadinessGate()
    assert gate.is_open is False

    gate.mark_ready()
    assert gate.is_open is True

    gate.mark_failed("timeout")
    assert gate.is_open is False
    assert gate.map_error == "timeout"


def test_samples_publish_progress_and_reschedule(driver, scheduler, fake_clock, published) -> None:
    driver.on_start()
    assert driver.pending

    fake_clock.advance(2_500)
    scheduler.fire()

    assert published[-1].progress == pytest.approx(0.25)
    assert published[-1].position == driver.route_model.position_at_progress(0.25)
    assert published[-1].distance_remaining_km == pytest.approx(
        driver.route_model.total_distance_km * 0.75
    )
    assert len(scheduler.pending) == 1


def test_second_start_while_running_is_ignored(driver, scheduler, fake_clock) -> None:
    driver.on_start()
    fake_clock.advance(1_000)
    driver.on_start()

    assert len(scheduler.pending) == 1
    assert driver.progress() == pytest.approx(0.1)


def test_progress_is_monotonic_within_a_run(driver, scheduler, fake_clock, published) -> None:
    driver.on_start()
    for _ in range(20):
        fake_clock.advance(300)
        scheduler.fire()

    progress = [snapshot.progress for snapshot in published]
    assert progress == sorted(progress)


def test_pause_cancels_pending_sample(driver, scheduler, fake_clock, published) -> None:
    driver.on_start()
    fake_clock.advance(1_000)
    scheduler.fire()
    stale = scheduler.pending[0]

    driver.on_pause()

    assert driver.phase is TripPhase.PAUSED
    assert stale.cancelled
    assert not driver.pending

    count = len(published)
    stale.callback()
    assert len(published) == count


def test_pause_publishes_the_paused_position(driver, scheduler, fake_clock, published) -> None:
    driver.on_start()
    fake_clock.advance(1_000)
    scheduler.fire()
    fake_clock.advance(650)

    driver.on_pause()

    assert published[-1].progress == pytest.approx(0.165)
    assert published[-1] == driver.current_snapshot()
    assert published[-1].position == driver.route_model.position_at_progress(0.165)

    fake_clock.advance(5_000)
    driver.on_start()
    scheduler.fire()
    assert published[-1].progress >= published[-2].progress


def test_pause_when_not_running_is_ignored(driver, scheduler) -> None:
    driver.on_pause()
    assert driver.phase is TripPhase.IDLE
    assert scheduler.handles == []


def test_pause_resume_matches_continuous_run(trip_config, fake_clock) -> None:
    continuous_clock = FakeClock(fake_clock.now)
    continuous_scheduler = ManualScheduler()
    continuous = AnimationDriver(
        build_route_model(ROAD_POINTS),
        config=trip_config,
        scheduler=continuous_scheduler,
        clock=continuous_clock,
        readiness=ReadinessGate(map_ready=True),
    )
    interrupted_scheduler = ManualScheduler()
    interrupted = AnimationDriver(
        build_route_model(ROAD_POINTS),
        config=trip_config,
        scheduler=interrupted_scheduler,
        clock=fake_clock,
        readiness=ReadinessGate(map_ready=True),
    )

    continuous.on_start()
    continuous_clock.advance(3_700)

    interrupted.on_start()
    fake_clock.advance(3_700)
    interrupted.on_pause()
    fake_clock.advance(60_000)
    interrupted.on_start()

    assert interrupted.current_snapshot() == continuous.current_snapshot()

    resumed: list[TripSnapshot] = []
    interrupted.subscribe(resumed.append)
    interrupted_scheduler.fire()
    assert resumed[0].progress == pytest.approx(0.37)


@pytest.mark.parametrize("steps", [0, 1, 2, 3])
def test_reset_returns_to_origin_from_any_phase(driver, scheduler, fake_clock, published, steps) -> None:
    if steps >= 1:
        driver.on_start()
        fake_clock.advance(4_000)
        scheduler.fire()
    if steps >= 2:
        driver.on_pause()
    if steps >= 3:
        driver.on_start()
        fake_clock.advance(20_000)
        scheduler.fire()
        assert driver.phase is TripPhase.COMPLETED

    driver.on_reset()
    driver.on_reset()

    assert driver.phase is TripPhase.IDLE
    assert not driver.pending
    assert scheduler.pending == []
    assert published[-1].progress == 0.0
    assert published[-1].position == ORIGIN
    assert published[-1].distance_remaining_km == pytest.approx(driver.route_model.total_distance_km)


def test_completion_publishes_destination_and_stops(driver, scheduler, fake_clock, published) -> None:
    driver.on_start()
    fake_clock.advance(12_000)
    scheduler.fire()

    final = published[-1]
    assert driver.phase is TripPhase.COMPLETED
    assert final.progress == 1.0
    assert final.position == DESTINATION
    assert final.distance_remaining_km == pytest.approx(0.0, abs=1e-9)
    assert scheduler.pending == []

    driver.on_start()
    assert driver.phase is TripPhase.COMPLETED
    assert scheduler.pending == []

    driver.on_reset()
    driver.on_start()
    assert driver.phase is TripPhase.RUNNING


def test_distance_remaining_falls_back_for_malformed_model(trip_config, scheduler, fake_clock) -> None:
    malformed = RouteModel(points=(ORIGIN, DESTINATION), cumulative_distance_km=(0.0, -5.0))
    driver = AnimationDriver(malformed, config=trip_config, scheduler=scheduler, clock=fake_clock)

    snapshot = driver.snapshot_at(0.5)

    assert snapshot.distance_remaining_km == pytest.approx(
        distance_km(snapshot.position, trip_config.destination)
    )


def test_replacing_route_while_idle_publishes_new_totals(driver, published) -> None:
    straight = build_route_model([ORIGIN, DESTINATION])

    driver.replace_route_model(straight)

    assert driver.route_model is straight
    assert published[-1].distance_remaining_km == pytest.approx(straight.total_distance_km)


def test_replacing_route_while_running_applies_on_next_sample(
    driver, scheduler, fake_clock, published
) -> None:
    driver.on_start()
    fake_clock.advance(5_000)
    straight = build_route_model([ORIGIN, DESTINATION])

    driver.replace_route_model(straight)
    assert published == []

    scheduler.fire()
    assert published[-1].position == straight.position_at_progress(0.5)


def test_follow_flag_and_unsubscribe(driver) -> None:
    received: list[TripSnapshot] = []
    unsubscribe = driver.subscribe(received.append)

    driver.set_follow_enabled(True)
    assert driver.follow_enabled is True

    unsubscribe()
    unsubscribe()
    driver.on_reset()
    assert received == []


def test_asyncio_scheduler_runs_trip_to_completion() -> None:
    async def run() -> tuple[AnimationDriver, list[TripSnapshot]]:
        driver = AnimationDriver(
            build_route_model([ORIGIN, DESTINATION]),
            config=TripConfig(origin=ORIGIN, destination=DESTINATION, duration_ms=60.0),
            scheduler=AsyncioFrameScheduler(interval_seconds=0.002),
            readiness=ReadinessGate(map_ready=True),
        )
        done = asyncio.Event()
        snapshots: list[TripSnapshot] = []

        def on_snapshot(snapshot: TripSnapshot) -> None:
            snapshots.append(snapshot)
            if driver.phase is TripPhase.COMPLETED:
                done.set()

        driver.subscribe(on_snapshot)
        driver.on_start()
        await asyncio.wait_for(done.wait(), timeout=5)
        return driver, snapshots

    driver, snapshots = asyncio.run(run())

    assert driver.phase is TripPhase.COMPLETED
    assert not driver.pending
    assert snapshots[-1].position == DESTINATION
    assert [s.progress for s in snapshots] == sorted(s.progress for s in snapshots)
