from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import Any

import polars as pl
from django.core.management.base import BaseCommand, CommandError

from trip_tracker.services.animation import AnimationDriver
from trip_tracker.services.osrm import OsrmRouteSource, RouteResolution, resolve_route
from trip_tracker.services.route_model import straight_line_route
from trip_tracker.services.runtime import trip_config_from_settings
from trip_tracker.services.scheduling import AsyncioFrameScheduler
from trip_tracker.services.trip_clock import TripPhase
from trip_tracker.services.types import TripConfig, TripSnapshot


class Command(BaseCommand):
    help = "Run one simulated trip headlessly and report its progress."

    def add_arguments(self, parser: Any) -> None:
        parser.add_argument(
            "--duration-ms",
            type=float,
            default=None,
            help="Trip duration in milliseconds (defaults to TRIP_DURATION_MS)",
        )
        parser.add_argument(
            "--frame-interval-ms",
            type=float,
            default=1000.0 / 60.0,
            help="Delay between samples",
        )
        parser.add_argument(
            "--straight-line",
            action="store_true",
            help="Skip the routing service and travel in a straight line",
        )
        parser.add_argument(
            "--report-every",
            type=float,
            default=10.0,
            help="Progress step, in percent, between printed lines",
        )
        parser.add_argument(
            "--export",
            type=str,
            default=None,
            help="Write every published snapshot to this CSV path",
        )

    def handle(self, *_: Any, **options: Any) -> None:
        config = trip_config_from_settings()
        if options["duration_ms"] is not None:
            if options["duration_ms"] <= 0:
                raise CommandError("--duration-ms must be positive")
            config = TripConfig(
                origin=config.origin,
                destination=config.destination,
                duration_ms=options["duration_ms"],
            )

        report_every = max(0.1, options["report_every"])
        frame_interval_seconds = max(0.0, options["frame_interval_ms"]) / 1000.0

        started = time.monotonic()
        resolution, snapshots = asyncio.run(
            self._simulate(config, frame_interval_seconds, report_every, options["straight_line"])
        )

        if resolution.advisory:
            self.stdout.write(self.style.WARNING(resolution.advisory))

        if options["export"]:
            self._export(Path(options["export"]), snapshots)

        self.stdout.write(
            self.style.SUCCESS(
                f"Trip complete: {resolution.model.total_distance_km:.2f} km over "
                f"{len(resolution.model.points)} points, {len(snapshots)} samples in "
                f"{time.monotonic() - started:.1f}s (route={resolution.source})"
            )
        )

    async def _simulate(
        self,
        config: TripConfig,
        frame_interval_seconds: float,
        report_every: float,
        straight_line: bool,
    ) -> tuple[RouteResolution, list[TripSnapshot]]:
        if straight_line:
            resolution = RouteResolution(model=straight_line_route(config), source="fallback")
        else:
            resolution = await resolve_route(OsrmRouteSource(), config)

        driver = AnimationDriver(
            resolution.model,
            config=config,
            scheduler=AsyncioFrameScheduler(interval_seconds=frame_interval_seconds),
        )
        driver.readiness.mark_ready()

        done = asyncio.Event()
        snapshots: list[TripSnapshot] = []
        next_report = 0.0

        def on_snapshot(snapshot: TripSnapshot) -> None:
            nonlocal next_report
            snapshots.append(snapshot)
            if snapshot.progress_percent >= next_report or driver.phase is TripPhase.COMPLETED:
                self.stdout.write(
                    f"{snapshot.progress_percent:5.1f}%  "
                    f"lat={snapshot.position.latitude:.6f} lng={snapshot.position.longitude:.6f}  "
                    f"remaining={snapshot.distance_remaining_km:.2f} km"
                )
                while next_report <= snapshot.progress_percent:
                    next_report += report_every
            if driver.phase is TripPhase.COMPLETED:
                done.set()

        driver.subscribe(on_snapshot)
        driver.on_start()
        await done.wait()
        return resolution, snapshots

    def _export(self, path: Path, snapshots: list[TripSnapshot]) -> None:
        frame = pl.DataFrame(
            {
                "progress": [snapshot.progress for snapshot in snapshots],
                "longitude": [snapshot.position.longitude for snapshot in snapshots],
                "latitude": [snapshot.position.latitude for snapshot in snapshots],
                "distance_remaining_km": [snapshot.distance_remaining_km for snapshot in snapshots],
            },
            schema={
                "progress": pl.Float64,
                "longitude": pl.Float64,
                "latitude": pl.Float64,
                "distance_remaining_km": pl.Float64,
            },
        )
        path.parent.mkdir(parents=True, exist_ok=True)
        frame.write_csv(path)
        self.stdout.write(f"Wrote {frame.height} snapshots to {path}")
