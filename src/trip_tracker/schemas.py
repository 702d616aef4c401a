from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from trip_tracker.services.route_model import RouteModel
from trip_tracker.services.runtime import TripStatus
from trip_tracker.services.types import GeoPoint, TripSnapshot


class FollowRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool


class MapStatusRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ready: bool = False
    error: str | None = Field(default=None, max_length=500)


class Coordinate(BaseModel):
    longitude: float
    latitude: float

    @classmethod
    def from_point(cls, point: GeoPoint) -> Coordinate:
        return cls(longitude=round(point.longitude, 6), latitude=round(point.latitude, 6))


class TripSnapshotResponse(BaseModel):
    position: Coordinate
    progress: float
    progress_percent: float
    distance_remaining_km: float

    @classmethod
    def from_snapshot(cls, snapshot: TripSnapshot) -> TripSnapshotResponse:
        return cls(
            position=Coordinate.from_point(snapshot.position),
            progress=snapshot.progress,
            progress_percent=round(snapshot.progress_percent, 3),
            distance_remaining_km=round(snapshot.distance_remaining_km, 3),
        )


class RouteResponse(BaseModel):
    route_geojson: dict
    origin: Coordinate
    destination: Coordinate
    total_distance_km: float
    bounds: list[float]
    source: Literal["osrm", "fallback"]
    advisory: str | None
    loading: bool

    @classmethod
    def from_state(cls, state: TripStatus) -> RouteResponse:
        route: RouteModel = state.route
        return cls(
            route_geojson=route.to_geojson(),
            origin=Coordinate.from_point(route.origin),
            destination=Coordinate.from_point(route.destination),
            total_distance_km=round(route.total_distance_km, 3),
            bounds=list(route.bounds()),
            source=state.route_source,
            advisory=state.route_advisory,
            loading=state.route_loading,
        )


class TripStateResponse(BaseModel):
    phase: Literal["idle", "running", "paused", "completed"]
    follow_enabled: bool
    map_ready: bool
    map_error: str | None
    snapshot: TripSnapshotResponse
    total_distance_km: float
    route_source: Literal["osrm", "fallback"]
    route_advisory: str | None
    route_loading: bool

    @classmethod
    def from_state(cls, state: TripStatus) -> TripStateResponse:
        return cls(
            phase=state.phase.value,
            follow_enabled=state.follow_enabled,
            map_ready=state.map_ready,
            map_error=state.map_error,
            snapshot=TripSnapshotResponse.from_snapshot(state.snapshot),
            total_distance_km=round(state.route.total_distance_km, 3),
            route_source=state.route_source,
            route_advisory=state.route_advisory,
            route_loading=state.route_loading,
        )
