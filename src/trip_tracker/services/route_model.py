from __future__ import annotations

from bisect import bisect_left
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from trip_tracker.services.geo import distance_km
from trip_tracker.services.types import (
    DEFAULT_DESTINATION,
    DEFAULT_ORIGIN,
    GeoPoint,
    TripConfig,
)


@dataclass(slots=True, frozen=True)
class RouteModel:
    """Polyline parameterized by cumulative great-circle distance.

    ``cumulative_distance_km[i]`` is the distance travelled from ``points[0]``
    to ``points[i]`` along the polyline. Instances are never edited in place; a
    new route replaces the old model wholesale.
    """

    points: tuple[GeoPoint, ...]
    cumulative_distance_km: tuple[float, ...]

    @property
    def origin(self) -> GeoPoint:
        return self.points[0]

    @property
    def destination(self) -> GeoPoint:
        return self.points[-1]

    @property
    def total_distance_km(self) -> float:
        return self.cumulative_distance_km[-1]

    def position_at_progress(self, t: float) -> GeoPoint:
        return position_at_progress(self, t)

    def bounds(self) -> tuple[float, float, float, float]:
        lon_values = [point.longitude for point in self.points]
        lat_values = [point.latitude for point in self.points]
        return min(lon_values), min(lat_values), max(lon_values), max(lat_values)

    def to_geojson(self) -> dict[str, Any]:
        return {
            "type": "LineString",
            "coordinates": [list(point.as_lng_lat()) for point in self.points],
        }


def build_route_model(
    points: Sequence[GeoPoint] | None,
    fallback: tuple[GeoPoint, GeoPoint] = (DEFAULT_ORIGIN, DEFAULT_DESTINATION),
) -> RouteModel:
    if points is None or len(points) < 2:
        points = fallback

    route_points = tuple(points)
    cumulative = [0.0]
    for index in range(1, len(route_points)):
        cumulative.append(cumulative[-1] + distance_km(route_points[index - 1], route_points[index]))

    return RouteModel(points=route_points, cumulative_distance_km=tuple(cumulative))


def straight_line_route(config: TripConfig) -> RouteModel:
    return build_route_model(config.fallback_points(), fallback=config.fallback_points())


def position_at_progress(model: RouteModel, t: float) -> GeoPoint:
    if t <= 0:
        return model.points[0]
    if t >= 1:
        return model.points[-1]

    cumulative = model.cumulative_distance_km
    target_km = model.total_distance_km * t

    # Smallest i with cumulative[i + 1] >= target_km; a target sitting exactly on
    # a vertex resolves to the segment that ends there.
    index = max(bisect_left(cumulative, target_km) - 1, 0)
    index = min(index, len(cumulative) - 2)

    segment_start_km = cumulative[index]
    segment_km = cumulative[index + 1] - segment_start_km
    fraction = 0.0 if segment_km <= 0 else (target_km - segment_start_km) / segment_km

    start = model.points[index]
    end = model.points[index + 1]
    return GeoPoint(
        longitude=start.longitude + (end.longitude - start.longitude) * fraction,
        latitude=start.latitude + (end.latitude - start.latitude) * fraction,
    )
