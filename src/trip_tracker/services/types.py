from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class GeoPoint:
    longitude: float
    latitude: float

    @classmethod
    def from_lng_lat(cls, pair: Sequence[float]) -> GeoPoint:
        if len(pair) != 2:
            raise ValueError(f"Expected a [longitude, latitude] pair, got {pair!r}")
        return cls(longitude=float(pair[0]), latitude=float(pair[1]))

    def as_lng_lat(self) -> tuple[float, float]:
        return self.longitude, self.latitude


DEFAULT_ORIGIN = GeoPoint(longitude=91.7889, latitude=26.1548)
DEFAULT_DESTINATION = GeoPoint(longitude=91.7362, latitude=26.1445)
DEFAULT_TRIP_DURATION_MS = 45_000.0


@dataclass(slots=True, frozen=True)
class TripSnapshot:
    position: GeoPoint
    progress: float
    distance_remaining_km: float

    @property
    def progress_percent(self) -> float:
        return self.progress * 100.0


@dataclass(slots=True, frozen=True)
class TripConfig:
    origin: GeoPoint = DEFAULT_ORIGIN
    destination: GeoPoint = DEFAULT_DESTINATION
    duration_ms: float = DEFAULT_TRIP_DURATION_MS

    def fallback_points(self) -> tuple[GeoPoint, GeoPoint]:
        return self.origin, self.destination
