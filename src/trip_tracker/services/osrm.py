from __future__ import annotations

import asyncio
import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Literal

import httpx
from django.conf import settings
from django.core.cache import cache

from trip_tracker.exceptions import ExternalServiceError, NoRouteFoundError, TripTrackerError
from trip_tracker.services.route_model import RouteModel, build_route_model, straight_line_route
from trip_tracker.services.types import GeoPoint, TripConfig

logger = logging.getLogger(__name__)

FALLBACK_ADVISORY = "Could not fetch a real route. Using a straight line fallback."


@dataclass(slots=True, frozen=True)
class RouteResolution:
    model: RouteModel
    source: Literal["osrm", "fallback"]
    advisory: str | None = None


class OsrmRouteSource:
    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.base_url = settings.OSRM_BASE_URL.rstrip("/")
        self.profile = settings.OSRM_PROFILE
        self.timeout = settings.OSRM_TIMEOUT_SECONDS
        self.retry_count = settings.OSRM_RETRY_COUNT
        self.retry_backoff = settings.OSRM_RETRY_BACKOFF_SECONDS
        self.transport = transport

    async def fetch_polyline(self, origin: GeoPoint, destination: GeoPoint) -> list[GeoPoint]:
        cache_key = self._cache_key(origin, destination)
        cached = await cache.aget(cache_key)
        if cached:
            return [GeoPoint.from_lng_lat(coord) for coord in cached]

        coordinates = ";".join(
            f"{point.longitude:.6f},{point.latitude:.6f}" for point in (origin, destination)
        )
        endpoint = f"{self.base_url}/route/v1/{self.profile}/{coordinates}"
        params = {
            "overview": "full",
            "geometries": "geojson",
        }

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            for attempt in range(self.retry_count + 1):
                try:
                    response = await client.get(endpoint, params=params)
                    response.raise_for_status()
                    points = self._parse_response(response.json())
                    await cache.aset(
                        cache_key,
                        [list(point.as_lng_lat()) for point in points],
                        timeout=settings.ROUTE_CACHE_TTL_SECONDS,
                    )
                    return points
                except NoRouteFoundError:
                    raise
                except (httpx.HTTPError, ValueError) as exc:
                    if attempt >= self.retry_count:
                        raise ExternalServiceError("OSRM request failed") from exc
                    logger.debug("OSRM attempt %s failed: %s", attempt + 1, exc)
                    await asyncio.sleep(self.retry_backoff * (attempt + 1))

        raise ExternalServiceError("OSRM request failed")

    @staticmethod
    def _cache_key(origin: GeoPoint, destination: GeoPoint) -> str:
        encoded = "|".join(
            f"{point.latitude:.5f}:{point.longitude:.5f}" for point in (origin, destination)
        ).encode()
        digest = hashlib.sha256(encoded).hexdigest()
        return f"trip-route:{digest}"

    @staticmethod
    def _parse_response(payload: Any) -> list[GeoPoint]:
        if not isinstance(payload, dict) or payload.get("code") != "Ok":
            raise NoRouteFoundError("Routing failed: unexpected response")

        routes = payload.get("routes")
        if not isinstance(routes, list) or not routes:
            raise NoRouteFoundError("Routing failed: no routes returned")

        route = routes[0]
        geometry = route.get("geometry") if isinstance(route, dict) else None
        if not isinstance(geometry, dict):
            raise NoRouteFoundError("Route geometry is malformed")

        try:
            points = [GeoPoint.from_lng_lat(coord) for coord in geometry.get("coordinates") or []]
        except (TypeError, ValueError) as exc:
            raise NoRouteFoundError("Route geometry is malformed") from exc

        if len(points) < 2:
            raise NoRouteFoundError("Route geometry unavailable")
        return points


async def resolve_route(source: OsrmRouteSource, config: TripConfig) -> RouteResolution:
    try:
        points = await source.fetch_polyline(config.origin, config.destination)
    except TripTrackerError as exc:
        logger.warning("Falling back to a straight line route: %s", exc)
        return RouteResolution(
            model=straight_line_route(config),
            source="fallback",
            advisory=FALLBACK_ADVISORY,
        )

    model = build_route_model(points, fallback=config.fallback_points())
    logger.info("Loaded OSRM route: %d points, %.2f km", len(model.points), model.total_distance_km)
    return RouteResolution(model=model, source="osrm")
