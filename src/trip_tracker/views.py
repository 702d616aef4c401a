from __future__ import annotations

import json
from typing import Any

from django.conf import settings
from django.http import HttpRequest, HttpResponse, JsonResponse
from django.shortcuts import render
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST
from pydantic import BaseModel, ValidationError

from trip_tracker.schemas import (
    FollowRequest,
    MapStatusRequest,
    RouteResponse,
    TripStateResponse,
)
from trip_tracker.services.runtime import TripStatus, get_trip_runtime

TRIP_COMMANDS = ("start", "pause", "reset")


@require_GET
def trip_map_view(request: HttpRequest) -> HttpResponse:
    runtime = get_trip_runtime()
    return render(
        request,
        "trip_tracker/trip_map.html",
        {
            "map_settings": {
                "origin": list(runtime.config.origin.as_lng_lat()),
                "destination": list(runtime.config.destination.as_lng_lat()),
                "duration_ms": runtime.config.duration_ms,
                "tile_urls": settings.MAP_TILE_URLS,
                "initial_zoom": settings.MAP_INITIAL_ZOOM,
            }
        },
    )


@require_GET
def health_view(_: HttpRequest) -> HttpResponse:
    state = get_trip_runtime().state()
    return JsonResponse({"status": "ok", "phase": state.phase.value})


@require_GET
def trip_state_view(_: HttpRequest) -> HttpResponse:
    return _state_response(get_trip_runtime().state())


@csrf_exempt
@require_POST
def trip_command_view(_: HttpRequest, command: str) -> HttpResponse:
    if command not in TRIP_COMMANDS:
        return _error_response("unknown_command", f"Unknown trip command: {command}", status=404)

    runtime = get_trip_runtime()
    return _state_response(getattr(runtime, command)())


@csrf_exempt
@require_POST
def trip_follow_view(request: HttpRequest) -> HttpResponse:
    follow_request = _validate(request, FollowRequest)
    if isinstance(follow_request, JsonResponse):
        return follow_request

    return _state_response(get_trip_runtime().set_follow_enabled(follow_request.enabled))


@csrf_exempt
@require_POST
def map_status_view(request: HttpRequest) -> HttpResponse:
    status_request = _validate(request, MapStatusRequest)
    if isinstance(status_request, JsonResponse):
        return status_request

    state = get_trip_runtime().report_map_status(status_request.ready, status_request.error)
    return _state_response(state)


@require_GET
def route_view(_: HttpRequest) -> HttpResponse:
    state = get_trip_runtime().state()
    return JsonResponse(RouteResponse.from_state(state).model_dump(mode="json"), status=200)


@csrf_exempt
@require_POST
def route_refresh_view(_: HttpRequest) -> HttpResponse:
    state = get_trip_runtime().refresh_route()
    return JsonResponse(RouteResponse.from_state(state).model_dump(mode="json"), status=202)


def _state_response(state: TripStatus) -> JsonResponse:
    return JsonResponse(TripStateResponse.from_state(state).model_dump(mode="json"), status=200)


def _validate(request: HttpRequest, schema: type[BaseModel]) -> Any:
    payload = _parse_json_payload(request)
    if isinstance(payload, JsonResponse):
        return payload

    try:
        return schema.model_validate(payload)
    except ValidationError as exc:
        return JsonResponse(
            {
                "error": {
                    "code": "validation_error",
                    "message": "Invalid request payload",
                    "details": exc.errors(include_context=False),
                }
            },
            status=400,
        )


def _parse_json_payload(request: HttpRequest) -> dict[str, Any] | JsonResponse:
    if not request.body:
        return {}

    try:
        payload = json.loads(request.body)
    except json.JSONDecodeError:
        return _error_response("invalid_json", "Request body must be valid JSON", status=400)

    if not isinstance(payload, dict):
        return _error_response("invalid_json", "JSON body must be an object", status=400)

    return payload


def _error_response(code: str, message: str, status: int) -> JsonResponse:
    return JsonResponse({"error": {"code": code, "message": message}}, status=status)
