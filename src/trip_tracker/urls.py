from django.urls import path

from trip_tracker import views

urlpatterns = [
    path("", views.trip_map_view, name="trip-map"),
    path("api/v1/health", views.health_view, name="health"),
    path("api/v1/trip", views.trip_state_view, name="trip-state"),
    path("api/v1/trip/follow", views.trip_follow_view, name="trip-follow"),
    path("api/v1/trip/map-status", views.map_status_view, name="map-status"),
    path("api/v1/trip/<str:command>", views.trip_command_view, name="trip-command"),
    path("api/v1/route", views.route_view, name="route"),
    path("api/v1/route/refresh", views.route_refresh_view, name="route-refresh"),
]
