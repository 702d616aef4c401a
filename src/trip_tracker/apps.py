from django.apps import AppConfig


class TripTrackerConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "trip_tracker"
