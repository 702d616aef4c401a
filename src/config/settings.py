"""Django settings for trip tracker project."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "change-me-in-production")
DEBUG = os.getenv("DJANGO_DEBUG", "1") == "1"
ALLOWED_HOSTS = [host for host in os.getenv("DJANGO_ALLOWED_HOSTS", "").split(",") if host]

INSTALLED_APPS = [
    "django.contrib.staticfiles",
    "trip_tracker",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
            ],
        },
    },
]

WSGI_APPLICATION = "config.wsgi.application"
ASGI_APPLICATION = "config.asgi.application"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "trip-tracker-cache",
    }
}

OSRM_BASE_URL = os.getenv("OSRM_BASE_URL", "https://router.project-osrm.org")
OSRM_TIMEOUT_SECONDS = float(os.getenv("OSRM_TIMEOUT_SECONDS", "12"))
OSRM_RETRY_COUNT = int(os.getenv("OSRM_RETRY_COUNT", "2"))
OSRM_PROFILE = os.getenv("OSRM_PROFILE", "driving")
OSRM_RETRY_BACKOFF_SECONDS = float(os.getenv("OSRM_RETRY_BACKOFF_SECONDS", "0.3"))

ROUTE_CACHE_TTL_SECONDS = int(os.getenv("ROUTE_CACHE_TTL_SECONDS", "600"))

TRIP_ORIGIN_LONGITUDE = float(os.getenv("TRIP_ORIGIN_LONGITUDE", "91.7889"))
TRIP_ORIGIN_LATITUDE = float(os.getenv("TRIP_ORIGIN_LATITUDE", "26.1548"))
TRIP_DESTINATION_LONGITUDE = float(os.getenv("TRIP_DESTINATION_LONGITUDE", "91.7362"))
TRIP_DESTINATION_LATITUDE = float(os.getenv("TRIP_DESTINATION_LATITUDE", "26.1445"))
TRIP_DURATION_MS = float(os.getenv("TRIP_DURATION_MS", "45000"))
TRIP_FRAME_INTERVAL_SECONDS = float(os.getenv("TRIP_FRAME_INTERVAL_SECONDS", str(1 / 60)))
TRIP_COMMAND_TIMEOUT_SECONDS = float(os.getenv("TRIP_COMMAND_TIMEOUT_SECONDS", "5"))

MAP_TILE_URLS = [
    url
    for url in os.getenv(
        "MAP_TILE_URLS",
        ",".join(
            f"https://{shard}.basemaps.cartocdn.com/light_all/{{z}}/{{x}}/{{y}}.png"
            for shard in "abc"
        ),
    ).split(",")
    if url
]
MAP_INITIAL_ZOOM = float(os.getenv("MAP_INITIAL_ZOOM", "13"))

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "loggers": {
        "trip_tracker": {
            "handlers": ["console"],
            "level": os.getenv("TRIP_TRACKER_LOG_LEVEL", "INFO"),
        },
    },
}
