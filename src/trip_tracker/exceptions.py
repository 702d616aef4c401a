class TripTrackerError(Exception):
    """Base exception for trip tracker errors."""


class ExternalServiceError(TripTrackerError):
    """Raised when an upstream API call fails."""


class NoRouteFoundError(TripTrackerError):
    """Raised when the routing service cannot produce a usable polyline."""
