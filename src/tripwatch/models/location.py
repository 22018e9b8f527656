"""Location models."""

from __future__ import annotations

from pydantic import Field

from tripwatch.models._base import EpochTimestamp, TripwatchModel, utcnow


class Location(TripwatchModel):
    """A resolved position.

    Parameters
    ----------
    latitude : float
        Latitude in degrees.
    longitude : float
        Longitude in degrees.
    accuracy : float or None
        Accuracy radius in metres, when the source reports one.
    timestamp : datetime
        When the position was captured.
    name : str or None
        Place name the position was resolved from, if any.
    """

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    accuracy: float | None = Field(default=None, ge=0.0)
    timestamp: EpochTimestamp = Field(default_factory=utcnow)
    name: str | None = None

    def signature(self) -> str:
        """Stable cache signature (coordinates rounded to 4 decimals, ~11 m)."""
        return f"{self.latitude:.4f},{self.longitude:.4f}"


LocationInput = Location | str
"""Either a resolved position or an opaque place name."""


def location_signature(value: LocationInput) -> str:
    """Cache key part for a location: rounded coordinates or a normalized name."""
    if isinstance(value, Location):
        return value.signature()
    return value.strip().lower()


def format_coordinates(location: Location) -> str:
    return f"{location.latitude:.4f}, {location.longitude:.4f}"


class GeoPoint(TripwatchModel):
    """A bare coordinate pair."""

    lat: float
    lng: float


class PlacePoint(GeoPoint):
    """A coordinate pair with a display address."""

    address: str = ""


class Address(TripwatchModel):
    """Human readable address produced by reverse geocoding."""

    city: str = ""
    region: str = ""
    country: str = ""
    display_name: str = ""
