"""Internal constants shared across the library."""

from __future__ import annotations

import math

from tripwatch.models._base import Domain
from tripwatch.models.preferences import UpdateFrequency

USER_AGENT = "tripwatch/0.1 (aiohttp)"

NOMINATIM_URL = "https://nominatim.openstreetmap.org"
IP_API_URL = "http://ip-api.com/json"
OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"

# ------------------------------------------------------------------
# Cache lifetimes and polling cadence
# ------------------------------------------------------------------

DEFAULT_TTL_SECONDS: dict[Domain, float] = {
    Domain.WEATHER: 30 * 60,
    Domain.TRAFFIC: 10 * 60,
    Domain.POI: 15 * 60,
    Domain.EMERGENCY: 5 * 60,
}

FREQUENCY_MULTIPLIERS: dict[UpdateFrequency, float] = {
    UpdateFrequency.REALTIME: 0.1,
    UpdateFrequency.FREQUENT: 0.5,
    UpdateFrequency.NORMAL: 1.0,
    UpdateFrequency.LOW: 2.0,
}

# ------------------------------------------------------------------
# Geometry
# ------------------------------------------------------------------

EARTH_RADIUS_M = 6_371_000.0


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two coordinates in metres."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
