"""Per-domain source clients and their providers."""

from tripwatch.sources._base import Provider, SourceClient, SourceQuery, seeded_rng
from tripwatch.sources.emergency import (
    EMERGENCY_CONTACTS,
    EmergencyQuery,
    SyntheticEmergencyProvider,
    create_emergency_client,
)
from tripwatch.sources.poi import POIQuery, SyntheticPOIProvider, create_poi_client
from tripwatch.sources.traffic import (
    SyntheticTrafficProvider,
    TrafficQuery,
    best_alternative_route,
    create_traffic_client,
    level_for_congestion,
)
from tripwatch.sources.weather import (
    OpenMeteoWeatherProvider,
    SyntheticWeatherProvider,
    WeatherQuery,
    create_weather_client,
    derive_alerts,
)

__all__ = [
    "EMERGENCY_CONTACTS",
    "EmergencyQuery",
    "OpenMeteoWeatherProvider",
    "POIQuery",
    "Provider",
    "SourceClient",
    "SourceQuery",
    "SyntheticEmergencyProvider",
    "SyntheticPOIProvider",
    "SyntheticTrafficProvider",
    "SyntheticWeatherProvider",
    "TrafficQuery",
    "WeatherQuery",
    "best_alternative_route",
    "create_emergency_client",
    "create_poi_client",
    "create_traffic_client",
    "create_weather_client",
    "derive_alerts",
    "level_for_congestion",
    "seeded_rng",
]
