"""Configuration for tripwatch."""

from __future__ import annotations

import dataclasses
import os
from datetime import timedelta
from typing import Any

from tripwatch._constants import DEFAULT_TTL_SECONDS, IP_API_URL, NOMINATIM_URL, OPEN_METEO_URL, USER_AGENT
from tripwatch.exceptions import TripwatchConfigError
from tripwatch.models._base import Domain
from tripwatch.models.location import Location
from tripwatch.models.preferences import UpdateFrequency

WEATHER_PROVIDERS: frozenset[str] = frozenset({"synthetic", "open-meteo"})


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_optional_float(value: str) -> float | None:
    stripped = value.strip()
    if not stripped:
        return None
    try:
        return float(stripped)
    except ValueError as exc:
        raise TripwatchConfigError(f"Expected a number, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class TripwatchConfig:
    """Aggregator configuration.

    Parameters
    ----------
    default_place : str or None
        Place name used when neither an explicit location nor device
        geolocation is available.
    default_latitude, default_longitude : float or None
        Coordinates of ``default_place``. When either is ``None`` there is
        no last-resort location and initialization can fail.
    default_destination : str
        Destination used for traffic refreshes when none is given.
    poi_keyword : str
        Keyword used for POI refreshes when none is given.
    poi_limit : int
        Maximum number of POIs per refresh.
    poi_radius_m : float
        POI search radius in metres.
    emergency_radius_m : float
        Radius in metres for emergency alerts.
    resource_radius_m : float
        Radius in metres for emergency resources (shelters, hospitals...).
    weather_ttl, traffic_ttl, poi_ttl, emergency_ttl : float
        Per-domain cache lifetime in seconds. Also the base polling interval.
    update_frequency : str
        Initial update frequency (``realtime``, ``frequent``, ``normal``, ``low``).
    weather_provider : str
        ``synthetic`` (deterministic generator) or ``open-meteo``.
    geolocation_enabled : bool
        Look up the device position by IP when no location is given.
    geocoding_enabled : bool
        Use Nominatim for place-name lookup and reverse geocoding.
    http_timeout : float
        Total timeout in seconds for each outgoing HTTP request.
    user_agent : str
        User agent sent with HTTP requests (Nominatim requires one).
    """

    default_place: str | None = "Beijing"
    default_latitude: float | None = 39.9042
    default_longitude: float | None = 116.4074
    default_destination: str = "City Center"
    poi_keyword: str = "attractions"
    poi_limit: int = 20
    poi_radius_m: float = 5000.0
    emergency_radius_m: float = 10000.0
    resource_radius_m: float = 5000.0
    weather_ttl: float = DEFAULT_TTL_SECONDS[Domain.WEATHER]
    traffic_ttl: float = DEFAULT_TTL_SECONDS[Domain.TRAFFIC]
    poi_ttl: float = DEFAULT_TTL_SECONDS[Domain.POI]
    emergency_ttl: float = DEFAULT_TTL_SECONDS[Domain.EMERGENCY]
    update_frequency: str = UpdateFrequency.NORMAL.value
    weather_provider: str = "synthetic"
    geolocation_enabled: bool = True
    geocoding_enabled: bool = True
    http_timeout: float = 10.0
    user_agent: str = USER_AGENT
    nominatim_url: str = NOMINATIM_URL
    ip_api_url: str = IP_API_URL
    open_meteo_url: str = OPEN_METEO_URL

    def __post_init__(self) -> None:
        for name in ("weather_ttl", "traffic_ttl", "poi_ttl", "emergency_ttl", "http_timeout"):
            if getattr(self, name) <= 0:
                raise TripwatchConfigError(f"{name} must be positive, got {getattr(self, name)}")
        if self.poi_limit <= 0:
            raise TripwatchConfigError(f"poi_limit must be positive, got {self.poi_limit}")
        if self.update_frequency not in {f.value for f in UpdateFrequency}:
            raise TripwatchConfigError(f"Unknown update_frequency {self.update_frequency!r}")
        if self.weather_provider not in WEATHER_PROVIDERS:
            raise TripwatchConfigError(
                f"weather_provider must be one of {sorted(WEATHER_PROVIDERS)}, got {self.weather_provider!r}"
            )

    def ttl_for(self, domain: Domain) -> timedelta:
        seconds = {
            Domain.WEATHER: self.weather_ttl,
            Domain.TRAFFIC: self.traffic_ttl,
            Domain.POI: self.poi_ttl,
            Domain.EMERGENCY: self.emergency_ttl,
        }[domain]
        return timedelta(seconds=seconds)

    def default_location(self) -> Location | None:
        """Last-resort location, or ``None`` when none is configured."""
        if self.default_latitude is None or self.default_longitude is None:
            return None
        return Location(
            latitude=self.default_latitude,
            longitude=self.default_longitude,
            accuracy=1000.0,
            name=self.default_place,
        )

    @classmethod
    def from_env(cls, **overrides: Any) -> TripwatchConfig:
        """Create configuration from ``TRIPWATCH_*`` environment variables.

        Explicit keyword arguments override environment values. Setting
        ``TRIPWATCH_DEFAULT_LATITUDE`` to an empty string removes the
        last-resort location.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "TRIPWATCH_DEFAULT_PLACE": "default_place",
            "TRIPWATCH_DEFAULT_DESTINATION": "default_destination",
            "TRIPWATCH_POI_KEYWORD": "poi_keyword",
            "TRIPWATCH_UPDATE_FREQUENCY": "update_frequency",
            "TRIPWATCH_WEATHER_PROVIDER": "weather_provider",
            "TRIPWATCH_USER_AGENT": "user_agent",
            "TRIPWATCH_NOMINATIM_URL": "nominatim_url",
            "TRIPWATCH_IP_API_URL": "ip_api_url",
            "TRIPWATCH_OPEN_METEO_URL": "open_meteo_url",
        }
        _ENV_FLOAT_MAP = {
            "TRIPWATCH_POI_RADIUS_M": "poi_radius_m",
            "TRIPWATCH_EMERGENCY_RADIUS_M": "emergency_radius_m",
            "TRIPWATCH_RESOURCE_RADIUS_M": "resource_radius_m",
            "TRIPWATCH_WEATHER_TTL": "weather_ttl",
            "TRIPWATCH_TRAFFIC_TTL": "traffic_ttl",
            "TRIPWATCH_POI_TTL": "poi_ttl",
            "TRIPWATCH_EMERGENCY_TTL": "emergency_ttl",
            "TRIPWATCH_HTTP_TIMEOUT": "http_timeout",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None:
                parsed = _env_optional_float(val)
                if parsed is not None:
                    config_kwargs[field_name] = parsed

        # Empty coordinates mean "no default location".
        for env_key, field_name in (
            ("TRIPWATCH_DEFAULT_LATITUDE", "default_latitude"),
            ("TRIPWATCH_DEFAULT_LONGITUDE", "default_longitude"),
        ):
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = _env_optional_float(val)

        limit_env = env.get("TRIPWATCH_POI_LIMIT")
        if limit_env is not None and "poi_limit" not in overrides:
            try:
                config_kwargs["poi_limit"] = int(limit_env)
            except ValueError as exc:
                raise TripwatchConfigError(f"TRIPWATCH_POI_LIMIT must be an integer, got {limit_env!r}") from exc

        if "geolocation_enabled" not in overrides:
            config_kwargs["geolocation_enabled"] = _env_bool(env.get("TRIPWATCH_GEOLOCATION_ENABLED"), True)

        if "geocoding_enabled" not in overrides:
            config_kwargs["geocoding_enabled"] = _env_bool(env.get("TRIPWATCH_GEOCODING_ENABLED"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
