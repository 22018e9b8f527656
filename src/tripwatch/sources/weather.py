"""Weather source: query, providers and client factory."""

from __future__ import annotations

import datetime as dt
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from pydantic import Field

from tripwatch._transport import Transport
from tripwatch.exceptions import TripwatchTransportError
from tripwatch.models._base import Domain, utcnow
from tripwatch.models.location import Location, format_coordinates
from tripwatch.models.weather import (
    AlertSeverity,
    CurrentConditions,
    DailyForecast,
    WeatherAlert,
    WeatherAlertType,
    WeatherData,
)
from tripwatch.sources._base import LocationResolverFn, Provider, SourceClient, SourceQuery, seeded_rng

# WMO weather interpretation codes used by Open-Meteo.
WMO_CONDITIONS: dict[int, tuple[str, str]] = {
    0: ("Clear", "sunny"),
    1: ("Mainly Clear", "sunny"),
    2: ("Partly Cloudy", "partly-cloudy"),
    3: ("Overcast", "cloudy"),
    45: ("Fog", "fog"),
    48: ("Depositing Rime Fog", "fog"),
    51: ("Light Drizzle", "rainy"),
    53: ("Moderate Drizzle", "rainy"),
    55: ("Dense Drizzle", "rainy"),
    56: ("Freezing Drizzle", "rainy"),
    57: ("Heavy Freezing Drizzle", "rainy"),
    61: ("Slight Rain", "rainy"),
    63: ("Moderate Rain", "rainy"),
    65: ("Heavy Rain", "rainy"),
    66: ("Freezing Rain", "rainy"),
    67: ("Heavy Freezing Rain", "rainy"),
    71: ("Slight Snow", "snowy"),
    73: ("Moderate Snow", "snowy"),
    75: ("Heavy Snow", "snowy"),
    77: ("Snow Grains", "snowy"),
    80: ("Slight Showers", "rainy"),
    81: ("Moderate Showers", "rainy"),
    82: ("Violent Showers", "stormy"),
    85: ("Slight Snow Showers", "snowy"),
    86: ("Heavy Snow Showers", "snowy"),
    95: ("Thunderstorms", "stormy"),
    96: ("Thunderstorms with Hail", "stormy"),
    99: ("Heavy Thunderstorms with Hail", "stormy"),
}

STORM_CODES = frozenset({65, 66, 67, 82, 95, 96, 99})

# Alert thresholds (°C, mm/day, km/h, UV index).
HEAT_THRESHOLD_C = 35.0
EXTREME_HEAT_THRESHOLD_C = 40.0
RAIN_THRESHOLD_MM = 20.0
HEAVY_RAIN_THRESHOLD_MM = 50.0
WIND_THRESHOLD_KMH = 60.0
UV_THRESHOLD = 8.0


class WeatherQuery(SourceQuery):
    """Current conditions plus a daily forecast for one location."""

    forecast_days: int = Field(default=7, ge=1, le=16)

    def cache_key(self) -> str:
        return f"{self.location_key()}|forecast={self.forecast_days}"


def _day_start(day: dt.date) -> dt.datetime:
    return dt.datetime.combine(day, dt.time.min, tzinfo=dt.UTC)


def _day_alert(
    day: dt.date,
    kind: WeatherAlertType,
    severity: AlertSeverity,
    title: str,
    description: str,
    recommendations: list[str],
    location_label: str,
    now: dt.datetime,
) -> WeatherAlert:
    day_start = _day_start(day)
    # Today's warnings start at the observation time; later days at midnight.
    start = now if day_start <= now else day_start
    return WeatherAlert(
        id=f"{kind.value}-{day.isoformat()}",
        type=kind,
        severity=severity,
        title=title,
        description=description,
        location=location_label,
        start_time=start,
        end_time=day_start + dt.timedelta(days=1),
        active=start <= now,
        recommendations=recommendations,
    )


def derive_alerts(
    location_label: str,
    current: CurrentConditions,
    forecast: Sequence[DailyForecast],
    *,
    storm_days: Sequence[dt.date] = (),
    now: dt.datetime,
) -> list[WeatherAlert]:
    """Build warnings from today's and tomorrow's forecast.

    Alert ids are derived from type and date, so the same condition is the
    same alert across refreshes. Tomorrow's warnings are inactive until
    their day starts.
    """
    alerts: list[WeatherAlert] = []
    for day in forecast[:2]:
        if day.date in storm_days:
            alerts.append(
                _day_alert(
                    day.date,
                    WeatherAlertType.SEVERE_WEATHER,
                    AlertSeverity.EXTREME,
                    "Severe storm warning",
                    f"{day.condition} expected",
                    ["Stay indoors", "Postpone outdoor trips", "Keep emergency contacts at hand"],
                    location_label,
                    now,
                )
            )
        if day.high >= HEAT_THRESHOLD_C:
            alerts.append(
                _day_alert(
                    day.date,
                    WeatherAlertType.TEMPERATURE,
                    AlertSeverity.EXTREME if day.high >= EXTREME_HEAT_THRESHOLD_C else AlertSeverity.HIGH,
                    "Heat warning",
                    f"High of {day.high:.0f}°C expected",
                    ["Limit outdoor activity", "Drink water regularly", "Avoid direct sun at midday"],
                    location_label,
                    now,
                )
            )
        precipitation = day.precipitation_mm or 0.0
        if precipitation >= RAIN_THRESHOLD_MM:
            alerts.append(
                _day_alert(
                    day.date,
                    WeatherAlertType.RAIN,
                    AlertSeverity.HIGH if precipitation >= HEAVY_RAIN_THRESHOLD_MM else AlertSeverity.MEDIUM,
                    "Rain warning",
                    f"{precipitation:.0f} mm of rain expected",
                    ["Carry rain gear", "Allow extra travel time"],
                    location_label,
                    now,
                )
            )
        wind = day.wind_speed or 0.0
        if wind >= WIND_THRESHOLD_KMH:
            alerts.append(
                _day_alert(
                    day.date,
                    WeatherAlertType.WIND,
                    AlertSeverity.HIGH,
                    "Wind warning",
                    f"Gusts up to {wind:.0f} km/h",
                    ["Secure loose items", "Avoid exposed viewpoints"],
                    location_label,
                    now,
                )
            )

    if current.uv_index is not None and current.uv_index >= UV_THRESHOLD and forecast:
        alerts.append(
            _day_alert(
                forecast[0].date,
                WeatherAlertType.UV,
                AlertSeverity.LOW,
                "High UV index",
                f"UV index {current.uv_index:.0f}",
                ["Use sunscreen", "Wear a hat"],
                location_label,
                now,
            )
        )
    return alerts


class SyntheticWeatherProvider:
    """Deterministic offline weather generator.

    Values are seeded by location signature and hour, so repeated fetches
    within the same hour agree.
    """

    _CONDITIONS = (0, 1, 2, 3, 61, 63, 80, 95)

    def __init__(self, *, clock: Callable[[], dt.datetime] = utcnow) -> None:
        self._clock = clock

    async def fetch(self, query: WeatherQuery, location: Location) -> WeatherData:
        now = self._clock()
        rng = seeded_rng("weather", location.signature(), now.strftime("%Y%m%d%H"))

        code = rng.choice(self._CONDITIONS)
        condition, icon = WMO_CONDITIONS[code]
        current = CurrentConditions(
            temperature=round(rng.uniform(5, 34), 1),
            humidity=rng.randint(30, 90),
            pressure=rng.randint(995, 1030),
            visibility=rng.randint(3, 20),
            uv_index=rng.randint(0, 11),
            wind_speed=rng.randint(0, 45),
            wind_direction=rng.randint(0, 359),
            condition=condition,
            icon=icon,
            last_updated=now,
        )

        forecast: list[DailyForecast] = []
        storm_days: list[dt.date] = []
        for offset in range(query.forecast_days):
            day = now.date() + dt.timedelta(days=offset)
            day_rng = seeded_rng("weather-day", location.signature(), day.isoformat())
            day_code = day_rng.choice(self._CONDITIONS)
            low = day_rng.randint(0, 25)
            day_condition, day_icon = WMO_CONDITIONS[day_code]
            forecast.append(
                DailyForecast(
                    date=day,
                    high=low + day_rng.randint(4, 15),
                    low=low,
                    condition=day_condition,
                    icon=day_icon,
                    humidity=day_rng.randint(40, 80),
                    wind_speed=day_rng.randint(5, 70),
                    wind_direction=day_rng.randint(0, 359),
                    precipitation_mm=round(day_rng.uniform(0, 40), 1) if day_code >= 61 else 0.0,
                )
            )
            if day_code in STORM_CODES:
                storm_days.append(day)

        label = location.name or format_coordinates(location)
        return WeatherData(
            location=label,
            current=current,
            forecast=forecast,
            alerts=derive_alerts(label, current, forecast, storm_days=storm_days, now=now),
            updated_at=now,
        )


def _series(daily: Mapping[str, Any], name: str, index: int) -> Any:
    values = daily.get(name) or []
    return values[index] if index < len(values) else None


class OpenMeteoWeatherProvider:
    """Live weather from the Open-Meteo forecast API (no API key needed)."""

    def __init__(self, transport: Transport, url: str, *, clock: Callable[[], dt.datetime] = utcnow) -> None:
        self._transport = transport
        self._url = url
        self._clock = clock

    async def fetch(self, query: WeatherQuery, location: Location) -> WeatherData:
        data = await self._transport.get_json(
            self._url,
            params={
                "latitude": location.latitude,
                "longitude": location.longitude,
                "current": (
                    "temperature_2m,relative_humidity_2m,surface_pressure,"
                    "wind_speed_10m,wind_direction_10m,weather_code,uv_index,visibility"
                ),
                "daily": (
                    "temperature_2m_max,temperature_2m_min,precipitation_sum,"
                    "wind_speed_10m_max,wind_direction_10m_dominant,weather_code"
                ),
                "forecast_days": query.forecast_days,
                "timezone": "UTC",
            },
        )
        if not isinstance(data, Mapping) or "current" not in data:
            raise TripwatchTransportError("Open-Meteo response has no current conditions", url=self._url)

        now = self._clock()
        raw_current: Mapping[str, Any] = data["current"]
        code = int(raw_current.get("weather_code") or 0)
        condition, icon = WMO_CONDITIONS.get(code, ("Unknown", "unknown"))
        visibility_m = raw_current.get("visibility")
        current = CurrentConditions(
            temperature=raw_current.get("temperature_2m", 0.0),
            humidity=raw_current.get("relative_humidity_2m"),
            pressure=raw_current.get("surface_pressure"),
            visibility=visibility_m / 1000.0 if visibility_m is not None else None,
            uv_index=raw_current.get("uv_index"),
            wind_speed=raw_current.get("wind_speed_10m"),
            wind_direction=raw_current.get("wind_direction_10m"),
            condition=condition,
            icon=icon,
            last_updated=now,
        )

        daily: Mapping[str, Any] = data.get("daily") or {}
        forecast: list[DailyForecast] = []
        storm_days: list[dt.date] = []
        for i, day_str in enumerate(daily.get("time") or []):
            day_code = int(_series(daily, "weather_code", i) or 0)
            day_condition, day_icon = WMO_CONDITIONS.get(day_code, ("Unknown", "unknown"))
            day = dt.date.fromisoformat(day_str)
            forecast.append(
                DailyForecast(
                    date=day,
                    high=_series(daily, "temperature_2m_max", i) or 0.0,
                    low=_series(daily, "temperature_2m_min", i) or 0.0,
                    condition=day_condition,
                    icon=day_icon,
                    wind_speed=_series(daily, "wind_speed_10m_max", i),
                    wind_direction=_series(daily, "wind_direction_10m_dominant", i),
                    precipitation_mm=_series(daily, "precipitation_sum", i),
                )
            )
            if day_code in STORM_CODES:
                storm_days.append(day)

        label = location.name or format_coordinates(location)
        return WeatherData(
            location=label,
            current=current,
            forecast=forecast,
            alerts=derive_alerts(label, current, forecast, storm_days=storm_days, now=now),
            updated_at=now,
        )


def create_weather_client(
    *,
    ttl: dt.timedelta,
    provider: Provider[WeatherQuery, WeatherData],
    resolver: LocationResolverFn,
    clock: Callable[[], dt.datetime] = utcnow,
) -> SourceClient[WeatherQuery, WeatherData]:
    return SourceClient(
        Domain.WEATHER,
        ttl=ttl,
        provider=provider,
        resolver=resolver,
        record_type=WeatherData,
        clock=clock,
    )
