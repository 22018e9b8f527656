"""Weather records."""

from __future__ import annotations

import datetime as dt
from enum import StrEnum

from pydantic import Field

from tripwatch.models._base import EpochTimestamp, TripwatchModel, utcnow


class AlertSeverity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EXTREME = "extreme"


class WeatherAlertType(StrEnum):
    SEVERE_WEATHER = "severe_weather"
    RAIN = "rain"
    WIND = "wind"
    TEMPERATURE = "temperature"
    UV = "uv"
    AIR_QUALITY = "air_quality"


class WeatherAlert(TripwatchModel):
    """A weather warning issued for the monitored location."""

    id: str
    type: WeatherAlertType
    severity: AlertSeverity
    title: str
    description: str = ""
    location: str | None = None
    start_time: EpochTimestamp
    end_time: EpochTimestamp | None = None
    active: bool = True
    recommendations: list[str] = Field(default_factory=list)


class CurrentConditions(TripwatchModel):
    """Observed conditions. Temperatures in °C, wind in km/h, visibility in km."""

    temperature: float
    humidity: float | None = None
    pressure: float | None = None
    visibility: float | None = None
    uv_index: float | None = None
    wind_speed: float | None = None
    wind_direction: float | None = None
    condition: str = "Unknown"
    icon: str = "unknown"
    last_updated: EpochTimestamp = Field(default_factory=utcnow)


class DailyForecast(TripwatchModel):
    date: dt.date
    high: float
    low: float
    condition: str = "Unknown"
    icon: str = "unknown"
    humidity: float | None = None
    wind_speed: float | None = None
    wind_direction: float | None = None
    precipitation_mm: float | None = None


class WeatherData(TripwatchModel):
    """Normalized weather record for one location."""

    location: str
    current: CurrentConditions
    forecast: list[DailyForecast] = Field(default_factory=list)
    alerts: list[WeatherAlert] = Field(default_factory=list)
    updated_at: EpochTimestamp = Field(default_factory=utcnow)
