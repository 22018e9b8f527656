"""User preference models."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from enum import StrEnum
from typing import Any

from pydantic import Field

from tripwatch.models._base import Domain, TripwatchModel


class UpdateFrequency(StrEnum):
    REALTIME = "realtime"
    FREQUENT = "frequent"
    NORMAL = "normal"
    LOW = "low"


class TemperatureUnit(StrEnum):
    CELSIUS = "celsius"
    FAHRENHEIT = "fahrenheit"


class DistanceUnit(StrEnum):
    METRIC = "metric"
    IMPERIAL = "imperial"


class AlertSettings(TripwatchModel):
    """Which domains may raise alert notifications."""

    weather: bool = True
    traffic: bool = True
    emergency: bool = True
    poi: bool = False

    def enabled_for(self, domain: Domain) -> bool:
        return bool(getattr(self, domain.value))


class Units(TripwatchModel):
    temperature: TemperatureUnit = TemperatureUnit.CELSIUS
    distance: DistanceUnit = DistanceUnit.METRIC


class Notifications(TripwatchModel):
    push: bool = True
    sound: bool = True
    vibration: bool = True


class DataSharing(TripwatchModel):
    anonymous: bool = True
    analytics: bool = False


def _merge_dict(target: dict[str, Any], incoming: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge incoming into target; nested mappings merge key by key."""
    for key, value in incoming.items():
        existing = target.get(key)
        if isinstance(value, Mapping) and isinstance(existing, dict):
            _merge_dict(existing, value)
        else:
            target[key] = copy.deepcopy(value)
    return target


class UserPreferences(TripwatchModel):
    update_frequency: UpdateFrequency = UpdateFrequency.NORMAL
    alert_settings: AlertSettings = Field(default_factory=AlertSettings)
    units: Units = Field(default_factory=Units)
    notifications: Notifications = Field(default_factory=Notifications)
    data_sharing: DataSharing = Field(default_factory=DataSharing)

    def merged(self, partial: Mapping[str, Any]) -> UserPreferences:
        """Return new preferences with *partial* applied.

        Nested sections may be given partially, e.g.
        ``{"alert_settings": {"poi": True}}`` keeps the other alert flags.
        Raises ``pydantic.ValidationError`` for invalid values.
        """
        current = self.model_dump()
        return UserPreferences.model_validate(_merge_dict(current, partial))
