"""Composite snapshot published to subscribers."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, Generic, TypeVar

from pydantic import Field

from tripwatch.models._base import Domain, TripwatchModel
from tripwatch.models.emergency import EmergencyAlert, EmergencyData
from tripwatch.models.location import Location
from tripwatch.models.poi import POIAlert, POIStatus
from tripwatch.models.traffic import TrafficData, TrafficIncident, TrafficLevel
from tripwatch.models.weather import WeatherAlert, WeatherData

T = TypeVar("T")


class OverallStatus(StrEnum):
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    CRITICAL = "critical"


class WeatherSeverity(StrEnum):
    CLEAR = "clear"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


class DomainSlot(TripwatchModel, Generic[T]):
    """Per-domain state: last-known-good data plus load/error flags."""

    data: T | None = None
    last_updated: datetime | None = None
    is_loading: bool = False
    error: str | None = None


class Summary(TripwatchModel):
    """Derived risk summary; always recomputed from the domain slots."""

    overall_status: OverallStatus = OverallStatus.GOOD
    active_alerts: int = 0
    traffic_level: TrafficLevel = TrafficLevel.LOW
    weather_severity: WeatherSeverity = WeatherSeverity.CLEAR
    last_update: datetime | None = None


_SLOT_FIELDS: dict[Domain, str] = {
    Domain.WEATHER: "weather",
    Domain.TRAFFIC: "traffic",
    Domain.POI: "pois",
    Domain.EMERGENCY: "emergency",
}


class CompositeSnapshot(TripwatchModel):
    """Everything subscribers see: location, four domain slots and the summary."""

    location: Location | None = None
    address: str | None = None
    weather: DomainSlot[WeatherData] = Field(default_factory=DomainSlot[WeatherData])
    traffic: DomainSlot[TrafficData] = Field(default_factory=DomainSlot[TrafficData])
    pois: DomainSlot[list[POIStatus]] = Field(default_factory=DomainSlot[list[POIStatus]])
    emergency: DomainSlot[EmergencyData] = Field(default_factory=DomainSlot[EmergencyData])
    summary: Summary = Field(default_factory=Summary)

    def slot(self, domain: Domain) -> DomainSlot[Any]:
        slot: DomainSlot[Any] = getattr(self, _SLOT_FIELDS[domain])
        return slot

    def with_slot(self, domain: Domain, **changes: Any) -> CompositeSnapshot:
        """Return a new snapshot with one slot replaced as a whole."""
        slot = self.slot(domain).model_copy(update=changes)
        return self.model_copy(update={_SLOT_FIELDS[domain]: slot})


Alert = WeatherAlert | TrafficIncident | POIAlert | EmergencyAlert


class AlertEvent(TripwatchModel):
    """A newly observed alert, published to alert subscribers."""

    domain: Domain
    alert: Alert
