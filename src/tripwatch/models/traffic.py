"""Traffic records."""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field

from tripwatch.models._base import EpochTimestamp, TripwatchModel, utcnow
from tripwatch.models.location import GeoPoint, PlacePoint


class TrafficLevel(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    SEVERE = "severe"


class TravelMode(StrEnum):
    DRIVING = "driving"
    TRANSIT = "transit"
    WALKING = "walking"
    CYCLING = "cycling"


class IncidentType(StrEnum):
    ACCIDENT = "accident"
    CONSTRUCTION = "construction"
    CLOSURE = "closure"
    EVENT = "event"
    WEATHER = "weather"


class IncidentSeverity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class TransportType(StrEnum):
    SUBWAY = "subway"
    BUS = "bus"
    TRAIN = "train"
    FLIGHT = "flight"


class TransportStatus(StrEnum):
    ON_TIME = "on_time"
    DELAYED = "delayed"
    CANCELLED = "cancelled"
    SUSPENDED = "suspended"


class RouteSummary(TripwatchModel):
    """Route-level traffic summary. Durations in seconds, distances in km."""

    origin: str
    destination: str
    distance_km: float
    duration_s: int
    duration_in_traffic_s: int
    traffic_level: TrafficLevel
    traffic_color: str = "#00c853"
    updated_at: EpochTimestamp = Field(default_factory=utcnow)


class TrafficSegment(TripwatchModel):
    id: str
    name: str
    coordinates: list[GeoPoint] = Field(default_factory=list)
    distance_km: float
    duration_s: int
    duration_in_traffic_s: int
    traffic_level: TrafficLevel
    congestion_level: int = Field(ge=0, le=100)
    """Congestion percentage (0-100)."""
    average_speed: float
    """Average speed in km/h."""


class AlternativeRoute(TripwatchModel):
    id: str
    name: str
    distance_km: float
    duration_s: int
    duration_in_traffic_s: int
    traffic_level: TrafficLevel
    toll_cost: float | None = None
    uses_highways: bool = False
    advantages: list[str] = Field(default_factory=list)
    disadvantages: list[str] = Field(default_factory=list)


class TrafficIncident(TripwatchModel):
    """An accident, closure or other event affecting the route."""

    id: str
    type: IncidentType
    severity: IncidentSeverity
    title: str
    description: str = ""
    location: PlacePoint
    affected_roads: list[str] = Field(default_factory=list)
    start_time: EpochTimestamp
    end_time: EpochTimestamp | None = None
    delay_minutes: int = 0
    active: bool = True
    reported_by: str = ""


class PublicTransportInfo(TripwatchModel):
    type: TransportType
    route: str
    name: str
    status: TransportStatus
    delay_minutes: int = 0
    next_arrival: EpochTimestamp | None = None
    frequency: str = ""
    alerts: list[str] = Field(default_factory=list)


class TrafficData(TripwatchModel):
    """Normalized traffic record for one origin/destination pair."""

    route: RouteSummary
    segments: list[TrafficSegment] = Field(default_factory=list)
    alternative_routes: list[AlternativeRoute] = Field(default_factory=list)
    incidents: list[TrafficIncident] = Field(default_factory=list)
    public_transport: list[PublicTransportInfo] = Field(default_factory=list)
    updated_at: EpochTimestamp = Field(default_factory=utcnow)
