"""Emergency alert, resource and contact records."""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field

from tripwatch.models._base import EpochTimestamp, TripwatchModel, utcnow
from tripwatch.models.location import PlacePoint


class EmergencySeverity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class EmergencyAlertType(StrEnum):
    NATURAL_DISASTER = "natural_disaster"
    WEATHER = "weather"
    SECURITY = "security"
    HEALTH = "health"
    TRANSPORTATION = "transportation"
    INFRASTRUCTURE = "infrastructure"
    PUBLIC_SAFETY = "public_safety"


class ResourceType(StrEnum):
    SHELTER = "shelter"
    HOSPITAL = "hospital"
    POLICE = "police"
    FIRE_STATION = "fire_station"
    EVACUATION_CENTER = "evacuation_center"
    EMERGENCY_SUPPLIES = "emergency_supplies"


class ResourceStatus(StrEnum):
    AVAILABLE = "available"
    LIMITED = "limited"
    UNAVAILABLE = "unavailable"
    FULL = "full"


class ContactType(StrEnum):
    POLICE = "police"
    FIRE = "fire"
    MEDICAL = "medical"
    GOVERNMENT = "government"
    EMBASSY = "embassy"
    UTILITY = "utility"


class AffectedArea(PlacePoint):
    affected_radius_m: float = 0.0


class EmergencyAlert(TripwatchModel):
    """An official emergency warning."""

    id: str
    type: EmergencyAlertType
    severity: EmergencySeverity
    level: int = Field(default=1, ge=1, le=5)
    title: str
    description: str = ""
    location: AffectedArea
    start_time: EpochTimestamp
    end_time: EpochTimestamp | None = None
    instructions: list[str] = Field(default_factory=list)
    active: bool = True
    source: str = ""
    verified: bool = False
    last_updated: EpochTimestamp = Field(default_factory=utcnow)


class EmergencyResource(TripwatchModel):
    id: str
    name: str
    type: ResourceType
    location: PlacePoint
    status: ResourceStatus = ResourceStatus.AVAILABLE
    capacity: int | None = None
    current_occupancy: int | None = None
    phone: str = ""
    hours: str = ""
    services: list[str] = Field(default_factory=list)
    wheelchair_accessible: bool = False
    has_parking: bool = False
    public_transport_access: bool = False


class EmergencyContact(TripwatchModel):
    id: str
    name: str
    type: ContactType
    phone: str
    emergency: bool = False
    hours: str = ""
    description: str = ""
    coverage: str = ""


class EmergencyData(TripwatchModel):
    """Alerts, nearby resources and contacts for one location."""

    alerts: list[EmergencyAlert] = Field(default_factory=list)
    resources: list[EmergencyResource] = Field(default_factory=list)
    contacts: list[EmergencyContact] = Field(default_factory=list)
    updated_at: EpochTimestamp = Field(default_factory=utcnow)
