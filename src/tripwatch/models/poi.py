"""Point-of-interest status records."""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field

from tripwatch.models._base import EpochTimestamp, TripwatchModel, utcnow
from tripwatch.models.location import GeoPoint


class CrowdLevel(StrEnum):
    VERY_LOW = "very_low"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"


class WeatherImpact(StrEnum):
    NONE = "none"
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"


class POIAlertType(StrEnum):
    WEATHER = "weather"
    CAPACITY = "capacity"
    MAINTENANCE = "maintenance"
    EVENT = "event"
    SAFETY = "safety"
    TRANSPORTATION = "transportation"


class POIAlertSeverity(StrEnum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class ParkingAvailability(StrEnum):
    AVAILABLE = "available"
    LIMITED = "limited"
    UNAVAILABLE = "unavailable"


class POIAlert(TripwatchModel):
    id: str
    type: POIAlertType
    severity: POIAlertSeverity
    title: str
    message: str = ""
    start_time: EpochTimestamp
    end_time: EpochTimestamp | None = None
    active: bool = True
    actionable: bool = False
    actions: list[str] = Field(default_factory=list)


class POIBasicInfo(TripwatchModel):
    address: str = ""
    category: str = ""
    rating: float | None = Field(default=None, ge=0.0, le=5.0)
    telephone: str | None = None
    description: str | None = None


class OpeningStatus(TripwatchModel):
    is_open: bool
    current_hours: str
    regular_hours: dict[str, str] = Field(default_factory=dict)


class Capacity(TripwatchModel):
    current: int
    maximum: int
    percentage: int = Field(ge=0, le=100)


class POIRealTimeInfo(TripwatchModel):
    crowd_level: CrowdLevel
    estimated_visit_minutes: int
    queue_minutes: int
    capacity: Capacity
    weather_impact: WeatherImpact = WeatherImpact.NONE
    under_maintenance: bool = False


class Booking(TripwatchModel):
    available: bool
    advance_booking_required: bool = False
    platforms: list[str] = Field(default_factory=list)
    next_available_slot: EpochTimestamp | None = None
    adult_price: float | None = None
    child_price: float | None = None


class POIServices(TripwatchModel):
    parking: ParkingAvailability = ParkingAvailability.UNAVAILABLE
    restroom: bool = False
    food: bool = False
    gift_shop: bool = False
    wheelchair_accessible: bool = False
    wifi: bool = False


class POIStatus(TripwatchModel):
    """Live status of a single point of interest."""

    id: str
    name: str
    location: GeoPoint
    basic_info: POIBasicInfo = Field(default_factory=POIBasicInfo)
    status: OpeningStatus
    real_time_info: POIRealTimeInfo
    booking: Booking
    services: POIServices = Field(default_factory=POIServices)
    alerts: list[POIAlert] = Field(default_factory=list)
    updated_at: EpochTimestamp = Field(default_factory=utcnow)
