"""Data models for aggregated travel information."""

from tripwatch.models._base import Domain, EpochTimestamp, TripwatchModel, parse_epoch_timestamp
from tripwatch.models.emergency import (
    AffectedArea,
    ContactType,
    EmergencyAlert,
    EmergencyAlertType,
    EmergencyContact,
    EmergencyData,
    EmergencyResource,
    EmergencySeverity,
    ResourceStatus,
    ResourceType,
)
from tripwatch.models.location import (
    Address,
    GeoPoint,
    Location,
    LocationInput,
    PlacePoint,
    format_coordinates,
    location_signature,
)
from tripwatch.models.poi import (
    Booking,
    Capacity,
    CrowdLevel,
    OpeningStatus,
    ParkingAvailability,
    POIAlert,
    POIAlertSeverity,
    POIAlertType,
    POIBasicInfo,
    POIRealTimeInfo,
    POIServices,
    POIStatus,
    WeatherImpact,
)
from tripwatch.models.preferences import (
    AlertSettings,
    DataSharing,
    DistanceUnit,
    Notifications,
    TemperatureUnit,
    Units,
    UpdateFrequency,
    UserPreferences,
)
from tripwatch.models.snapshot import (
    Alert,
    AlertEvent,
    CompositeSnapshot,
    DomainSlot,
    OverallStatus,
    Summary,
    WeatherSeverity,
)
from tripwatch.models.traffic import (
    AlternativeRoute,
    IncidentSeverity,
    IncidentType,
    PublicTransportInfo,
    RouteSummary,
    TrafficData,
    TrafficIncident,
    TrafficLevel,
    TrafficSegment,
    TransportStatus,
    TransportType,
    TravelMode,
)
from tripwatch.models.weather import (
    AlertSeverity,
    CurrentConditions,
    DailyForecast,
    WeatherAlert,
    WeatherAlertType,
    WeatherData,
)

__all__ = [
    "AffectedArea",
    "Address",
    "Alert",
    "AlertEvent",
    "AlertSettings",
    "AlertSeverity",
    "AlternativeRoute",
    "Booking",
    "Capacity",
    "CompositeSnapshot",
    "ContactType",
    "CrowdLevel",
    "CurrentConditions",
    "DailyForecast",
    "DataSharing",
    "DistanceUnit",
    "Domain",
    "DomainSlot",
    "EmergencyAlert",
    "EmergencyAlertType",
    "EmergencyContact",
    "EmergencyData",
    "EmergencyResource",
    "EmergencySeverity",
    "EpochTimestamp",
    "GeoPoint",
    "IncidentSeverity",
    "IncidentType",
    "Location",
    "LocationInput",
    "Notifications",
    "OpeningStatus",
    "OverallStatus",
    "POIAlert",
    "POIAlertSeverity",
    "POIAlertType",
    "POIBasicInfo",
    "POIRealTimeInfo",
    "POIServices",
    "POIStatus",
    "ParkingAvailability",
    "PlacePoint",
    "PublicTransportInfo",
    "ResourceStatus",
    "ResourceType",
    "RouteSummary",
    "Summary",
    "TemperatureUnit",
    "TrafficData",
    "TrafficIncident",
    "TrafficLevel",
    "TrafficSegment",
    "TransportStatus",
    "TransportType",
    "TravelMode",
    "TripwatchModel",
    "Units",
    "UpdateFrequency",
    "UserPreferences",
    "WeatherAlert",
    "WeatherAlertType",
    "WeatherData",
    "WeatherImpact",
    "WeatherSeverity",
    "format_coordinates",
    "location_signature",
    "parse_epoch_timestamp",
]
