"""Emergency source: official alerts, nearby resources and contacts."""

from __future__ import annotations

import datetime as dt
import math
from collections.abc import Callable

from pydantic import Field

from tripwatch._constants import haversine_m
from tripwatch.models._base import Domain, utcnow
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
from tripwatch.models.location import Location, PlacePoint
from tripwatch.sources._base import LocationResolverFn, Provider, SourceClient, SourceQuery, seeded_rng

EMERGENCY_CONTACTS: tuple[EmergencyContact, ...] = (
    EmergencyContact(
        id="contact_police",
        name="Police",
        type=ContactType.POLICE,
        phone="110",
        emergency=True,
        hours="24h",
        description="Crime and public order",
        coverage="national",
    ),
    EmergencyContact(
        id="contact_fire",
        name="Fire and rescue",
        type=ContactType.FIRE,
        phone="119",
        emergency=True,
        hours="24h",
        description="Fire and other rescue",
        coverage="national",
    ),
    EmergencyContact(
        id="contact_medical",
        name="Ambulance",
        type=ContactType.MEDICAL,
        phone="120",
        emergency=True,
        hours="24h",
        description="Medical emergencies",
        coverage="national",
    ),
    EmergencyContact(
        id="contact_government",
        name="Citizen service hotline",
        type=ContactType.GOVERNMENT,
        phone="12345",
        hours="Mon-Fri 9:00-17:00",
        description="Public services and complaints",
        coverage="local",
    ),
)

_RESOURCE_DETAILS: dict[ResourceType, tuple[str, str, list[str], int | None]] = {
    ResourceType.SHELTER: ("Emergency shelter", "010-12345678", ["Lodging", "Food", "First aid"], 500),
    ResourceType.HOSPITAL: ("Emergency hospital", "120", ["Emergency care", "Surgery", "Intensive care"], 200),
    ResourceType.POLICE: ("Police station", "110", ["Public safety", "Traffic control"], None),
    ResourceType.FIRE_STATION: ("Fire station", "119", ["Fire rescue", "Hazmat response"], None),
    ResourceType.EVACUATION_CENTER: ("Evacuation center", "010-87654321", ["Evacuation", "Information"], 1000),
    ResourceType.EMERGENCY_SUPPLIES: ("Emergency supplies depot", "010-11223344", ["Food", "Medical supplies"], None),
}

_DEFAULT_RESOURCE_TYPES: tuple[ResourceType, ...] = (
    ResourceType.SHELTER,
    ResourceType.HOSPITAL,
    ResourceType.POLICE,
    ResourceType.FIRE_STATION,
    ResourceType.EVACUATION_CENTER,
)


class EmergencyQuery(SourceQuery):
    alert_radius_m: float = Field(default=10000.0, gt=0)
    resource_radius_m: float = Field(default=5000.0, gt=0)
    resource_types: tuple[ResourceType, ...] = _DEFAULT_RESOURCE_TYPES

    def cache_key(self) -> str:
        types = ",".join(sorted(t.value for t in self.resource_types))
        return f"{self.location_key()}|alerts={self.alert_radius_m:g}|resources={self.resource_radius_m:g}|{types}"


class SyntheticEmergencyProvider:
    """Deterministic offline emergency generator.

    An alert, when present, is stable for the hour it was issued in, so the
    same alert id is observed across refreshes within that hour.
    """

    _ALERTS: tuple[tuple[EmergencyAlertType, EmergencySeverity, int, str, list[str]], ...] = (
        (
            EmergencyAlertType.WEATHER,
            EmergencySeverity.HIGH,
            3,
            "Rainstorm orange warning",
            ["Limit travel", "Avoid low-lying areas", "Follow road reports"],
        ),
        (
            EmergencyAlertType.PUBLIC_SAFETY,
            EmergencySeverity.MEDIUM,
            2,
            "Large public gathering",
            ["Expect crowds", "Keep to marked routes"],
        ),
        (
            EmergencyAlertType.NATURAL_DISASTER,
            EmergencySeverity.CRITICAL,
            5,
            "Flash flood emergency",
            ["Move to higher ground", "Do not cross flooded roads", "Follow evacuation orders"],
        ),
    )

    def __init__(self, *, clock: Callable[[], dt.datetime] = utcnow) -> None:
        self._clock = clock

    async def fetch(self, query: EmergencyQuery, location: Location) -> EmergencyData:
        now = self._clock()
        hour = now.replace(minute=0, second=0, microsecond=0)
        rng = seeded_rng("emergency", location.signature(), hour.isoformat())

        alerts: list[EmergencyAlert] = []
        if rng.random() > 0.6:
            kind, severity, level, title, instructions = rng.choice(self._ALERTS)
            radius = min(query.alert_radius_m, 5000.0)
            alerts.append(
                EmergencyAlert(
                    id=f"emergency_{location.signature()}_{hour:%Y%m%d%H}",
                    type=kind,
                    severity=severity,
                    level=level,
                    title=title,
                    description=f"{title} within {radius / 1000:g} km of your position",
                    location=AffectedArea(
                        lat=location.latitude,
                        lng=location.longitude,
                        address="Near current position",
                        affected_radius_m=radius,
                    ),
                    # Clamped to now: an active alert has already started.
                    start_time=min(hour + dt.timedelta(minutes=rng.randint(0, 59)), now),
                    end_time=hour + dt.timedelta(hours=2),
                    instructions=instructions,
                    source="Civil protection",
                    verified=True,
                    last_updated=now,
                )
            )

        resources: list[EmergencyResource] = []
        places = seeded_rng("emergency-resources", location.signature())
        for index, kind in enumerate(query.resource_types):
            name, phone, services, capacity = _RESOURCE_DETAILS[kind]
            distance = places.uniform(300, query.resource_radius_m * 1.2)
            bearing = places.uniform(0, 2 * math.pi)
            lat = location.latitude + distance * math.cos(bearing) / 111_320
            lng = location.longitude + distance * math.sin(bearing) / (
                111_320 * max(math.cos(math.radians(location.latitude)), 0.01)
            )
            if haversine_m(location.latitude, location.longitude, lat, lng) > query.resource_radius_m:
                continue
            occupancy = rng.randint(0, capacity) if capacity else None
            status = ResourceStatus.AVAILABLE
            if capacity and occupancy is not None:
                if occupancy >= capacity:
                    status = ResourceStatus.FULL
                elif occupancy >= capacity * 0.8:
                    status = ResourceStatus.LIMITED
            resources.append(
                EmergencyResource(
                    id=f"resource_{kind.value}_{index}",
                    name=name,
                    type=kind,
                    location=PlacePoint(lat=lat, lng=lng, address=f"{distance:.0f} m from current position"),
                    status=status,
                    capacity=capacity,
                    current_occupancy=occupancy,
                    phone=phone,
                    hours="24h",
                    services=list(services),
                    wheelchair_accessible=places.random() > 0.3,
                    has_parking=places.random() > 0.2,
                    public_transport_access=places.random() > 0.4,
                )
            )

        return EmergencyData(
            alerts=alerts,
            resources=resources,
            contacts=list(EMERGENCY_CONTACTS),
            updated_at=now,
        )


def create_emergency_client(
    *,
    ttl: dt.timedelta,
    provider: Provider[EmergencyQuery, EmergencyData],
    resolver: LocationResolverFn,
    clock: Callable[[], dt.datetime] = utcnow,
) -> SourceClient[EmergencyQuery, EmergencyData]:
    return SourceClient(
        Domain.EMERGENCY,
        ttl=ttl,
        provider=provider,
        resolver=resolver,
        record_type=EmergencyData,
        clock=clock,
    )
