"""Point-of-interest source: nearby attractions with live status."""

from __future__ import annotations

import datetime as dt
import math
from collections.abc import Callable, Iterable

from pydantic import Field

from tripwatch._constants import haversine_m
from tripwatch.models._base import Domain, utcnow
from tripwatch.models.location import GeoPoint, Location
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
)
from tripwatch.sources._base import LocationResolverFn, Provider, SourceClient, SourceQuery, seeded_rng

OPENING_HOUR = 8
CLOSING_HOUR = 17
_REGULAR_HOURS = {
    day: f"{OPENING_HOUR}:00 - {CLOSING_HOUR}:00"
    for day in ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
}


class POIQuery(SourceQuery):
    """Search for points of interest around a location.

    Filters are applied after the radius cut and before ``limit``.
    """

    keyword: str = "attractions"
    radius_m: float = Field(default=5000.0, gt=0)
    limit: int = Field(default=20, ge=1)
    open_now: bool = False
    min_rating: float | None = Field(default=None, ge=0.0, le=5.0)
    crowd_level: CrowdLevel | None = None
    available_booking: bool = False

    def cache_key(self) -> str:
        parts = [
            self.location_key(),
            self.keyword.strip().lower(),
            f"r={self.radius_m:g}",
            f"n={self.limit}",
        ]
        if self.open_now:
            parts.append("open")
        if self.min_rating is not None:
            parts.append(f"rating>={self.min_rating:g}")
        if self.crowd_level is not None:
            parts.append(f"crowd={self.crowd_level.value}")
        if self.available_booking:
            parts.append("bookable")
        return "|".join(parts)

    def matches(self, poi: POIStatus) -> bool:
        if self.open_now and not poi.status.is_open:
            return False
        if self.min_rating is not None and (poi.basic_info.rating is None or poi.basic_info.rating < self.min_rating):
            return False
        if self.crowd_level is not None and poi.real_time_info.crowd_level != self.crowd_level:
            return False
        return not (self.available_booking and not poi.booking.available)

    def select(self, location: Location, pois: Iterable[POIStatus]) -> list[POIStatus]:
        """Radius cut, filters, nearest first, at most ``limit``."""

        def _distance(poi: POIStatus) -> float:
            return haversine_m(location.latitude, location.longitude, poi.location.lat, poi.location.lng)

        nearby = [poi for poi in pois if _distance(poi) <= self.radius_m and self.matches(poi)]
        nearby.sort(key=_distance)
        return nearby[: self.limit]


class SyntheticPOIProvider:
    """Deterministic offline POI generator.

    Places are stable per location and keyword; live figures (crowd, queue,
    capacity) change every fifteen minutes.
    """

    _NAMES = ("Old Town Gate", "City Museum", "Riverside Park", "Temple of Heaven", "Art District",
              "Night Market", "Botanical Garden", "Observation Tower", "Historic Quarter", "Lakeside Pavilion")
    _CATEGORIES = ("museum", "park", "landmark", "market", "garden")

    def __init__(self, *, clock: Callable[[], dt.datetime] = utcnow, candidates: int = 30) -> None:
        self._clock = clock
        self._candidates = candidates

    async def fetch(self, query: POIQuery, location: Location) -> list[POIStatus]:
        now = self._clock()
        bucket = now.replace(minute=now.minute - now.minute % 15, second=0, microsecond=0)
        places = seeded_rng("poi", location.signature(), query.keyword.strip().lower())
        is_open = OPENING_HOUR <= now.hour < CLOSING_HOUR

        pois: list[POIStatus] = []
        for index in range(self._candidates):
            # Uniform over a disc 1.5x the search radius, so some fall outside it.
            distance = query.radius_m * 1.5 * math.sqrt(places.random())
            bearing = places.uniform(0, 2 * math.pi)
            d_lat = distance * math.cos(bearing) / 111_320
            d_lng = distance * math.sin(bearing) / (111_320 * max(math.cos(math.radians(location.latitude)), 0.01))
            name = f"{places.choice(self._NAMES)} {index + 1}"
            category = places.choice(self._CATEGORIES)
            rating = round(places.uniform(3.0, 5.0), 1)
            poi_id = f"poi_{location.signature()}_{index + 1}"

            live = seeded_rng("poi-live", poi_id, bucket.isoformat())
            percentage = live.randint(20, 100)
            crowd = list(CrowdLevel)[min(percentage // 20, 4)]
            alerts: list[POIAlert] = []
            if percentage >= 85:
                alerts.append(
                    POIAlert(
                        id=f"{poi_id}_capacity_{bucket:%Y%m%d%H%M}",
                        type=POIAlertType.CAPACITY,
                        severity=POIAlertSeverity.WARNING if percentage >= 95 else POIAlertSeverity.INFO,
                        title="Crowded",
                        message=f"Running at {percentage}% capacity; expect queues",
                        start_time=bucket,
                        actionable=True,
                        actions=["Visit later", "Book a time slot"],
                    )
                )

            pois.append(
                POIStatus(
                    id=poi_id,
                    name=name,
                    location=GeoPoint(lat=location.latitude + d_lat, lng=location.longitude + d_lng),
                    basic_info=POIBasicInfo(
                        address=f"{index + 1} {name} Road",
                        category=category,
                        rating=rating,
                        description=f"{name} is a popular {category}.",
                    ),
                    status=OpeningStatus(
                        is_open=is_open,
                        current_hours=_REGULAR_HOURS["monday"] if is_open else "Closed",
                        regular_hours=dict(_REGULAR_HOURS),
                    ),
                    real_time_info=POIRealTimeInfo(
                        crowd_level=crowd,
                        estimated_visit_minutes=live.randint(60, 180),
                        queue_minutes=percentage * 30 // 100,
                        capacity=Capacity(current=percentage * 100, maximum=10000, percentage=percentage),
                    ),
                    booking=Booking(
                        available=live.random() > 0.3,
                        advance_booking_required=places.random() > 0.5,
                        platforms=["Official site"],
                        next_available_slot=bucket + dt.timedelta(hours=1),
                        adult_price=float(places.randint(50, 150)),
                        child_price=float(places.randint(25, 75)),
                    ),
                    services=POIServices(
                        parking=ParkingAvailability.AVAILABLE if places.random() > 0.5 else ParkingAvailability.LIMITED,
                        restroom=True,
                        food=places.random() > 0.3,
                        gift_shop=places.random() > 0.2,
                        wheelchair_accessible=places.random() > 0.4,
                        wifi=places.random() > 0.1,
                    ),
                    alerts=alerts,
                    updated_at=now,
                )
            )

        return query.select(location, pois)


def create_poi_client(
    *,
    ttl: dt.timedelta,
    provider: Provider[POIQuery, list[POIStatus]],
    resolver: LocationResolverFn,
    clock: Callable[[], dt.datetime] = utcnow,
) -> SourceClient[POIQuery, list[POIStatus]]:
    return SourceClient(
        Domain.POI,
        ttl=ttl,
        provider=provider,
        resolver=resolver,
        record_type=list[POIStatus],
        clock=clock,
    )
