"""Traffic source: route conditions, incidents and public transport."""

from __future__ import annotations

import datetime as dt
from collections.abc import Callable

from tripwatch.models._base import Domain, utcnow
from tripwatch.models.location import GeoPoint, Location, LocationInput, PlacePoint, format_coordinates
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
from tripwatch.sources._base import LocationResolverFn, Provider, SourceClient, SourceQuery, seeded_rng

TRAFFIC_COLORS: dict[TrafficLevel, str] = {
    TrafficLevel.LOW: "#00c853",
    TrafficLevel.MEDIUM: "#ffa500",
    TrafficLevel.HIGH: "#ff5722",
    TrafficLevel.SEVERE: "#d50000",
}

# Free-flow speed in km/h per travel mode.
_FREE_FLOW_KMH: dict[TravelMode, float] = {
    TravelMode.DRIVING: 50.0,
    TravelMode.TRANSIT: 30.0,
    TravelMode.CYCLING: 15.0,
    TravelMode.WALKING: 5.0,
}


def level_for_congestion(congestion: float) -> TrafficLevel:
    """Map a congestion percentage (0-100) to a traffic level."""
    if congestion < 25:
        return TrafficLevel.LOW
    if congestion < 50:
        return TrafficLevel.MEDIUM
    if congestion < 75:
        return TrafficLevel.HIGH
    return TrafficLevel.SEVERE


class TrafficQuery(SourceQuery):
    """Traffic between ``location`` (the origin) and ``destination``."""

    destination: str
    mode: TravelMode = TravelMode.DRIVING

    @property
    def origin(self) -> LocationInput:
        return self.location

    def cache_key(self) -> str:
        return f"{self.location_key()}->{self.destination.strip().lower()}|{self.mode.value}"


def best_alternative_route(data: TrafficData, *, avoid_tolls: bool = False) -> AlternativeRoute | None:
    """Fastest alternative under current traffic, optionally toll-free only."""
    candidates = [
        route for route in data.alternative_routes if not (avoid_tolls and route.toll_cost)
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda route: (route.duration_in_traffic_s, route.distance_km))


class SyntheticTrafficProvider:
    """Deterministic offline traffic generator.

    Conditions change every ten minutes; within a bucket every fetch for the
    same route returns the same record.
    """

    _ROAD_NAMES = ("Ring Road", "Main Street", "Avenue of Commerce", "River Boulevard", "Station Road", "Park Lane")
    _ROUTE_NAMES = ("Ring road route", "Riverside route", "Expressway route")

    def __init__(self, *, clock: Callable[[], dt.datetime] = utcnow) -> None:
        self._clock = clock

    async def fetch(self, query: TrafficQuery, location: Location) -> TrafficData:
        now = self._clock()
        bucket = now.replace(minute=now.minute - now.minute % 10, second=0, microsecond=0)
        rng = seeded_rng("traffic", query.cache_key(), bucket.isoformat())
        free_flow = _FREE_FLOW_KMH[query.mode]

        segments: list[TrafficSegment] = []
        lat, lng = location.latitude, location.longitude
        for index in range(rng.randint(2, 5)):
            congestion = rng.randint(0, 100)
            distance = round(rng.uniform(0.8, 5.0), 1)
            speed = max(free_flow * (1 - congestion / 125), 2.0)
            next_lat = lat + rng.uniform(-0.01, 0.01)
            next_lng = lng + rng.uniform(-0.01, 0.01)
            segments.append(
                TrafficSegment(
                    id=f"segment_{index + 1}",
                    name=rng.choice(self._ROAD_NAMES),
                    coordinates=[GeoPoint(lat=lat, lng=lng), GeoPoint(lat=next_lat, lng=next_lng)],
                    distance_km=distance,
                    duration_s=round(distance / free_flow * 3600),
                    duration_in_traffic_s=round(distance / speed * 3600),
                    traffic_level=level_for_congestion(congestion),
                    congestion_level=congestion,
                    average_speed=round(speed, 1),
                )
            )
            lat, lng = next_lat, next_lng

        mean_congestion = sum(s.congestion_level for s in segments) / len(segments)
        level = level_for_congestion(mean_congestion)
        distance_km = round(sum(s.distance_km for s in segments), 1)
        duration_s = sum(s.duration_s for s in segments)
        in_traffic_s = sum(s.duration_in_traffic_s for s in segments)

        route = RouteSummary(
            origin=location.name or format_coordinates(location),
            destination=query.destination,
            distance_km=distance_km,
            duration_s=duration_s,
            duration_in_traffic_s=in_traffic_s,
            traffic_level=level,
            traffic_color=TRAFFIC_COLORS[level],
            updated_at=now,
        )

        alternatives: list[AlternativeRoute] = []
        for index, name in enumerate(self._ROUTE_NAMES[: rng.randint(1, 3)]):
            alt_congestion = rng.randint(0, 100)
            alt_distance = round(distance_km * rng.uniform(1.0, 1.4), 1)
            highway = name == "Expressway route"
            alt_duration = round(alt_distance / (free_flow * (1.4 if highway else 1.0)) * 3600)
            alternatives.append(
                AlternativeRoute(
                    id=f"route_{index + 1}",
                    name=name,
                    distance_km=alt_distance,
                    duration_s=alt_duration,
                    duration_in_traffic_s=round(alt_duration * (1 + alt_congestion / 100)),
                    traffic_level=level_for_congestion(alt_congestion),
                    toll_cost=5.0 if highway else None,
                    uses_highways=highway,
                    advantages=["Smooth traffic"] if alt_congestion < 25 else ["Fewer traffic lights"],
                    disadvantages=["Toll road"] if highway else ["Longer distance"],
                )
            )

        incidents: list[TrafficIncident] = []
        for index in range(rng.randint(0, 2)):
            kind = rng.choice(list(IncidentType))
            road = rng.choice(segments)
            incidents.append(
                TrafficIncident(
                    id=f"incident_{bucket:%Y%m%d%H%M}_{index + 1}",
                    type=kind,
                    severity=rng.choice(list(IncidentSeverity)),
                    title=kind.value.replace("_", " ").capitalize(),
                    description=f"{kind.value.capitalize()} on {road.name}",
                    location=PlacePoint(
                        lat=road.coordinates[0].lat,
                        lng=road.coordinates[0].lng,
                        address=road.name,
                    ),
                    affected_roads=[road.name],
                    start_time=min(bucket + dt.timedelta(minutes=rng.randint(0, 9)), now),
                    end_time=bucket + dt.timedelta(hours=rng.randint(1, 3)),
                    delay_minutes=rng.randint(2, 20),
                    reported_by="Traffic authority",
                )
            )

        subway_delay = rng.choice((0, 0, 0, 5))
        bus_delay = round(mean_congestion / 10)
        public_transport = [
            PublicTransportInfo(
                type=TransportType.SUBWAY,
                route="Line 1",
                name="Metro Line 1",
                status=TransportStatus.DELAYED if subway_delay else TransportStatus.ON_TIME,
                delay_minutes=subway_delay,
                next_arrival=now + dt.timedelta(minutes=rng.randint(1, 5)),
                frequency="2-3 min",
            ),
            PublicTransportInfo(
                type=TransportType.BUS,
                route="52",
                name="Bus 52",
                status=TransportStatus.DELAYED if bus_delay >= 5 else TransportStatus.ON_TIME,
                delay_minutes=bus_delay,
                next_arrival=now + dt.timedelta(minutes=rng.randint(3, 12)),
                frequency="5-8 min",
                alerts=[f"Expect delays of about {bus_delay} min due to congestion"] if bus_delay >= 5 else [],
            ),
        ]

        return TrafficData(
            route=route,
            segments=segments,
            alternative_routes=alternatives,
            incidents=incidents,
            public_transport=public_transport,
            updated_at=now,
        )


def create_traffic_client(
    *,
    ttl: dt.timedelta,
    provider: Provider[TrafficQuery, TrafficData],
    resolver: LocationResolverFn,
    clock: Callable[[], dt.datetime] = utcnow,
) -> SourceClient[TrafficQuery, TrafficData]:
    return SourceClient(
        Domain.TRAFFIC,
        ttl=ttl,
        provider=provider,
        resolver=resolver,
        record_type=TrafficData,
        clock=clock,
    )
