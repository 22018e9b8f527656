"""Test doubles shared by the test modules."""

from __future__ import annotations

import asyncio
import heapq
import itertools
from collections.abc import Callable, Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

from tripwatch.config import TripwatchConfig
from tripwatch.geo import LocationResolver, StaticPlaceResolver
from tripwatch.manager import RealTimeInfoManager
from tripwatch.models import (
    AffectedArea,
    AlertSeverity,
    CurrentConditions,
    Domain,
    EmergencyAlert,
    EmergencyAlertType,
    EmergencyData,
    EmergencySeverity,
    Location,
    RouteSummary,
    TrafficData,
    TrafficLevel,
    WeatherAlert,
    WeatherAlertType,
    WeatherData,
)
from tripwatch.sources import (
    create_emergency_client,
    create_poi_client,
    create_traffic_client,
    create_weather_client,
)

START = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

BEIJING = Location(latitude=39.9042, longitude=116.4074, name="Beijing", timestamp=START)
PARIS = Location(latitude=48.8566, longitude=2.3522, name="Paris", timestamp=START)


async def settle(rounds: int = 50) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


class VirtualClock:
    """Clock plus sleep that only advance when the test says so."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start
        self._sleepers: list[tuple[datetime, int, asyncio.Future[None]]] = []
        self._seq = itertools.count()

    def __call__(self) -> datetime:
        return self.now

    async def sleep(self, seconds: float) -> None:
        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        heapq.heappush(self._sleepers, (self.now + timedelta(seconds=seconds), next(self._seq), fut))
        await fut

    def pending_sleepers(self) -> int:
        return sum(1 for _, _, fut in self._sleepers if not fut.done())

    async def advance(self, seconds: float) -> None:
        target = self.now + timedelta(seconds=seconds)
        await settle()
        while self._sleepers and self._sleepers[0][0] <= target:
            deadline, _, fut = heapq.heappop(self._sleepers)
            if fut.done():
                continue
            self.now = max(self.now, deadline)
            fut.set_result(None)
            await settle()
        self.now = target
        await settle()


class FakeTransport:
    """Serves canned JSON per URL; an exception value is raised instead."""

    def __init__(self, responses: Mapping[str, Any] | None = None) -> None:
        self.responses = dict(responses or {})
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def get_json(self, url: str, *, params: Mapping[str, Any] | None = None) -> Any:
        self.calls.append((url, dict(params or {})))
        response = self.responses[url]
        if isinstance(response, BaseException):
            raise response
        return response


class RecordingProvider:
    """Provider that counts calls and builds records with *factory*."""

    def __init__(self, factory: Callable[[Any, Location], Any]) -> None:
        self.factory = factory
        self.calls = 0
        self.fail: Exception | None = None

    async def fetch(self, query: Any, location: Location) -> Any:
        self.calls += 1
        if self.fail is not None:
            raise self.fail
        return self.factory(query, location)


def weather_alert(
    severity: AlertSeverity,
    *,
    alert_id: str = "w1",
    start: datetime = START,
    active: bool = True,
) -> WeatherAlert:
    return WeatherAlert(
        id=alert_id,
        type=WeatherAlertType.SEVERE_WEATHER,
        severity=severity,
        title=f"{severity} weather",
        start_time=start,
        active=active,
    )


def make_weather(alerts: list[WeatherAlert] | None = None, *, now: datetime = START) -> WeatherData:
    return WeatherData(
        location="Beijing",
        current=CurrentConditions(temperature=21.0, condition="Clear", last_updated=now),
        alerts=alerts or [],
        updated_at=now,
    )


def make_traffic(level: TrafficLevel = TrafficLevel.LOW, *, now: datetime = START) -> TrafficData:
    return TrafficData(
        route=RouteSummary(
            origin="Beijing",
            destination="City Center",
            distance_km=12.0,
            duration_s=1200,
            duration_in_traffic_s=1500,
            traffic_level=level,
            updated_at=now,
        ),
        updated_at=now,
    )


def emergency_alert(
    severity: EmergencySeverity,
    *,
    alert_id: str = "e1",
    start: datetime = START,
    active: bool = True,
) -> EmergencyAlert:
    return EmergencyAlert(
        id=alert_id,
        type=EmergencyAlertType.PUBLIC_SAFETY,
        severity=severity,
        title=f"{severity} emergency",
        location=AffectedArea(lat=BEIJING.latitude, lng=BEIJING.longitude, affected_radius_m=1000.0),
        start_time=start,
        active=active,
        last_updated=start,
    )


def make_emergency(alerts: list[EmergencyAlert] | None = None, *, now: datetime = START) -> EmergencyData:
    return EmergencyData(alerts=alerts or [], updated_at=now)


def offline_config(**overrides: Any) -> TripwatchConfig:
    return TripwatchConfig(geolocation_enabled=False, geocoding_enabled=False, **overrides)


def offline_resolver() -> LocationResolver:
    return LocationResolver(StaticPlaceResolver({"Beijing": BEIJING, "Paris": PARIS}))


class Providers:
    """Recording providers for all four domains, with mutable outputs."""

    def __init__(self) -> None:
        self.weather_alerts: list[WeatherAlert] = []
        self.traffic_level = TrafficLevel.LOW
        self.emergency_alerts: list[EmergencyAlert] = []
        self.weather = RecordingProvider(lambda q, loc: make_weather(list(self.weather_alerts)))
        self.traffic = RecordingProvider(lambda q, loc: make_traffic(self.traffic_level))
        self.poi = RecordingProvider(lambda q, loc: [])
        self.emergency = RecordingProvider(lambda q, loc: make_emergency(list(self.emergency_alerts)))


def build_manager(
    clock: VirtualClock,
    providers: Providers | None = None,
    *,
    config: TripwatchConfig | None = None,
    **kwargs: Any,
) -> RealTimeInfoManager:
    """Offline manager; with *providers*, every domain uses a recording provider."""
    config = config or offline_config()
    if providers is not None:
        resolver = offline_resolver()
        kwargs.setdefault(
            "weather",
            create_weather_client(
                ttl=config.ttl_for(Domain.WEATHER), provider=providers.weather, resolver=resolver, clock=clock
            ),
        )
        kwargs.setdefault(
            "traffic",
            create_traffic_client(
                ttl=config.ttl_for(Domain.TRAFFIC), provider=providers.traffic, resolver=resolver, clock=clock
            ),
        )
        kwargs.setdefault(
            "poi",
            create_poi_client(ttl=config.ttl_for(Domain.POI), provider=providers.poi, resolver=resolver, clock=clock),
        )
        kwargs.setdefault(
            "emergency",
            create_emergency_client(
                ttl=config.ttl_for(Domain.EMERGENCY), provider=providers.emergency, resolver=resolver, clock=clock
            ),
        )
    kwargs.setdefault("place_resolver", StaticPlaceResolver({"Beijing": BEIJING, "Paris": PARIS}))
    kwargs.setdefault("transport", FakeTransport())
    return RealTimeInfoManager(config, clock=clock, sleep=clock.sleep, **kwargs)
