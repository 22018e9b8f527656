from __future__ import annotations

from datetime import timedelta

import pytest
from fakes import (
    BEIJING,
    PARIS,
    START,
    FakeTransport,
    RecordingProvider,
    VirtualClock,
    make_traffic,
    make_weather,
    offline_resolver,
)

from tripwatch._constants import haversine_m
from tripwatch.exceptions import LocationUnresolvedError, SourceFetchFailedError
from tripwatch.models import (
    AlertSeverity,
    AlternativeRoute,
    CrowdLevel,
    Domain,
    Location,
    ResourceType,
    TrafficLevel,
    TravelMode,
)
from tripwatch.sources import (
    EMERGENCY_CONTACTS,
    EmergencyQuery,
    OpenMeteoWeatherProvider,
    POIQuery,
    SyntheticEmergencyProvider,
    SyntheticPOIProvider,
    SyntheticTrafficProvider,
    SyntheticWeatherProvider,
    TrafficQuery,
    WeatherQuery,
    best_alternative_route,
    create_poi_client,
    create_traffic_client,
    create_weather_client,
    level_for_congestion,
)


def _weather_client(clock: VirtualClock, provider: RecordingProvider):
    return create_weather_client(ttl=timedelta(minutes=30), provider=provider, resolver=offline_resolver(), clock=clock)


@pytest.mark.asyncio
async def test_cache_hit_within_ttl_does_not_refetch() -> None:
    clock = VirtualClock()
    provider = RecordingProvider(lambda q, loc: make_weather())
    client = _weather_client(clock, provider)

    first = await client.fetch(WeatherQuery(location=BEIJING))
    second = await client.fetch(WeatherQuery(location=BEIJING))

    assert provider.calls == 1
    assert first is second


@pytest.mark.asyncio
async def test_expired_entry_is_refetched_with_new_cached_at() -> None:
    clock = VirtualClock()
    provider = RecordingProvider(lambda q, loc: make_weather())
    client = _weather_client(clock, provider)

    first = await client.fetch_entry(WeatherQuery(location=BEIJING))
    await clock.advance(30 * 60)
    second = await client.fetch_entry(WeatherQuery(location=BEIJING))

    assert provider.calls == 2
    assert first.cached_at == START
    assert second.cached_at == START + timedelta(minutes=30)
    assert client.cache_status().total_entries == 1


@pytest.mark.asyncio
async def test_place_name_and_coordinates_are_cached_separately() -> None:
    clock = VirtualClock()
    provider = RecordingProvider(lambda q, loc: make_weather())
    client = _weather_client(clock, provider)

    await client.fetch(WeatherQuery(location="Beijing"))
    await client.fetch(WeatherQuery(location="  beijing "))
    await client.fetch(WeatherQuery(location=BEIJING))
    await client.fetch(WeatherQuery(location=BEIJING, forecast_days=3))

    assert provider.calls == 3


@pytest.mark.asyncio
async def test_unknown_place_raises_location_unresolved_without_calling_provider() -> None:
    provider = RecordingProvider(lambda q, loc: make_weather())
    client = _weather_client(VirtualClock(), provider)

    with pytest.raises(LocationUnresolvedError):
        await client.fetch(WeatherQuery(location="Atlantis"))
    with pytest.raises(LocationUnresolvedError):
        await client.fetch(WeatherQuery(location="   "))

    assert provider.calls == 0
    assert client.cache_status().total_entries == 0


@pytest.mark.asyncio
async def test_provider_failure_is_wrapped_and_not_cached() -> None:
    provider = RecordingProvider(lambda q, loc: make_weather())
    provider.fail = RuntimeError("upstream down")
    client = _weather_client(VirtualClock(), provider)

    with pytest.raises(SourceFetchFailedError) as exc_info:
        await client.fetch(WeatherQuery(location=BEIJING))

    assert exc_info.value.domain == "weather"
    assert isinstance(exc_info.value.__cause__, RuntimeError)
    assert client.cache_status().total_entries == 0

    provider.fail = None
    await client.fetch(WeatherQuery(location=BEIJING))
    assert provider.calls == 2


@pytest.mark.asyncio
async def test_clear_cache_bypasses_ttl() -> None:
    provider = RecordingProvider(lambda q, loc: make_weather())
    client = _weather_client(VirtualClock(), provider)
    beijing = WeatherQuery(location=BEIJING)
    paris = WeatherQuery(location=PARIS)

    await client.fetch(beijing)
    await client.fetch(paris)
    client.clear_cache(beijing.cache_key())
    await client.fetch(beijing)
    await client.fetch(paris)
    assert provider.calls == 3

    client.clear_cache()
    await client.fetch(paris)
    assert provider.calls == 4


@pytest.mark.asyncio
async def test_synthetic_weather_is_deterministic_within_the_hour() -> None:
    clock = VirtualClock()
    provider = SyntheticWeatherProvider(clock=clock)

    first = await provider.fetch(WeatherQuery(location=BEIJING, forecast_days=5), BEIJING)
    clock.now = START + timedelta(minutes=20)
    second = await provider.fetch(WeatherQuery(location=BEIJING, forecast_days=5), BEIJING)

    assert len(first.forecast) == 5
    assert first.forecast[0].date == START.date()
    assert first.current.temperature == second.current.temperature
    assert [a.id for a in first.alerts] == [a.id for a in second.alerts]
    assert first.location == "Beijing"
    for day in first.forecast:
        assert day.high >= day.low


@pytest.mark.asyncio
async def test_traffic_cache_key_includes_destination_and_mode() -> None:
    provider = RecordingProvider(lambda q, loc: make_traffic())
    client = create_traffic_client(
        ttl=timedelta(minutes=10), provider=provider, resolver=offline_resolver(), clock=VirtualClock()
    )

    await client.fetch(TrafficQuery(location=BEIJING, destination="City Center"))
    await client.fetch(TrafficQuery(location=BEIJING, destination="city center"))
    await client.fetch(TrafficQuery(location=BEIJING, destination="Airport"))
    await client.fetch(TrafficQuery(location=BEIJING, destination="Airport", mode=TravelMode.TRANSIT))

    assert provider.calls == 3


@pytest.mark.asyncio
async def test_synthetic_traffic_route_level_matches_segments() -> None:
    provider = SyntheticTrafficProvider(clock=VirtualClock())
    data = await provider.fetch(TrafficQuery(location=BEIJING, destination="City Center"), BEIJING)

    mean = sum(s.congestion_level for s in data.segments) / len(data.segments)
    assert data.route.traffic_level == level_for_congestion(mean)
    assert data.route.destination == "City Center"
    assert data.route.duration_in_traffic_s == sum(s.duration_in_traffic_s for s in data.segments)


@pytest.mark.parametrize(
    ("congestion", "level"),
    [(0, TrafficLevel.LOW), (24, TrafficLevel.LOW), (25, TrafficLevel.MEDIUM), (74, TrafficLevel.HIGH), (75, TrafficLevel.SEVERE)],
)
def test_level_for_congestion(congestion: int, level: TrafficLevel) -> None:
    assert level_for_congestion(congestion) == level


def _route(route_id: str, in_traffic: int, toll: float | None = None) -> AlternativeRoute:
    return AlternativeRoute(
        id=route_id,
        name=route_id,
        distance_km=10.0,
        duration_s=in_traffic,
        duration_in_traffic_s=in_traffic,
        traffic_level=TrafficLevel.LOW,
        toll_cost=toll,
    )


def test_best_alternative_route_respects_tolls() -> None:
    data = make_traffic().model_copy(
        update={"alternative_routes": [_route("slow", 2400), _route("toll", 1500, toll=5.0), _route("free", 1800)]}
    )

    best = best_alternative_route(data)
    assert best is not None and best.id == "toll"

    best_free = best_alternative_route(data, avoid_tolls=True)
    assert best_free is not None and best_free.id == "free"

    assert best_alternative_route(make_traffic()) is None


@pytest.mark.asyncio
async def test_synthetic_pois_stay_within_radius_and_limit() -> None:
    provider = SyntheticPOIProvider(clock=VirtualClock())
    query = POIQuery(location=BEIJING, radius_m=2000, limit=5)

    pois = await provider.fetch(query, BEIJING)

    assert 0 < len(pois) <= 5
    distances = [haversine_m(BEIJING.latitude, BEIJING.longitude, p.location.lat, p.location.lng) for p in pois]
    assert all(d <= 2000 for d in distances)
    assert distances == sorted(distances)


@pytest.mark.asyncio
async def test_poi_filters_apply() -> None:
    clock = VirtualClock()
    provider = SyntheticPOIProvider(clock=clock)

    rated = await provider.fetch(POIQuery(location=BEIJING, min_rating=4.5, limit=50), BEIJING)
    assert all(p.basic_info.rating is not None and p.basic_info.rating >= 4.5 for p in rated)

    bookable = await provider.fetch(POIQuery(location=BEIJING, available_booking=True, limit=50), BEIJING)
    assert all(p.booking.available for p in bookable)

    quiet = await provider.fetch(POIQuery(location=BEIJING, crowd_level=CrowdLevel.LOW, limit=50), BEIJING)
    assert all(p.real_time_info.crowd_level == CrowdLevel.LOW for p in quiet)

    # Synthetic venues open 8:00-17:00; the clock reads 20:00.
    clock.now = START.replace(hour=20)
    open_now = await provider.fetch(POIQuery(location=BEIJING, open_now=True, limit=50), BEIJING)
    assert open_now == []


@pytest.mark.asyncio
async def test_poi_client_caches_lists() -> None:
    provider = RecordingProvider(lambda q, loc: [])
    client = create_poi_client(ttl=timedelta(minutes=15), provider=provider, resolver=offline_resolver(), clock=VirtualClock())

    assert await client.fetch(POIQuery(location=BEIJING)) == []
    assert await client.fetch(POIQuery(location=BEIJING)) == []
    await client.fetch(POIQuery(location=BEIJING, open_now=True))

    assert provider.calls == 2
    assert client.domain == Domain.POI


@pytest.mark.asyncio
async def test_synthetic_emergency_resources_and_contacts() -> None:
    provider = SyntheticEmergencyProvider(clock=VirtualClock())
    query = EmergencyQuery(location=BEIJING, resource_radius_m=3000, resource_types=(ResourceType.HOSPITAL, ResourceType.SHELTER))

    data = await provider.fetch(query, BEIJING)

    assert {r.type for r in data.resources} <= {ResourceType.HOSPITAL, ResourceType.SHELTER}
    for resource in data.resources:
        assert haversine_m(BEIJING.latitude, BEIJING.longitude, resource.location.lat, resource.location.lng) <= 3000
    assert data.contacts == list(EMERGENCY_CONTACTS)
    for alert in data.alerts:
        assert alert.location.affected_radius_m <= query.alert_radius_m


@pytest.mark.asyncio
async def test_open_meteo_response_is_mapped() -> None:
    url = "https://meteo.test/v1/forecast"
    payload = {
        "current": {
            "temperature_2m": 36.5,
            "relative_humidity_2m": 40,
            "surface_pressure": 1008.0,
            "wind_speed_10m": 12.0,
            "wind_direction_10m": 180,
            "weather_code": 0,
            "uv_index": 9.0,
            "visibility": 24000.0,
        },
        "daily": {
            "time": ["2026-01-01", "2026-01-02", "2026-01-03"],
            "temperature_2m_max": [41.0, 30.0, 28.0],
            "temperature_2m_min": [25.0, 20.0, 18.0],
            "precipitation_sum": [0.0, 55.0, 0.0],
            "wind_speed_10m_max": [10.0, 20.0, 80.0],
            "wind_direction_10m_dominant": [180, 90, 270],
            "weather_code": [0, 95, 3],
        },
    }
    transport = FakeTransport({url: payload})
    provider = OpenMeteoWeatherProvider(transport, url, clock=VirtualClock())

    data = await provider.fetch(WeatherQuery(location=BEIJING, forecast_days=3), BEIJING)

    assert transport.calls[0][1]["forecast_days"] == 3
    assert data.current.condition == "Clear"
    assert data.current.visibility == 24.0
    assert [day.condition for day in data.forecast] == ["Clear", "Thunderstorms", "Overcast"]
    alerts = {alert.id: alert for alert in data.alerts}
    # Only today and tomorrow produce alerts; the day-3 wind is ignored.
    assert set(alerts) == {
        "temperature-2026-01-01",
        "severe_weather-2026-01-02",
        "rain-2026-01-02",
        "uv-2026-01-01",
    }
    assert alerts["temperature-2026-01-01"].severity == AlertSeverity.EXTREME
    assert alerts["rain-2026-01-02"].severity == AlertSeverity.HIGH
    # Today's warnings start at the observation time, tomorrow's at midnight.
    assert alerts["temperature-2026-01-01"].start_time == START
    assert alerts["temperature-2026-01-01"].active is True
    assert alerts["severe_weather-2026-01-02"].start_time == START.replace(day=2, hour=0)
    assert alerts["severe_weather-2026-01-02"].active is False
    assert alerts["rain-2026-01-02"].active is False


@pytest.mark.asyncio
async def test_synthetic_alerts_never_start_in_the_future() -> None:
    clock = VirtualClock()
    emergency = SyntheticEmergencyProvider(clock=clock)
    traffic = SyntheticTrafficProvider(clock=clock)
    weather = SyntheticWeatherProvider(clock=clock)
    locations = [Location(latitude=10.0 + i * 0.37, longitude=20.0 + i * 0.53) for i in range(20)]

    seen = 0
    for minutes in (1, 7, 23, 41, 59):
        clock.now = START + timedelta(minutes=minutes)
        for location in locations:
            alerts = [
                *(await emergency.fetch(EmergencyQuery(location=location), location)).alerts,
                *(await traffic.fetch(TrafficQuery(location=location, destination="Airport"), location)).incidents,
                *(await weather.fetch(WeatherQuery(location=location), location)).alerts,
            ]
            for alert in alerts:
                if alert.active:
                    seen += 1
                    assert alert.start_time <= clock.now, alert.id

    assert seen > 0
