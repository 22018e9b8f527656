from __future__ import annotations

import pytest
from fakes import BEIJING, FakeTransport

from tripwatch.exceptions import LocationUnresolvedError, TripwatchTransportError
from tripwatch.geo import IpGeolocationProvider, LocationResolver, NominatimGeocoder, StaticPlaceResolver

NOMINATIM = "https://nominatim.test"
IP_API = "http://ip.test/json"


@pytest.mark.asyncio
async def test_ip_geolocation_success() -> None:
    transport = FakeTransport({IP_API: {"status": "success", "lat": 31.23, "lon": 121.47, "city": "Shanghai"}})

    location = await IpGeolocationProvider(transport, IP_API).current_location()

    assert (location.latitude, location.longitude) == (31.23, 121.47)
    assert location.name == "Shanghai"
    assert location.accuracy == 10000.0


@pytest.mark.parametrize(
    "response",
    [
        {"status": "fail", "message": "reserved range"},
        {"status": "success", "city": "Nowhere"},
        TripwatchTransportError("timeout", url=IP_API),
    ],
)
@pytest.mark.asyncio
async def test_ip_geolocation_failures_raise_location_unresolved(response) -> None:
    provider = IpGeolocationProvider(FakeTransport({IP_API: response}), IP_API)

    with pytest.raises(LocationUnresolvedError):
        await provider.current_location()


@pytest.mark.asyncio
async def test_nominatim_search_returns_first_match() -> None:
    transport = FakeTransport({f"{NOMINATIM}/search": [{"lat": "48.8566", "lon": "2.3522"}]})
    geocoder = NominatimGeocoder(transport, NOMINATIM + "/")

    location = await geocoder.resolve("  Paris ")

    assert (location.latitude, location.longitude) == (48.8566, 2.3522)
    assert location.name == "Paris"
    assert transport.calls == [(f"{NOMINATIM}/search", {"q": "Paris", "format": "json", "limit": 1})]


@pytest.mark.asyncio
async def test_nominatim_search_without_results_is_unresolved() -> None:
    geocoder = NominatimGeocoder(FakeTransport({f"{NOMINATIM}/search": []}), NOMINATIM)

    with pytest.raises(LocationUnresolvedError):
        await geocoder.resolve("Atlantis")


@pytest.mark.parametrize(
    ("address", "expected"),
    [
        ({"city": "Beijing", "town": "Ignored"}, "Beijing"),
        ({"town": "Yanqing"}, "Yanqing"),
        ({"village": "Gubeikou"}, "Gubeikou"),
        ({"county": "Miyun"}, "Miyun"),
        ({}, "Dongcheng District"),
    ],
)
@pytest.mark.asyncio
async def test_reverse_geocoding_city_fallbacks(address: dict, expected: str) -> None:
    payload = {
        "display_name": "Dongcheng District, Beijing, China",
        "address": {**address, "state": "Beijing", "country": "China"},
    }
    geocoder = NominatimGeocoder(FakeTransport({f"{NOMINATIM}/reverse": payload}), NOMINATIM)

    result = await geocoder.reverse(BEIJING)

    assert result.city == expected
    assert result.country == "China"
    assert result.display_name == "Dongcheng District, Beijing, China"


@pytest.mark.asyncio
async def test_reverse_geocoding_is_cached_per_signature() -> None:
    transport = FakeTransport({f"{NOMINATIM}/reverse": {"display_name": "Beijing, China", "address": {"city": "Beijing"}}})
    geocoder = NominatimGeocoder(transport, NOMINATIM)
    nearby = BEIJING.model_copy(update={"latitude": BEIJING.latitude + 0.00001})

    await geocoder.reverse(BEIJING)
    await geocoder.reverse(nearby)
    assert len(transport.calls) == 1

    geocoder.clear_cache()
    await geocoder.reverse(BEIJING)
    assert len(transport.calls) == 2


@pytest.mark.asyncio
async def test_reverse_geocoding_without_address_raises() -> None:
    geocoder = NominatimGeocoder(FakeTransport({f"{NOMINATIM}/reverse": {"error": "Unable to geocode"}}), NOMINATIM)

    with pytest.raises(TripwatchTransportError):
        await geocoder.reverse(BEIJING)


@pytest.mark.asyncio
async def test_static_resolver_falls_back() -> None:
    transport = FakeTransport({f"{NOMINATIM}/search": [{"lat": "1.0", "lon": "2.0"}]})
    resolver = LocationResolver(
        StaticPlaceResolver({"Beijing": BEIJING}, fallback=NominatimGeocoder(transport, NOMINATIM))
    )

    assert await resolver("BEIJING") == BEIJING
    assert await resolver(BEIJING) is BEIJING
    elsewhere = await resolver("Somewhere")
    assert (elsewhere.latitude, elsewhere.longitude) == (1.0, 2.0)
    assert len(transport.calls) == 1
