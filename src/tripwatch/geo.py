"""Device geolocation, place-name resolution and reverse geocoding."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

from tripwatch._transport import Transport
from tripwatch.exceptions import LocationUnresolvedError, TripwatchTransportError
from tripwatch.models.location import Address, Location, LocationInput

_logger = logging.getLogger(__name__)


class GeolocationProvider(Protocol):
    """Reports the device position."""

    async def current_location(self) -> Location: ...


class PlaceResolver(Protocol):
    """Turns a place name into coordinates."""

    async def resolve(self, name: str) -> Location: ...


class ReverseGeocoder(Protocol):
    """Turns coordinates into a human readable address."""

    async def reverse(self, location: Location) -> Address: ...


def _as_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class IpGeolocationProvider:
    """Approximate device position from the public IP (ip-api.com)."""

    def __init__(self, transport: Transport, url: str) -> None:
        self._transport = transport
        self._url = url

    async def current_location(self) -> Location:
        try:
            data = await self._transport.get_json(self._url)
        except TripwatchTransportError as exc:
            raise LocationUnresolvedError(f"IP geolocation failed: {exc}") from exc

        if not isinstance(data, Mapping) or data.get("status") == "fail":
            message = data.get("message") if isinstance(data, Mapping) else None
            raise LocationUnresolvedError(f"IP geolocation failed: {message or 'unexpected response'}")

        lat = _as_float(data.get("lat"))
        lon = _as_float(data.get("lon"))
        if lat is None or lon is None:
            raise LocationUnresolvedError("IP geolocation response has no coordinates")

        # City-level precision at best.
        return Location(latitude=lat, longitude=lon, accuracy=10000.0, name=data.get("city") or None)


class NominatimGeocoder:
    """Place search and reverse geocoding against a Nominatim server.

    Reverse lookups are cached per coordinate signature (4 decimals), so
    repeated lookups of the same position never hit the network twice.
    """

    def __init__(self, transport: Transport, base_url: str) -> None:
        self._transport = transport
        self._base_url = base_url.rstrip("/")
        self._reverse_cache: dict[str, Address] = {}

    async def resolve(self, name: str) -> Location:
        query = name.strip()
        if not query:
            raise LocationUnresolvedError("Empty place name")
        try:
            results = await self._transport.get_json(
                f"{self._base_url}/search",
                params={"q": query, "format": "json", "limit": 1},
            )
        except TripwatchTransportError as exc:
            raise LocationUnresolvedError(f"Could not look up {query!r}: {exc}") from exc

        if not isinstance(results, list) or not results:
            raise LocationUnresolvedError(f"Unknown place {query!r}")

        first = results[0]
        lat = _as_float(first.get("lat"))
        lon = _as_float(first.get("lon"))
        if lat is None or lon is None:
            raise LocationUnresolvedError(f"No coordinates for {query!r}")
        return Location(latitude=lat, longitude=lon, name=query)

    async def reverse(self, location: Location) -> Address:
        key = location.signature()
        cached = self._reverse_cache.get(key)
        if cached is not None:
            return cached

        data = await self._transport.get_json(
            f"{self._base_url}/reverse",
            params={
                "format": "json",
                "lat": location.latitude,
                "lon": location.longitude,
                "zoom": 10,
                "addressdetails": 1,
            },
        )
        if not isinstance(data, Mapping) or "display_name" not in data:
            raise TripwatchTransportError("Reverse geocoding returned no address", url=f"{self._base_url}/reverse")

        display_name = str(data.get("display_name") or "")
        parts: Mapping[str, Any] = data.get("address") or {}
        city = (
            parts.get("city")
            or parts.get("town")
            or parts.get("village")
            or parts.get("municipality")
            or parts.get("county")
            or display_name.split(",")[0].strip()
        )
        address = Address(
            city=city,
            region=parts.get("state") or parts.get("region") or "",
            country=parts.get("country") or "",
            display_name=display_name,
        )
        self._reverse_cache[key] = address
        return address

    def clear_cache(self) -> None:
        self._reverse_cache.clear()


class StaticPlaceResolver:
    """Offline resolver backed by a fixed name table (case-insensitive)."""

    def __init__(self, places: Mapping[str, Location] | None = None, *, fallback: PlaceResolver | None = None) -> None:
        self._places = {name.strip().lower(): loc for name, loc in (places or {}).items()}
        self._fallback = fallback

    async def resolve(self, name: str) -> Location:
        found = self._places.get(name.strip().lower())
        if found is not None:
            return found
        if self._fallback is not None:
            return await self._fallback.resolve(name)
        raise LocationUnresolvedError(f"Unknown place {name!r}")


class LocationResolver:
    """Normalize a :data:`LocationInput` into a :class:`Location`."""

    def __init__(self, places: PlaceResolver) -> None:
        self._places = places

    async def __call__(self, value: LocationInput) -> Location:
        return await self.resolve(value)

    async def resolve(self, value: LocationInput) -> Location:
        if isinstance(value, Location):
            return value
        if not value or not value.strip():
            raise LocationUnresolvedError("Empty place name")
        location = await self._places.resolve(value)
        _logger.debug("Resolved %r to %s", value, location.signature())
        return location
