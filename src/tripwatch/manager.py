"""Aggregator for weather, traffic, POI and emergency information."""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from datetime import datetime, timedelta
from enum import StrEnum
from types import TracebackType
from typing import Any

from tripwatch._cache import CacheStatus
from tripwatch._constants import FREQUENCY_MULTIPLIERS
from tripwatch._transport import HttpTransport, Transport
from tripwatch.bus import Subscriber, SubscriptionBus, Unsubscribe
from tripwatch.config import TripwatchConfig
from tripwatch.exceptions import LocationUnresolvedError
from tripwatch.geo import (
    GeolocationProvider,
    IpGeolocationProvider,
    LocationResolver,
    NominatimGeocoder,
    PlaceResolver,
    ReverseGeocoder,
    StaticPlaceResolver,
)
from tripwatch.models._base import Domain, utcnow
from tripwatch.models.emergency import EmergencyData
from tripwatch.models.location import Location, LocationInput, format_coordinates
from tripwatch.models.poi import POIStatus
from tripwatch.models.preferences import UserPreferences
from tripwatch.models.snapshot import Alert, AlertEvent, CompositeSnapshot
from tripwatch.models.traffic import TrafficData
from tripwatch.models.weather import WeatherData
from tripwatch.scheduler import MonitoringScheduler, SleepFn
from tripwatch.sources._base import SourceClient
from tripwatch.sources.emergency import EmergencyQuery, SyntheticEmergencyProvider, create_emergency_client
from tripwatch.sources.poi import POIQuery, SyntheticPOIProvider, create_poi_client
from tripwatch.sources.traffic import SyntheticTrafficProvider, TrafficQuery, create_traffic_client
from tripwatch.sources.weather import (
    OpenMeteoWeatherProvider,
    SyntheticWeatherProvider,
    WeatherQuery,
    create_weather_client,
)
from tripwatch.summary import compute_summary

_logger = logging.getLogger(__name__)


class ManagerState(StrEnum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


def _alerts_of(domain: Domain, data: Any) -> Iterable[Alert]:
    if domain == Domain.WEATHER:
        return data.alerts
    if domain == Domain.TRAFFIC:
        return data.incidents
    if domain == Domain.POI:
        return [alert for poi in data for alert in poi.alerts]
    return data.alerts


class RealTimeInfoManager:
    """Keep a composite snapshot of travel conditions up to date.

    The manager owns the snapshot. It fans refreshes out to one cached
    :class:`~tripwatch.sources.SourceClient` per domain, records each
    domain's outcome in its own slot, derives the summary and publishes the
    new snapshot to subscribers.

    A domain failure is recorded in that domain's ``error`` field and never
    raised; the previous data is kept. The only error surfaced to callers is
    :class:`~tripwatch.exceptions.LocationUnresolvedError` from
    :meth:`initialize` when no location can be found at all.

    Use as an async context manager, or call :meth:`dispose` when done::

        async with RealTimeInfoManager(TripwatchConfig.from_env()) as manager:
            await manager.initialize("Beijing")
            manager.subscribe_to_updates(print)
            manager.start_monitoring()

    Parameters
    ----------
    config : TripwatchConfig or None
        Defaults to ``TripwatchConfig()``.
    transport : Transport or None
        HTTP transport for geolocation, geocoding and live providers. When
        omitted an :class:`HttpTransport` is created and closed on dispose.
    weather, traffic, poi, emergency : SourceClient or None
        Replace a domain client (tests inject clients with fake providers).
    geolocation : GeolocationProvider or None
        Device position source. Defaults to IP geolocation when enabled.
    reverse_geocoder : ReverseGeocoder or None
        Coordinates to address. Defaults to Nominatim when enabled.
    place_resolver : PlaceResolver or None
        Place name to coordinates. Defaults to the configured default place,
        then Nominatim when enabled.
    preferences : UserPreferences or None
        Initial preferences. Defaults use ``config.update_frequency``.
    clock : callable
        Returns the current aware datetime.
    sleep : callable
        Coroutine used by monitoring timers to wait.
    """

    def __init__(
        self,
        config: TripwatchConfig | None = None,
        *,
        transport: Transport | None = None,
        weather: SourceClient[WeatherQuery, WeatherData] | None = None,
        traffic: SourceClient[TrafficQuery, TrafficData] | None = None,
        poi: SourceClient[POIQuery, list[POIStatus]] | None = None,
        emergency: SourceClient[EmergencyQuery, EmergencyData] | None = None,
        geolocation: GeolocationProvider | None = None,
        reverse_geocoder: ReverseGeocoder | None = None,
        place_resolver: PlaceResolver | None = None,
        preferences: UserPreferences | None = None,
        clock: Callable[[], datetime] = utcnow,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._config = config or TripwatchConfig()
        self._clock = clock

        self._owned_transport: HttpTransport | None = None
        if transport is None:
            self._owned_transport = HttpTransport(self._config)
            transport = self._owned_transport
        self._transport = transport

        nominatim = NominatimGeocoder(transport, self._config.nominatim_url) if self._config.geocoding_enabled else None
        if place_resolver is None:
            known: dict[str, Location] = {}
            default_location = self._config.default_location()
            if self._config.default_place and default_location is not None:
                known[self._config.default_place] = default_location
            place_resolver = StaticPlaceResolver(known, fallback=nominatim)
        self._resolver = LocationResolver(place_resolver)
        self._reverse_geocoder = reverse_geocoder if reverse_geocoder is not None else nominatim
        if geolocation is None and self._config.geolocation_enabled:
            geolocation = IpGeolocationProvider(transport, self._config.ip_api_url)
        self._geolocation = geolocation

        self._weather = weather or create_weather_client(
            ttl=self._config.ttl_for(Domain.WEATHER),
            provider=(
                OpenMeteoWeatherProvider(transport, self._config.open_meteo_url, clock=clock)
                if self._config.weather_provider == "open-meteo"
                else SyntheticWeatherProvider(clock=clock)
            ),
            resolver=self._resolver,
            clock=clock,
        )
        self._traffic = traffic or create_traffic_client(
            ttl=self._config.ttl_for(Domain.TRAFFIC),
            provider=SyntheticTrafficProvider(clock=clock),
            resolver=self._resolver,
            clock=clock,
        )
        self._poi = poi or create_poi_client(
            ttl=self._config.ttl_for(Domain.POI),
            provider=SyntheticPOIProvider(clock=clock),
            resolver=self._resolver,
            clock=clock,
        )
        self._emergency = emergency or create_emergency_client(
            ttl=self._config.ttl_for(Domain.EMERGENCY),
            provider=SyntheticEmergencyProvider(clock=clock),
            resolver=self._resolver,
            clock=clock,
        )

        self._preferences = preferences or UserPreferences(update_frequency=self._config.update_frequency)
        self._snapshot = CompositeSnapshot()
        self._state = ManagerState.UNINITIALIZED
        self._init_lock = asyncio.Lock()

        self._updates: SubscriptionBus[CompositeSnapshot] = SubscriptionBus("updates", current=lambda: self._snapshot)
        self._alerts: SubscriptionBus[AlertEvent] = SubscriptionBus("alerts")
        self._published_alerts: dict[Domain, set[str]] = {}

        self._refreshers: dict[Domain, Callable[[], Awaitable[None]]] = {
            Domain.WEATHER: self.refresh_weather_data,
            Domain.TRAFFIC: self.refresh_traffic_data,
            Domain.POI: self.refresh_poi_data,
            Domain.EMERGENCY: self.refresh_emergency_data,
        }
        self._scheduler = MonitoringScheduler(
            {domain: functools.partial(self._monitor_tick, domain) for domain in Domain},
            self.monitoring_interval,
            sleep=sleep,
        )

    async def __aenter__(self) -> RealTimeInfoManager:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.dispose()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> TripwatchConfig:
        return self._config

    @property
    def state(self) -> ManagerState:
        return self._state

    @property
    def location(self) -> Location | None:
        return self._snapshot.location

    def client(self, domain: Domain) -> SourceClient[Any, Any]:
        clients: dict[Domain, SourceClient[Any, Any]] = {
            Domain.WEATHER: self._weather,
            Domain.TRAFFIC: self._traffic,
            Domain.POI: self._poi,
            Domain.EMERGENCY: self._emergency,
        }
        return clients[domain]

    def get_current_data(self) -> CompositeSnapshot:
        """The current snapshot. Snapshots are frozen; each change makes a new one."""
        return self._snapshot

    def get_user_preferences(self) -> UserPreferences:
        return self._preferences

    def get_cache_status(self) -> dict[Domain, CacheStatus]:
        return {domain: self.client(domain).cache_status() for domain in Domain}

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe_to_updates(self, callback: Subscriber[CompositeSnapshot]) -> Unsubscribe:
        """Register *callback* for snapshot updates.

        The callback is called once immediately with the current snapshot.
        Returns a function that unregisters it.
        """
        return self._updates.subscribe(callback)

    def subscribe_to_alerts(self, callback: Subscriber[AlertEvent]) -> Unsubscribe:
        """Register *callback* for newly observed alerts during monitoring.

        An alert is new when it is active, has not been published before and
        its start time falls within the last monitoring interval of its
        domain. Domains disabled in ``alert_settings`` are skipped.
        """
        return self._alerts.subscribe(callback)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self, location: LocationInput | None = None) -> None:
        """Resolve the user location and run the first full refresh.

        The location is, in order: *location*, the device geolocation
        provider, the configured default. Concurrent calls are serialized;
        a call on a ready manager without *location* does nothing.

        Raises
        ------
        LocationUnresolvedError
            *location* is given but cannot be resolved, or no location
            source yields a position.
        """
        async with self._init_lock:
            if self._state == ManagerState.READY and location is None:
                return

            previous = self._state
            self._state = ManagerState.INITIALIZING
            _logger.info("Initializing real-time information manager")
            try:
                resolved = await self._initial_location(location)
            except LocationUnresolvedError:
                self._state = previous if previous == ManagerState.READY else ManagerState.UNINITIALIZED
                raise

            await self._apply_location(resolved)
            await self.refresh_all_data()
            self._state = ManagerState.READY
            _logger.info("Manager ready at %s", resolved.signature())

    async def _initial_location(self, location: LocationInput | None) -> Location:
        if location is not None:
            return await self._resolver.resolve(location)

        if self._geolocation is not None:
            try:
                return await self._geolocation.current_location()
            except Exception as exc:
                _logger.warning("Device geolocation failed (%s); using default location", exc)

        default = self._config.default_location()
        if default is None:
            raise LocationUnresolvedError("No location given, device geolocation unavailable and no default configured")
        return default

    async def set_user_location(self, location: LocationInput) -> None:
        """Store a new user location and its address.

        Does not refresh any domain; call a refresh method afterwards.
        """
        resolved = await self._resolver.resolve(location)
        await self._apply_location(resolved)

    async def _apply_location(self, location: Location) -> None:
        address = location.name or format_coordinates(location)
        if self._reverse_geocoder is not None:
            try:
                found = await self._reverse_geocoder.reverse(location)
            except Exception as exc:
                _logger.debug("Reverse geocoding failed for %s: %s", location.signature(), exc)
            else:
                address = found.city or found.display_name or address

        self._snapshot = self._snapshot.model_copy(update={"location": location, "address": address})
        self._updates.publish(self._snapshot)

    async def dispose(self) -> None:
        """Stop monitoring, wait for in-flight refreshes and release resources."""
        self.stop_monitoring()
        await self._scheduler.wait_idle()
        self._updates.clear()
        self._alerts.clear()
        if self._owned_transport is not None:
            await self._owned_transport.close()

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def _require_location(self) -> Location:
        location = self._snapshot.location
        if location is None:
            raise LocationUnresolvedError("No user location; call initialize() first")
        return location

    def _recompute_summary(self) -> None:
        self._snapshot = self._snapshot.model_copy(
            update={
                "summary": compute_summary(
                    self._snapshot.weather.data,
                    self._snapshot.traffic.data,
                    self._snapshot.emergency.data,
                    now=self._clock(),
                )
            }
        )

    async def _refresh_domain(
        self,
        domain: Domain,
        fetch: Callable[[], Awaitable[Any]],
        *,
        recompute_summary: bool = True,
    ) -> None:
        self._snapshot = self._snapshot.with_slot(domain, is_loading=True)
        self._updates.publish(self._snapshot)

        changes: dict[str, Any] = {"error": "Refresh cancelled"}
        try:
            data = await fetch()
        except Exception as exc:
            _logger.warning("%s refresh failed: %s", domain, exc)
            changes = {"error": str(exc) or type(exc).__name__}
        else:
            changes = {"data": data, "last_updated": self._clock(), "error": None}
        finally:
            self._snapshot = self._snapshot.with_slot(domain, is_loading=False, **changes)
            if recompute_summary:
                self._recompute_summary()
            self._updates.publish(self._snapshot)

    async def refresh_all_data(self) -> None:
        """Refresh the four domains concurrently, then recompute the summary once."""
        await asyncio.gather(
            self._refresh_domain(Domain.WEATHER, self._fetch_weather, recompute_summary=False),
            self._refresh_domain(Domain.TRAFFIC, self._fetch_traffic, recompute_summary=False),
            self._refresh_domain(Domain.POI, self._fetch_poi, recompute_summary=False),
            self._refresh_domain(Domain.EMERGENCY, self._fetch_emergency, recompute_summary=False),
        )
        self._recompute_summary()
        self._updates.publish(self._snapshot)

    async def refresh_weather_data(self) -> None:
        await self._refresh_domain(Domain.WEATHER, self._fetch_weather)

    async def refresh_traffic_data(
        self,
        origin: LocationInput | None = None,
        destination: str | None = None,
    ) -> None:
        """Refresh traffic from *origin* (default: user location) to *destination*."""
        await self._refresh_domain(Domain.TRAFFIC, functools.partial(self._fetch_traffic, origin, destination))

    async def refresh_poi_data(self, query: str | None = None) -> None:
        """Refresh POIs matching *query* (default: the configured keyword)."""
        await self._refresh_domain(Domain.POI, functools.partial(self._fetch_poi, query))

    async def refresh_emergency_data(self) -> None:
        await self._refresh_domain(Domain.EMERGENCY, self._fetch_emergency)

    async def _fetch_weather(self) -> WeatherData:
        return await self._weather.fetch(WeatherQuery(location=self._require_location()))

    async def _fetch_traffic(self, origin: LocationInput | None = None, destination: str | None = None) -> TrafficData:
        query = TrafficQuery(
            location=origin if origin is not None else self._require_location(),
            destination=destination or self._config.default_destination,
        )
        return await self._traffic.fetch(query)

    async def _fetch_poi(self, keyword: str | None = None) -> list[POIStatus]:
        query = POIQuery(
            location=self._require_location(),
            keyword=keyword or self._config.poi_keyword,
            radius_m=self._config.poi_radius_m,
            limit=self._config.poi_limit,
        )
        return await self._poi.fetch(query)

    async def _fetch_emergency(self) -> EmergencyData:
        query = EmergencyQuery(
            location=self._require_location(),
            alert_radius_m=self._config.emergency_radius_m,
            resource_radius_m=self._config.resource_radius_m,
        )
        return await self._emergency.fetch(query)

    def clear_cache(self, domain: Domain | None = None) -> None:
        """Drop cached records for one domain, or all domains."""
        domains = [domain] if domain is not None else list(Domain)
        for item in domains:
            self.client(item).clear_cache()
        _logger.debug("Cleared cache for %s", ", ".join(domains))

    # ------------------------------------------------------------------
    # Monitoring
    # ------------------------------------------------------------------

    def monitoring_interval(self, domain: Domain) -> timedelta:
        """Polling interval: the domain TTL scaled by the update frequency."""
        return self._config.ttl_for(domain) * FREQUENCY_MULTIPLIERS[self._preferences.update_frequency]

    def start_monitoring(self) -> None:
        """Arm one timer per domain. Does nothing when already monitoring.

        Must be called from within a running event loop.
        """
        self._scheduler.start()

    def stop_monitoring(self) -> None:
        """Cancel the timers. Refreshes already running still complete and publish."""
        self._scheduler.stop()

    def is_monitoring(self) -> bool:
        return self._scheduler.is_running

    @property
    def scheduler(self) -> MonitoringScheduler:
        return self._scheduler

    async def _monitor_tick(self, domain: Domain) -> None:
        await self._refreshers[domain]()
        self._publish_new_alerts(domain)

    def _publish_new_alerts(self, domain: Domain) -> None:
        slot = self._snapshot.slot(domain)
        if slot.error is not None or slot.data is None:
            return
        if not self._preferences.alert_settings.enabled_for(domain):
            return

        now = self._clock()
        window_start = now - self.monitoring_interval(domain)
        seen = self._published_alerts.get(domain, set())
        still_seen: set[str] = set()
        for alert in _alerts_of(domain, slot.data):
            if alert.id in seen:
                still_seen.add(alert.id)
                continue
            if alert.active and window_start <= alert.start_time <= now:
                still_seen.add(alert.id)
                _logger.debug("New %s alert %s", domain, alert.id)
                self._alerts.publish(AlertEvent(domain=domain, alert=alert))
        self._published_alerts[domain] = still_seen

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    def update_user_preferences(self, partial: Mapping[str, Any] | None = None, **changes: Any) -> UserPreferences:
        """Merge *partial* and keyword *changes* into the preferences.

        Nested sections merge key by key. Changing ``update_frequency`` while
        monitoring re-arms the timers with the new intervals.

        Raises ``pydantic.ValidationError`` for invalid values; the current
        preferences are left unchanged in that case.
        """
        updated = self._preferences.merged({**(partial or {}), **changes})
        frequency_changed = updated.update_frequency != self._preferences.update_frequency
        self._preferences = updated
        if frequency_changed and self._scheduler.is_running:
            _logger.info("Update frequency changed to %s; restarting monitoring", updated.update_frequency)
            self._scheduler.restart()
        return updated
