"""tripwatch - Async aggregation and monitoring of real-time travel information."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("tripwatch")
except PackageNotFoundError:
    __version__ = "0+local"
from tripwatch._cache import CacheEntry, CacheStatus, TtlCache
from tripwatch._transport import HttpTransport, Transport
from tripwatch.bus import SubscriptionBus
from tripwatch.config import TripwatchConfig
from tripwatch.exceptions import (
    CacheSerializationError,
    LocationUnresolvedError,
    SourceFetchFailedError,
    TripwatchConfigError,
    TripwatchError,
    TripwatchTransportError,
)
from tripwatch.geo import (
    IpGeolocationProvider,
    LocationResolver,
    NominatimGeocoder,
    StaticPlaceResolver,
)
from tripwatch.manager import ManagerState, RealTimeInfoManager
from tripwatch.models import (
    AlertEvent,
    CompositeSnapshot,
    Domain,
    DomainSlot,
    Location,
    OverallStatus,
    Summary,
    UpdateFrequency,
    UserPreferences,
    WeatherSeverity,
)
from tripwatch.scheduler import MonitoringScheduler
from tripwatch.sources import (
    EmergencyQuery,
    POIQuery,
    SourceClient,
    TrafficQuery,
    WeatherQuery,
    best_alternative_route,
)
from tripwatch.summary import compute_summary

__all__ = [
    "__version__",
    "AlertEvent",
    "CacheEntry",
    "CacheSerializationError",
    "CacheStatus",
    "CompositeSnapshot",
    "Domain",
    "DomainSlot",
    "EmergencyQuery",
    "HttpTransport",
    "IpGeolocationProvider",
    "Location",
    "LocationResolver",
    "LocationUnresolvedError",
    "ManagerState",
    "MonitoringScheduler",
    "NominatimGeocoder",
    "OverallStatus",
    "POIQuery",
    "RealTimeInfoManager",
    "SourceClient",
    "SourceFetchFailedError",
    "StaticPlaceResolver",
    "Summary",
    "SubscriptionBus",
    "TrafficQuery",
    "Transport",
    "TripwatchConfig",
    "TripwatchConfigError",
    "TripwatchError",
    "TripwatchTransportError",
    "TtlCache",
    "UpdateFrequency",
    "UserPreferences",
    "WeatherQuery",
    "WeatherSeverity",
    "best_alternative_route",
    "compute_summary",
]
