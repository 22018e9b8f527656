"""Generic cached source client shared by the four domains."""

from __future__ import annotations

import logging
import random
import zlib
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import Any, Generic, Protocol, TypeVar

from tripwatch._cache import CacheEntry, CacheStatus, TtlCache
from tripwatch.exceptions import LocationUnresolvedError, SourceFetchFailedError
from tripwatch.models._base import Domain, TripwatchModel, utcnow
from tripwatch.models.location import Location, LocationInput, location_signature

_logger = logging.getLogger(__name__)

R = TypeVar("R")
R_co = TypeVar("R_co", covariant=True)
Q = TypeVar("Q", bound="SourceQuery")
Q_contra = TypeVar("Q_contra", bound="SourceQuery", contravariant=True)

LocationResolverFn = Callable[[LocationInput], Awaitable[Location]]


class SourceQuery(TripwatchModel):
    """Base for per-domain queries.

    Subclasses add their parameters and fold every parameter that changes
    the result into :meth:`cache_key`.
    """

    location: LocationInput

    def location_key(self) -> str:
        return location_signature(self.location)

    def cache_key(self) -> str:
        return self.location_key()


class Provider(Protocol[Q_contra, R_co]):
    """Produces a fresh record for a query whose location is already resolved."""

    async def fetch(self, query: Q_contra, location: Location) -> R_co: ...


def seeded_rng(*parts: object) -> random.Random:
    """Deterministic RNG for synthetic providers.

    The same parts always give the same sequence, so the same query at the
    same time bucket produces the same record.
    """
    seed = zlib.crc32("|".join(str(p) for p in parts).encode())
    return random.Random(seed)


class SourceClient(Generic[Q, R]):
    """Cache-fronted access to one domain provider.

    A valid cache entry is returned without calling the provider. On a miss
    the query location is resolved, the provider is called once and its
    result stored with a fresh ``cached_at``.

    Raises
    ------
    LocationUnresolvedError
        The query location cannot be turned into coordinates.
    SourceFetchFailedError
        The provider failed for any other reason.
    """

    def __init__(
        self,
        domain: Domain,
        *,
        ttl: timedelta,
        provider: Provider[Q, R],
        resolver: LocationResolverFn,
        record_type: Any,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.domain = domain
        self._provider = provider
        self._resolver = resolver
        self._cache: TtlCache[R] = TtlCache(ttl, record_type=record_type, clock=clock)

    @property
    def cache(self) -> TtlCache[R]:
        return self._cache

    async def fetch(self, query: Q) -> R:
        return (await self.fetch_entry(query)).data

    async def fetch_entry(self, query: Q) -> CacheEntry[R]:
        key = query.cache_key()
        entry = self._cache.get_entry(key)
        if entry is not None:
            _logger.debug("%s cache hit for %s", self.domain, key)
            return entry

        location = await self._resolver(query.location)
        _logger.debug("%s cache miss for %s; fetching", self.domain, key)
        try:
            record = await self._provider.fetch(query, location)
        except (LocationUnresolvedError, SourceFetchFailedError):
            raise
        except Exception as exc:
            raise SourceFetchFailedError(
                f"{self.domain} provider failed: {exc}",
                domain=self.domain.value,
            ) from exc
        return self._cache.put(key, record)

    def clear_cache(self, key: str | None = None) -> None:
        self._cache.clear(key)

    def cache_status(self) -> CacheStatus:
        return self._cache.status()
