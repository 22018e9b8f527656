"""Keyed TTL cache used by the source clients."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from tripwatch.exceptions import CacheSerializationError
from tripwatch.models._base import utcnow

T = TypeVar("T")


def is_expired(now: datetime, expires_at: datetime) -> bool:
    return now >= expires_at


class CacheEntry(BaseModel, Generic[T]):
    """One cached record with its write time and expiry."""

    model_config = ConfigDict(frozen=True)

    data: T
    cached_at: datetime
    expires_at: datetime

    def is_valid(self, now: datetime) -> bool:
        return not is_expired(now, self.expires_at)


class CacheStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_entries: int = 0
    valid_entries: int = 0
    keys: list[str] = Field(default_factory=list)
    expires_at: dict[str, datetime] = Field(default_factory=dict)


class TtlCache(Generic[T]):
    """Mapping from query key to :class:`CacheEntry`.

    Entries are never refreshed in place: a write replaces the whole entry
    so ``cached_at`` always reflects the provider call that produced it.
    Expired entries stay stored until overwritten or cleared; they count
    towards ``total_entries`` but not ``valid_entries``.
    """

    def __init__(
        self,
        ttl: timedelta,
        *,
        record_type: Any,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry[T]] = {}
        self._adapter: TypeAdapter[dict[str, CacheEntry[Any]]] = TypeAdapter(dict[str, CacheEntry[record_type]])

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def get_entry(self, key: str) -> CacheEntry[T] | None:
        """Return the entry for *key* if it is still valid."""
        entry = self._entries.get(key)
        if entry is None or not entry.is_valid(self._clock()):
            return None
        return entry

    def get(self, key: str) -> T | None:
        entry = self.get_entry(key)
        return entry.data if entry is not None else None

    def put(self, key: str, data: T) -> CacheEntry[T]:
        now = self._clock()
        entry: CacheEntry[T] = CacheEntry(data=data, cached_at=now, expires_at=now + self._ttl)
        self._entries[key] = entry
        return entry

    def clear(self, key: str | None = None) -> None:
        """Drop one entry, or every entry when *key* is ``None``."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def status(self) -> CacheStatus:
        now = self._clock()
        valid = sum(1 for entry in self._entries.values() if entry.is_valid(now))
        return CacheStatus(
            total_entries=len(self._entries),
            valid_entries=valid,
            keys=sorted(self._entries),
            expires_at={key: entry.expires_at for key, entry in self._entries.items()},
        )

    def dumps(self) -> str:
        """Serialize all entries (including expired ones) to JSON."""
        try:
            return self._adapter.dump_json(self._entries, by_alias=True).decode()
        except (ValueError, TypeError) as exc:
            raise CacheSerializationError(f"Failed to serialize cache: {exc}") from exc

    def loads(self, payload: str | bytes) -> None:
        """Replace the cache contents with a previously dumped payload.

        Expiry times are kept as stored, so entries that expired while the
        payload was at rest are not served.
        """
        try:
            entries = self._adapter.validate_json(payload)
        except ValidationError as exc:
            raise CacheSerializationError(f"Invalid cache payload: {exc}") from exc
        self._entries = dict(entries)

    def __len__(self) -> int:
        return len(self._entries)
