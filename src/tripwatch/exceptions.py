"""Custom exception hierarchy for tripwatch."""

from __future__ import annotations


class TripwatchError(Exception):
    """Base exception for all tripwatch errors."""


class TripwatchConfigError(TripwatchError):
    """Invalid or missing configuration."""


class TripwatchTransportError(TripwatchError):
    """HTTP-level failure (network, non-200, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class LocationUnresolvedError(TripwatchError):
    """A location could not be turned into coordinates.

    Raised by source clients for invalid or unknown place names, and by
    :meth:`RealTimeInfoManager.initialize` when no location source
    (explicit, device geolocation or configured default) yields one.
    """


class SourceFetchFailedError(TripwatchError):
    """A domain provider failed to produce a record."""

    def __init__(self, message: str, *, domain: str) -> None:
        self.domain = domain
        super().__init__(message)


class CacheSerializationError(TripwatchError):
    """A cache could not be exported or restored."""
