"""Base model and shared vocabularies for tripwatch records.

Every record inherits from :class:`TripwatchModel` which provides:

* ``alias_generator=to_camel`` so camelCase provider keys map
  automatically to snake_case fields.
* ``frozen=True`` so a record can be shared with subscribers and caches
  without defensive copies. Records are replaced, never mutated.

Timestamps coming from providers are epoch seconds **or** milliseconds;
:data:`EpochTimestamp` coerces both to timezone-aware UTC datetimes.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def utcnow() -> datetime:
    return datetime.now(UTC)


def parse_epoch_timestamp(value: Any) -> Any:
    """Convert an epoch timestamp (seconds **or** milliseconds) to a UTC datetime.

    Non-numeric values are passed through so pydantic can parse ISO strings.
    Naive datetimes are assumed to be UTC.
    """
    if value is None:
        return value
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        ts = float(value)
        if ts >= _MS_THRESHOLD:
            ts /= 1000.0
        return datetime.fromtimestamp(ts, tz=UTC)
    return value


EpochTimestamp = Annotated[datetime, BeforeValidator(parse_epoch_timestamp)]
"""Annotated type that coerces epoch ints (seconds or ms) to UTC datetimes."""


class Domain(StrEnum):
    """The four information categories aggregated by tripwatch."""

    WEATHER = "weather"
    TRAFFIC = "traffic"
    POI = "poi"
    EMERGENCY = "emergency"


class TripwatchModel(BaseModel):
    """Base for every tripwatch record, query and snapshot."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )
