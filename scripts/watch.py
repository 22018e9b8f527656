#!/usr/bin/env python3
"""Watch real-time travel conditions for a location.

Initializes a manager, prints the summary and every domain's status on each
snapshot update, and optionally keeps monitoring for a while.

Usage
-----
::

    python scripts/watch.py --place Beijing
    python scripts/watch.py --lat 48.8566 --lon 2.3522 --monitor 120 --frequency realtime

Options::

    --place NAME         Place name to watch (default: configured default)
    --lat/--lon          Coordinates to watch instead of a place name
    --destination NAME   Traffic destination
    --monitor SECONDS    Keep polling for SECONDS after the first refresh
    --frequency LEVEL    realtime, frequent, normal or low
    --open-meteo         Use live Open-Meteo weather instead of synthetic data
    --offline            Disable IP geolocation and Nominatim lookups
    --json               Print the final snapshot as JSON
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from tripwatch import (  # noqa: E402
    AlertEvent,
    CompositeSnapshot,
    Domain,
    Location,
    LocationUnresolvedError,
    RealTimeInfoManager,
    TripwatchConfig,
)


def _describe(snapshot: CompositeSnapshot) -> str:
    summary = snapshot.summary
    stamp = f"{summary.last_update:%H:%M:%S}" if summary.last_update else "--:--:--"
    lines = [
        f"[{stamp}] {snapshot.address or '?'}: {summary.overall_status}",
        f"  weather={summary.weather_severity} traffic={summary.traffic_level} critical_alerts={summary.active_alerts}",
    ]
    for domain in Domain:
        slot = snapshot.slot(domain)
        if slot.is_loading:
            state = "loading"
        elif slot.error:
            state = f"error: {slot.error}"
        elif slot.data is None:
            state = "no data"
        else:
            state = f"updated {slot.last_updated:%H:%M:%S}" if slot.last_updated else "ok"
        lines.append(f"  {domain.value:<10} {state}")
    return "\n".join(lines)


def _on_alert(event: AlertEvent) -> None:
    print(f"  ! {event.domain} alert: {event.alert.title}")


async def main() -> None:
    parser = argparse.ArgumentParser(description="Watch real-time travel conditions for a location.")
    parser.add_argument("--place", help="Place name to watch")
    parser.add_argument("--lat", type=float, help="Latitude to watch")
    parser.add_argument("--lon", type=float, help="Longitude to watch")
    parser.add_argument("--destination", help="Traffic destination")
    parser.add_argument("--monitor", type=float, default=0.0, help="Keep monitoring for SECONDS")
    parser.add_argument("--frequency", choices=["realtime", "frequent", "normal", "low"], help="Update frequency")
    parser.add_argument("--open-meteo", action="store_true", help="Use live Open-Meteo weather")
    parser.add_argument("--offline", action="store_true", help="Disable network geolocation and geocoding")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Print final snapshot as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    overrides: dict[str, Any] = {}
    if args.frequency:
        overrides["update_frequency"] = args.frequency
    if args.open_meteo:
        overrides["weather_provider"] = "open-meteo"
    if args.destination:
        overrides["default_destination"] = args.destination
    if args.offline:
        overrides["geolocation_enabled"] = False
        overrides["geocoding_enabled"] = False
    config = TripwatchConfig.from_env(**overrides)

    location: Location | str | None = args.place
    if args.lat is not None and args.lon is not None:
        location = Location(latitude=args.lat, longitude=args.lon)

    async with RealTimeInfoManager(config) as manager:
        try:
            await manager.initialize(location)
        except LocationUnresolvedError as exc:
            print(f"Cannot resolve a location: {exc}", file=sys.stderr)
            raise SystemExit(1) from exc

        print(_describe(manager.get_current_data()))

        if args.monitor > 0:
            manager.subscribe_to_alerts(_on_alert)

            def _on_update(snapshot: CompositeSnapshot) -> None:
                if not any(snapshot.slot(domain).is_loading for domain in Domain):
                    print(_describe(snapshot))

            manager.subscribe_to_updates(_on_update)
            manager.start_monitoring()
            await asyncio.sleep(args.monitor)

        if args.json_mode:
            print(manager.get_current_data().model_dump_json(indent=2))


if __name__ == "__main__":
    asyncio.run(main())
