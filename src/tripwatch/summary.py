"""Derived risk summary.

The summary is a pure function of the weather, traffic and emergency slots.
POI data never feeds into it.
"""

from __future__ import annotations

from datetime import datetime

from tripwatch.models.emergency import EmergencyData, EmergencySeverity
from tripwatch.models.snapshot import OverallStatus, Summary, WeatherSeverity
from tripwatch.models.traffic import TrafficData, TrafficLevel
from tripwatch.models.weather import AlertSeverity, WeatherData

_WEATHER_SEVERITY: dict[AlertSeverity, WeatherSeverity] = {
    AlertSeverity.EXTREME: WeatherSeverity.SEVERE,
    AlertSeverity.HIGH: WeatherSeverity.MODERATE,
    AlertSeverity.MEDIUM: WeatherSeverity.MILD,
    AlertSeverity.LOW: WeatherSeverity.CLEAR,
}

_WEATHER_RANK = {s: rank for rank, s in enumerate(WeatherSeverity)}


def weather_severity(weather: WeatherData | None) -> WeatherSeverity:
    """Worst severity over the active weather alerts."""
    worst = WeatherSeverity.CLEAR
    if weather is None:
        return worst
    for alert in weather.alerts:
        if not alert.active:
            continue
        mapped = _WEATHER_SEVERITY[alert.severity]
        if _WEATHER_RANK[mapped] > _WEATHER_RANK[worst]:
            worst = mapped
    return worst


def compute_summary(
    weather: WeatherData | None,
    traffic: TrafficData | None,
    emergency: EmergencyData | None,
    *,
    now: datetime,
) -> Summary:
    """Derive the overall status from the three risk-bearing domains.

    Rules, first match wins:

    * ``critical``: any active critical emergency alert, severe weather or
      severe traffic.
    * ``poor``: more than two active emergency alerts, moderate weather or
      heavy traffic.
    * ``fair``: mild weather or medium traffic.
    * ``good`` otherwise.

    Missing domain data counts as clear weather, low traffic and no alerts.
    """
    severity = weather_severity(weather)
    traffic_level = traffic.route.traffic_level if traffic is not None else TrafficLevel.LOW

    active_emergency = [a for a in emergency.alerts if a.active] if emergency is not None else []
    critical_alerts = sum(1 for a in active_emergency if a.severity == EmergencySeverity.CRITICAL)

    if critical_alerts > 0 or severity == WeatherSeverity.SEVERE or traffic_level == TrafficLevel.SEVERE:
        status = OverallStatus.CRITICAL
    elif len(active_emergency) > 2 or severity == WeatherSeverity.MODERATE or traffic_level == TrafficLevel.HIGH:
        status = OverallStatus.POOR
    elif severity == WeatherSeverity.MILD or traffic_level == TrafficLevel.MEDIUM:
        status = OverallStatus.FAIR
    else:
        status = OverallStatus.GOOD

    return Summary(
        overall_status=status,
        active_alerts=critical_alerts,
        traffic_level=traffic_level,
        weather_severity=severity,
        last_update=now,
    )
