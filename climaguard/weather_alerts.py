"""
climaguard.weather_alerts — Active weather alerts for Mauritius.

Three sources, in order:
    1. OpenWeather One Call alerts (needs OPENWEATHER_API_KEY)
    2. Alerts derived from current OpenWeather conditions
       (wind, rain, heat, low pressure)
    3. A seasonal cyclone advisory, November to April, unless a
       cyclone alert is already present

A failing source is logged and skipped; whatever the other sources
produced is still returned. Alerts are sorted extreme first.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime, timedelta
from typing import Any, Optional

from climaguard.constants import (
    ALERT_SEVERITY_ORDER,
    CYCLONE_SEASON_MONTHS,
    MAURITIUS_LAT,
    MAURITIUS_LNG,
    MS_TO_KMH,
    OPENWEATHER_CURRENT_URL,
    OPENWEATHER_ONECALL_URL,
)
from climaguard.fetching import UpstreamError, fetch_json
from climaguard.risk import round_half_up

logger = logging.getLogger("climaguard.weather_alerts")

AREA = "Mauritius"
ANALYSIS_SOURCE = "ClimaGuard Analysis"
SEASONAL_SOURCE = "ClimaGuard Seasonal Advisory"

# (keywords, type); first match wins, "storm" otherwise
_TYPE_KEYWORDS: list[tuple[tuple[str, ...], str]] = [
    (("cyclone", "hurricane", "typhoon"), "cyclone"),
    (("wind", "gale"), "wind"),
    (("rain", "precipitation"), "rain"),
    (("flood",), "flood"),
    (("heat", "temperature"), "heat"),
    (("cold", "freeze"), "cold"),
]

_SEVERITY_KEYWORDS: list[tuple[tuple[str, ...], str]] = [
    (("extreme", "dangerous", "life-threatening"), "extreme"),
    (("severe", "warning", "major"), "high"),
    (("moderate", "advisory", "watch"), "medium"),
]


def _api_key() -> str:
    return os.getenv("OPENWEATHER_API_KEY", "").strip()


def classify_type(event: str) -> str:
    text = event.lower()
    for keywords, kind in _TYPE_KEYWORDS:
        if any(k in text for k in keywords):
            return kind
    return "storm"


def classify_severity(event: str, description: str) -> str:
    text = f"{event} {description}".lower()
    for keywords, severity in _SEVERITY_KEYWORDS:
        if any(k in text for k in keywords):
            return severity
    return "low"


def _iso(ts: datetime) -> str:
    return ts.isoformat().replace("+00:00", "Z")


def _alert(
    alert_id: str,
    kind: str,
    severity: str,
    title: str,
    description: str,
    issued: datetime,
    expires: datetime,
    source: str,
    area: str = AREA,
) -> dict[str, Any]:
    return {
        "id": alert_id,
        "type": kind,
        "severity": severity,
        "title": title,
        "description": description,
        "area": area,
        "time_issued": _iso(issued),
        "time_expires": _iso(expires),
        "source": source,
        "coordinates": [MAURITIUS_LAT, MAURITIUS_LNG],
    }


def alerts_from_onecall(data: dict[str, Any], now: datetime) -> list[dict[str, Any]]:
    stamp = int(now.timestamp())
    alerts = []
    for i, raw in enumerate(data.get("alerts") or []):
        event = raw.get("event") or "Weather alert"
        description = raw.get("description") or "No additional details available"
        start = raw.get("start")
        end = raw.get("end")
        alerts.append(_alert(
            f"ow-{stamp}-{i}",
            classify_type(event),
            classify_severity(event, description),
            event,
            description,
            datetime.fromtimestamp(start, UTC) if start else now,
            datetime.fromtimestamp(end, UTC) if end else now + timedelta(hours=6),
            "OpenWeather",
        ))
    return alerts


def alerts_from_conditions(weather: dict[str, Any], now: datetime) -> list[dict[str, Any]]:
    """Advisories from current conditions (metric units, wind m/s)."""
    stamp = int(now.timestamp())
    alerts = []

    wind = (weather.get("wind") or {}).get("speed") or 0
    if wind > 10:
        alerts.append(_alert(
            f"wind-{stamp}", "wind", "high" if wind > 15 else "medium",
            "High Wind Advisory",
            f"Strong winds detected: {round_half_up(wind * MS_TO_KMH)} km/h. Exercise caution outdoors.",
            now, now + timedelta(hours=6), ANALYSIS_SOURCE,
        ))

    rain = (weather.get("rain") or {}).get("1h") or 0
    if rain > 10:
        alerts.append(_alert(
            f"rain-{stamp}", "rain", "high" if rain > 25 else "medium",
            "Heavy Rainfall Warning",
            f"Intense rainfall detected: {rain}mm/hour. Risk of flooding in low-lying areas.",
            now, now + timedelta(hours=4), ANALYSIS_SOURCE,
        ))

    main = weather.get("main") or {}
    temp = main.get("temp")
    if temp is not None and temp > 35:
        alerts.append(_alert(
            f"heat-{stamp}", "heat", "high" if temp > 38 else "medium",
            "Heat Warning",
            f"High temperature: {round_half_up(temp)}°C. Stay hydrated and avoid prolonged sun exposure.",
            now, now + timedelta(hours=8), ANALYSIS_SOURCE,
        ))

    pressure = main.get("pressure")
    if pressure is not None and pressure < 1005:
        alerts.append(_alert(
            f"pressure-{stamp}", "storm", "high" if pressure < 1000 else "medium",
            "Low Pressure System",
            f"Low atmospheric pressure detected: {pressure} hPa. Monitor for potential storm development.",
            now, now + timedelta(hours=12), ANALYSIS_SOURCE,
        ))
    return alerts


def seasonal_advisory(alerts: list[dict[str, Any]], now: datetime) -> Optional[dict[str, Any]]:
    """Cyclone-season advisory, expiring 30 May of the current season."""
    if now.month not in CYCLONE_SEASON_MONTHS:
        return None
    if any(a["type"] == "cyclone" for a in alerts):
        return None
    year = now.year if now.month <= 4 else now.year + 1
    return _alert(
        f"season-{int(now.timestamp())}", "cyclone", "low",
        "Cyclone Season Active",
        "Southwest Indian Ocean cyclone season is active (November-April). "
        "Stay informed about weather conditions and have emergency plans ready.",
        now, datetime(year, 5, 30, tzinfo=UTC), SEASONAL_SOURCE,
        area="Southwest Indian Ocean",
    )


def sort_alerts(alerts: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return sorted(alerts, key=lambda a: ALERT_SEVERITY_ORDER.get(a["severity"], len(ALERT_SEVERITY_ORDER)))


async def _fetch_source(url: str, params: dict[str, Any], source: str) -> Optional[dict[str, Any]]:
    try:
        data = await fetch_json(url, source=source, params=params, cache=False)
    except UpstreamError as exc:
        logger.warning(json.dumps({
            "event": "upstream_fallback",
            "source": source,
            "error": exc.message,
        }))
        return None
    return data


async def get_active_alerts(now: Optional[datetime] = None) -> list[dict[str, Any]]:
    now = now or datetime.now(UTC)
    alerts: list[dict[str, Any]] = []
    key = _api_key()
    if key:
        base = {"lat": MAURITIUS_LAT, "lon": MAURITIUS_LNG, "appid": key}
        onecall = await _fetch_source(
            OPENWEATHER_ONECALL_URL,
            {**base, "exclude": "minutely,hourly,daily"},
            "openweather-alerts",
        )
        if onecall:
            alerts.extend(alerts_from_onecall(onecall, now))
        current = await _fetch_source(
            OPENWEATHER_CURRENT_URL,
            {**base, "units": "metric"},
            "openweather-current",
        )
        if current:
            alerts.extend(alerts_from_conditions(current, now))
    else:
        logger.debug(json.dumps({"event": "openweather_key_missing"}))

    advisory = seasonal_advisory(alerts, now)
    if advisory:
        alerts.append(advisory)
    return sort_alerts(alerts)
