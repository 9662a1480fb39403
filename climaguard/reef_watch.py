"""
climaguard.reef_watch — Coral reef thermal stress from Open-Meteo marine SST.

NOAA Coral Reef Watch style products computed locally from daily mean
sea-surface temperature:

    anomaly   SST - SST_BASELINE (28.5 °C)
    hotspot   max(anomaly, 0)
    DHW       Σ (t - 30) / 7 over days with t > 30 °C in the last 84 days,
              capped at 20
    alert     0..5 from SST and DHW (see alert_level)
    health    80 - min(30, |anomaly|·10) - min(20, DHW·2) - alert·5, in [0, 100]
"""

from __future__ import annotations

import asyncio
from typing import Any

from climaguard.constants import (
    BLEACHING_THRESHOLD_SST,
    DHW_CAP,
    DHW_WINDOW_DAYS,
    OPEN_METEO_MARINE_URL,
    REEF_ALERT_BBOX,
    REEF_ALERT_GRID_STEP,
    SST_BASELINE,
)
from climaguard.fetching import UpstreamError, fetch_json
from climaguard.risk import clamp

ALERT_GRID_CONCURRENCY = 8

# (minimum SST, minimum DHW, alert level); either condition qualifies
_ALERT_LEVELS: list[tuple[float, float, int]] = [
    (31.0, 12.0, 5),
    (30.5, 8.0, 4),
    (30.0, 4.0, 3),
    (29.5, 1.0, 2),
    (29.0, float("inf"), 1),
]


def degree_heating_weeks(temps: list[float]) -> float:
    window = temps[-DHW_WINDOW_DAYS:]
    dhw = sum((t - BLEACHING_THRESHOLD_SST) / 7 for t in window if t > BLEACHING_THRESHOLD_SST)
    return min(dhw, DHW_CAP)


def alert_level(sst: float, dhw: float) -> int:
    for min_sst, min_dhw, level in _ALERT_LEVELS:
        if sst >= min_sst or dhw >= min_dhw:
            return level
    return 0


def alert_to_risk(level: int) -> str:
    if level >= 4:
        return "severe"
    if level >= 3:
        return "high"
    if level >= 2:
        return "medium"
    return "low"


def health_index(anomaly: float, dhw: float, level: int) -> float:
    value = 80 - min(30.0, abs(anomaly) * 10) - min(20.0, dhw * 2) - level * 5
    return round(clamp(value), 1)


async def get_sst_history(lat: float, lng: float, past_days: int) -> list[float]:
    """Daily mean SST for the last *past_days* days plus today (last element)."""
    data = await fetch_json(
        OPEN_METEO_MARINE_URL,
        source="open-meteo-marine",
        params={
            "latitude": lat,
            "longitude": lng,
            "daily": "sea_surface_temperature_mean",
            "past_days": past_days,
            "forecast_days": 1,
            "timezone": "auto",
        },
    )
    temps = (data.get("daily") or {}).get("sea_surface_temperature_mean") or []
    return [float(t) for t in temps if t is not None]


def summarize(lat: float, lng: float, temps: list[float]) -> dict[str, Any]:
    """Reef health summary from a daily SST series (today last)."""
    sst = temps[-1] if temps else SST_BASELINE
    anomaly = sst - SST_BASELINE
    dhw = degree_heating_weeks(temps)
    level = alert_level(sst, dhw)
    return {
        "location": [lat, lng],
        "temperature": round(sst, 2),
        "anomaly": round(anomaly, 2),
        "hotspot": round(max(anomaly, 0.0), 2),
        "degree_heating_weeks": round(dhw, 2),
        "alert_level": level,
        "bleaching_risk": alert_to_risk(level),
        "health_index": health_index(anomaly, dhw, level),
    }


async def get_reef_health(lat: float, lng: float) -> dict[str, Any]:
    """Current reef thermal-stress summary. Raises UpstreamError."""
    temps = await get_sst_history(lat, lng, DHW_WINDOW_DAYS)
    return summarize(lat, lng, temps)


async def get_sst_trend(lat: float, lng: float, days: int = 30) -> dict[str, Any]:
    """SST trend over *days* with a baseline from the first half of the window."""
    temps = await get_sst_history(lat, lng, days)
    if not temps:
        raise UpstreamError("open-meteo-marine", "no SST data returned")

    sst = temps[-1]
    if len(temps) > 15:
        half = len(temps) // 2
        baseline = sum(temps[:half]) / half
    else:
        baseline = SST_BASELINE
    anomaly = sst - baseline
    return {
        "sst": round(sst, 2),
        "sst_anomaly": round(anomaly, 2),
        "hotspot": round(max(anomaly, 0.0), 2),
        "degree_heating_weeks": round(degree_heating_weeks(temps), 2),
        "trend_7d": temps[-7:],
        "trend_30d": temps,
        "baseline": round(baseline, 2),
    }


def _grid(bbox: tuple[float, float, float, float], step: float) -> list[tuple[float, float]]:
    min_lat, min_lng, max_lat, max_lng = bbox
    n_lat = int(round((max_lat - min_lat) / step)) + 1
    n_lng = int(round((max_lng - min_lng) / step)) + 1
    return [
        (round(min_lat + i * step, 4), round(min_lng + j * step, 4))
        for i in range(n_lat)
        for j in range(n_lng)
    ]


async def get_bleaching_alerts(
    bbox: tuple[float, float, float, float] = REEF_ALERT_BBOX,
    step: float = REEF_ALERT_GRID_STEP,
) -> list[dict[str, Any]]:
    """Grid points inside *bbox* at alert level 2 (watch) or above.

    Points whose fetch fails are skipped.
    """
    semaphore = asyncio.Semaphore(ALERT_GRID_CONCURRENCY)

    async def _sample_point(lat: float, lng: float) -> dict[str, Any]:
        async with semaphore:
            return await get_reef_health(lat, lng)

    points = _grid(bbox, step)
    results = await asyncio.gather(*(_sample_point(lat, lng) for lat, lng in points), return_exceptions=True)
    alerts: list[dict[str, Any]] = []
    for result in results:
        if isinstance(result, UpstreamError):
            continue
        if isinstance(result, BaseException):
            raise result
        if result["alert_level"] >= 2:
            alerts.append(result)
    return alerts
