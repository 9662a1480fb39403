"""
climaguard.open_meteo — Open-Meteo forecast and marine clients.

Free, keyless APIs. Every function returns plain dicts (or scorer
models) built from the first elements of Open-Meteo's hourly/daily
arrays; index 0 is the current hour or today.

Failure policy:
    weather, precipitation, pressure/wind, rainfall  → raise UpstreamError
    marine data                                      → raise UpstreamError
    storm surge                                      → never raises; low fallback
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from climaguard.constants import (
    DEFAULT_PRESSURE_HPA,
    DEFAULT_SOIL_MOISTURE,
    MARINE_DEFAULTS,
    MS_TO_KMH,
    OPEN_METEO_FORECAST_URL,
    OPEN_METEO_MARINE_URL,
)
from climaguard.fetching import UpstreamError, fetch_json
from climaguard.models import FloodRisk, StormSurgeRisk
from climaguard.risk import flood_risk_from_forecast, storm_surge_fallback, storm_surge_risk

logger = logging.getLogger("climaguard.open_meteo")

RAINFALL_GRID_STEP = 0.1


def _series(block: Optional[dict[str, Any]], name: str, default: float = 0.0) -> list[float]:
    """Named array from an hourly/daily block with nulls replaced."""
    values = (block.get(name) if isinstance(block, dict) else None) or []
    return [default if v is None else float(v) for v in values]


def _first(values: list[float], default: float) -> float:
    return values[0] if values else default


async def fetch_forecast(
    lat: float,
    lng: float,
    *,
    hourly: Optional[list[str]] = None,
    daily: Optional[list[str]] = None,
    forecast_days: int = 3,
    timezone: str = "UTC",
    **extra: Any,
) -> dict[str, Any]:
    params: dict[str, Any] = {
        "latitude": lat,
        "longitude": lng,
        "timezone": timezone,
        "forecast_days": forecast_days,
        **extra,
    }
    if hourly:
        params["hourly"] = ",".join(hourly)
    if daily:
        params["daily"] = ",".join(daily)
    return await fetch_json(OPEN_METEO_FORECAST_URL, source="open-meteo", params=params)


# ---------------------------------------------------------------------------
# Weather
# ---------------------------------------------------------------------------

async def get_current_weather(lat: float, lng: float, forecast_days: int = 7) -> dict[str, Any]:
    """Current conditions plus a daily outlook (seven days by default).

    Wind speeds are km/h (Open-Meteo's default unit).
    """
    data = await fetch_forecast(
        lat, lng,
        hourly=[
            "temperature_2m", "relativehumidity_2m", "pressure_msl",
            "windspeed_10m", "windgusts_10m", "precipitation",
        ],
        daily=["temperature_2m_max", "temperature_2m_min", "precipitation_sum"],
        forecast_days=forecast_days,
        timezone="auto",
    )
    hourly = data.get("hourly")
    daily = data.get("daily") or {}
    dates = daily.get("time") or []
    t_max = _series(daily, "temperature_2m_max")
    t_min = _series(daily, "temperature_2m_min")
    p_sum = _series(daily, "precipitation_sum")

    return {
        "location": [lat, lng],
        "temperature": _first(_series(hourly, "temperature_2m"), 0.0),
        "humidity": _first(_series(hourly, "relativehumidity_2m"), 0.0),
        "pressure": _first(_series(hourly, "pressure_msl", DEFAULT_PRESSURE_HPA), DEFAULT_PRESSURE_HPA),
        "wind_speed": _first(_series(hourly, "windspeed_10m"), 0.0),
        "wind_gusts": _first(_series(hourly, "windgusts_10m"), 0.0),
        "precipitation": _first(_series(hourly, "precipitation"), 0.0),
        "daily": [
            {
                "date": date,
                "temp_max": t_max[i] if i < len(t_max) else 0.0,
                "temp_min": t_min[i] if i < len(t_min) else 0.0,
                "precipitation_sum": p_sum[i] if i < len(p_sum) else 0.0,
            }
            for i, date in enumerate(dates)
        ],
    }


async def get_daily_forecast(lat: float, lng: float, days: int = 7) -> list[dict[str, Any]]:
    weather = await get_current_weather(lat, lng, forecast_days=days)
    return weather["daily"][:days]


# ---------------------------------------------------------------------------
# Precipitation, pressure, rainfall
# ---------------------------------------------------------------------------

async def get_precipitation_forecast(lat: float, lng: float, forecast_days: int = 3) -> dict[str, list[float]]:
    """Hourly precipitation (mm) and 0-10 cm soil moisture (m³/m³)."""
    data = await fetch_forecast(
        lat, lng,
        hourly=["precipitation", "soil_moisture_0_to_10cm"],
        forecast_days=forecast_days,
    )
    hourly = data.get("hourly")
    if not hourly or "precipitation" not in hourly:
        raise UpstreamError("open-meteo", "hourly precipitation missing from response")
    return {
        "precipitation": _series(hourly, "precipitation"),
        "soil_moisture": _series(hourly, "soil_moisture_0_to_10cm", DEFAULT_SOIL_MOISTURE),
    }


async def get_pressure_wind(lat: float, lng: float) -> dict[str, list[float]]:
    """Hourly sea-level pressure (hPa) and 10 m wind (m/s) for three days."""
    data = await fetch_forecast(
        lat, lng,
        hourly=["pressure_msl", "windspeed_10m"],
        windspeed_unit="ms",
    )
    hourly = data.get("hourly")
    if not hourly or not hourly.get("pressure_msl") or not hourly.get("windspeed_10m"):
        raise UpstreamError("open-meteo", "hourly pressure/wind missing from response")
    return {
        "pressure": _series(hourly, "pressure_msl", DEFAULT_PRESSURE_HPA),
        "wind": _series(hourly, "windspeed_10m"),
    }


async def get_rainfall_grid(lat: float, lng: float) -> list[dict[str, float]]:
    """3×3 grid of points around (lat, lng) for every wet hour today."""
    data = await fetch_forecast(lat, lng, hourly=["precipitation"], forecast_days=1)
    hourly = data.get("hourly")
    if not hourly or "precipitation" not in hourly:
        raise UpstreamError("open-meteo", "hourly precipitation missing from response")

    points: list[dict[str, float]] = []
    for hour, value in enumerate(_series(hourly, "precipitation")[:24]):
        if value <= 0:
            continue
        for dx in (-1, 0, 1):
            for dy in (-1, 0, 1):
                points.append({
                    "hour": hour,
                    "lat": round(lat + dx * RAINFALL_GRID_STEP, 4),
                    "lng": round(lng + dy * RAINFALL_GRID_STEP, 4),
                    "value": value,
                })
    return points


async def get_flood_risk(lat: float, lng: float) -> FloodRisk:
    series = await get_precipitation_forecast(lat, lng)
    return flood_risk_from_forecast(series["precipitation"], series["soil_moisture"], DEFAULT_SOIL_MOISTURE)


# ---------------------------------------------------------------------------
# Marine
# ---------------------------------------------------------------------------

async def get_marine_data(lat: float, lng: float, days: int = 7) -> dict[str, Any]:
    """Today's marine conditions plus a daily series.

    Missing values fall back to MARINE_DEFAULTS; transport failures raise.
    """
    data = await fetch_json(
        OPEN_METEO_MARINE_URL,
        source="open-meteo-marine",
        params={
            "latitude": lat,
            "longitude": lng,
            "timezone": "auto",
            "forecast_days": days,
            "daily": ",".join([
                "sea_surface_temperature_mean", "wave_height_max", "wind_speed_max",
                "swell_significant_height", "wind_wave_height",
            ]),
        },
    )
    daily = data.get("daily") or {}
    sst = _series(daily, "sea_surface_temperature_mean", MARINE_DEFAULTS["sea_surface_temperature"])
    waves = _series(daily, "wave_height_max", MARINE_DEFAULTS["wave_height"])
    wind = _series(daily, "wind_speed_max", MARINE_DEFAULTS["wind_speed"])
    swell = _series(daily, "swell_significant_height", MARINE_DEFAULTS["swell_height"])
    wind_waves = _series(daily, "wind_wave_height", MARINE_DEFAULTS["wind_wave_height"])

    return {
        "location": [lat, lng],
        "sea_surface_temperature": _first(sst, MARINE_DEFAULTS["sea_surface_temperature"]),
        "wave_height_max": _first(waves, MARINE_DEFAULTS["wave_height"]),
        "wind_speed_max": _first(wind, MARINE_DEFAULTS["wind_speed"]),
        "swell_significant_height": _first(swell, MARINE_DEFAULTS["swell_height"]),
        "wind_wave_height": _first(wind_waves, MARINE_DEFAULTS["wind_wave_height"]),
        "daily": [
            {
                "date": date,
                "sea_surface_temperature": sst[i] if i < len(sst) else MARINE_DEFAULTS["sea_surface_temperature"],
                "wave_height_max": waves[i] if i < len(waves) else MARINE_DEFAULTS["wave_height"],
                "wind_speed_max": wind[i] if i < len(wind) else MARINE_DEFAULTS["wind_speed"],
            }
            for i, date in enumerate(daily.get("time") or [])
        ],
    }


async def get_sst_trend(lat: float, lng: float, days: int = 7) -> list[float]:
    marine = await get_marine_data(lat, lng, days)
    return [d["sea_surface_temperature"] for d in marine["daily"]]


async def get_storm_surge_risk(lat: float, lng: float) -> StormSurgeRisk:
    """Storm-surge risk; any failure yields the low/zero fallback."""
    try:
        data = await fetch_json(
            OPEN_METEO_MARINE_URL,
            source="open-meteo-marine",
            params={
                "latitude": lat,
                "longitude": lng,
                "timezone": "UTC",
                "forecast_days": 3,
                "daily": "wave_height_max,swell_significant_height",
                "hourly": "wind_speed_10m,swell_wave_height",
                "wind_speed_unit": "ms",
            },
        )
        daily = data.get("daily") or {}
        hourly = data.get("hourly") or {}
        wave = _first(_series(daily, "wave_height_max"), 0.0)
        wind_ms = max(_series(hourly, "wind_speed_10m")[:24], default=0.0)
        swell_daily = _series(daily, "swell_significant_height")
        if swell_daily:
            swell = swell_daily[0]
        else:
            hourly_swell = _series(hourly, "swell_wave_height")[:24]
            swell = sum(hourly_swell) / len(hourly_swell) if hourly_swell else 0.0
        return storm_surge_risk(wave, wind_ms * MS_TO_KMH, swell)
    except (UpstreamError, TypeError, ValueError) as exc:
        logger.warning(json.dumps({
            "event": "upstream_fallback",
            "source": "storm-surge",
            "error": str(exc),
        }))
        return storm_surge_fallback()
