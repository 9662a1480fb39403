#!/usr/bin/env python3
"""
climaguard_api.py — ClimaGuard API Server (v1.0)

Climate-risk JSON API for Mauritius: cyclones, floods and ocean health.
Every data route fetches from free third-party providers (Open-Meteo,
NOAA NHC, NASA GIBS, Planetary Computer, Global Fishing Watch,
OpenWeather), scores the observations with deterministic heuristics
and returns a JSON envelope with an ISO-8601 UTC timestamp.

Endpoints:
    GET  /                      → API metadata and route index
    GET  /health                → Liveness check
    GET  /ready                 → Readiness diagnostics
    GET  /weather/current       → Current conditions + daily outlook
    GET  /weather/daily         → Daily forecast (days 1..16)
    GET  /rainfall/current      → Rainfall heat-map points
    GET  /flood                 → Flood risk service
    GET  /floodsense            → Precipitation sums + heuristic prediction
    GET  /cyclone               → Observations, wind radii, forecast track
    GET  /cyclone/current       → Active storm nearest Mauritius
    GET  /storm-surge           → Storm-surge risk (never fails)
    GET  /alerts/active         → Weather and cyclone-season alerts
    GET  /bleaching             → Bleaching ladder + SST trend
    GET  /reef-health           → Reef summary, optional prediction
    GET  /coral-reef-health     → Reef summary + bleaching alert grid
    GET  /ocean-health          → Composite ocean-health metrics
    GET  /oceanhealth           → Regional detailed assessment
    GET  /ocean-health/sdg14    → SDG 14 assessment
    GET  /ocean-history         → Daily SST history
    GET  /biodiversity          → Biodiversity index + habitat quality
    GET  /fishing-activity      → Global Fishing Watch summary
    GET  /pollution/events      → Stored pollution events
    POST /pollution/events      → Create a pollution event
    POST /pollution/detect      → Indicator-based pollution detection
    GET  /satellite/tiles       → NASA GIBS tile URLs

Error contract:
    400 → INVALID_REQUEST (unparseable or invalid body, unknown region)
    500 → UPSTREAM_FETCH_FAILED (provider unreachable, timeout, non-2xx)
    500 → <ROUTE>_FAILED (unexpected failure inside a route)
    500 → {"detail": "Internal server error."} (anything else)

Environment variables:
    ENV                   — "dev" or "prod" (default: "prod")
    ALLOWED_ORIGINS       — Comma-separated extra CORS origins
    ENABLE_DOCS           — "1" to force-enable /docs in prod
    REDIS_URL             — Optional Redis URL for distributed rate limiting
    CACHE_TTL_SECONDS     — Upstream response cache lifetime (default 300)
    MAX_CACHED_RESPONSES  — Upstream response cache bound (default 256)
    GFW_API_KEY           — Global Fishing Watch token (optional)
    OPENWEATHER_API_KEY   — OpenWeather token (optional)

Requires: fastapi, uvicorn, gunicorn, slowapi, httpx
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import os
import sys
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any, Optional

try:
    from fastapi import FastAPI, HTTPException, Query, Request
    from fastapi.middleware.cors import CORSMiddleware
    from fastapi.responses import JSONResponse
    from pydantic import ValidationError
    from starlette.middleware.gzip import GZipMiddleware
except ImportError:
    print(
        "FATAL: FastAPI not installed. Install with:\n"
        "  pip install -e .\n",
        file=sys.stderr,
    )
    sys.exit(1)

try:
    from slowapi import Limiter
    from slowapi.errors import RateLimitExceeded
    from slowapi.util import get_remote_address
except ImportError:
    print(
        "FATAL: slowapi not installed. Install with:\n"
        "  pip install -e .\n",
        file=sys.stderr,
    )
    sys.exit(1)

from climaguard import (  # noqa: I001
    fishing_watch,
    gibs,
    noaa,
    open_meteo,
    reef_watch,
    sentinel2,
    weather_alerts,
)
from climaguard.cache import response_cache
from climaguard.constants import (
    API_VERSION,
    DEFAULT_DISSOLVED_OXYGEN,
    DEFAULT_PH,
    DEFAULT_SALINITY,
    KMH_TO_KNOTS,
    MAURITIUS_LAT,
    MAURITIUS_LNG,
    MAURITIUS_REGIONS,
    MS_TO_KMH,
    REEF_DEFAULT_LAT,
    SST_BASELINE,
)
from climaguard.cyclone_track import NO_ACTIVE_CYCLONE, forecast_track, wind_radii
from climaguard.fetching import UpstreamError
from climaguard.models import (
    BiodiversitySummary,
    OceanHealthMetrics,
    PollutionDetectRequest,
    PollutionEventCreate,
    PollutionSummary,
    ReefHealthSummary,
    WaterQuality,
)
from climaguard.ocean_health import (
    assess_region,
    biodiversity_from_imagery,
    calculate_ocean_health_index,
    habitat_quality,
    region_characteristics,
    simple_pollution_health,
    species_estimates,
    validate_ocean_health_metrics,
    water_quality_score,
)
from climaguard.pollution_store import DEFAULT_RADIUS_DEG, pollution_store
from climaguard.predictors import detect_pollution, predict_bleaching, to_pollution_events
from climaguard.risk import bleaching_risk, cyclone_risk_from_observations, flood_risk_from_precip, round_half_up
from climaguard.sdg14 import action_recommendations, assess_sdg14
from climaguard.security import (  # noqa: I001
    ETagMiddleware,
    RequestIdMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
)


# ---------------------------------------------------------------------------
# Logging configuration: structured JSON to stdout
# ---------------------------------------------------------------------------

_log_level = logging.DEBUG if os.getenv("ENV", "prod") == "dev" else logging.INFO
logging.basicConfig(
    level=_log_level,
    format="%(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger("climaguard.api")


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

ENV = os.getenv("ENV", "prod").lower().strip()
ALLOWED_ORIGINS_RAW = os.getenv("ALLOWED_ORIGINS", "").strip()
ENABLE_DOCS = os.getenv("ENABLE_DOCS", "").strip() == "1"
REDIS_URL = os.getenv("REDIS_URL", "").strip() or None


# ---------------------------------------------------------------------------
# Query bounds
# ---------------------------------------------------------------------------

MAX_DAILY_FORECAST_DAYS = 16
MAX_HISTORY_DAYS = 30
MAX_MARINE_FORECAST_DAYS = 16
MAX_EVENT_RADIUS_DEG = 10.0
PREDICTION_HISTORY_DAYS = 30


def _clamp_int(value: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, value))


def _clamp_lat_lng(lat: float, lng: float) -> tuple[float, float]:
    return max(-90.0, min(90.0, lat)), max(-180.0, min(180.0, lng))


def _now() -> str:
    return datetime.now(UTC).isoformat()


# ---------------------------------------------------------------------------
# Rate limiter
# ---------------------------------------------------------------------------

_rate_storage: str | None = REDIS_URL if REDIS_URL else "memory://"

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["120/minute"],
    storage_uri=_rate_storage,
    strategy="fixed-window",
)


# ---------------------------------------------------------------------------
# App construction
# ---------------------------------------------------------------------------

def _build_docs_kwargs() -> dict[str, Any]:
    """Determine docs/redoc/openapi URL availability."""
    if ENV == "prod" and not ENABLE_DOCS:
        return {"docs_url": None, "redoc_url": None, "openapi_url": None}
    return {"docs_url": "/docs", "redoc_url": "/redoc"}


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup/shutdown lifecycle. No data to load; providers are lazy."""
    logger.info(json.dumps({
        "event": "startup",
        "env": ENV,
        "version": API_VERSION,
        "cors_origins": len(_CORS_ORIGINS),
        "docs_enabled": ENABLE_DOCS or ENV == "dev",
        "rate_limit_backend": "redis" if REDIS_URL else "memory",
        "response_cache": response_cache.stats(),
        "providers": _provider_keys(),
    }))

    yield

    response_cache.clear()
    logger.info(json.dumps({"event": "shutdown"}))


app = FastAPI(
    title="ClimaGuard API",
    description="Climate-risk API for Mauritius — cyclones, floods and ocean health",
    version=API_VERSION,
    lifespan=_lifespan,
    **_build_docs_kwargs(),
)

app.state.limiter = limiter


# ---------------------------------------------------------------------------
# CORS: strict allow-list, no wildcard origins
#
# The dashboard dev server is allowed by default; deployed front-ends
# are added through ALLOWED_ORIGINS at deploy time.
# Credentials disabled. GET, POST and preflight only.
# ---------------------------------------------------------------------------

DEV_ORIGINS: list[str] = [
    "http://localhost:3000",
]

_CORS_ORIGINS: list[str] = list(DEV_ORIGINS)

if ALLOWED_ORIGINS_RAW:
    for _o in ALLOWED_ORIGINS_RAW.split(","):
        _o = _o.strip()
        if _o and _o not in _CORS_ORIGINS:
            _CORS_ORIGINS.append(_o)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "ETag"],
    max_age=3600,
)

logger.info("CORS configured for: %s", _CORS_ORIGINS)


# ---------------------------------------------------------------------------
# Security & performance middleware (last registered = outermost)
# Execution order: GZip → RequestId → RequestSizeLimit → ETag → SecurityHeaders → CORS
# ---------------------------------------------------------------------------

app.add_middleware(SecurityHeadersMiddleware, enable_hsts=(ENV == "prod"))
app.add_middleware(ETagMiddleware)
app.add_middleware(RequestSizeLimitMiddleware)
app.add_middleware(RequestIdMiddleware)
app.add_middleware(GZipMiddleware, minimum_size=500)


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

@app.exception_handler(RateLimitExceeded)
async def _rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={"detail": "Rate limit exceeded. Try again later."},
        headers={"Retry-After": "60"},
    )


@app.exception_handler(UpstreamError)
async def _upstream_error_handler(request: Request, exc: UpstreamError) -> JSONResponse:
    logger.error(json.dumps({
        "event": "upstream_failed",
        "source": exc.source,
        "error": exc.message,
        "status_code": exc.status_code,
        "request_id": getattr(request.state, "request_id", "unknown"),
        "path": request.url.path,
    }))
    return JSONResponse(
        status_code=500,
        content={
            "error": "UPSTREAM_FETCH_FAILED",
            "message": f"Data provider '{exc.source}' is unavailable: {exc.message}",
        },
    )


@app.exception_handler(Exception)
async def _global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")
    logger.error(json.dumps({
        "event": "unhandled_exception",
        "exception_type": type(exc).__name__,
        "request_id": request_id,
        "path": request.url.path,
    }))
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error."},
    )


# ---------------------------------------------------------------------------
# Route helpers
# ---------------------------------------------------------------------------

def route_errors(code: str, message: str) -> Callable:
    """Turn an unexpected failure inside a route into 500 {error, message}.

    UpstreamError and HTTPException pass through to their own handlers.
    """
    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except (UpstreamError, HTTPException):
                raise
            except Exception as exc:
                request = kwargs.get("request")
                logger.error(json.dumps({
                    "event": "route_failed",
                    "error_code": code,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                    "path": request.url.path if request else None,
                    "request_id": getattr(request.state, "request_id", "unknown") if request else "unknown",
                }))
                return JSONResponse(status_code=500, content={"error": code, "message": message})
        return wrapper
    return decorator


def _settled(result: Any, source: str) -> Any:
    """Value of one gather(..., return_exceptions=True) branch.

    An UpstreamError becomes None (logged); anything else is re-raised.
    """
    if isinstance(result, UpstreamError):
        logger.warning(json.dumps({
            "event": "upstream_fallback",
            "source": source,
            "error": result.message,
        }))
        return None
    if isinstance(result, BaseException):
        raise result
    return result


def _required(result: Any) -> Any:
    if isinstance(result, BaseException):
        raise result
    return result


def _invalid_request(message: str, details: Any) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "INVALID_REQUEST", "message": message, "details": details},
    )


async def _parse_body(request: Request, model: type) -> Any:
    """Parse a JSON body into *model*; a JSONResponse(400) on failure."""
    try:
        raw_body = await request.json()
    except ValueError:
        return _invalid_request("Request body is not valid JSON.", {"parse_error": "Could not decode JSON."})

    if not isinstance(raw_body, dict):
        return _invalid_request("Request body must be a JSON object.", {})

    try:
        return model(**raw_body)
    except ValidationError as exc:
        detail_items = [
            {
                "field": ".".join(str(p) for p in e.get("loc", [])),
                "message": e.get("msg", "Validation failed"),
            }
            for e in exc.errors()
        ]
        return _invalid_request(
            "Request validation failed.",
            detail_items[0] if len(detail_items) == 1 else detail_items,
        )


def _provider_keys() -> dict[str, bool]:
    return {
        "global_fishing_watch": bool(os.getenv("GFW_API_KEY", "").strip()),
        "openweather": bool(os.getenv("OPENWEATHER_API_KEY", "").strip()),
    }


# ---------------------------------------------------------------------------
# Service endpoints
# ---------------------------------------------------------------------------

_ROUTES: list[dict[str, str]] = [
    {"method": "GET", "path": "/weather/current", "description": "Current conditions"},
    {"method": "GET", "path": "/weather/daily", "description": "Daily forecast (days=1..16)"},
    {"method": "GET", "path": "/rainfall/current", "description": "Rainfall heat-map points"},
    {"method": "GET", "path": "/flood", "description": "Flood risk service"},
    {"method": "GET", "path": "/floodsense", "description": "Flood precipitation sums and prediction"},
    {"method": "GET", "path": "/cyclone", "description": "Cyclone observations, wind radii, forecast track"},
    {"method": "GET", "path": "/cyclone/current", "description": "Active storm nearest Mauritius"},
    {"method": "GET", "path": "/storm-surge", "description": "Storm-surge risk"},
    {"method": "GET", "path": "/alerts/active", "description": "Weather and cyclone-season alerts"},
    {"method": "GET", "path": "/bleaching", "description": "Coral bleaching risk and SST trend"},
    {"method": "GET", "path": "/reef-health", "description": "Reef health (predictions=true for a forecast)"},
    {"method": "GET", "path": "/coral-reef-health", "description": "Reef health and bleaching alert grid"},
    {"method": "GET", "path": "/ocean-health", "description": "Composite ocean-health metrics"},
    {"method": "GET", "path": "/oceanhealth", "description": "Regional ocean-health assessment"},
    {"method": "GET", "path": "/ocean-health/sdg14", "description": "SDG 14 assessment"},
    {"method": "GET", "path": "/ocean-history", "description": "Daily SST history"},
    {"method": "GET", "path": "/biodiversity", "description": "Biodiversity index and habitat quality"},
    {"method": "GET", "path": "/fishing-activity", "description": "Fishing activity summary"},
    {"method": "GET", "path": "/pollution/events", "description": "Pollution events"},
    {"method": "POST", "path": "/pollution/events", "description": "Report a pollution event"},
    {"method": "POST", "path": "/pollution/detect", "description": "Pollution detection at a location"},
    {"method": "GET", "path": "/satellite/tiles", "description": "NASA GIBS tile URLs"},
]


@app.get("/")
@limiter.limit("60/minute")
async def root(request: Request) -> dict:
    """API metadata."""
    return {
        "name": "ClimaGuard API",
        "version": API_VERSION,
        "description": "Climate-risk API for Mauritius: cyclones, floods and ocean health.",
        "default_location": [MAURITIUS_LAT, MAURITIUS_LNG],
        "models": "heuristic",
        "data_sources": [
            "Open-Meteo", "Open-Meteo Marine", "NOAA NHC", "NASA GIBS",
            "Microsoft Planetary Computer (Sentinel-2)", "Global Fishing Watch", "OpenWeather",
        ],
        "endpoints": _ROUTES,
    }


@app.get("/health", include_in_schema=False)
async def health(request: Request) -> JSONResponse:
    """Liveness check — ALWAYS 200, no upstream calls, no state reads."""
    return JSONResponse(
        status_code=200,
        content={"status": "ok", "version": API_VERSION},
    )


@app.get("/ready")
@limiter.limit("60/minute")
async def ready(request: Request) -> JSONResponse:
    """Readiness check — always 200; diagnostics in the body.

    The service holds no required data, so it is ready as soon as it
    serves. Optional provider keys and cache state are reported.
    """
    body = {
        "ready": True,
        "status": "healthy",
        "version": API_VERSION,
        "providers_configured": _provider_keys(),
        "response_cache": response_cache.stats(),
        "pollution_events": len(pollution_store),
        "timestamp": _now(),
    }
    return JSONResponse(status_code=200, content=body)


# ---------------------------------------------------------------------------
# Weather and rainfall
# ---------------------------------------------------------------------------

@app.get("/weather/current")
@limiter.limit("60/minute")
@route_errors("WEATHER_FETCH_FAILED", "Failed to fetch real-time weather data")
async def weather_current(request: Request, lat: float = MAURITIUS_LAT, lng: float = MAURITIUS_LNG) -> dict:
    lat, lng = _clamp_lat_lng(lat, lng)
    weather = await open_meteo.get_current_weather(lat, lng)
    return {"weather": weather, "timestamp": _now(), "data_source": "real-time"}


@app.get("/weather/daily")
@limiter.limit("60/minute")
@route_errors("WEATHER_FETCH_FAILED", "Failed to fetch daily forecast")
async def weather_daily(
    request: Request,
    lat: float = MAURITIUS_LAT,
    lng: float = MAURITIUS_LNG,
    days: int = 7,
) -> dict:
    lat, lng = _clamp_lat_lng(lat, lng)
    days = _clamp_int(days, 1, MAX_DAILY_FORECAST_DAYS)
    forecast = await open_meteo.get_daily_forecast(lat, lng, days)
    return {"location": [lat, lng], "days": days, "forecast": forecast, "timestamp": _now()}


@app.get("/rainfall/current")
@limiter.limit("60/minute")
@route_errors("RAINFALL_FETCH_FAILED", "Failed to fetch rainfall data")
async def rainfall_current(request: Request, lat: float = MAURITIUS_LAT, lng: float = MAURITIUS_LNG) -> dict:
    lat, lng = _clamp_lat_lng(lat, lng)
    points = await open_meteo.get_rainfall_grid(lat, lng)
    return {"location": [lat, lng], "points": points, "count": len(points), "timestamp": _now()}


# ---------------------------------------------------------------------------
# Flood
# ---------------------------------------------------------------------------

@app.get("/flood")
@limiter.limit("60/minute")
@route_errors("FLOOD_FETCH_FAILED", "Failed to fetch flood risk")
async def flood(request: Request, lat: float = MAURITIUS_LAT, lng: float = MAURITIUS_LNG) -> dict:
    lat, lng = _clamp_lat_lng(lat, lng)
    risk = await open_meteo.get_flood_risk(lat, lng)
    return {"location": [lat, lng], "flood_risk": risk.model_dump(), "timestamp": _now()}


@app.get("/floodsense")
@limiter.limit("60/minute")
@route_errors("FLOOD_PREDICTION_FAILED", "Failed to fetch flood prediction")
async def floodsense(request: Request, lat: float = MAURITIUS_LAT, lng: float = MAURITIUS_LNG) -> dict:
    """24 h / 72 h precipitation sums and the heuristic flood prediction."""
    lat, lng = _clamp_lat_lng(lat, lng)
    series = await open_meteo.get_precipitation_forecast(lat, lng, forecast_days=4)
    precip = series["precipitation"]
    soil = series["soil_moisture"][0] if series["soil_moisture"] else None

    p24 = sum(precip[:24])
    p72 = sum(precip[:72])
    prediction = flood_risk_from_precip(p24, p72, soil)

    return {
        "location": [lat, lng],
        "rainfall": {
            "precip_24h": round(p24, 2),
            "precip_72h": round(p72, 2),
            "forecast_24h": round(sum(precip[24:48]), 2),
            "forecast_72h": round(sum(precip[24:96]), 2),
            "soil_moisture": soil,
            "hourly_precip_24h": precip[:24],
            "hourly_precip_72h": precip[:72],
            "current_intensity": precip[0] if precip else 0.0,
        },
        "prediction": {"model": "heuristic", "result": prediction.model_dump()},
        "timestamp": _now(),
        "data_source": "real-time",
    }


# ---------------------------------------------------------------------------
# Cyclone and storm surge
# ---------------------------------------------------------------------------

@app.get("/cyclone")
@limiter.limit("60/minute")
@route_errors("CYCLONE_FETCH_FAILED", "Failed to fetch cyclone prediction")
async def cyclone(request: Request, lat: float = MAURITIUS_LAT, lng: float = MAURITIUS_LNG) -> dict:
    """Cyclone risk from the next 24 h of pressure and wind."""
    lat, lng = _clamp_lat_lng(lat, lng)
    series = await open_meteo.get_pressure_wind(lat, lng)
    pressures = series["pressure"][:24]
    winds = series["wind"][:24]

    min_pressure = min(pressures)
    max_wind_kmh = max(winds) * MS_TO_KMH
    max_wind_knots = max_wind_kmh * KMH_TO_KNOTS
    track, widths = forecast_track(lat, lng, pressures, max_wind_knots)

    return {
        "location": [lat, lng],
        "observations": {
            "min_pressure": min_pressure,
            "max_wind_speed": round(max_wind_kmh, 2),
            "max_wind_knots": round(max_wind_knots, 2),
            "pressure_data": pressures[:6],
            "wind_data": winds[:6],
        },
        "wind_radii": wind_radii(max_wind_knots),
        "forecast_track": track,
        "forecast_widths": widths,
        "prediction": cyclone_risk_from_observations(min_pressure, max_wind_kmh).model_dump(),
        "timestamp": _now(),
        "data_source": "real-time",
    }


@app.get("/cyclone/current")
@limiter.limit("60/minute")
@route_errors("CYCLONE_FETCH_FAILED", "Failed to fetch cyclone data")
async def cyclone_current(request: Request) -> dict:
    active = await noaa.get_current_cyclone()
    if active is None:
        return {
            "active_cyclone": dict(NO_ACTIVE_CYCLONE),
            "last_updated": _now(),
            "source": "Real-time monitoring",
        }
    return {
        "active_cyclone": active,
        "last_updated": _now(),
        "source": "NOAA/NHC Real-time Data",
    }


@app.get("/storm-surge")
@limiter.limit("60/minute")
async def storm_surge(request: Request, lat: float = MAURITIUS_LAT, lng: float = MAURITIUS_LNG) -> dict:
    """Storm-surge risk. Degrades to the low fallback; never a 500."""
    lat, lng = _clamp_lat_lng(lat, lng)
    surge = await open_meteo.get_storm_surge_risk(lat, lng)
    real = surge.wave_height > 0 or surge.wind_speed > 0
    return {
        "location": [lat, lng],
        "storm_surge": surge.model_dump(),
        "timestamp": _now(),
        "data_source": "real-time" if real else "fallback",
    }


@app.get("/alerts/active")
@limiter.limit("60/minute")
@route_errors("ALERTS_FETCH_FAILED", "Failed to fetch alert data")
async def alerts_active(request: Request) -> dict:
    alerts = await weather_alerts.get_active_alerts()
    return {
        "alerts": alerts,
        "count": len(alerts),
        "last_updated": _now(),
        "sources": ["OpenWeather", "ClimaGuard Analysis", "ClimaGuard Seasonal Advisory"],
    }


# ---------------------------------------------------------------------------
# Coral reefs
# ---------------------------------------------------------------------------

@app.get("/bleaching")
@limiter.limit("60/minute")
@route_errors("BLEACHING_FETCH_FAILED", "Failed to fetch bleaching risk data")
async def bleaching(request: Request, lat: float = REEF_DEFAULT_LAT, lng: float = MAURITIUS_LNG) -> dict:
    """Bleaching ladder over reef thermal stress, with a 7-day SST trend."""
    lat, lng = _clamp_lat_lng(lat, lng)
    reef_result, trend_result = await asyncio.gather(
        reef_watch.get_reef_health(lat, lng),
        open_meteo.get_sst_trend(lat, lng, 7),
        return_exceptions=True,
    )
    reef = _required(reef_result)
    trend = _settled(trend_result, "sst-trend")

    sst = reef["temperature"]
    risk = bleaching_risk(sst, reef["degree_heating_weeks"], reef["alert_level"])
    trend_7d = trend[-7:] if trend and len(trend) >= 7 else [sst] * 7
    half = len(trend_7d) // 2
    baseline = sum(trend_7d[:half]) / half if half else SST_BASELINE

    return {
        "bleaching_risk": {
            "location": [lat, lng],
            "sst": sst,
            "sst_anomaly": reef["anomaly"],
            "degree_heating_weeks": reef["degree_heating_weeks"],
            "hotspot": reef["hotspot"],
            "alert_level": reef["alert_level"],
            **risk.model_dump(),
        },
        "sst_trend": {
            "current": sst,
            "anomaly": reef["anomaly"],
            "trend_7d": trend_7d,
            "baseline": round(baseline, 2),
        },
        "timestamp": _now(),
    }


@app.get("/reef-health")
@limiter.limit("60/minute")
@route_errors("REEF_FETCH_FAILED", "Failed to fetch reef health data")
async def reef_health(
    request: Request,
    lat: float = REEF_DEFAULT_LAT,
    lng: float = MAURITIUS_LNG,
    predictions: bool = False,
) -> dict:
    """Reef summary; predictions=true adds the statistical bleaching forecast."""
    lat, lng = _clamp_lat_lng(lat, lng)
    temps = await reef_watch.get_sst_history(lat, lng, reef_watch.DHW_WINDOW_DAYS)
    summary = reef_watch.summarize(lat, lng, temps)

    reef = {
        "id": f"reef-{lat}-{lng}",
        "name": f"Reef at {lat:.2f}, {lng:.2f}",
        "ph": DEFAULT_PH,
        **summary,
    }
    prediction = None
    if predictions:
        history = temps[-PREDICTION_HISTORY_DAYS:]
        prediction = predict_bleaching(summary["temperature"], DEFAULT_PH, history).model_dump()

    return {"reef": reef, "prediction": prediction, "timestamp": _now()}


@app.get("/coral-reef-health")
@limiter.limit("30/minute")
@route_errors("REEF_FETCH_FAILED", "Failed to fetch coral reef health data")
async def coral_reef_health(
    request: Request,
    lat: float = REEF_DEFAULT_LAT,
    lng: float = MAURITIUS_LNG,
    alerts: bool = True,
) -> dict:
    """Reef summary at a point plus the island-wide bleaching alert grid."""
    lat, lng = _clamp_lat_lng(lat, lng)
    if alerts:
        reef, grid = await asyncio.gather(
            reef_watch.get_reef_health(lat, lng),
            reef_watch.get_bleaching_alerts(),
            return_exceptions=True,
        )
        reef = _required(reef)
        grid = _required(grid)
    else:
        reef = await reef_watch.get_reef_health(lat, lng)
        grid = []

    return {
        "reef": reef,
        "bleaching_risk": bleaching_risk(
            reef["temperature"], reef["degree_heating_weeks"], reef["alert_level"],
        ).model_dump(),
        "alerts": grid,
        "alert_count": len(grid),
        "timestamp": _now(),
    }


# ---------------------------------------------------------------------------
# Ocean health
# ---------------------------------------------------------------------------

@app.get("/ocean-health")
@limiter.limit("60/minute")
@route_errors("OCEAN_HEALTH_FETCH_FAILED", "Failed to fetch real-time ocean health data")
async def ocean_health(request: Request, lat: float = REEF_DEFAULT_LAT, lng: float = MAURITIUS_LNG) -> dict:
    """Composite metrics from reef stress, marine SST and water clarity."""
    lat, lng = _clamp_lat_lng(lat, lng)
    results = await asyncio.gather(
        reef_watch.get_reef_health(lat, lng),
        open_meteo.get_marine_data(lat, lng),
        gibs.get_turbidity_data(lat, lng),
        return_exceptions=True,
    )
    reef, marine, turbidity = (_required(r) for r in results)

    sst = marine["sea_surface_temperature"]
    wq_score = water_quality_score(DEFAULT_PH, sst, DEFAULT_SALINITY, DEFAULT_DISSOLVED_OXYGEN, turbidity["turbidity"])
    pollution = simple_pollution_health(turbidity["turbidity"], turbidity["chlorophyll"])
    biodiversity = biodiversity_from_imagery(turbidity["chlorophyll"], turbidity["clarity"], reef["health_index"])
    index = calculate_ocean_health_index(wq_score, pollution, biodiversity, reef["health_index"])
    species = species_estimates(biodiversity)

    metrics = OceanHealthMetrics(
        location=(lat, lng),
        timestamp=index.timestamp,
        water_quality=WaterQuality(
            ph=DEFAULT_PH,
            temperature=sst,
            salinity=DEFAULT_SALINITY,
            dissolved_oxygen=DEFAULT_DISSOLVED_OXYGEN,
            turbidity=turbidity["turbidity"],
            score=wq_score,
        ),
        # no live pollutant feed; only the aggregate index is measured
        pollution=PollutionSummary(plastic_density=0, oil_spill_risk=0, chemical_pollution=0, index=pollution),
        biodiversity=BiodiversitySummary(index=round(biodiversity, 1), **species),
        reef_health=ReefHealthSummary(
            bleaching_risk=reef["bleaching_risk"],
            health_index=reef["health_index"],
            temperature=reef["temperature"],
            coverage=0,
        ),
        overall_score=index.overall,
    )
    problems = validate_ocean_health_metrics(metrics)
    if problems:
        logger.warning(json.dumps({"event": "ocean_health_implausible", "problems": problems}))

    return {
        "ocean_health": metrics.model_dump(mode="json"),
        "index": index.model_dump(mode="json"),
        "turbidity_source": turbidity["source"],
        "region": "general",
        "timestamp": _now(),
        "data_source": "real-time",
    }


async def _live_reef_conditions(lat: float, lng: float) -> dict[str, Any]:
    """SST, DHW and alert level at a point, degrading to marine SST then baseline."""
    reef, marine = await asyncio.gather(
        reef_watch.get_reef_health(lat, lng),
        open_meteo.get_marine_data(lat, lng, 3),
        return_exceptions=True,
    )
    reef = _settled(reef, "reef-watch")
    marine = _settled(marine, "open-meteo-marine")
    if reef is not None:
        return {
            "sst": reef["temperature"],
            "hotspot": reef["hotspot"],
            "dhw": reef["degree_heating_weeks"],
            "alert_level": reef["alert_level"],
            "source": "reef_watch",
        }
    return {
        "sst": marine["sea_surface_temperature"] if marine is not None else SST_BASELINE,
        "hotspot": 0.0,
        "dhw": 0.0,
        "alert_level": 0,
        "source": "open_meteo" if marine is not None else "baseline",
    }


def _regional_payload(name: str, center: tuple[float, float], characteristics: dict, live: dict) -> dict:
    assessment = assess_region(characteristics, live["sst"], live["dhw"], live["alert_level"])
    return {
        "name": name,
        "location": list(center),
        "raw_data": {
            "sst": live["sst"],
            "hotspot": live["hotspot"],
            "dhw": live["dhw"],
            **characteristics,
        },
        "prediction": {
            "score": assessment["overall_score"],
            "risk_level": assessment["risk_level"],
            "explanation": (
                f"{name}: {assessment['status']} health, "
                f"{assessment['reef_health']['bleaching_risk']} bleaching risk."
            ),
        },
        "metrics": assessment,
        "sst_source": live["source"],
    }


@app.get("/oceanhealth")
@limiter.limit("30/minute")
@route_errors("OCEAN_HEALTH_PREDICTION_FAILED", "Failed to fetch ocean health prediction")
async def oceanhealth(
    request: Request,
    lat: float = MAURITIUS_LAT,
    lng: float = MAURITIUS_LNG,
    region: Optional[str] = None,
) -> Any:
    """Regional assessment: one region, or all five plus the requested point."""
    lat, lng = _clamp_lat_lng(lat, lng)
    key = (region or "all").strip().lower()

    if key != "all":
        if key not in MAURITIUS_REGIONS:
            return _invalid_request(
                f"Unknown region '{region}'.",
                {"region": region, "valid": sorted(MAURITIUS_REGIONS) + ["all"]},
            )
        info = MAURITIUS_REGIONS[key]
        live = await _live_reef_conditions(*info["center"])
        return {
            "region": key,
            "bounds": info["bounds"],
            **_regional_payload(info["name"], info["center"], region_characteristics(key), live),
            "timestamp": _now(),
            "data_source": "real-time",
        }

    keys = sorted(MAURITIUS_REGIONS)
    lives = await asyncio.gather(
        *(_live_reef_conditions(*MAURITIUS_REGIONS[k]["center"]) for k in keys),
        _live_reef_conditions(lat, lng),
    )
    regions = {
        k: {
            "bounds": MAURITIUS_REGIONS[k]["bounds"],
            **_regional_payload(
                MAURITIUS_REGIONS[k]["name"], MAURITIUS_REGIONS[k]["center"], region_characteristics(k), live,
            ),
        }
        for k, live in zip(keys, lives)
    }
    point = _regional_payload("Mauritius", (lat, lng), region_characteristics(None), lives[-1])
    return {
        "region": "all",
        **point,
        "regions": regions,
        "timestamp": _now(),
        "data_source": "real-time",
    }


@app.get("/ocean-health/sdg14")
@limiter.limit("30/minute")
@route_errors("SDG14_FETCH_FAILED", "Failed to fetch SDG 14 metrics")
async def ocean_health_sdg14(
    request: Request,
    lat: float = MAURITIUS_LAT,
    lng: float = MAURITIUS_LNG,
    region: str = "Mauritius",
) -> dict:
    lat, lng = _clamp_lat_lng(lat, lng)
    reef, turbidity, fishing = await asyncio.gather(
        reef_watch.get_reef_health(lat, lng),
        gibs.get_turbidity_data(lat, lng),
        fishing_watch.get_sustainable_fishing_metrics(lat, lng),
        return_exceptions=True,
    )
    reef = _settled(reef, "reef-watch") or reef_watch.summarize(lat, lng, [])
    turbidity = _required(turbidity)
    fishing = _settled(fishing, "global-fishing-watch") or fishing_watch.sustainable_metrics(
        fishing_watch.empty_activity(lat, lng)
    )

    metrics = assess_sdg14({**reef, "ph": DEFAULT_PH}, turbidity, fishing, region=region)
    return {
        "metrics": metrics,
        "recommendations": action_recommendations(metrics),
        "region": region,
        "timestamp": _now(),
        "data_source": "real-time",
    }


@app.get("/ocean-history")
@limiter.limit("60/minute")
@route_errors("OCEAN_HISTORY_FETCH_FAILED", "Failed to fetch ocean history data")
async def ocean_history(
    request: Request,
    lat: float = REEF_DEFAULT_LAT,
    lng: float = MAURITIUS_LNG,
    days: int = 30,
) -> dict:
    """SST trend over the last *days* (1..30) with a marine forecast comparison."""
    lat, lng = _clamp_lat_lng(lat, lng)
    days = _clamp_int(days, 1, MAX_HISTORY_DAYS)
    trend, marine = await asyncio.gather(
        reef_watch.get_sst_trend(lat, lng, MAX_HISTORY_DAYS),
        open_meteo.get_marine_data(lat, lng, min(days, MAX_MARINE_FORECAST_DAYS)),
        return_exceptions=True,
    )
    trend = _required(trend)
    marine = _settled(marine, "open-meteo-marine")

    history = {
        "location": [lat, lng],
        **trend,
        "trend_30d": trend["trend_30d"][-days:],
    }
    comparison = None
    forecast_trend: list[float] = []
    if marine is not None:
        forecast_trend = [d["sea_surface_temperature"] for d in marine["daily"]]
        comparison = {
            "history_sst": trend["sst"],
            "forecast_sst": marine["sea_surface_temperature"],
            "difference": round(trend["sst"] - marine["sea_surface_temperature"], 2),
        }
    return {
        "history": history,
        "forecast_trend": forecast_trend,
        "comparison": comparison,
        "timestamp": _now(),
    }


@app.get("/biodiversity")
@limiter.limit("60/minute")
@route_errors("BIODIVERSITY_FETCH_FAILED", "Failed to fetch real-time biodiversity data")
async def biodiversity(request: Request, lat: float = REEF_DEFAULT_LAT, lng: float = MAURITIUS_LNG) -> dict:
    lat, lng = _clamp_lat_lng(lat, lng)
    turbidity, reef = await asyncio.gather(
        gibs.get_turbidity_data(lat, lng),
        reef_watch.get_reef_health(lat, lng),
        return_exceptions=True,
    )
    turbidity = _required(turbidity)
    reef = _required(reef)

    index = biodiversity_from_imagery(turbidity["chlorophyll"], turbidity["clarity"], reef["health_index"])
    return {
        "biodiversity": {
            "location": [lat, lng],
            "biodiversity_index": round_half_up(index),
            "chlorophyll": turbidity["chlorophyll"],
            "water_clarity": turbidity["clarity"],
            "habitat_health": habitat_quality(turbidity["chlorophyll"], turbidity["clarity"], reef["health_index"]),
        },
        "timestamp": _now(),
        "data_source": "real-time",
    }


@app.get("/fishing-activity")
@limiter.limit("60/minute")
@route_errors("FISHING_FETCH_FAILED", "Failed to fetch fishing activity")
async def fishing_activity(
    request: Request,
    lat: float = MAURITIUS_LAT,
    lng: float = MAURITIUS_LNG,
    radius: float = fishing_watch.DEFAULT_SEARCH_RADIUS_DEG,
) -> dict:
    lat, lng = _clamp_lat_lng(lat, lng)
    radius = max(0.01, min(5.0, radius))
    activity = await fishing_watch.get_fishing_activity(lat, lng, radius)
    return {
        "activity": activity,
        "metrics": fishing_watch.sustainable_metrics(activity),
        "timestamp": _now(),
    }


# ---------------------------------------------------------------------------
# Pollution
#
# GET  /pollution/events  → stored events, radius (degrees) and status filters
# POST /pollution/events  → 201 with the stored event, 400 INVALID_REQUEST
# POST /pollution/detect  → indicator heuristic; imagery lookup when the
#                           caller supplies no indicators
# ---------------------------------------------------------------------------

@app.get("/pollution/events")
@limiter.limit("60/minute")
@route_errors("POLLUTION_EVENTS_FAILED", "Failed to fetch pollution events")
async def list_pollution_events(
    request: Request,
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    radius: float = DEFAULT_RADIUS_DEG,
    status: Optional[str] = Query(default=None, max_length=20),
) -> dict:
    radius = max(0.0, min(MAX_EVENT_RADIUS_DEG, radius))
    events = pollution_store.list_events(lat=lat, lng=lng, radius=radius, status=status)
    return {
        "events": [e.model_dump(mode="json") for e in events],
        "count": len(events),
        "timestamp": _now(),
    }


@app.post("/pollution/events", status_code=201)
@limiter.limit("30/minute")
async def create_pollution_event(request: Request) -> JSONResponse:
    body = await _parse_body(request, PollutionEventCreate)
    if isinstance(body, JSONResponse):
        return body

    event = pollution_store.create(body)
    logger.info(json.dumps({
        "event": "pollution_event_created",
        "id": event.id,
        "type": event.type,
        "severity": event.severity,
        "request_id": getattr(request.state, "request_id", "unknown"),
    }))
    return JSONResponse(status_code=201, content={"event": event.model_dump(mode="json")})


@app.post("/pollution/detect")
@limiter.limit("30/minute")
@route_errors("POLLUTION_DETECTION_FAILED", "Pollution detection failed")
async def pollution_detect(request: Request) -> Any:
    body = await _parse_body(request, PollutionDetectRequest)
    if isinstance(body, JSONResponse):
        return body

    lat, lng = body.location
    scene = None
    indicators = {
        "turbidity": body.turbidity,
        "chlorophyll": body.chlorophyll,
        "dissolved_oxygen": body.dissolved_oxygen,
    }
    if body.turbidity is None or body.chlorophyll is None:
        scene_result, turbidity_result = await asyncio.gather(
            sentinel2.latest_scene(lat, lng),
            gibs.get_turbidity_data(lat, lng),
            return_exceptions=True,
        )
        scene = _settled(scene_result, "planetary-computer")
        estimate = _required(turbidity_result)
        if indicators["turbidity"] is None:
            indicators["turbidity"] = estimate["turbidity"]
        if indicators["chlorophyll"] is None:
            indicators["chlorophyll"] = estimate["chlorophyll"]
    if indicators["dissolved_oxygen"] is None:
        indicators["dissolved_oxygen"] = DEFAULT_DISSOLVED_OXYGEN

    detections = detect_pollution(
        body.location,
        indicators["turbidity"],
        indicators["chlorophyll"],
        indicators["dissolved_oxygen"],
        cloud_cover=scene["cloud_cover"] if scene else None,
    )
    source = f"Sentinel-2 scene {scene['id']}" if scene else "ClimaGuard indicator analysis"
    events = to_pollution_events(detections, source=source)

    return {
        "location": [lat, lng],
        "indicators": indicators,
        "scene": scene,
        "detections": detections,
        "events": [e.model_dump(mode="json") for e in events],
        "model": "heuristic",
        "timestamp": _now(),
    }


# ---------------------------------------------------------------------------
# Satellite tiles
# ---------------------------------------------------------------------------

@app.get("/satellite/tiles")
@limiter.limit("60/minute")
@route_errors("SATELLITE_TILES_FAILED", "Failed to build satellite tile URLs")
async def satellite_tiles(
    request: Request,
    lat: float = MAURITIUS_LAT,
    lng: float = MAURITIUS_LNG,
    zoom: int = gibs.GIBS_DEFAULT_ZOOM,
) -> dict:
    # Web-Mercator stops short of the poles
    lat = max(-85.0, min(85.0, lat))
    lng = max(-180.0, min(179.999, lng))
    zoom = _clamp_int(zoom, 0, 9)
    return {**gibs.get_tiles(lat, lng, zoom), "timestamp": _now()}


# ---------------------------------------------------------------------------
# Entry point (development only)
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    try:
        import uvicorn
    except ImportError:
        print("Install uvicorn: pip install uvicorn", file=sys.stderr)
        sys.exit(1)

    os.environ.setdefault("ENV", "dev")
    print(f"ClimaGuard API v{API_VERSION}")
    uvicorn.run(app, host="0.0.0.0", port=8000)  # noqa: S104
