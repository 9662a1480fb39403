"""
climaguard.cyclone_track — Cyclone geometry: wind radii, forecast track,
distance, category, and NOAA storm selection.

Pure-computation module. Zero I/O. Zero randomness.

Forecast track heuristic (six points, 6 h apart):
    bearing   240° (WSW), ±10° from the 24 h pressure trend, ±15° from
              the pressure gradient, +2° curvature per step
    speed     25 km/h above 50 kt, 20 km/h above 34 kt, otherwise 15
    stop      as soon as a point leaves MAURITIUS_BOUNDS
    fallback  five straight-line points 30 km apart when fewer than two
              points survive
Track points are GeoJSON-ordered [lng, lat].
"""

from __future__ import annotations

import math
from typing import Any, Optional

from climaguard.constants import (
    DEFAULT_PRESSURE_HPA,
    EARTH_RADIUS_KM,
    KM_PER_DEGREE,
    KNOTS_TO_KMH,
    MAURITIUS_BOUNDS,
    MAURITIUS_LAT,
    MAURITIUS_LNG,
    SOUTH_WEST_INDIAN_OCEAN,
)
from climaguard.risk import round_half_up

BASE_BEARING = 240.0
TRACK_POINTS = 6
TRACK_STEP_HOURS = 6
FALLBACK_POINTS = 5
FALLBACK_STEP_KM = 30.0

# (minimum knots, radius multiplier, minimum radius km)
_WIND_RADII: list[tuple[int, float, float]] = [
    (34, 2.0, 50.0),
    (50, 1.5, 30.0),
    (64, 1.2, 20.0),
]

# (minimum km/h, category)
_CATEGORY_THRESHOLDS: list[tuple[float, int]] = [
    (250, 5),
    (210, 4),
    (178, 3),
    (154, 2),
    (119, 1),
    (63, 0),
]

NO_ACTIVE_CYCLONE: dict[str, Any] = {
    "name": "No Active Cyclone",
    "category": 0,
    "wind_speed": 0,
    "pressure": DEFAULT_PRESSURE_HPA,
    "distance": 0,
    "eta": 0,
    "direction": "--",
    "movement": "0 km/h",
}


def wind_radii(max_wind_knots: float) -> list[dict[str, float]]:
    return [
        {"speed": speed, "radius": round(max(floor, max_wind_knots * mult), 1)}
        for speed, mult, floor in _WIND_RADII
        if max_wind_knots >= speed
    ]


def _in_bounds(lat: float, lng: float) -> bool:
    b = MAURITIUS_BOUNDS
    return b["min_lat"] <= lat <= b["max_lat"] and b["min_lng"] <= lng <= b["max_lng"]


def track_bearing(pressures: list[float]) -> float:
    """Initial heading in degrees from the pressure series."""
    bearing = BASE_BEARING
    trend = pressures[0] - pressures[-1] if len(pressures) > 1 else 0.0
    if trend < -5:
        bearing += 10
    elif trend > 5:
        bearing -= 10

    influence = 0.0
    if len(pressures) > 2:
        if trend < -3:
            influence = 15.0
        elif trend > 3:
            influence = -15.0
    return (bearing + influence) % 360


def forecast_track(
    lat: float,
    lng: float,
    pressures: list[float],
    max_wind_knots: float,
) -> tuple[list[list[float]], list[float]]:
    """Return (track, widths). track[0] is the current position."""
    track: list[list[float]] = [[lng, lat]]
    widths: list[float] = [20.0]
    bearing = track_bearing(pressures)
    cos_lat = math.cos(math.radians(lat))

    if max_wind_knots > 50:
        speed = 25.0
    elif max_wind_knots > 34:
        speed = 20.0
    else:
        speed = 15.0

    for i in range(1, TRACK_POINTS + 1):
        distance = speed * i * TRACK_STEP_HOURS / KM_PER_DEGREE
        heading = math.radians(bearing + i * 2)
        prev_lng, prev_lat = track[-1]
        next_lat = prev_lat + distance * math.cos(heading)
        next_lng = prev_lng + distance * math.sin(heading) / cos_lat
        if not _in_bounds(next_lat, next_lng):
            break
        track.append([round(next_lng, 5), round(next_lat, 5)])
        widths.append(20.0 + i * 8 + i * 2)

    if len(track) < 2:
        heading = math.radians(bearing)
        for i in range(1, FALLBACK_POINTS + 1):
            distance = i * FALLBACK_STEP_KM / KM_PER_DEGREE
            track.append([
                round(lng + distance * math.sin(heading) / cos_lat, 5),
                round(lat + distance * math.cos(heading), 5),
            ])
            widths.append(25.0 + i * 8)

    return track, widths


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def categorize_intensity(wind_kmh: float) -> int:
    """Saffir-Simpson category; 0 is a tropical storm, -1 a depression."""
    for threshold, category in _CATEGORY_THRESHOLDS:
        if wind_kmh >= threshold:
            return category
    return -1


def _in_basin(storm: dict[str, Any]) -> bool:
    center = storm.get("center")
    if not isinstance(center, (list, tuple)) or len(center) != 2:
        return False
    if storm.get("basin") == "SI":
        return True
    lng, lat = center
    box = SOUTH_WEST_INDIAN_OCEAN
    return box["min_lat"] <= lat <= box["max_lat"] and box["min_lng"] <= lng <= box["max_lng"]


def summarize_storm(storm: dict[str, Any]) -> dict[str, Any]:
    """NOAA activeStorms entry → cyclone summary relative to Mauritius."""
    lng, lat = storm["center"]
    distance = haversine_km(MAURITIUS_LAT, MAURITIUS_LNG, lat, lng)
    intensity = storm.get("intensity") or {}
    movement = storm.get("movement") or {}
    wind_kmh = (intensity.get("wind") or 0) * KNOTS_TO_KMH
    speed_kmh = (movement.get("speed") or 0) * KNOTS_TO_KMH
    eta = distance / speed_kmh if speed_kmh > 0 else 999

    return {
        "name": storm.get("name") or "Unnamed Storm",
        "category": categorize_intensity(wind_kmh),
        "wind_speed": round_half_up(wind_kmh),
        "pressure": intensity.get("pressure") or 1000,
        "distance": round_half_up(distance),
        "eta": round_half_up(eta),
        "direction": movement.get("direction") or "--",
        "movement": f"{round_half_up(speed_kmh)} km/h",
        "lat": lat,
        "lng": lng,
        "basin": storm.get("basin"),
    }


def nearest_active_storm(feed: dict[str, Any]) -> Optional[dict[str, Any]]:
    """The South-West Indian Ocean storm closest to Mauritius, or None."""
    storms = [s for s in feed.get("activeStorms") or [] if _in_basin(s)]
    if not storms:
        return None
    summaries = [summarize_storm(s) for s in storms]
    return min(summaries, key=lambda s: s["distance"])
