"""
climaguard.fishing_watch — Global Fishing Watch vessel activity.

Requires GFW_API_KEY (read per call, sent as a bearer token). Without a
key every call returns an empty, deterministic activity so that the
SDG 14 assessment still has a well-formed fishing section.

Catch and effort are first-order estimates:
    total catch     0.5 t per vessel
    fishing hours   8 h per vessel
    sustainable     70 % of total catch
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any

from climaguard.constants import GLOBAL_FISHING_WATCH_URL, MARINE_PROTECTED_AREAS
from climaguard.fetching import fetch_json
from climaguard.models import LatLng

logger = logging.getLogger("climaguard.fishing_watch")

CATCH_PER_VESSEL_T = 0.5
HOURS_PER_VESSEL = 8
SUSTAINABLE_SHARE = 0.7
DEFAULT_SEARCH_RADIUS_DEG = 0.5

STOCK_STATUS: list[dict[str, Any]] = [
    {"species": "Yellowfin Tuna", "stock_level": "moderate", "biomass": 50000, "max_sustainable_yield": 8000},
    {"species": "Skipjack Tuna", "stock_level": "healthy", "biomass": 120000, "max_sustainable_yield": 15000},
    {"species": "Mahi Mahi", "stock_level": "moderate", "biomass": 30000, "max_sustainable_yield": 5000},
]


def _api_key() -> str:
    return os.getenv("GFW_API_KEY", "").strip()


def point_in_polygon(point: LatLng, polygon: list[LatLng]) -> bool:
    """Even-odd ray casting; vertices and point are (lat, lng)."""
    lat, lng = point
    inside = False
    j = len(polygon) - 1
    for i in range(len(polygon)):
        lat_i, lng_i = polygon[i]
        lat_j, lng_j = polygon[j]
        if (lng_i > lng) != (lng_j > lng):
            crossing = (lat_j - lat_i) * (lng - lng_i) / (lng_j - lng_i) + lat_i
            if lat < crossing:
                inside = not inside
        j = i
    return inside


def _vessel(raw: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": raw.get("id"),
        "location": [raw.get("lat"), raw.get("lng")],
        "speed": raw.get("speed") or 0,
        "course": raw.get("course") or 0,
        "timestamp": raw.get("timestamp"),
        "vessel_type": raw.get("type"),
        "flag": raw.get("flag"),
    }


def empty_activity(lat: float, lng: float) -> dict[str, Any]:
    return {
        "location": [lat, lng],
        "vessel_count": 0,
        "total_catch": 0.0,
        "fishing_hours": 0,
        "vessels": [],
        "source": "unavailable",
    }


async def get_fishing_activity(lat: float, lng: float, radius: float = DEFAULT_SEARCH_RADIUS_DEG) -> dict[str, Any]:
    """Vessels near (lat, lng). Raises UpstreamError when the API fails."""
    key = _api_key()
    if not key:
        logger.debug(json.dumps({"event": "gfw_key_missing"}))
        return empty_activity(lat, lng)

    data = await fetch_json(
        GLOBAL_FISHING_WATCH_URL,
        source="global-fishing-watch",
        params={"lat": lat, "lng": lng, "radius": radius},
        headers={"Authorization": f"Bearer {key}"},
    )
    vessels = [_vessel(v) for v in (data.get("vessels") or []) if isinstance(v, dict)]
    return {
        "location": [lat, lng],
        "vessel_count": len(vessels),
        "total_catch": len(vessels) * CATCH_PER_VESSEL_T,
        "fishing_hours": len(vessels) * HOURS_PER_VESSEL,
        "vessels": vessels,
        "source": "global_fishing_watch",
    }


def overfishing_risk(total_catch: float, sustainable_catch: float) -> float:
    if sustainable_catch <= 0:
        return 20.0
    if total_catch > sustainable_catch * 1.2:
        return round(min(100.0, (total_catch / sustainable_catch - 1) * 50), 1)
    return 20.0


def mpa_compliance(vessels: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Vessels observed inside each marine protected area."""
    located = [
        (v["location"][0], v["location"][1])
        for v in vessels
        if v["location"][0] is not None and v["location"][1] is not None
    ]
    result = []
    for name, polygon in MARINE_PROTECTED_AREAS.items():
        violations = sum(1 for p in located if point_in_polygon(p, polygon))
        rate = 100.0 if not located else (1 - violations / len(located)) * 100
        result.append({"mpa_name": name, "violations": violations, "compliance_rate": round(rate, 1)})
    return result


def sustainable_metrics(activity: dict[str, Any]) -> dict[str, Any]:
    total = activity["total_catch"]
    sustainable = total * SUSTAINABLE_SHARE
    return {
        "location": activity["location"],
        "fishing_activity": {
            "vessel_count": activity["vessel_count"],
            "total_catch": total,
            "sustainable_catch": round(sustainable, 3),
            "overfishing_risk": overfishing_risk(total, sustainable),
        },
        "stock_status": [dict(s) for s in STOCK_STATUS],
        "protected_area_compliance": mpa_compliance(activity["vessels"]),
    }


async def get_sustainable_fishing_metrics(lat: float, lng: float) -> dict[str, Any]:
    return sustainable_metrics(await get_fishing_activity(lat, lng))
