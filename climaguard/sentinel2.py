"""
climaguard.sentinel2 — Sentinel-2 L2A scene search via Planetary Computer STAC.

Searches a ±0.1° box around a point for scenes from the last seven
days with less than 30 % cloud cover, newest first as returned by the
STAC API.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any, Optional

from climaguard.constants import PLANETARY_COMPUTER_STAC_URL, STAC_TIMEOUT
from climaguard.fetching import fetch_json

COLLECTION = "sentinel-2-l2a"
SEARCH_RADIUS_DEG = 0.1
SEARCH_WINDOW_DAYS = 7
MAX_CLOUD_COVER = 30
SEARCH_LIMIT = 10

_PREVIEW_ASSETS = ("visual", "rendered_preview")
_BANDS = ("B02", "B03", "B04", "B08")


def search_body(lat: float, lng: float, now: Optional[datetime] = None) -> dict[str, Any]:
    now = now or datetime.now(UTC)
    start = now - timedelta(days=SEARCH_WINDOW_DAYS)
    r = SEARCH_RADIUS_DEG
    return {
        "collections": [COLLECTION],
        "bbox": [lng - r, lat - r, lng + r, lat + r],
        "datetime": f"{start.strftime('%Y-%m-%dT%H:%M:%SZ')}/{now.strftime('%Y-%m-%dT%H:%M:%SZ')}",
        "limit": SEARCH_LIMIT,
        "query": {"eo:cloud_cover": {"lt": MAX_CLOUD_COVER}},
    }


def _href(assets: dict[str, Any], name: str) -> Optional[str]:
    asset = assets.get(name)
    return asset.get("href") if isinstance(asset, dict) else None


def parse_scene(item: dict[str, Any], lat: float, lng: float) -> dict[str, Any]:
    assets = item.get("assets") or {}
    props = item.get("properties") or {}
    preview = next((_href(assets, n) for n in _PREVIEW_ASSETS if _href(assets, n)), None)
    return {
        "id": item.get("id"),
        "location": [lat, lng],
        "datetime": props.get("datetime"),
        "cloud_cover": props.get("eo:cloud_cover") or 0,
        "bbox": item.get("bbox"),
        # red band stands in when no rendered preview exists
        "url": preview or _href(assets, "B04"),
        "bands": {band: _href(assets, band) for band in _BANDS},
    }


async def search_scenes(lat: float, lng: float) -> list[dict[str, Any]]:
    """Recent low-cloud scenes around (lat, lng). Raises UpstreamError."""
    data = await fetch_json(
        PLANETARY_COMPUTER_STAC_URL,
        source="planetary-computer",
        method="POST",
        json_body=search_body(lat, lng),
        timeout=STAC_TIMEOUT,
    )
    return [parse_scene(item, lat, lng) for item in (data.get("features") or [])]


async def latest_scene(lat: float, lng: float) -> Optional[dict[str, Any]]:
    scenes = await search_scenes(lat, lng)
    return scenes[0] if scenes else None
