"""
climaguard.gibs — NASA GIBS tiles and a water-clarity estimate.

Tile URLs follow the WMTS EPSG:4326 "best" layout:

    {GIBS}/wmts/epsg4326/best/{layer}/default/{date}/{zoom}/{y}/{x}.png

The turbidity estimate is derived from marine SST (warmer water,
more suspended matter and phytoplankton); it never raises and falls
back to fixed defaults when the marine API is down.
"""

from __future__ import annotations

import json
import logging
import math
from datetime import date
from typing import Any, Optional

from climaguard.constants import GIBS_DEFAULT_ZOOM, GIBS_LAYERS, NASA_GIBS_URL
from climaguard.fetching import UpstreamError
from climaguard.open_meteo import get_marine_data
from climaguard.risk import clamp

logger = logging.getLogger("climaguard.gibs")

DEFAULT_TURBIDITY: dict[str, Any] = {
    "turbidity": 0.3,
    "chlorophyll": 0.4,
    "clarity": 70.0,
    "source": "default",
}


def lat_lng_to_tile(lat: float, lng: float, zoom: int) -> tuple[int, int]:
    """(x, y) tile indices in the Web-Mercator tiling scheme."""
    n = 2 ** zoom
    x = int((lng + 180.0) / 360.0 * n)
    lat_rad = math.radians(lat)
    y = int((1.0 - math.log(math.tan(lat_rad) + 1.0 / math.cos(lat_rad)) / math.pi) / 2.0 * n)
    return x, y


def tile_to_bbox(x: int, y: int, zoom: int) -> dict[str, float]:
    n = 2 ** zoom

    def _lat(ty: int) -> float:
        return math.degrees(math.atan(math.sinh(math.pi * (1 - 2 * ty / n))))

    return {
        "west": x / n * 360.0 - 180.0,
        "east": (x + 1) / n * 360.0 - 180.0,
        "north": _lat(y),
        "south": _lat(y + 1),
    }


def tile_url(layer: str, x: int, y: int, zoom: int, day: Optional[date] = None) -> str:
    day = day or date.today()
    return f"{NASA_GIBS_URL}/wmts/epsg4326/best/{layer}/default/{day.isoformat()}/{zoom}/{y}/{x}.png"


def get_tiles(lat: float, lng: float, zoom: int = GIBS_DEFAULT_ZOOM, day: Optional[date] = None) -> dict[str, Any]:
    """Tile URL per GIBS layer for the tile containing (lat, lng)."""
    x, y = lat_lng_to_tile(lat, lng, zoom)
    return {
        "location": [lat, lng],
        "zoom": zoom,
        "tile": {"x": x, "y": y},
        "bbox": tile_to_bbox(x, y, zoom),
        "layers": {name: tile_url(layer, x, y, zoom, day) for name, layer in GIBS_LAYERS.items()},
    }


def estimate_from_sst(sst: float) -> dict[str, Any]:
    if sst > 29:
        turbidity = 0.35
    elif sst > 27:
        turbidity = 0.28
    else:
        turbidity = 0.25
    chlorophyll = 0.5 if sst > 28 else 0.4
    return {
        "turbidity": turbidity,
        "chlorophyll": chlorophyll,
        "clarity": round(clamp((1 - turbidity) * 100), 1),
        "source": "open_meteo",
    }


async def get_turbidity_data(lat: float, lng: float) -> dict[str, Any]:
    """Turbidity (NTU-like 0..1), chlorophyll (mg/m³) and clarity (0..100)."""
    try:
        marine = await get_marine_data(lat, lng, days=1)
    except UpstreamError as exc:
        logger.warning(json.dumps({
            "event": "upstream_fallback",
            "source": "turbidity",
            "error": str(exc),
        }))
        return dict(DEFAULT_TURBIDITY)
    return estimate_from_sst(marine["sea_surface_temperature"])
