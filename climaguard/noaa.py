"""
climaguard.noaa — NOAA National Hurricane Center active storms feed.

CurrentStorms.json is fetched with a 10 s timeout and a single retry
after 2 s. Storm selection and unit conversion live in cyclone_track.
"""

from __future__ import annotations

from typing import Any, Optional

from climaguard.constants import (
    NOAA_CURRENT_STORMS_URL,
    NOAA_RETRIES,
    NOAA_RETRY_DELAY,
    NOAA_TIMEOUT,
)
from climaguard.cyclone_track import nearest_active_storm
from climaguard.fetching import fetch_json


async def get_active_storms() -> dict[str, Any]:
    return await fetch_json(
        NOAA_CURRENT_STORMS_URL,
        source="noaa",
        timeout=NOAA_TIMEOUT,
        retries=NOAA_RETRIES,
        retry_delay=NOAA_RETRY_DELAY,
    )


async def get_current_cyclone() -> Optional[dict[str, Any]]:
    """Nearest South-West Indian Ocean storm, or None when the basin is quiet.

    Raises UpstreamError when the feed cannot be fetched.
    """
    feed = await get_active_storms()
    if not isinstance(feed, dict):
        return None
    return nearest_active_storm(feed)
