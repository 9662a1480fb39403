"""
climaguard.constants — Single source of truth for ClimaGuard constants.

Every module that needs these values MUST import from here.
No hardcoded duplicates anywhere in the codebase.

Deploy-time configuration (env vars) does not belong here; see
climaguard_api.py and the individual integration modules.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Service identity
# ---------------------------------------------------------------------------

API_VERSION: str = "1.0.0"
USER_AGENT: str = "ClimaGuard/1.0"
"""Sent on every outbound request so providers can identify the caller."""

# ---------------------------------------------------------------------------
# Geography: Mauritius
# ---------------------------------------------------------------------------

MAURITIUS_LAT: float = -20.2
MAURITIUS_LNG: float = 57.5

REEF_DEFAULT_LAT: float = -20.0
"""Default latitude for reef, bleaching and ocean-health routes."""

MAURITIUS_BOUNDS: dict[str, float] = {
    "min_lat": -20.8,
    "max_lat": -19.8,
    "min_lng": 57.0,
    "max_lng": 57.9,
}
"""Island bounding box. Forecast tracks stop once they leave it."""

REEF_ALERT_BBOX: tuple[float, float, float, float] = (-21.0, 57.0, -19.0, 58.0)
"""(min_lat, min_lng, max_lat, max_lng) scanned for bleaching alerts."""

REEF_ALERT_GRID_STEP: float = 0.1

SOUTH_WEST_INDIAN_OCEAN: dict[str, float] = {
    "min_lat": -30.0,
    "max_lat": -10.0,
    "min_lng": 40.0,
    "max_lng": 90.0,
}
"""Storms outside this box (and outside basin 'SI') are ignored."""

EARTH_RADIUS_KM: float = 6371.0
KM_PER_DEGREE: float = 111.0

# ---------------------------------------------------------------------------
# Unit conversions
# ---------------------------------------------------------------------------

MS_TO_KMH: float = 3.6
KNOTS_TO_KMH: float = 1.852
KMH_TO_KNOTS: float = 0.539957

# ---------------------------------------------------------------------------
# Upstream endpoints
# ---------------------------------------------------------------------------

OPEN_METEO_FORECAST_URL: str = "https://api.open-meteo.com/v1/forecast"
OPEN_METEO_MARINE_URL: str = "https://marine-api.open-meteo.com/v1/marine"
NOAA_CURRENT_STORMS_URL: str = "https://www.nhc.noaa.gov/CurrentStorms.json"
NASA_GIBS_URL: str = "https://gibs.earthdata.nasa.gov"
PLANETARY_COMPUTER_STAC_URL: str = (
    "https://planetarycomputer.microsoft.com/api/stac/v1/search"
)
GLOBAL_FISHING_WATCH_URL: str = (
    "https://gateway.api.globalfishingwatch.org/v2/vessels/search"
)
OPENWEATHER_ONECALL_URL: str = "https://api.openweathermap.org/data/3.0/onecall"
OPENWEATHER_CURRENT_URL: str = "https://api.openweathermap.org/data/2.5/weather"

# ---------------------------------------------------------------------------
# Timeouts (seconds)
# ---------------------------------------------------------------------------

DEFAULT_TIMEOUT: float = 5.0
NOAA_TIMEOUT: float = 10.0
NOAA_RETRIES: int = 1
NOAA_RETRY_DELAY: float = 2.0
STAC_TIMEOUT: float = 10.0

# ---------------------------------------------------------------------------
# Marine baselines and fallbacks
# ---------------------------------------------------------------------------

SST_BASELINE: float = 28.5
"""Long-term mean SST for Mauritius waters (°C). Anomalies are relative to it."""

BLEACHING_THRESHOLD_SST: float = 30.0
"""Daily SST above this accumulates Degree Heating Weeks."""

DHW_WINDOW_DAYS: int = 84
DHW_CAP: float = 20.0

DEFAULT_PH: float = 8.1
DEFAULT_SALINITY: float = 35.2
DEFAULT_DISSOLVED_OXYGEN: float = 6.5
DEFAULT_PRESSURE_HPA: float = 1013.0
DEFAULT_SOIL_MOISTURE: float = 0.5

MARINE_DEFAULTS: dict[str, float] = {
    "sea_surface_temperature": SST_BASELINE,
    "wave_height": 1.0,
    "wind_speed": 5.0,
    "swell_height": 0.5,
    "wind_wave_height": 0.5,
}

# ---------------------------------------------------------------------------
# Risk labels
# ---------------------------------------------------------------------------

RISK_LEVELS: tuple[str, ...] = ("low", "moderate", "high", "severe")
"""Ordered least to most severe."""

RISK_LEVEL_RANK: dict[str, int] = {label: i for i, label in enumerate(RISK_LEVELS)}

POLLUTION_TYPES: tuple[str, ...] = ("oil_spill", "plastic", "chemical", "debris", "sewage")
POLLUTION_SEVERITIES: tuple[str, ...] = ("low", "medium", "high", "critical")
POLLUTION_STATUSES: tuple[str, ...] = ("detected", "confirmed", "contained", "resolved")

MAX_POLLUTION_EVENTS: int = 1000
"""In-memory event store capacity; the oldest event is evicted first."""

ALERT_SEVERITY_ORDER: dict[str, int] = {"extreme": 0, "high": 1, "medium": 2, "low": 3}

CYCLONE_SEASON_MONTHS: frozenset[int] = frozenset({11, 12, 1, 2, 3, 4})

# ---------------------------------------------------------------------------
# Ocean-health weights
# ---------------------------------------------------------------------------

OCEAN_HEALTH_WEIGHTS: dict[str, float] = {
    "water_quality": 0.25,
    "pollution": 0.25,
    "biodiversity": 0.15,
    "reef_health": 0.15,
    "acidification": 0.10,
    "fishing": 0.10,
}
"""Weights of calculate_ocean_health_index. Sum to 1.0."""

REGIONAL_HEALTH_WEIGHTS: dict[str, float] = {
    "water_quality": 0.25,
    "pollution": 0.20,
    "biodiversity": 0.20,
    "reef_health": 0.35,
}
"""Weights of the detailed regional assessment. Pollution enters inverted."""

# ---------------------------------------------------------------------------
# Mauritius coastal regions
# ---------------------------------------------------------------------------

MAURITIUS_REGIONS: dict[str, dict] = {
    "north": {
        "name": "North Coast",
        "center": (-20.1, 57.5),
        "bounds": {"north": -19.95, "south": -20.15, "east": 57.7, "west": 57.4},
        "characteristics": {
            "turbidity": 0.15, "chlorophyll": 0.25, "ph": 8.15,
            "dissolved_oxygen": 6.8, "salinity": 35.2,
            "pollution_level": 15, "biodiversity": 75, "coral_coverage": 45,
        },
    },
    "east": {
        "name": "East Coast",
        "center": (-20.2, 57.7),
        "bounds": {"north": -20.0, "south": -20.4, "east": 57.8, "west": 57.6},
        "characteristics": {
            "turbidity": 0.12, "chlorophyll": 0.22, "ph": 8.18,
            "dissolved_oxygen": 7.0, "salinity": 35.3,
            "pollution_level": 12, "biodiversity": 78, "coral_coverage": 50,
        },
    },
    "south": {
        "name": "South Coast",
        "center": (-20.4, 57.5),
        "bounds": {"north": -20.3, "south": -20.5, "east": 57.7, "west": 57.3},
        "characteristics": {
            "turbidity": 0.18, "chlorophyll": 0.28, "ph": 8.12,
            "dissolved_oxygen": 6.5, "salinity": 35.1,
            "pollution_level": 20, "biodiversity": 70, "coral_coverage": 40,
        },
    },
    "west": {
        "name": "West Coast",
        "center": (-20.2, 57.3),
        "bounds": {"north": -20.0, "south": -20.4, "east": 57.4, "west": 57.2},
        "characteristics": {
            "turbidity": 0.25, "chlorophyll": 0.35, "ph": 8.08,
            "dissolved_oxygen": 6.2, "salinity": 35.0,
            "pollution_level": 28, "biodiversity": 65, "coral_coverage": 35,
        },
    },
    "lagoon": {
        "name": "Lagoon Areas",
        "center": (-20.15, 57.55),
        "bounds": {"north": -20.1, "south": -20.2, "east": 57.6, "west": 57.5},
        "characteristics": {
            "turbidity": 0.35, "chlorophyll": 0.45, "ph": 8.05,
            "dissolved_oxygen": 5.8, "salinity": 34.8,
            "pollution_level": 35, "biodiversity": 60, "coral_coverage": 30,
        },
    },
}

ISLAND_AVERAGE_CHARACTERISTICS: dict[str, float] = {
    "turbidity": 0.21,
    "chlorophyll": 0.31,
    "ph": 8.12,
    "dissolved_oxygen": 6.5,
    "salinity": 35.1,
    "coral_coverage": 40,
}
"""Used when a single point (no region) is assessed."""

# ---------------------------------------------------------------------------
# Marine protected areas (polygon vertices as (lat, lng))
# ---------------------------------------------------------------------------

MARINE_PROTECTED_AREAS: dict[str, list[tuple[float, float]]] = {
    "Blue Bay Marine Park": [
        (-20.43, 57.70), (-20.43, 57.73), (-20.46, 57.73), (-20.46, 57.70),
    ],
    "Balaclava Marine Park": [
        (-20.07, 57.50), (-20.07, 57.53), (-20.10, 57.53), (-20.10, 57.50),
    ],
}

# ---------------------------------------------------------------------------
# NASA GIBS layers
# ---------------------------------------------------------------------------

GIBS_LAYERS: dict[str, str] = {
    "sst": "MODIS_Terra_SST",
    "chlorophyll": "MODIS_Terra_Chlorophyll_A",
    "true_color": "MODIS_Terra_True_Color",
}
GIBS_DEFAULT_ZOOM: int = 5
