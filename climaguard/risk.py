"""
climaguard.risk — Heuristic risk scoring.

Pure-computation module. Zero I/O. Zero global state. Zero randomness.
Every function maps raw observations to a risk category through fixed
thresholds; the same input always yields the same assessment.

Additive scorers (cyclone, precipitation flood) accumulate points on a
0..100 scale and share one level/probability mapping:

    score >= 80  → severe     p = 0.85 + (s - 80) / 20 * 0.15
    score >= 60  → high       p = 0.65 + (s - 60) / 20 * 0.20
    score >= 30  → moderate   p = 0.35 + (s - 30) / 30 * 0.30
    otherwise    → low        p = s / 30 * 0.35

The forecast-based flood and storm-surge scorers use a coarser banding
(>= 70 severe, >= 50 high, >= 25 moderate) and attach area alerts.

The bleaching ladder is evaluated top-down; the first tier whose alert
level, SST or DHW condition holds wins. DHW >= 12 is always severe.
"""

from __future__ import annotations

import math
from typing import Optional

from climaguard.models import (
    BleachingRisk,
    FloodRisk,
    RiskAlert,
    RiskAssessment,
    StormSurgeRisk,
)


# ---------------------------------------------------------------------------
# Threshold tables (descending)
# ---------------------------------------------------------------------------

# (exclusive upper bound, points, factor)
_PRESSURE_POINTS: list[tuple[float, int, str]] = [
    (980.0, 50, "extremely low pressure"),
    (990.0, 35, "very low pressure"),
    (1000.0, 20, "low pressure"),
    (1010.0, 10, "slightly low pressure"),
]

# (exclusive lower bound, points, factor)
_WIND_POINTS: list[tuple[float, int, str]] = [
    (120.0, 50, "hurricane-force winds"),
    (90.0, 35, "storm-force winds"),
    (60.0, 20, "strong winds"),
    (40.0, 10, "moderate winds"),
]

_PRECIP_24H_POINTS: list[tuple[float, int, str]] = [
    (100.0, 50, "extreme 24h rainfall"),
    (50.0, 35, "very heavy 24h rainfall"),
    (25.0, 20, "heavy 24h rainfall"),
    (10.0, 10, "moderate 24h rainfall"),
]

_PRECIP_72H_POINTS: list[tuple[float, int, str]] = [
    (200.0, 30, "extreme 72h accumulation"),
    (100.0, 20, "very high 72h accumulation"),
    (50.0, 10, "high 72h accumulation"),
]

_SOIL_POINTS: list[tuple[float, int, str]] = [
    (0.8, 20, "saturated soil"),
    (0.6, 10, "high soil moisture"),
]

_SST_PENALTY: list[tuple[float, int, str]] = [
    (31.0, 40, "extreme temperature"),
    (30.0, 30, "very high temperature"),
    (29.0, 15, "elevated temperature"),
]
_COLD_SST: tuple[float, int, str] = (24.0, 20, "low temperature")

_HOTSPOT_PENALTY: list[tuple[float, int, str]] = [
    (2.0, 30, "severe hotspot"),
    (1.0, 20, "high hotspot"),
    (0.5, 10, "moderate hotspot"),
]

_DHW_PENALTY: list[tuple[float, int, str]] = [
    (12.0, 30, "extreme heat stress"),
    (8.0, 25, "severe heat stress"),
    (4.0, 15, "moderate heat stress"),
    (0.0, 5, "mild heat stress"),
]

# Ocean health score (0..100, higher is healthier)
_OCEAN_LEVELS: list[tuple[float, str]] = [
    (40.0, "severe"),
    (60.0, "high"),
    (80.0, "moderate"),
]

# Forecast-based banding (flood service, storm surge)
_FORECAST_LEVELS: list[tuple[float, str]] = [
    (70.0, "severe"),
    (50.0, "high"),
    (25.0, "moderate"),
]

BLEACHING_ACTIONS: dict[str, list[str]] = {
    "severe": [
        "Immediate monitoring and protective measures required",
        "Consider temporary restrictions on reef activities",
        "Increase water circulation if possible (artificial upwelling)",
        "Monitor water quality parameters daily",
    ],
    "moderate": [
        "Enhanced monitoring recommended",
        "Track SST trends and DHW accumulation",
        "Prepare contingency plans for reef protection",
    ],
    "low": [
        "Continue regular monitoring",
        "Maintain baseline data collection",
    ],
}
BLEACHING_ACTIONS["high"] = BLEACHING_ACTIONS["severe"]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    """Clamp to [lo, hi]. NaN/Inf collapse to lo."""
    if math.isnan(value) or math.isinf(value):
        return lo
    return max(lo, min(hi, value))


def round_half_up(value: float) -> int:
    """Nearest integer with .5 rounded up (round() rounds half to even)."""
    return math.floor(value + 0.5)


def _first_above(value: float, table: list[tuple[float, int, str]]) -> tuple[int, Optional[str]]:
    for bound, points, factor in table:
        if value > bound:
            return points, factor
    return 0, None


def _first_below(value: float, table: list[tuple[float, int, str]]) -> tuple[int, Optional[str]]:
    for bound, points, factor in table:
        if value < bound:
            return points, factor
    return 0, None


def level_and_probability(score: float) -> tuple[str, float]:
    """Shared mapping for additive 0..100 scores."""
    if score >= 80:
        level, p = "severe", 0.85 + (score - 80) / 20 * 0.15
    elif score >= 60:
        level, p = "high", 0.65 + (score - 60) / 20 * 0.20
    elif score >= 30:
        level, p = "moderate", 0.35 + (score - 30) / 30 * 0.30
    else:
        level, p = "low", score / 30 * 0.35
    return level, clamp(p, 0.0, 1.0)


def forecast_level(score: float) -> str:
    for threshold, label in _FORECAST_LEVELS:
        if score >= threshold:
            return label
    return "low"


# ---------------------------------------------------------------------------
# Cyclone
# ---------------------------------------------------------------------------

def cyclone_risk_from_observations(min_pressure: float, max_wind_kmh: float) -> RiskAssessment:
    """Cyclone risk from the lowest sea-level pressure (hPa) and the
    strongest sustained wind (km/h) over the observation window."""
    factors: list[str] = []
    score = 0

    points, factor = _first_below(min_pressure, _PRESSURE_POINTS)
    score += points
    if factor:
        factors.append(factor)

    points, factor = _first_above(max_wind_kmh, _WIND_POINTS)
    score += points
    if factor:
        factors.append(factor)

    score = clamp(score)
    level, probability = level_and_probability(score)
    readings = f"Pressure: {min_pressure:.1f} hPa, Wind: {max_wind_kmh:.1f} km/h"
    if factors:
        explanation = f"Cyclone risk based on: {', '.join(factors)}. {readings}"
    else:
        explanation = f"Normal conditions. {readings}"

    return RiskAssessment(
        level=level,
        probability=round(probability, 4),
        score=score,
        explanation=explanation,
        factors=factors,
    )


# ---------------------------------------------------------------------------
# Flood
# ---------------------------------------------------------------------------

def flood_risk_from_precip(
    precip_24h: float,
    precip_72h: float,
    soil_moisture: Optional[float] = None,
) -> RiskAssessment:
    """Flood risk from accumulated precipitation (mm) and optional
    volumetric soil moisture (m³/m³, 0..1).

    More than 50 mm in 24 h scores at least 35 on its own, so the level
    is never below moderate past that threshold.
    """
    factors: list[str] = []
    score = 0

    for value, table in ((precip_24h, _PRECIP_24H_POINTS), (precip_72h, _PRECIP_72H_POINTS)):
        points, factor = _first_above(value, table)
        score += points
        if factor:
            factors.append(factor)

    if soil_moisture is not None:
        points, factor = _first_above(soil_moisture, _SOIL_POINTS)
        score += points
        if factor:
            factors.append(factor)

    score = clamp(score)
    level, probability = level_and_probability(score)
    readings = f"24h: {precip_24h:.1f}mm, 72h: {precip_72h:.1f}mm"
    if factors:
        explanation = f"Flood risk based on: {', '.join(factors)}. {readings}"
    else:
        explanation = f"Low flood risk. {readings}"

    return RiskAssessment(
        level=level,
        probability=round(probability, 4),
        score=score,
        explanation=explanation,
        factors=factors,
    )


def flood_risk_from_forecast(
    hourly_precipitation: list[float],
    hourly_soil_moisture: list[float],
    soil_default: float = 0.5,
) -> FloodRisk:
    """Flood risk from an hourly forecast (first value = current hour)."""
    precip_24h = sum(v or 0.0 for v in hourly_precipitation[:24])
    current = (hourly_precipitation[0] or 0.0) if hourly_precipitation else 0.0
    # A zero reading is treated as missing.
    soil = (hourly_soil_moisture[0] if hourly_soil_moisture else None) or soil_default

    score = 0.0
    if current > 50:
        score += 50
    elif current > 25:
        score += 35
    elif current > 10:
        score += 20
    elif current > 5:
        score += 10

    if precip_24h > 100:
        score += 30
    elif precip_24h > 50:
        score += 25
    elif precip_24h > 25:
        score += 15
    elif precip_24h > 10:
        score += 8

    if soil > 0.8:
        score += 20
    elif soil > 0.6:
        score += 12
    elif soil > 0.4:
        score += 6

    score = clamp(score)
    level = forecast_level(score)

    alerts: list[RiskAlert] = []
    if level == "severe":
        alerts.append(RiskAlert(
            level="severe",
            message=f"Extreme flood risk: {precip_24h:.1f}mm rainfall in 24h with saturated soil",
            area="All regions",
        ))
    elif level == "high":
        alerts.append(RiskAlert(
            level="high",
            message=f"High flood risk: {precip_24h:.1f}mm rainfall expected in 24h",
            area="Low-lying areas",
        ))
    elif level == "moderate" and precip_24h > 25:
        alerts.append(RiskAlert(
            level="moderate",
            message=f"Moderate flood risk: {precip_24h:.1f}mm rainfall expected",
            area="Drainage systems",
        ))
    if soil > 0.8:
        alerts.append(RiskAlert(
            level="severe" if level == "severe" else "high",
            message="Soil saturation levels critical - reduced water absorption capacity",
            area="Agricultural and low-lying zones",
        ))

    return FloodRisk(
        risk_level=level,
        risk_score=round(score, 1),
        precipitation_24h=round(precip_24h, 2),
        current_intensity=round(current, 2),
        soil_moisture=round(soil, 3),
        alerts=alerts,
    )


# ---------------------------------------------------------------------------
# Storm surge
# ---------------------------------------------------------------------------

def storm_surge_risk(wave_height: float, max_wind_kmh: float, swell_height: float) -> StormSurgeRisk:
    """Coastal storm-surge risk from wave height (m), wind (km/h) and swell (m)."""
    score = 0.0
    if wave_height > 5:
        score += 40
    elif wave_height > 3:
        score += 30
    elif wave_height > 2:
        score += 20
    elif wave_height > 1.5:
        score += 10

    if max_wind_kmh > 100:
        score += 40
    elif max_wind_kmh > 75:
        score += 30
    elif max_wind_kmh > 50:
        score += 20
    elif max_wind_kmh > 30:
        score += 10

    if swell_height > 4:
        score += 20
    elif swell_height > 2.5:
        score += 12
    elif swell_height > 1.5:
        score += 6

    score = clamp(score)
    level = forecast_level(score)

    alerts: list[RiskAlert] = []
    if level == "severe":
        alerts.append(RiskAlert(
            level="severe",
            message=(
                f"Extreme storm surge risk: {wave_height:.1f}m waves "
                f"and {max_wind_kmh:.0f}km/h winds"
            ),
            area="All coastal areas",
        ))
    elif level == "high":
        alerts.append(RiskAlert(
            level="high",
            message=f"High storm surge risk: {wave_height:.1f}m waves expected",
            area="Low-lying coastal zones",
        ))
    elif level == "moderate" and wave_height > 2:
        alerts.append(RiskAlert(
            level="moderate",
            message=f"Moderate storm surge risk: {wave_height:.1f}m waves",
            area="Beach and harbor areas",
        ))
    if max_wind_kmh > 75:
        alerts.append(RiskAlert(
            level="high",
            message=f"Strong winds ({max_wind_kmh:.0f}km/h) - coastal flooding possible",
            area="Exposed coastal regions",
        ))

    return StormSurgeRisk(
        risk_level=level,
        risk_score=round(score, 1),
        wave_height=round(wave_height, 2),
        wind_speed=round(max_wind_kmh, 1),
        swell_height=round(swell_height, 2),
        alerts=alerts,
    )


def storm_surge_fallback() -> StormSurgeRisk:
    """Returned whenever marine data cannot be fetched."""
    return StormSurgeRisk(
        risk_level="low",
        risk_score=0.0,
        wave_height=0.0,
        wind_speed=0.0,
        swell_height=0.0,
        alerts=[],
    )


# ---------------------------------------------------------------------------
# Ocean (NOAA-style indicators)
# ---------------------------------------------------------------------------

def ocean_health_score_from_noaa(sst: float, hotspot: float, dhw: float) -> RiskAssessment:
    """Ocean health 0..100 (higher is healthier) from SST (°C), HotSpot (°C)
    and Degree Heating Weeks. Level reads as ecological risk."""
    factors: list[str] = []
    score = 100.0

    penalty, factor = _first_above(sst, _SST_PENALTY)
    if not factor:
        penalty, factor = _first_below(sst, [_COLD_SST])
    score -= penalty
    if factor:
        factors.append(factor)

    for value, table in ((hotspot, _HOTSPOT_PENALTY), (dhw, _DHW_PENALTY)):
        penalty, factor = _first_above(value, table)
        score -= penalty
        if factor:
            factors.append(factor)

    score = clamp(score)
    level = "low"
    for threshold, label in _OCEAN_LEVELS:
        if score < threshold:
            level = label
            break

    readings = f"SST: {sst:.1f}°C, HotSpot: {hotspot:.1f}, DHW: {dhw:.1f}"
    if factors:
        explanation = f"Ocean health: {', '.join(factors)}. {readings}"
    else:
        explanation = f"Good ocean health. {readings}"

    return RiskAssessment(
        level=level,
        probability=round(1.0 - score / 100.0, 4),
        score=score,
        explanation=explanation,
        factors=factors,
    )


# ---------------------------------------------------------------------------
# Coral bleaching ladder
# ---------------------------------------------------------------------------

def bleaching_tier(sst: float, dhw: float, alert_level: int = 0) -> str:
    """Top-down tier selection. Returns a member of RISK_LEVELS."""
    if alert_level >= 4 or sst >= 31 or dhw >= 12:
        return "severe"
    if alert_level >= 3 or sst >= 30.5 or dhw >= 8:
        return "high"
    if alert_level >= 2 or sst >= 30 or dhw >= 4:
        return "moderate"
    return "low"


def bleaching_risk(sst: float, dhw: float, alert_level: int = 0) -> BleachingRisk:
    """Bleaching risk, probability and days until bleaching is expected.

    Days count the DHW still missing to reach the next tier, at one
    DHW per week of sustained stress.
    """
    tier = bleaching_tier(sst, dhw, alert_level)

    if tier == "severe":
        probability, confidence = 0.9, 0.95
        days = 0 if dhw >= 12 else max(1, round_half_up((12 - dhw) * 7))
    elif tier == "high":
        probability, confidence = 0.7, 0.85
        days = 7 if dhw >= 8 else max(7, round_half_up((8 - dhw) * 7))
    elif tier == "moderate":
        probability, confidence = 0.4, 0.75
        days = 14 if dhw >= 4 else max(14, round_half_up((4 - dhw) * 7))
    else:
        probability, confidence = 0.1, 0.8
        days = None

    return BleachingRisk(
        risk_level=tier,
        probability=probability,
        days_to_bleaching=days,
        confidence=confidence,
        recommended_actions=list(BLEACHING_ACTIONS[tier]),
    )
