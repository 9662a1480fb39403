"""
climaguard.ocean_health — Ocean-health indices and their aggregation.

Pure-computation module. Zero I/O. Zero randomness.

Two layers:

1. Component scores, each on a 0..100 scale:
     water quality   higher is better (pH, temperature, salinity, DO, turbidity)
     pollution index LOWER is better (turbidity, chlorophyll excess, DO/pH deficit)
     biodiversity    higher is better (chlorophyll band, clarity, coral cover)
     reef health     higher is better (SST, DHW, pH, DO, coral cover)

2. Aggregation:
     calculate_ocean_health_index   six-term weighted sum, weights in
                                    constants.OCEAN_HEALTH_WEIGHTS
     regional_overall               four-term weighted sum with pollution
                                    inverted, weights in
                                    constants.REGIONAL_HEALTH_WEIGHTS

Every aggregate is clamped to [0, 100]. The weighted sums are computed
over sorted keys with math.fsum so the result does not depend on the
order in which components are supplied.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Any, Optional

from climaguard.constants import (
    ISLAND_AVERAGE_CHARACTERISTICS,
    MAURITIUS_REGIONS,
    OCEAN_HEALTH_WEIGHTS,
    REGIONAL_HEALTH_WEIGHTS,
)
from climaguard.models import OceanHealthIndex, OceanHealthMetrics
from climaguard.risk import bleaching_tier, clamp, round_half_up


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def weighted_score(components: dict[str, float], weights: dict[str, float]) -> float:
    """Weighted sum of *components* under *weights*, clamped to [0, 100].

    Order-independent: terms are summed with math.fsum over sorted keys.
    Raises KeyError if a weighted component is missing.
    """
    terms = [clamp(float(components[key])) * weights[key] for key in sorted(weights)]
    return clamp(math.fsum(terms))


def calculate_ocean_health_index(
    water_quality: float,
    pollution: float,
    biodiversity: float,
    reef_health: float,
    acidification: float = 80.0,
    fishing: float = 75.0,
) -> OceanHealthIndex:
    """Composite ocean health index (0..100, higher is healthier).

    Each component is expected on a 0..100 "higher is better" scale.
    """
    components = {
        "water_quality": water_quality,
        "pollution": pollution,
        "biodiversity": biodiversity,
        "reef_health": reef_health,
        "acidification": acidification,
        "fishing": fishing,
    }
    overall = round_half_up(weighted_score(components, OCEAN_HEALTH_WEIGHTS))
    return OceanHealthIndex(
        **{k: round(clamp(float(v)), 2) for k, v in components.items()},
        overall=overall,
        timestamp=datetime.now(UTC),
    )


def validate_ocean_health_metrics(metrics: OceanHealthMetrics | dict[str, Any]) -> list[str]:
    """Return a list of problems; empty means the metrics are plausible."""
    data = metrics.model_dump() if isinstance(metrics, OceanHealthMetrics) else metrics
    errors: list[str] = []

    for section in ("location", "timestamp", "water_quality", "pollution",
                    "biodiversity", "reef_health", "overall_score"):
        if data.get(section) is None:
            errors.append(f"missing {section}")
    if errors:
        return errors

    if not 0 <= data["overall_score"] <= 100:
        errors.append("overall_score must be within [0, 100]")
    ph = data["water_quality"].get("ph")
    if ph is None or not 6 <= ph <= 9:
        errors.append("ph must be within [6, 9]")
    temperature = data["water_quality"].get("temperature")
    if temperature is None or not 0 <= temperature <= 40:
        errors.append("temperature must be within [0, 40]")
    return errors


# ---------------------------------------------------------------------------
# Simple water quality (single point, marine-derived indicators)
# ---------------------------------------------------------------------------

def water_quality_score(
    ph: float,
    temperature: float,
    salinity: float,
    dissolved_oxygen: float,
    turbidity: float,
) -> float:
    score = 100.0
    if not 7.8 <= ph <= 8.4:
        score -= 10 if 7.6 <= ph < 8.6 else 30
    if not 26 <= temperature <= 30:
        score -= 15
    if not 34 <= salinity <= 36:
        score -= 10
    if dissolved_oxygen < 5:
        score -= 20
    elif dissolved_oxygen < 6:
        score -= 10
    if turbidity > 1:
        score -= 15
    return clamp(score)


def simple_pollution_health(turbidity: float, chlorophyll: float) -> float:
    """Pollution as a 0..100 "higher is cleaner" component."""
    return clamp(100 - turbidity * 50 - chlorophyll * 20)


def biodiversity_from_imagery(chlorophyll: float, clarity: float, reef_health: float) -> float:
    return clamp(chlorophyll * 20 + clarity * 0.3 + reef_health * 0.5)


def habitat_quality(chlorophyll: float, clarity: float, reef_health: float) -> dict[str, float]:
    coral = clamp(reef_health)
    seagrass = clamp(clarity + chlorophyll * 10)
    mangrove = clamp(60 + clarity * 0.4)
    return {
        "coral_reef": round_half_up(coral),
        "seagrass": round_half_up(seagrass),
        "mangrove": round_half_up(mangrove),
        "overall": round_half_up((coral + seagrass + mangrove) / 3),
    }


# ---------------------------------------------------------------------------
# Detailed regional indices
# ---------------------------------------------------------------------------

def detailed_water_quality(
    ph: float,
    temperature: float,
    dissolved_oxygen: float,
    turbidity: float,
    salinity: float,
) -> float:
    score = 100.0

    if ph < 7.6 or ph > 8.4:
        score -= 30
    elif ph < 7.8 or ph > 8.2:
        score -= 15
    elif 8.0 <= ph <= 8.1:
        score += 5

    if temperature < 24 or temperature > 31:
        score -= 25
    elif temperature < 25 or temperature > 30:
        score -= 10
    elif 26 <= temperature <= 29:
        score += 5

    if dissolved_oxygen < 4:
        score -= 30
    elif dissolved_oxygen < 5:
        score -= 20
    elif dissolved_oxygen < 6 or dissolved_oxygen > 9:
        score -= 10
    elif 6.5 <= dissolved_oxygen <= 7.5:
        score += 5

    if turbidity > 0.5:
        score -= 20
    elif turbidity > 0.3:
        score -= 10
    elif turbidity < 0.1:
        score += 5

    if salinity < 32 or salinity > 38:
        score -= 15
    elif salinity < 33 or salinity > 37:
        score -= 5

    return round_half_up(clamp(score))


def pollution_index(turbidity: float, chlorophyll: float, dissolved_oxygen: float, ph: float) -> int:
    """Pollution index 0..100; lower is better."""
    index = min(30.0, turbidity * 60)
    if chlorophyll > 0.5:
        index += min(25.0, (chlorophyll - 0.5) * 50)
    if dissolved_oxygen < 6:
        index += (6 - dissolved_oxygen) * 5
    if ph < 8:
        index += (8 - ph) * 10
    return int(min(100, round_half_up(max(index, 0.0))))


def biodiversity_index(
    chlorophyll: float,
    turbidity: float,
    coral_coverage: float,
    dissolved_oxygen: float,
) -> int:
    score = 50.0
    if 0.2 <= chlorophyll <= 0.4:
        score += 15
    elif chlorophyll > 0.4:
        score += 10
    if turbidity < 0.2:
        score += 10
    elif turbidity > 0.4:
        score -= 10
    score += coral_coverage * 0.4
    if dissolved_oxygen >= 6.5:
        score += 5
    return round_half_up(clamp(score))


def reef_health_score(
    sst: float,
    dhw: float,
    ph: float,
    dissolved_oxygen: float,
    coral_coverage: float,
) -> int:
    score = 100.0

    if sst >= 31:
        score -= 40
    elif sst >= 30.5:
        score -= 30
    elif sst >= 30:
        score -= 20
    elif sst >= 29.5:
        score -= 10
    elif 26 <= sst <= 29:
        score += 5

    if dhw >= 12:
        score -= 30
    elif dhw >= 8:
        score -= 20
    elif dhw >= 4:
        score -= 10
    elif dhw >= 1:
        score -= 5

    if ph < 7.8:
        score -= 20
    elif ph < 8.0:
        score -= 10
    elif ph <= 8.2:
        score += 5

    if dissolved_oxygen < 5:
        score -= 15
    elif dissolved_oxygen < 6:
        score -= 8

    score += (coral_coverage - 30) * 0.3
    return round_half_up(clamp(score))


def reef_bleaching_label(sst: float, dhw: float, alert_level: int) -> str:
    """Ladder tier in reef vocabulary (the middle tier reads 'medium')."""
    tier = bleaching_tier(sst, dhw, alert_level)
    return "medium" if tier == "moderate" else tier


def regional_overall(water_quality: float, pollution: float, biodiversity: float, reef: float) -> int:
    components = {
        "water_quality": water_quality,
        "pollution": 100 - pollution,
        "biodiversity": biodiversity,
        "reef_health": reef,
    }
    return round_half_up(weighted_score(components, REGIONAL_HEALTH_WEIGHTS))


# (minimum overall, risk level, label)
_OVERALL_BANDS: list[tuple[int, str, str]] = [
    (80, "low", "Excellent"),
    (60, "moderate", "Good"),
    (40, "high", "Moderate"),
]


def overall_band(overall: float) -> tuple[str, str]:
    """Return (risk_level, status_label) for a regional overall score."""
    for threshold, level, label in _OVERALL_BANDS:
        if overall >= threshold:
            return level, label
    return "severe", "Poor"


def pollution_breakdown(index: float) -> dict[str, float]:
    return {
        "plastic_density": round(index * 0.5, 1),
        "oil_spill_risk": round(min(30.0, index * 0.8), 1),
        "chemical_pollution": round(min(40.0, index * 1.2), 1),
    }


def species_estimates(biodiversity: float) -> dict[str, int]:
    return {
        "species_count": int(round_half_up(150 + biodiversity * 2)),
        "endangered_species": int(round_half_up(5 + (100 - biodiversity) * 0.1)),
    }


def region_characteristics(region: Optional[str]) -> dict[str, float]:
    """Baseline characteristics for a named region, or the island average.

    Raises KeyError for an unknown region name.
    """
    if region is None:
        return dict(ISLAND_AVERAGE_CHARACTERISTICS)
    return dict(MAURITIUS_REGIONS[region]["characteristics"])


def assess_region(
    characteristics: dict[str, float],
    sst: float,
    dhw: float,
    alert_level: int,
) -> dict[str, Any]:
    """Detailed health assessment from regional baselines plus live SST/DHW."""
    ph = characteristics["ph"]
    do = characteristics["dissolved_oxygen"]
    turbidity = characteristics["turbidity"]
    chlorophyll = characteristics["chlorophyll"]
    coral = characteristics["coral_coverage"]

    wq = detailed_water_quality(ph, sst, do, turbidity, characteristics["salinity"])
    poll = pollution_index(turbidity, chlorophyll, do, ph)
    bio = biodiversity_index(chlorophyll, turbidity, coral, do)
    reef = reef_health_score(sst, dhw, ph, do, coral)
    overall = regional_overall(wq, poll, bio, reef)
    risk_level, status = overall_band(overall)

    return {
        "overall_score": overall,
        "risk_level": risk_level,
        "status": status,
        "water_quality": {
            "score": wq,
            "ph": ph,
            "temperature": round(sst, 2),
            "dissolved_oxygen": do,
            "turbidity": turbidity,
            "salinity": characteristics["salinity"],
        },
        "pollution": {"index": poll, **pollution_breakdown(poll)},
        "biodiversity": {"index": bio, **species_estimates(bio), "chlorophyll": chlorophyll},
        "reef_health": {
            "score": reef,
            "bleaching_risk": reef_bleaching_label(sst, dhw, alert_level),
            "degree_heating_weeks": round(dhw, 2),
            "coral_coverage": coral,
        },
    }
