"""
climaguard.sdg14 — SDG 14 ("Life Below Water") indicator assessment.

Pure computation over already-fetched reef, turbidity and fishing
summaries. One section per target:

    14.1 pollution_reduction     14.5 protected_areas
    14.2 ecosystem_health        14.7 economic_benefits
    14.3 acidification_status    14.a research_capacity
    14.4 fishing_sustainability

Regional figures that have no live source (protected area, mangrove and
seagrass extent, tourism revenue, monitoring stations) are fixed
estimates; Mauritius has its own, any other region gets the generic one.

Overall progress is a weighted mean of one 0..100 score per target,
with the economic score held at 75.
"""

from __future__ import annotations

from typing import Any

from climaguard.constants import DEFAULT_PH
from climaguard.risk import round_half_up

HOME_REGION = "Mauritius"

_PROGRESS_WEIGHTS: dict[str, float] = {
    "pollution": 0.20,
    "ecosystem": 0.20,
    "acidification": 0.15,
    "fishing": 0.15,
    "protected_areas": 0.10,
    "economic": 0.10,
    "research": 0.10,
}

ECONOMIC_SCORE = 75
VALUE_PER_TON_USD = 5000
POLLUTION_REDUCTION_TARGET = 50


def _home(region: str, home_value: Any, other_value: Any) -> Any:
    return home_value if region == HOME_REGION else other_value


def pollution_reduction(turbidity: float, chlorophyll: float) -> dict[str, Any]:
    """Target 14.1."""
    plastic = max(0.0, turbidity * 10 + chlorophyll * 5)
    oil_risk = 25 if turbidity > 0.5 else 10
    chemical = min(100.0, turbidity * 100)
    current_reduction = max(0.0, 100 - chemical)
    progress = current_reduction / POLLUTION_REDUCTION_TARGET * 100
    return {
        "plastic_density": round(plastic, 2),
        "oil_spill_events": 1 if oil_risk > 20 else 0,
        "chemical_pollution": round_half_up(chemical),
        "sewage_discharge": round_half_up(chemical * 0.6),
        "reduction_target": POLLUTION_REDUCTION_TARGET,
        "progress": min(100, round_half_up(progress)),
    }


def ecosystem_health(reef_health_index: float, region: str) -> dict[str, Any]:
    """Target 14.2."""
    return {
        "protected_area_coverage": _home(region, 15, 10),
        "reef_health_index": reef_health_index,
        "mangrove_coverage": _home(region, 12.5, 10),
        "seagrass_coverage": _home(region, 45, 30),
        "restoration_progress": round_half_up(min(100.0, reef_health_index / 80 * 100)),
    }


def acidification_status(ph: float | None) -> dict[str, Any]:
    """Target 14.3."""
    ph = ph or DEFAULT_PH
    if ph > 8.0:
        aragonite = 3.8
    elif ph > 7.9:
        aragonite = 3.2
    else:
        aragonite = 2.8
    return {
        "ph": round(ph, 2),
        "aragonite_saturation": aragonite,
        "acidification_rate": -0.02 if ph < 8.0 else -0.01,
        "vulnerable_species": 15 if ph < 7.9 else 8,
        "mitigation_progress": 100 if ph >= 8.0 else round_half_up(ph / 8.0 * 100),
    }


def _stock_status(overfishing_risk: float) -> str:
    if overfishing_risk < 30:
        return "healthy"
    if overfishing_risk < 50:
        return "moderate"
    if overfishing_risk < 70:
        return "depleted"
    return "critical"


def fishing_sustainability(fishing: dict[str, Any]) -> dict[str, Any]:
    """Target 14.4, from a fishing_watch summary."""
    activity = fishing.get("fishing_activity") or {}
    sustainable = activity.get("sustainable_catch") or 0.0
    total = activity.get("total_catch") or 0.0
    overfishing_rate = 0.0
    if sustainable > 0 and total > sustainable:
        overfishing_rate = (total - sustainable) / sustainable * 100

    compliance = fishing.get("protected_area_compliance") or []
    compliance_rate = compliance[0].get("compliance_rate") if compliance else None

    return {
        "overfishing_rate": round(overfishing_rate, 1),
        "sustainable_catch": round(sustainable, 1),
        "total_catch": round(total, 1),
        "compliance_rate": round_half_up(compliance_rate if compliance_rate is not None else 85),
        "stock_status": _stock_status(activity.get("overfishing_risk") or 20),
    }


def protected_areas(region: str) -> dict[str, Any]:
    """Target 14.5."""
    return {
        "total_area": _home(region, 2500, 2000),
        "percentage_coverage": _home(region, 15, 12),
        "effectively_managed": 75,
        "new_areas_established": 2,
    }


def economic_benefits(total_catch: float, region: str) -> dict[str, Any]:
    """Target 14.7."""
    fishing_value = total_catch * VALUE_PER_TON_USD
    tourism = _home(region, 1_200_000_000, 800_000_000)
    return {
        "sustainable_tourism": tourism,
        "sustainable_fishing": fishing_value,
        "blue_economy": fishing_value + tourism,
        "employment": _home(region, 45_000, 30_000),
    }


def research_capacity(region: str) -> dict[str, Any]:
    """Target 14.a."""
    return {
        "monitoring_stations": _home(region, 12, 8),
        "data_quality": 85,
        "research_output": _home(region, 25, 15),
        "technology_adoption": 70,
    }


def overall_progress(sections: dict[str, dict[str, Any]]) -> dict[str, Any]:
    scores = {
        "pollution": sections["pollution_reduction"]["progress"],
        "ecosystem": sections["ecosystem_health"]["restoration_progress"],
        "acidification": sections["acidification_status"]["mitigation_progress"],
        "fishing": sections["fishing_sustainability"]["compliance_rate"],
        "protected_areas": sections["protected_areas"]["effectively_managed"],
        "economic": ECONOMIC_SCORE,
        "research": sections["research_capacity"]["data_quality"],
    }
    overall = round(sum(scores[k] * w for k, w in _PROGRESS_WEIGHTS.items()))

    priority: list[str] = []
    if scores["pollution"] < 50:
        priority.append("Urgent: Reduce marine pollution")
    if scores["ecosystem"] < 50:
        priority.append("Restore degraded ecosystems")
    if scores["acidification"] < 50:
        priority.append("Address ocean acidification")
    if scores["fishing"] < 50:
        priority.append("End overfishing and illegal fishing")
    if scores["protected_areas"] < 30:
        priority.append("Expand marine protected areas")

    return {
        "score": max(0, min(100, overall)),
        "targets_on_track": sum(1 for s in scores.values() if s >= 70),
        "targets_needing_attention": sum(1 for s in scores.values() if s < 50),
        "priority_actions": priority,
    }


def action_recommendations(metrics: dict[str, dict[str, Any]]) -> list[str]:
    recs: list[str] = []
    if metrics["pollution_reduction"]["progress"] < 50:
        recs += [
            "Implement plastic waste reduction programs",
            "Strengthen oil spill response capabilities",
            "Improve wastewater treatment infrastructure",
        ]
    if metrics["ecosystem_health"]["restoration_progress"] < 50:
        recs += [
            "Restore degraded coral reefs",
            "Protect and restore mangrove forests",
            "Establish new marine protected areas",
        ]
    if metrics["acidification_status"]["mitigation_progress"] < 50:
        recs += [
            "Reduce CO2 emissions to slow acidification",
            "Protect vulnerable species from acidification",
            "Monitor pH levels more frequently",
        ]
    if metrics["fishing_sustainability"]["compliance_rate"] < 70:
        recs += [
            "Strengthen fishing regulations enforcement",
            "Support sustainable fishing practices",
            "End subsidies that contribute to overfishing",
        ]
    if metrics["protected_areas"]["percentage_coverage"] < 10:
        recs += [
            "Expand marine protected area coverage to 10% of EEZ",
            "Improve management effectiveness of existing MPAs",
        ]
    return recs


def assess_sdg14(
    reef: dict[str, Any],
    turbidity: dict[str, Any],
    fishing: dict[str, Any],
    region: str = HOME_REGION,
) -> dict[str, Any]:
    """Full SDG 14 assessment.

    Args:
        reef: reef_watch summary (health_index, optional ph).
        turbidity: gibs turbidity estimate (turbidity, chlorophyll).
        fishing: fishing_watch summary.
        region: "Mauritius" or any other label for generic estimates.
    """
    fishing_section = fishing_sustainability(fishing)
    sections: dict[str, dict[str, Any]] = {
        "pollution_reduction": pollution_reduction(turbidity["turbidity"], turbidity["chlorophyll"]),
        "ecosystem_health": ecosystem_health(reef.get("health_index") or 0, region),
        "acidification_status": acidification_status(reef.get("ph")),
        "fishing_sustainability": fishing_section,
        "protected_areas": protected_areas(region),
        "economic_benefits": economic_benefits(fishing_section["total_catch"], region),
        "research_capacity": research_capacity(region),
    }
    sections["overall_progress"] = overall_progress(sections)
    return sections
