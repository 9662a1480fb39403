"""
climaguard.predictors — Statistical predictors labelled as heuristics.

Pure-computation module. Zero I/O. Zero randomness.

Nothing here is a trained model. The bleaching predictor is a weighted
risk formula over temperature, pH and a recent-vs-older temperature
trend; the pollution detector reads water-quality indicators (turbidity,
chlorophyll, dissolved oxygen) and emits typed detections with a
confidence. Both report model_version / model = "heuristic-v1".

Bleaching risk (0..1):
    risk = 0.60 * temperature_risk + 0.25 * ph_risk + 0.15 * trend_risk

Pollution event conversion:
    severity   >= 0.8 critical, >= 0.6 high, >= 0.4 medium, else low
    area (km²) base[type] * (0.5 + confidence)
    spread     square ±0.1° around the detection
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any, Optional

from climaguard.models import BleachingPrediction, LatLng, PollutionEvent
from climaguard.risk import clamp, round_half_up

MODEL_VERSION = "heuristic-v1"

# Temperature risk bands (°C)
TEMP_SEVERE = 31.0
TEMP_HIGH = 30.0
TEMP_MEDIUM = 29.0
TEMP_LOW = 28.0

PH_CRITICAL = 7.8
PH_WARNING = 7.9

DETECTION_THRESHOLD = 0.3

_AREA_BASE_KM2: dict[str, float] = {
    "oil_spill": 5.0,
    "plastic": 2.0,
    "chemical": 1.0,
    "debris": 0.5,
    "sewage": 0.3,
}

_SEVERITY_BANDS: list[tuple[float, str]] = [
    (0.8, "critical"),
    (0.6, "high"),
    (0.4, "medium"),
]


# ---------------------------------------------------------------------------
# Coral bleaching
# ---------------------------------------------------------------------------

def temperature_risk(temp: float) -> float:
    if temp >= TEMP_SEVERE:
        return 1.0
    if temp >= TEMP_HIGH:
        return 0.7 + (temp - TEMP_HIGH) * 0.3
    if temp >= TEMP_MEDIUM:
        return 0.4 + (temp - TEMP_MEDIUM) * 0.3
    if temp >= TEMP_LOW:
        return 0.1 + (temp - TEMP_LOW) * 0.3
    return 0.05


def ph_risk(ph: float) -> float:
    if ph < PH_CRITICAL:
        return min(1.0, 0.8 + (PH_CRITICAL - ph) * 2)
    if ph < PH_WARNING:
        return 0.4 + (PH_WARNING - ph) * 4
    if ph < 8.0:
        return 0.1 + (8.0 - ph) * 1.5
    return 0.05


def trend_risk(history: list[float]) -> float:
    """Risk from the last week's mean against everything before it."""
    if len(history) < 2:
        return 0.0
    recent = history[-7:]
    older = history[: max(1, len(history) - 7)]
    trend = sum(recent) / len(recent) - sum(older) / len(older)
    if trend > 2:
        return 1.0
    if trend > 1:
        return 0.7
    if trend > 0.5:
        return 0.4
    if trend > 0:
        return 0.2
    return 0.05


def _bleaching_level(score: float) -> str:
    if score >= 0.8:
        return "severe"
    if score >= 0.6:
        return "high"
    if score >= 0.3:
        return "medium"
    return "low"


def _history_confidence(n: int) -> float:
    if n >= 30:
        return 0.9
    if n >= 14:
        return 0.7
    if n >= 7:
        return 0.5
    return 0.3


def _bleaching_recommendations(score: float, ph: float) -> list[str]:
    if score > 0.8:
        recs = [
            "URGENT: Implement emergency protection measures",
            "Consider temporary fishing restrictions in affected areas",
            "Deploy shading or cooling interventions if feasible",
            "Increase monitoring frequency to daily",
        ]
    elif score > 0.6:
        recs = [
            "HIGH RISK: Reduce local stressors (fishing, pollution)",
            "Increase shading or cooling measures",
            "Monitor reef health daily",
            "Prepare emergency response protocols",
        ]
    elif score > 0.3:
        recs = [
            "Monitor temperature trends closely",
            "Reduce non-climate stressors",
            "Maintain regular reef health assessments",
        ]
    else:
        recs = [
            "Continue regular monitoring",
            "Maintain good water quality standards",
        ]
    if ph < PH_CRITICAL:
        recs.append("Address ocean acidification through local CO₂ reduction")
    return recs


def predict_bleaching(temperature: float, ph: float, history: list[float]) -> BleachingPrediction:
    """Bleaching risk from current SST (°C), pH and a daily SST history."""
    t_risk = temperature_risk(temperature)
    p_risk = ph_risk(ph)
    tr_risk = trend_risk(history)
    score = min(1.0, t_risk * 0.6 + p_risk * 0.25 + tr_risk * 0.15)

    days: Optional[int] = None
    if score >= 0.6:
        excess = max(0.0, temperature - TEMP_HIGH)
        days = max(1, round_half_up(30 / (1 + excess * 2)))

    return BleachingPrediction(
        risk_level=_bleaching_level(score),
        risk_score=round(score, 4),
        days_to_bleaching=days,
        confidence=_history_confidence(len(history)),
        factors={
            "temperature_risk": round(t_risk, 4),
            "ph_risk": round(p_risk, 4),
            "trend_risk": round(tr_risk, 4),
        },
        recommendations=_bleaching_recommendations(score, ph),
        model_version=MODEL_VERSION,
    )


# ---------------------------------------------------------------------------
# Pollution detection
# ---------------------------------------------------------------------------

def detect_pollution(
    location: LatLng,
    turbidity: float,
    chlorophyll: float,
    dissolved_oxygen: float,
    cloud_cover: Optional[float] = None,
) -> list[dict[str, Any]]:
    """Typed pollution detections from water-quality indicators.

    Nutrient-rich water (chlorophyll > 0.5 mg/m³) points at sewage
    run-off, high turbidity at floating debris or plastic, and oxygen
    depletion without a bloom at a chemical discharge. A cloudy source
    scene discounts every confidence by up to half.

    Returns detections above DETECTION_THRESHOLD, most confident first.
    """
    candidates: list[tuple[str, float]] = []

    if chlorophyll > 0.5:
        conf = 0.3 + (chlorophyll - 0.5) * 1.0
        if dissolved_oxygen < 5:
            conf += 0.2
        candidates.append(("sewage", conf))

    if turbidity > 0.4:
        candidates.append(("debris", 0.3 + (turbidity - 0.4) * 1.5))
    if turbidity > 0.6:
        candidates.append(("plastic", 0.25 + (turbidity - 0.6) * 1.2))

    if dissolved_oxygen < 4 and chlorophyll <= 0.5:
        candidates.append(("chemical", 0.3 + (4 - dissolved_oxygen) * 0.15))

    discount = 1.0
    if cloud_cover is not None:
        discount = 1.0 - clamp(cloud_cover) / 100 * 0.5

    detections = []
    for kind, conf in candidates:
        conf = round(clamp(conf * discount, 0.0, 0.95), 2)
        if conf > DETECTION_THRESHOLD:
            detections.append({"type": kind, "confidence": conf, "location": location})

    detections.sort(key=lambda d: (-d["confidence"], d["type"]))
    return detections


def confidence_to_severity(confidence: float) -> str:
    for threshold, label in _SEVERITY_BANDS:
        if confidence >= threshold:
            return label
    return "low"


def estimate_affected_area(kind: str, confidence: float) -> float:
    return round(_AREA_BASE_KM2[kind] * (0.5 + confidence), 3)


def predict_spread(location: LatLng, radius: float = 0.1) -> list[LatLng]:
    lat, lng = location
    return [
        (lat - radius, lng - radius),
        (lat - radius, lng + radius),
        (lat + radius, lng + radius),
        (lat + radius, lng - radius),
    ]


def to_pollution_events(
    detections: list[dict[str, Any]],
    detected_at: Optional[datetime] = None,
    source: str = "ClimaGuard indicator analysis",
) -> list[PollutionEvent]:
    detected_at = detected_at or datetime.now(UTC)
    return [
        PollutionEvent(
            id=f"pollution-{uuid.uuid4().hex[:12]}",
            type=d["type"],
            location=d["location"],
            severity=confidence_to_severity(d["confidence"]),
            detected_at=detected_at,
            affected_area=estimate_affected_area(d["type"], d["confidence"]),
            predicted_spread=predict_spread(d["location"]),
            status="detected",
            source=source,
        )
        for d in detections
    ]
