"""
climaguard.models — Value objects passed between clients, scorers and routes.

Flat pydantic models, built fresh per request and never mutated after
construction. Request bodies follow the tolerant-validation style:
unknown fields are ignored, camelCase aliases are accepted, and only
structurally unusable input is rejected.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

RiskLevel = Literal["low", "moderate", "high", "severe"]
ReefRiskLevel = Literal["low", "medium", "high", "severe"]
PollutionType = Literal["oil_spill", "plastic", "chemical", "debris", "sewage"]
PollutionSeverity = Literal["low", "medium", "high", "critical"]
PollutionStatus = Literal["detected", "confirmed", "contained", "resolved"]

LatLng = tuple[float, float]


# ---------------------------------------------------------------------------
# Risk assessments
# ---------------------------------------------------------------------------

class RiskAssessment(BaseModel):
    """Output of the additive 0..100 heuristic scorers."""
    level: RiskLevel
    probability: float = Field(..., ge=0.0, le=1.0)
    score: float = Field(..., ge=0.0, le=100.0)
    explanation: str
    factors: list[str] = Field(default_factory=list)


class RiskAlert(BaseModel):
    level: RiskLevel
    message: str
    area: str


class FloodRisk(BaseModel):
    risk_level: RiskLevel
    risk_score: float = Field(..., ge=0.0, le=100.0)
    precipitation_24h: float
    current_intensity: float
    soil_moisture: float
    alerts: list[RiskAlert] = Field(default_factory=list)


class StormSurgeRisk(BaseModel):
    risk_level: RiskLevel
    risk_score: float = Field(..., ge=0.0, le=100.0)
    wave_height: float
    wind_speed: float
    swell_height: float
    alerts: list[RiskAlert] = Field(default_factory=list)


class BleachingRisk(BaseModel):
    risk_level: RiskLevel
    probability: float = Field(..., ge=0.0, le=1.0)
    days_to_bleaching: Optional[int] = None
    confidence: float = Field(..., ge=0.0, le=1.0)
    recommended_actions: list[str] = Field(default_factory=list)


class BleachingPrediction(BaseModel):
    """Statistical bleaching prediction (heuristic, not a trained model)."""
    risk_level: ReefRiskLevel
    risk_score: float = Field(..., ge=0.0, le=1.0)
    days_to_bleaching: Optional[int] = None
    confidence: float
    factors: dict
    recommendations: list[str]
    model_version: str = "heuristic-v1"


# ---------------------------------------------------------------------------
# Ocean health
# ---------------------------------------------------------------------------

class WaterQuality(BaseModel):
    ph: float
    temperature: float
    salinity: float
    dissolved_oxygen: float
    turbidity: float
    score: float


class PollutionSummary(BaseModel):
    plastic_density: float
    oil_spill_risk: float
    chemical_pollution: float
    index: float


class BiodiversitySummary(BaseModel):
    species_count: int
    endangered_species: int
    index: float


class ReefHealthSummary(BaseModel):
    bleaching_risk: str
    health_index: float
    temperature: float
    coverage: float


class OceanHealthMetrics(BaseModel):
    location: LatLng
    timestamp: datetime
    water_quality: WaterQuality
    pollution: PollutionSummary
    biodiversity: BiodiversitySummary
    reef_health: ReefHealthSummary
    overall_score: float


class OceanHealthIndex(BaseModel):
    water_quality: float
    pollution: float
    biodiversity: float
    reef_health: float
    acidification: float
    fishing: float
    overall: int = Field(..., ge=0, le=100)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


# ---------------------------------------------------------------------------
# Pollution events
# ---------------------------------------------------------------------------

class PollutionEvent(BaseModel):
    id: str
    type: PollutionType
    location: LatLng
    severity: PollutionSeverity
    detected_at: datetime
    affected_area: float = 0.0
    predicted_spread: list[LatLng] = Field(default_factory=list)
    status: PollutionStatus = "detected"
    source: Optional[str] = None


def _validate_lat_lng(value: object) -> LatLng:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ValueError("location must be [lat, lng].")
    lat, lng = (float(v) for v in value)
    if math.isnan(lat) or math.isnan(lng):
        raise ValueError("location must not contain NaN.")
    if not -90.0 <= lat <= 90.0 or not -180.0 <= lng <= 180.0:
        raise ValueError("location out of range.")
    return (lat, lng)


class PollutionEventCreate(BaseModel):
    """Body of POST /pollution/events."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    type: PollutionType
    location: LatLng
    severity: PollutionSeverity
    detected_at: Optional[datetime] = Field(default=None, alias="detectedAt")
    affected_area: float = Field(default=0.0, ge=0.0, alias="affectedArea")
    predicted_spread: list[LatLng] = Field(default_factory=list, alias="predictedSpread")
    status: PollutionStatus = "detected"
    source: Optional[str] = Field(default=None, max_length=200)

    @field_validator("location", mode="before")
    @classmethod
    def _check_location(cls, v: object) -> LatLng:
        return _validate_lat_lng(v)


class PollutionDetectRequest(BaseModel):
    """Body of POST /pollution/detect.

    Either a location alone (Sentinel-2 scene lookup plus marine
    indicators) or a location with caller-supplied indicators.
    """

    model_config = {"extra": "ignore", "populate_by_name": True}

    location: LatLng
    turbidity: Optional[float] = Field(default=None, ge=0.0)
    chlorophyll: Optional[float] = Field(default=None, ge=0.0)
    dissolved_oxygen: Optional[float] = Field(default=None, ge=0.0, alias="dissolvedOxygen")

    @field_validator("location", mode="before")
    @classmethod
    def _check_location(cls, v: object) -> LatLng:
        return _validate_lat_lng(v)

    @model_validator(mode="after")
    def _finite_indicators(self) -> PollutionDetectRequest:
        for name in ("turbidity", "chlorophyll", "dissolved_oxygen"):
            value = getattr(self, name)
            if value is not None and (math.isnan(value) or math.isinf(value)):
                setattr(self, name, None)
        return self
