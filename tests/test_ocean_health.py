"""
tests/test_ocean_health.py — Ocean-health aggregation tests.

Covers:
    - Composite index: bounds, clamping, order independence
    - Metric plausibility validation
    - Marine-derived water quality, pollution and habitat scores
    - Regional detailed assessment
"""

from __future__ import annotations

import random
from datetime import UTC, datetime

import pytest

from climaguard.constants import ISLAND_AVERAGE_CHARACTERISTICS, MAURITIUS_REGIONS, OCEAN_HEALTH_WEIGHTS
from climaguard.models import (
    BiodiversitySummary,
    OceanHealthMetrics,
    PollutionSummary,
    ReefHealthSummary,
    WaterQuality,
)
from climaguard.ocean_health import (
    assess_region,
    calculate_ocean_health_index,
    habitat_quality,
    overall_band,
    region_characteristics,
    simple_pollution_health,
    species_estimates,
    validate_ocean_health_metrics,
    water_quality_score,
    weighted_score,
)


def _metrics(ph: float = 8.1, temperature: float = 28.0, overall: float = 75.0) -> OceanHealthMetrics:
    return OceanHealthMetrics(
        location=(-20.0, 57.5),
        timestamp=datetime.now(UTC),
        water_quality=WaterQuality(
            ph=ph, temperature=temperature, salinity=35.2,
            dissolved_oxygen=6.5, turbidity=0.3, score=90,
        ),
        pollution=PollutionSummary(plastic_density=0, oil_spill_risk=0, chemical_pollution=0, index=80),
        biodiversity=BiodiversitySummary(species_count=300, endangered_species=8, index=75),
        reef_health=ReefHealthSummary(bleaching_risk="low", health_index=70, temperature=temperature, coverage=0),
        overall_score=overall,
    )


# ===========================================================================
# Composite index
# ===========================================================================


class TestOceanHealthIndex:
    """calculate_ocean_health_index() and weighted_score()."""

    def test_weights_sum_to_one(self):
        """Index weights sum to 1.0."""
        assert sum(OCEAN_HEALTH_WEIGHTS.values()) == pytest.approx(1.0)

    def test_all_perfect_is_100(self):
        """Every component at 100 gives 100."""
        index = calculate_ocean_health_index(100, 100, 100, 100, 100, 100)
        assert index.overall == 100

    def test_all_zero_is_0(self):
        """Every component at 0 gives 0."""
        index = calculate_ocean_health_index(0, 0, 0, 0, 0, 0)
        assert index.overall == 0

    def test_overall_rounds_half_up(self):
        """A weighted sum of exactly 0.5 reports 1, not 0."""
        assert calculate_ocean_health_index(2, 0, 0, 0, 0, 0).overall == 1

    def test_out_of_range_components_clamped(self):
        """Components outside [0, 100] are clamped before weighting."""
        index = calculate_ocean_health_index(250, -40, 100, 100, 100, 100)
        assert index.water_quality == 100
        assert index.pollution == 0
        assert index.overall == 75

    def test_nan_component_does_not_leak(self):
        """A NaN component counts as zero."""
        index = calculate_ocean_health_index(float("nan"), 100, 100, 100, 100, 100)
        assert index.water_quality == 0
        assert index.overall == 75

    def test_order_independent(self):
        """Shuffling component insertion order never changes the result."""
        rng = random.Random(14)
        for _ in range(50):
            components = {k: rng.uniform(0, 100) for k in OCEAN_HEALTH_WEIGHTS}
            keys = list(components)
            rng.shuffle(keys)
            shuffled = {k: components[k] for k in keys}
            assert weighted_score(components, OCEAN_HEALTH_WEIGHTS) == weighted_score(shuffled, OCEAN_HEALTH_WEIGHTS)

    def test_overall_always_bounded(self):
        """Random inputs, including out-of-range ones, stay within [0, 100]."""
        rng = random.Random(7)
        for _ in range(200):
            values = [rng.uniform(-200, 300) for _ in range(6)]
            index = calculate_ocean_health_index(*values)
            assert 0 <= index.overall <= 100

    def test_missing_component_raises(self):
        """A weighted component absent from the inputs is a KeyError."""
        with pytest.raises(KeyError):
            weighted_score({"water_quality": 50}, OCEAN_HEALTH_WEIGHTS)


# ===========================================================================
# Validation
# ===========================================================================


class TestValidation:
    """validate_ocean_health_metrics()."""

    def test_plausible_metrics_pass(self):
        """Typical Mauritius readings produce no problems."""
        assert validate_ocean_health_metrics(_metrics()) == []

    def test_ph_out_of_range(self):
        """pH outside [6, 9] is reported."""
        problems = validate_ocean_health_metrics(_metrics(ph=9.5))
        assert problems == ["ph must be within [6, 9]"]

    def test_temperature_out_of_range(self):
        """Temperature outside [0, 40] is reported."""
        problems = validate_ocean_health_metrics(_metrics(temperature=45.0))
        assert "temperature must be within [0, 40]" in problems

    def test_missing_sections_in_dict(self):
        """A bare dict reports each missing section."""
        problems = validate_ocean_health_metrics({"location": [0, 0]})
        assert "missing water_quality" in problems
        assert "missing overall_score" in problems
        assert "missing location" not in problems


# ===========================================================================
# Marine-derived scores
# ===========================================================================


class TestMarineScores:
    """Water quality, pollution, habitat and species estimates."""

    def test_water_quality_ideal(self):
        """Ideal chemistry keeps 100."""
        assert water_quality_score(8.1, 28.0, 35.0, 6.5, 0.3) == 100

    def test_water_quality_every_penalty(self):
        """Every parameter out of range stacks penalties."""
        assert water_quality_score(7.0, 32.0, 33.0, 4.0, 1.5) == 10

    def test_water_quality_mild_ph(self):
        """pH slightly out of range costs 10."""
        assert water_quality_score(7.7, 28.0, 35.0, 6.5, 0.3) == 90

    def test_pollution_health_bounds(self):
        """Clean water is 100; heavy turbidity and chlorophyll floor at 0."""
        assert simple_pollution_health(0.0, 0.0) == 100
        assert simple_pollution_health(2.0, 5.0) == 0

    def test_habitat_quality(self):
        """Habitat components and their mean."""
        habitat = habitat_quality(0.4, 70.0, 60.0)
        assert habitat == {"coral_reef": 60, "seagrass": 74, "mangrove": 88, "overall": 74}

    def test_habitat_quality_rounds_half_up(self):
        """Half-way habitat scores round up."""
        habitat = habitat_quality(0.0, 0.0, 1.5)
        assert habitat == {"coral_reef": 2, "seagrass": 0, "mangrove": 60, "overall": 21}

    def test_species_estimates(self):
        """Species count grows, endangered count shrinks, with biodiversity."""
        low = species_estimates(20)
        high = species_estimates(90)
        assert high["species_count"] > low["species_count"]
        assert high["endangered_species"] < low["endangered_species"]


# ===========================================================================
# Regional assessment
# ===========================================================================


class TestRegionalAssessment:
    """region_characteristics(), assess_region() and overall_band()."""

    def test_unknown_region_raises(self):
        """Unknown region names are a KeyError."""
        with pytest.raises(KeyError):
            region_characteristics("atlantis")

    def test_none_is_island_average(self):
        """No region means the island-average characteristics."""
        assert region_characteristics(None) == ISLAND_AVERAGE_CHARACTERISTICS

    def test_characteristics_are_copies(self):
        """Mutating the returned dict never touches the region table."""
        chars = region_characteristics("north")
        chars["ph"] = 0.0
        assert MAURITIUS_REGIONS["north"]["characteristics"]["ph"] == 8.15

    def test_east_coast_normal_conditions_excellent(self):
        """Clear east-coast water at normal SST scores Excellent."""
        result = assess_region(region_characteristics("east"), 28.0, 0.0, 0)
        assert result["status"] == "Excellent"
        assert result["risk_level"] == "low"
        assert result["reef_health"]["bleaching_risk"] == "low"
        assert result["water_quality"]["score"] == 100

    def test_heat_stress_lowers_reef_score(self):
        """Severe heat stress drops the reef score and flags severe bleaching."""
        chars = region_characteristics("west")
        normal = assess_region(chars, 28.0, 0.0, 0)
        hot = assess_region(chars, 31.2, 13.0, 5)
        assert hot["reef_health"]["score"] < normal["reef_health"]["score"]
        assert hot["reef_health"]["bleaching_risk"] == "severe"
        assert hot["overall_score"] < normal["overall_score"]

    def test_moderate_tier_reads_medium(self):
        """The middle bleaching tier uses reef vocabulary."""
        result = assess_region(region_characteristics("south"), 30.0, 0.0, 0)
        assert result["reef_health"]["bleaching_risk"] == "medium"

    @pytest.mark.parametrize("region", sorted(MAURITIUS_REGIONS))
    def test_every_region_bounded(self, region: str):
        """Every region's scores stay within [0, 100]."""
        result = assess_region(region_characteristics(region), 29.0, 2.0, 2)
        assert 0 <= result["overall_score"] <= 100
        for section in ("water_quality", "reef_health"):
            assert 0 <= result[section]["score"] <= 100
        assert 0 <= result["pollution"]["index"] <= 100
        assert 0 <= result["biodiversity"]["index"] <= 100

    @pytest.mark.parametrize("overall,expected", [
        (100, ("low", "Excellent")),
        (80, ("low", "Excellent")),
        (79, ("moderate", "Good")),
        (60, ("moderate", "Good")),
        (40, ("high", "Moderate")),
        (39, ("severe", "Poor")),
    ])
    def test_overall_band(self, overall: int, expected: tuple[str, str]):
        """Band edges for the regional overall score."""
        assert overall_band(overall) == expected
