"""
tests/test_risk.py — Heuristic risk scorer tests.

Covers:
    - Cyclone risk from pressure and wind
    - Flood risk from precipitation sums and from an hourly forecast
    - Storm-surge risk and its fallback
    - Ocean health score from NOAA-style indicators
    - Coral bleaching ladder (tiers, days to bleaching, DHW >= 12 floor)

Pure computation; no network, no app.
"""

from __future__ import annotations

import math

import pytest

from climaguard.constants import RISK_LEVEL_RANK, RISK_LEVELS
from climaguard.risk import (
    bleaching_risk,
    bleaching_tier,
    clamp,
    cyclone_risk_from_observations,
    flood_risk_from_forecast,
    flood_risk_from_precip,
    level_and_probability,
    ocean_health_score_from_noaa,
    round_half_up,
    storm_surge_fallback,
    storm_surge_risk,
)


# ===========================================================================
# Helpers
# ===========================================================================


class TestHelpers:
    """clamp, round_half_up and the shared level/probability mapping."""

    def test_clamp_bounds(self):
        """Values outside [0, 100] are pulled to the nearest bound."""
        assert clamp(-5) == 0
        assert clamp(150) == 100
        assert clamp(42.5) == 42.5

    def test_clamp_nan_and_inf_collapse_to_lo(self):
        """NaN and infinities never leak into a score."""
        assert clamp(math.nan) == 0
        assert clamp(math.inf) == 0
        assert clamp(-math.inf, 1.0, 2.0) == 1.0

    @pytest.mark.parametrize("value,expected", [
        (0.5, 1), (1.5, 2), (2.5, 3), (1.49, 1), (74.5, 75), (-0.5, 0), (-1.5, -1), (3.0, 3),
    ])
    def test_round_half_up(self, value: float, expected: int):
        """Ties round towards positive infinity, never to even."""
        assert round_half_up(value) == expected

    @pytest.mark.parametrize("score,level", [
        (0, "low"), (29.9, "low"), (30, "moderate"), (59.9, "moderate"),
        (60, "high"), (79.9, "high"), (80, "severe"), (100, "severe"),
    ])
    def test_level_boundaries(self, score: float, level: str):
        """Band edges are inclusive at the lower bound."""
        assert level_and_probability(score)[0] == level

    def test_probability_monotonic(self):
        """Higher score never lowers probability."""
        probs = [level_and_probability(s)[1] for s in range(0, 101)]
        assert probs == sorted(probs)
        assert probs[0] == 0.0
        assert probs[-1] == pytest.approx(1.0)


# ===========================================================================
# Cyclone
# ===========================================================================


class TestCycloneRisk:
    """cyclone_risk_from_observations()."""

    def test_calm_conditions_low(self):
        """Normal pressure and light wind score zero."""
        result = cyclone_risk_from_observations(1013.0, 20.0)
        assert result.level == "low"
        assert result.score == 0
        assert result.probability == 0.0
        assert result.factors == []
        assert result.explanation.startswith("Normal conditions")

    def test_extreme_conditions_severe(self):
        """Very low pressure plus hurricane-force wind is severe."""
        result = cyclone_risk_from_observations(975.0, 130.0)
        assert result.level == "severe"
        assert result.score == 100
        assert result.probability == pytest.approx(1.0)
        assert "extremely low pressure" in result.factors
        assert "hurricane-force winds" in result.factors

    def test_moderate_combination(self):
        """Low pressure and strong wind combine additively."""
        result = cyclone_risk_from_observations(995.0, 70.0)
        assert result.score == 40
        assert result.level == "moderate"
        assert result.probability == pytest.approx(0.45)

    def test_readings_in_explanation(self):
        """Explanation carries the raw readings."""
        result = cyclone_risk_from_observations(1008.0, 45.0)
        assert "1008.0 hPa" in result.explanation
        assert "45.0 km/h" in result.explanation


# ===========================================================================
# Flood
# ===========================================================================


class TestFloodRisk:
    """flood_risk_from_precip() and flood_risk_from_forecast()."""

    def test_dry_is_low(self):
        """No rain and no soil reading is low risk."""
        result = flood_risk_from_precip(0.0, 0.0)
        assert result.level == "low"
        assert result.explanation.startswith("Low flood risk")

    def test_extreme_rain_with_saturated_soil_severe(self):
        """Every component at its top band reaches severe."""
        result = flood_risk_from_precip(120.0, 250.0, 0.9)
        assert result.level == "severe"
        assert result.score == 100
        assert "saturated soil" in result.factors

    @pytest.mark.parametrize("p24", [50.1, 55.0, 75.0, 99.0, 100.0, 150.0, 400.0])
    def test_heavy_24h_rain_never_below_moderate(self, p24: float):
        """More than 50 mm in 24 h is at least moderate, whatever else holds."""
        for p72 in (0.0, p24, p24 * 3):
            for soil in (None, 0.0, 0.5, 0.95):
                result = flood_risk_from_precip(p24, p72, soil)
                assert RISK_LEVEL_RANK[result.level] >= RISK_LEVEL_RANK["moderate"]

    def test_soil_moisture_optional(self):
        """Omitting soil moisture contributes nothing."""
        with_none = flood_risk_from_precip(30.0, 60.0, None)
        with_dry = flood_risk_from_precip(30.0, 60.0, 0.1)
        assert with_none.score == with_dry.score == 30

    def test_forecast_severe_emits_two_alerts(self):
        """Downpour on saturated soil yields the flood alert and the soil alert."""
        precip = [60.0] + [0.0] * 23
        result = flood_risk_from_forecast(precip, [0.9])
        assert result.risk_level == "severe"
        assert result.risk_score == 95
        assert result.precipitation_24h == 60.0
        assert result.current_intensity == 60.0
        assert [a.level for a in result.alerts] == ["severe", "severe"]

    def test_forecast_empty_uses_soil_default(self):
        """An empty forecast scores only the default soil moisture."""
        result = flood_risk_from_forecast([], [])
        assert result.risk_level == "low"
        assert result.soil_moisture == 0.5
        assert result.risk_score == 6
        assert result.alerts == []

    @pytest.mark.parametrize("reading", [0.0, None])
    def test_forecast_zero_soil_uses_default(self, reading):
        """A zero or null first soil reading falls back to the default."""
        result = flood_risk_from_forecast([0.0] * 24, [reading, 0.9])
        assert result.soil_moisture == 0.5
        assert result.risk_score == 6

    def test_forecast_only_first_24_hours_count(self):
        """Rain after hour 24 is outside the 24 h sum."""
        precip = [0.0] * 24 + [100.0] * 24
        result = flood_risk_from_forecast(precip, [0.1])
        assert result.precipitation_24h == 0.0


# ===========================================================================
# Storm surge
# ===========================================================================


class TestStormSurge:
    """storm_surge_risk() and storm_surge_fallback()."""

    def test_calm_sea_low(self):
        """Small waves and light wind: low, no alerts."""
        result = storm_surge_risk(1.0, 10.0, 1.0)
        assert result.risk_level == "low"
        assert result.risk_score == 0
        assert result.alerts == []

    def test_extreme_sea_severe(self):
        """Large waves, storm wind and big swell: severe plus wind alert."""
        result = storm_surge_risk(6.0, 110.0, 5.0)
        assert result.risk_level == "severe"
        assert result.risk_score == 100
        assert len(result.alerts) == 2
        assert result.alerts[1].area == "Exposed coastal regions"

    def test_fallback_is_zeroed(self):
        """Fallback carries zero readings and low risk."""
        result = storm_surge_fallback()
        assert result.risk_level == "low"
        assert result.risk_score == 0
        assert result.wave_height == result.wind_speed == result.swell_height == 0
        assert result.alerts == []


# ===========================================================================
# Ocean health (NOAA indicators)
# ===========================================================================


class TestOceanHealthScore:
    """ocean_health_score_from_noaa()."""

    def test_healthy_ocean(self):
        """Normal SST with no stress keeps the full score."""
        result = ocean_health_score_from_noaa(28.0, 0.0, 0.0)
        assert result.score == 100
        assert result.level == "low"
        assert result.factors == []

    def test_maximum_stress_floors_at_zero(self):
        """Every penalty at its top band clamps to 0 and severe."""
        result = ocean_health_score_from_noaa(31.5, 2.5, 13.0)
        assert result.score == 0
        assert result.level == "severe"
        assert result.probability == 1.0

    def test_cold_water_penalty(self):
        """Cold SST is penalized too."""
        result = ocean_health_score_from_noaa(23.0, 0.0, 0.0)
        assert result.score == 80
        assert "low temperature" in result.factors

    def test_readings_one_decimal(self):
        """Every reading in the explanation is shown to one decimal."""
        result = ocean_health_score_from_noaa(28.04, 0.26, 1.25)
        assert result.explanation.endswith("SST: 28.0°C, HotSpot: 0.3, DHW: 1.2")


# ===========================================================================
# Bleaching ladder
# ===========================================================================


class TestBleachingLadder:
    """bleaching_tier() and bleaching_risk()."""

    def test_low_tier_has_no_days(self):
        """Low tier never predicts a bleaching date."""
        result = bleaching_risk(28.0, 0.0, 0)
        assert result.risk_level == "low"
        assert result.days_to_bleaching is None
        assert result.probability == 0.1

    def test_moderate_from_sst(self):
        """SST >= 30 alone is moderate; days from missing DHW."""
        result = bleaching_risk(30.0, 0.0, 0)
        assert result.risk_level == "moderate"
        assert result.days_to_bleaching == 28

    def test_high_from_sst(self):
        """SST >= 30.5 alone is high."""
        result = bleaching_risk(30.6, 0.0, 0)
        assert result.risk_level == "high"
        assert result.days_to_bleaching == 56

    def test_alert_level_drives_tier(self):
        """Alert level 4 is severe regardless of SST."""
        assert bleaching_tier(27.0, 0.0, 4) == "severe"
        assert bleaching_tier(27.0, 0.0, 3) == "high"
        assert bleaching_tier(27.0, 0.0, 2) == "moderate"

    @pytest.mark.parametrize("dhw", [12.0, 12.5, 15.0, 20.0])
    def test_dhw_twelve_always_severe(self, dhw: float):
        """DHW >= 12 is severe for every SST and alert level."""
        for sst in (20.0, 26.0, 28.5, 30.0, 31.5):
            for level in range(0, 6):
                result = bleaching_risk(sst, dhw, level)
                assert result.risk_level == "severe"
                assert result.days_to_bleaching == 0

    def test_actions_match_tier(self):
        """Recommended actions are the tier's list."""
        assert len(bleaching_risk(31.2, 0.0).recommended_actions) == 4
        assert len(bleaching_risk(30.0, 0.0).recommended_actions) == 3
        assert len(bleaching_risk(27.0, 0.0).recommended_actions) == 2

    def test_tier_is_known_level(self):
        """Every tier is one of RISK_LEVELS."""
        for sst in (25.0, 30.0, 30.5, 31.0):
            for dhw in (0.0, 4.0, 8.0, 12.0):
                assert bleaching_tier(sst, dhw) in RISK_LEVELS
