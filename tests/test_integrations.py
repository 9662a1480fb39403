"""
tests/test_integrations.py — Third-party client tests.

Covers:
    - Open-Meteo forecast and marine parsing, storm-surge fallback
    - Reef thermal stress (DHW, alert level, health index, trend)
    - NOAA active storm lookup
    - NASA GIBS tiles and turbidity estimate
    - Sentinel-2 STAC search
    - Global Fishing Watch activity
    - Weather alert classification and seasonal advisory

All upstream traffic runs through the `upstream` router fixture.
"""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, date, datetime

import pytest
from conftest import GFW, MARINE, NOAA, ONECALL, OPEN_METEO, OW_CURRENT, STAC, sst_history

from climaguard import fishing_watch, gibs, noaa, open_meteo, reef_watch, sentinel2, weather_alerts
from climaguard.fetching import UpstreamError


# ===========================================================================
# Open-Meteo
# ===========================================================================


class TestOpenMeteo:
    """Forecast and marine clients."""

    def test_current_weather_first_hour(self, upstream):
        """Current values come from index 0; daily rows are zipped by date."""
        upstream.add(OPEN_METEO, {
            "hourly": {
                "temperature_2m": [27.1, 27.5], "relativehumidity_2m": [80, 82],
                "pressure_msl": [1012.0, 1011.0], "windspeed_10m": [15.0, 18.0],
                "windgusts_10m": [25.0, 30.0], "precipitation": [0.2, 0.0],
            },
            "daily": {
                "time": ["2026-01-15", "2026-01-16"],
                "temperature_2m_max": [30.0, 31.0],
                "temperature_2m_min": [24.0, None],
                "precipitation_sum": [3.0, 0.0],
            },
        })
        weather = asyncio.run(open_meteo.get_current_weather(-20.2, 57.5))
        assert weather["temperature"] == 27.1
        assert weather["pressure"] == 1012.0
        assert weather["wind_speed"] == 15.0
        assert weather["daily"][0] == {
            "date": "2026-01-15", "temp_max": 30.0, "temp_min": 24.0, "precipitation_sum": 3.0,
        }
        assert weather["daily"][1]["temp_min"] == 0.0

    def test_daily_forecast_requests_days(self, upstream):
        """The requested number of days is passed upstream."""
        upstream.add(OPEN_METEO, {"hourly": {}, "daily": {"time": ["a", "b", "c"]}})
        days = asyncio.run(open_meteo.get_daily_forecast(-20.2, 57.5, 3))
        assert len(days) == 3
        assert upstream.calls[0].url.params["forecast_days"] == "3"

    def test_precipitation_missing_raises(self, upstream):
        """A response without hourly precipitation is an upstream failure."""
        upstream.add(OPEN_METEO, {"hourly": {}})
        with pytest.raises(UpstreamError):
            asyncio.run(open_meteo.get_precipitation_forecast(-20.2, 57.5))

    def test_pressure_wind_in_ms(self, upstream):
        """Wind is requested in m/s for the cyclone scorer."""
        upstream.add(OPEN_METEO, {"hourly": {"pressure_msl": [1000.0, None], "windspeed_10m": [10.0, 12.0]}})
        series = asyncio.run(open_meteo.get_pressure_wind(-20.2, 57.5))
        assert series["pressure"] == [1000.0, 1013.0]
        assert upstream.calls[0].url.params["windspeed_unit"] == "ms"

    def test_rainfall_grid_only_wet_hours(self, upstream):
        """Each wet hour produces a 3x3 grid; dry hours produce nothing."""
        upstream.add(OPEN_METEO, {"hourly": {"precipitation": [0.0, 2.5] + [0.0] * 22}})
        points = asyncio.run(open_meteo.get_rainfall_grid(-20.2, 57.5))
        assert len(points) == 9
        assert all(p["hour"] == 1 and p["value"] == 2.5 for p in points)
        assert {"lat": -20.2, "lng": 57.5, "hour": 1, "value": 2.5} in points

    def test_marine_defaults_for_nulls(self, upstream):
        """Null marine values fall back to the marine defaults."""
        upstream.add(MARINE, {"daily": {
            "time": ["2026-01-15"],
            "sea_surface_temperature_mean": [None],
            "wave_height_max": [2.0],
        }})
        marine = asyncio.run(open_meteo.get_marine_data(-20.2, 57.5))
        assert marine["sea_surface_temperature"] == 28.5
        assert marine["wave_height_max"] == 2.0
        assert marine["wind_speed_max"] == 5.0
        assert len(marine["daily"]) == 1

    def test_storm_surge_fallback_on_failure(self, upstream):
        """Marine API failure yields the low fallback, never an exception."""
        upstream.add(MARINE, 503)
        surge = asyncio.run(open_meteo.get_storm_surge_risk(-20.2, 57.5))
        assert surge.risk_level == "low"
        assert surge.wave_height == 0.0
        assert surge.wind_speed == 0.0

    def test_storm_surge_malformed_blocks(self, upstream):
        """Daily and hourly blocks that are not objects read as empty."""
        upstream.add(MARINE, {"daily": [3.5], "hourly": "n/a"})
        surge = asyncio.run(open_meteo.get_storm_surge_risk(-20.2, 57.5))
        assert surge.risk_level == "low"
        assert surge.wave_height == 0.0
        assert surge.wind_speed == 0.0

    def test_storm_surge_from_marine(self, upstream):
        """Wave, max 24 h wind (m/s → km/h) and swell feed the scorer."""
        upstream.add(MARINE, {
            "daily": {"wave_height_max": [3.5], "swell_significant_height": [3.0]},
            "hourly": {"wind_speed_10m": [10.0] * 23 + [25.0]},
        })
        surge = asyncio.run(open_meteo.get_storm_surge_risk(-20.2, 57.5))
        assert surge.wind_speed == 90.0
        assert surge.risk_score == 72
        assert surge.risk_level == "severe"


# ===========================================================================
# Reef thermal stress
# ===========================================================================


class TestReefWatch:
    """reef_watch summaries."""

    def test_normal_sst(self):
        """Baseline SST: no anomaly, no stress, health 80."""
        summary = reef_watch.summarize(-20.0, 57.5, [28.5] * 84)
        assert summary["anomaly"] == 0
        assert summary["degree_heating_weeks"] == 0
        assert summary["alert_level"] == 0
        assert summary["bleaching_risk"] == "low"
        assert summary["health_index"] == 80

    def test_sustained_heat(self):
        """Twelve weeks at 31.5 °C accumulate 18 DHW and alert level 5."""
        summary = reef_watch.summarize(-20.0, 57.5, [31.5] * 84)
        assert summary["degree_heating_weeks"] == pytest.approx(18.0)
        assert summary["alert_level"] == 5
        assert summary["bleaching_risk"] == "severe"
        assert summary["health_index"] == 5

    def test_dhw_capped(self):
        """DHW never exceeds 20."""
        assert reef_watch.degree_heating_weeks([34.0] * 84) == 20.0

    def test_empty_history_uses_baseline(self):
        """No data: baseline SST, no stress."""
        summary = reef_watch.summarize(-20.0, 57.5, [])
        assert summary["temperature"] == 28.5
        assert summary["degree_heating_weeks"] == 0

    def test_sst_trend(self, upstream):
        """Trend baseline is the mean of the first half of the window."""
        upstream.add(MARINE, sst_history([28.0] * 15 + [29.0] * 16))
        trend = asyncio.run(reef_watch.get_sst_trend(-20.0, 57.5, 30))
        assert trend["sst"] == 29.0
        assert trend["baseline"] == 28.0
        assert trend["sst_anomaly"] == 1.0
        assert len(trend["trend_7d"]) == 7
        assert len(trend["trend_30d"]) == 31

    def test_sst_trend_empty_raises(self, upstream):
        """An empty SST series is an upstream failure."""
        upstream.add(MARINE, sst_history([]))
        with pytest.raises(UpstreamError):
            asyncio.run(reef_watch.get_sst_trend(-20.0, 57.5))


# ===========================================================================
# NOAA
# ===========================================================================


class TestNoaa:
    """noaa.get_current_cyclone()."""

    def test_nearest_storm(self, upstream):
        """The closest basin storm is summarized."""
        upstream.add(NOAA, {"activeStorms": [
            {"name": "Freddy", "basin": "SI", "center": [60.0, -18.0],
             "intensity": {"wind": 80, "pressure": 970}, "movement": {"speed": 12, "direction": "WSW"}},
        ]})
        storm = asyncio.run(noaa.get_current_cyclone())
        assert storm["name"] == "Freddy"
        assert storm["direction"] == "WSW"

    def test_quiet_basin(self, upstream):
        """No storms in the basin is None."""
        upstream.add(NOAA, {"activeStorms": []})
        assert asyncio.run(noaa.get_current_cyclone()) is None

    def test_feed_failure_raises_after_retry(self, upstream, monkeypatch):
        """A failing feed is retried once, then raises."""
        monkeypatch.setattr(noaa, "NOAA_RETRY_DELAY", 0)
        upstream.add(NOAA, 500)
        with pytest.raises(UpstreamError):
            asyncio.run(noaa.get_current_cyclone())
        assert len(upstream.calls_to(NOAA)) == 2


# ===========================================================================
# NASA GIBS
# ===========================================================================


class TestGibs:
    """Tile math, URLs and turbidity estimate."""

    def test_tile_at_origin(self):
        """(0, 0) at zoom 1 is tile (1, 1)."""
        assert gibs.lat_lng_to_tile(0.0, 0.0, 1) == (1, 1)

    def test_world_tile_bbox(self):
        """The zoom-0 tile spans the Web-Mercator world."""
        bbox = gibs.tile_to_bbox(0, 0, 0)
        assert bbox["west"] == -180.0
        assert bbox["east"] == 180.0
        assert bbox["north"] == pytest.approx(85.0511, abs=1e-4)
        assert bbox["south"] == pytest.approx(-85.0511, abs=1e-4)

    def test_tile_contains_point(self):
        """The returned tile's bbox contains the requested point."""
        tiles = gibs.get_tiles(-20.2, 57.5, 6)
        bbox = tiles["bbox"]
        assert bbox["west"] <= 57.5 <= bbox["east"]
        assert bbox["south"] <= -20.2 <= bbox["north"]

    def test_tile_urls(self):
        """Every layer gets a dated WMTS URL."""
        tiles = gibs.get_tiles(-20.2, 57.5, 5, day=date(2026, 1, 15))
        x, y = tiles["tile"]["x"], tiles["tile"]["y"]
        assert set(tiles["layers"]) == {"sst", "chlorophyll", "true_color"}
        assert tiles["layers"]["sst"] == (
            f"https://gibs.earthdata.nasa.gov/wmts/epsg4326/best/MODIS_Terra_SST/default/2026-01-15/5/{y}/{x}.png"
        )

    @pytest.mark.parametrize("sst,turbidity,chlorophyll", [
        (26.0, 0.25, 0.4), (27.5, 0.28, 0.4), (28.5, 0.28, 0.5), (29.5, 0.35, 0.5),
    ])
    def test_estimate_from_sst(self, sst: float, turbidity: float, chlorophyll: float):
        """Warmer water reads more turbid and more productive."""
        estimate = gibs.estimate_from_sst(sst)
        assert estimate["turbidity"] == turbidity
        assert estimate["chlorophyll"] == chlorophyll
        assert estimate["clarity"] == pytest.approx((1 - turbidity) * 100, abs=0.1)

    def test_turbidity_fallback(self, upstream):
        """Marine API failure yields the fixed defaults."""
        upstream.add(MARINE, 500)
        data = asyncio.run(gibs.get_turbidity_data(-20.0, 57.5))
        assert data == gibs.DEFAULT_TURBIDITY

    def test_turbidity_from_marine(self, upstream):
        """Live SST drives the estimate."""
        upstream.add(MARINE, {"daily": {"time": ["d"], "sea_surface_temperature_mean": [29.4]}})
        data = asyncio.run(gibs.get_turbidity_data(-20.0, 57.5))
        assert data["turbidity"] == 0.35
        assert data["source"] == "open_meteo"


# ===========================================================================
# Sentinel-2
# ===========================================================================


def _item(item_id: str, assets: dict, cloud: float = 12.5) -> dict:
    return {
        "id": item_id,
        "bbox": [57.4, -20.1, 57.6, -19.9],
        "properties": {"datetime": "2026-01-14T06:30:00Z", "eo:cloud_cover": cloud},
        "assets": assets,
    }


class TestSentinel2:
    """STAC search body, scene parsing, latest scene."""

    def test_search_body(self):
        """Seven-day window, ±0.1° box, cloud filter."""
        body = sentinel2.search_body(-20.0, 57.5, now=datetime(2026, 1, 15, 12, 0, tzinfo=UTC))
        assert body["collections"] == ["sentinel-2-l2a"]
        assert body["bbox"] == pytest.approx([57.4, -20.1, 57.6, -19.9])
        assert body["datetime"] == "2026-01-08T12:00:00Z/2026-01-15T12:00:00Z"
        assert body["query"] == {"eo:cloud_cover": {"lt": 30}}
        assert body["limit"] == 10

    def test_parse_prefers_visual(self):
        """The visual asset is the preview URL."""
        scene = sentinel2.parse_scene(
            _item("S2A_1", {"visual": {"href": "https://x/visual.tif"}, "B04": {"href": "https://x/B04.tif"}}),
            -20.0, 57.5,
        )
        assert scene["url"] == "https://x/visual.tif"
        assert scene["cloud_cover"] == 12.5
        assert scene["bands"]["B04"] == "https://x/B04.tif"
        assert scene["bands"]["B08"] is None

    def test_parse_falls_back_to_red_band(self):
        """Without a preview the red band stands in."""
        scene = sentinel2.parse_scene(_item("S2A_2", {"B04": {"href": "https://x/B04.tif"}}), -20.0, 57.5)
        assert scene["url"] == "https://x/B04.tif"

    def test_latest_scene_posts_search(self, upstream):
        """The search is a POST and the first feature wins."""
        upstream.add(STAC, {"features": [
            _item("newest", {"rendered_preview": {"href": "https://x/p.png"}}),
            _item("older", {}),
        ]})
        scene = asyncio.run(sentinel2.latest_scene(-20.0, 57.5))
        assert scene["id"] == "newest"
        assert scene["url"] == "https://x/p.png"
        request = upstream.calls_to(STAC)[0]
        assert request.method == "POST"
        assert json.loads(request.content)["collections"] == ["sentinel-2-l2a"]

    def test_no_scenes(self, upstream):
        """No features means None."""
        upstream.add(STAC, {"features": []})
        assert asyncio.run(sentinel2.latest_scene(-20.0, 57.5)) is None


# ===========================================================================
# Global Fishing Watch
# ===========================================================================


class TestFishingWatch:
    """fishing_watch.get_fishing_activity()."""

    def test_no_key_is_empty(self, upstream, monkeypatch):
        """Without GFW_API_KEY nothing is fetched."""
        monkeypatch.delenv("GFW_API_KEY", raising=False)
        activity = asyncio.run(fishing_watch.get_fishing_activity(-20.2, 57.5))
        assert activity["vessel_count"] == 0
        assert activity["source"] == "unavailable"
        assert upstream.calls == []

    def test_with_key(self, upstream, monkeypatch):
        """Vessels are mapped and catch is estimated per vessel."""
        monkeypatch.setenv("GFW_API_KEY", "token-123")
        upstream.add(GFW, {"vessels": [
            {"id": "v1", "lat": -20.1, "lng": 57.6, "speed": 4.2, "course": 180, "type": "longliner", "flag": "MUS"},
            {"id": "v2", "lat": -20.3, "lng": 57.4},
        ]})
        activity = asyncio.run(fishing_watch.get_fishing_activity(-20.2, 57.5))
        assert activity["vessel_count"] == 2
        assert activity["total_catch"] == 1.0
        assert activity["fishing_hours"] == 16
        assert activity["vessels"][0]["vessel_type"] == "longliner"
        assert activity["vessels"][1]["speed"] == 0
        assert upstream.calls_to(GFW)[0].headers["authorization"] == "Bearer token-123"

    def test_api_failure_raises(self, upstream, monkeypatch):
        """A failing API surfaces as UpstreamError."""
        monkeypatch.setenv("GFW_API_KEY", "token-123")
        upstream.add(GFW, 401)
        with pytest.raises(UpstreamError):
            asyncio.run(fishing_watch.get_fishing_activity(-20.2, 57.5))


# ===========================================================================
# Weather alerts
# ===========================================================================

JANUARY = datetime(2026, 1, 15, 8, 0, tzinfo=UTC)
NOVEMBER = datetime(2026, 11, 20, 8, 0, tzinfo=UTC)
JULY = datetime(2026, 7, 1, 8, 0, tzinfo=UTC)


class TestWeatherAlerts:
    """Classification, derived alerts, seasonal advisory, aggregation."""

    @pytest.mark.parametrize("event,kind", [
        ("Tropical Cyclone Warning", "cyclone"),
        ("Strong Wind Advisory", "wind"),
        ("Heavy Rain Watch", "rain"),
        ("Flash Flood Warning", "flood"),
        ("Heat Advisory", "heat"),
        ("Dense Fog", "storm"),
    ])
    def test_classify_type(self, event: str, kind: str):
        """Event names map to alert types."""
        assert weather_alerts.classify_type(event) == kind

    @pytest.mark.parametrize("event,description,severity", [
        ("Cyclone", "Extreme danger to life", "extreme"),
        ("Cyclone Warning", "", "high"),
        ("Wind Advisory", "", "medium"),
        ("Notice", "Light showers", "low"),
    ])
    def test_classify_severity(self, event: str, description: str, severity: str):
        """Keywords in event and description set severity."""
        assert weather_alerts.classify_severity(event, description) == severity

    def test_conditions_all_thresholds(self):
        """Strong wind, heavy rain, heat and low pressure each raise an alert."""
        alerts = weather_alerts.alerts_from_conditions(
            {"wind": {"speed": 16.0}, "rain": {"1h": 30.0}, "main": {"temp": 39.0, "pressure": 998}},
            JANUARY,
        )
        assert [a["type"] for a in alerts] == ["wind", "rain", "heat", "storm"]
        assert all(a["severity"] == "high" for a in alerts)
        assert alerts[0]["time_issued"] == "2026-01-15T08:00:00Z"

    def test_conditions_calm(self):
        """Calm conditions raise nothing."""
        alerts = weather_alerts.alerts_from_conditions(
            {"wind": {"speed": 4.0}, "main": {"temp": 28.0, "pressure": 1015}}, JANUARY,
        )
        assert alerts == []

    def test_onecall_alerts(self):
        """One Call alerts keep their window and are classified."""
        alerts = weather_alerts.alerts_from_onecall({"alerts": [
            {"event": "Cyclone Warning Class II", "description": "Severe weather", "start": 1768464000, "end": 1768507200},
        ]}, JANUARY)
        assert alerts[0]["type"] == "cyclone"
        assert alerts[0]["severity"] == "high"
        assert alerts[0]["source"] == "OpenWeather"
        assert alerts[0]["time_issued"] == "2026-01-15T08:00:00Z"

    def test_seasonal_advisory_expiry(self):
        """The advisory expires 30 May of the current season."""
        assert weather_alerts.seasonal_advisory([], JANUARY)["time_expires"] == "2026-05-30T00:00:00Z"
        assert weather_alerts.seasonal_advisory([], NOVEMBER)["time_expires"] == "2027-05-30T00:00:00Z"

    def test_no_advisory_off_season(self):
        """No advisory outside November to April."""
        assert weather_alerts.seasonal_advisory([], JULY) is None

    def test_no_advisory_with_cyclone_alert(self):
        """An existing cyclone alert suppresses the advisory."""
        existing = [{"type": "cyclone", "severity": "high"}]
        assert weather_alerts.seasonal_advisory(existing, JANUARY) is None

    def test_sort_extreme_first(self):
        """Alerts are ordered extreme, high, medium, low."""
        alerts = [{"severity": s} for s in ("low", "extreme", "medium", "high")]
        assert [a["severity"] for a in weather_alerts.sort_alerts(alerts)] == ["extreme", "high", "medium", "low"]

    def test_no_key_only_seasonal(self, upstream, monkeypatch):
        """Without a key only the seasonal advisory is produced."""
        monkeypatch.delenv("OPENWEATHER_API_KEY", raising=False)
        alerts = asyncio.run(weather_alerts.get_active_alerts(now=JANUARY))
        assert len(alerts) == 1
        assert alerts[0]["source"] == "ClimaGuard Seasonal Advisory"
        assert upstream.calls == []

    def test_failing_source_skipped(self, upstream, monkeypatch):
        """A failing One Call source does not drop the condition alerts."""
        monkeypatch.setenv("OPENWEATHER_API_KEY", "ow-key")
        upstream.add(ONECALL, 401)
        upstream.add(OW_CURRENT, {"wind": {"speed": 12.0}, "main": {"temp": 29.0, "pressure": 1010}})
        alerts = asyncio.run(weather_alerts.get_active_alerts(now=JULY))
        assert [a["type"] for a in alerts] == ["wind"]
        assert alerts[0]["severity"] == "medium"
        assert upstream.calls_to(OW_CURRENT)[0].url.params["units"] == "metric"
