"""Tests for snapshot aggregation."""

from __future__ import annotations

from weather_calendar.weather.aggregator import aggregate, aggregate_results, merge_uv
from weather_calendar.weather.models import LocationForecast, SourceResult, Station

TAIPEI_MAIN = (25.0478, 121.5170)


def test_merge_uv_by_station_id(taipei_stations, uv_readings):
    merged = merge_uv(taipei_stations, uv_readings)
    by_id = {s.station_id: s.uv_index for s in merged}
    assert by_id == {"466910": 6.0, "466920": 9.0, "C0A9F0": None, "C0AC70": None}
    # inputs untouched
    assert all(s.uv_index is None for s in taipei_stations)


def test_aggregate_full(taipei_stations, uv_readings, taipei_forecast, typhoon_warning):
    snapshot = aggregate(
        [typhoon_warning], taipei_stations, uv_readings, [taipei_forecast], "臺北市", TAIPEI_MAIN,
    )
    assert snapshot.city == "臺北市"
    assert snapshot.station.station_id == "466920"
    assert snapshot.uv_index == 9.0
    assert snapshot.forecast is taipei_forecast
    assert snapshot.rain_probability == 70.0
    assert snapshot.warnings == [typhoon_warning]
    assert not snapshot.partial


def test_aggregate_without_target_uses_first_station(taipei_stations):
    snapshot = aggregate([], taipei_stations, [], [], "臺北市", None)
    assert snapshot.station.station_id == "466910"


def test_aggregate_falls_back_to_first_when_no_coordinates():
    stations = [Station(station_id="a", name="a"), Station(station_id="b", name="b")]
    snapshot = aggregate([], stations, [], [], "臺北市", TAIPEI_MAIN)
    assert snapshot.station.station_id == "a"


def test_forecast_city_must_match_exactly(taipei_forecast):
    snapshot = aggregate([], [], [], [taipei_forecast], "臺北", TAIPEI_MAIN)
    assert snapshot.forecast is None


def test_forecast_picks_named_location(taipei_forecast):
    other = LocationForecast(location_name="新北市")
    snapshot = aggregate([], [], [], [other, taipei_forecast], "臺北市", None)
    assert snapshot.forecast is taipei_forecast


def test_aggregate_all_sources_empty():
    snapshot = aggregate([], [], [], [], "臺北市", TAIPEI_MAIN)
    assert snapshot.station is None
    assert snapshot.forecast is None
    assert snapshot.warnings == []
    assert snapshot.temperature is None
    assert snapshot.humidity is None
    assert snapshot.uv_index is None
    assert snapshot.rain_probability is None


def test_aggregate_results_all_failed():
    snapshot = aggregate_results(
        SourceResult.failed("warnings", "HTTP 500"),
        SourceResult.failed("observations", "timeout"),
        SourceResult.failed("uv", "timeout"),
        SourceResult.failed("forecast", "HTTP 500"),
        "臺北市",
        TAIPEI_MAIN,
    )
    assert snapshot.station is None
    assert snapshot.forecast is None
    assert snapshot.warnings == []
    assert snapshot.failed_sources == ["warnings", "observations", "uv", "forecast"]
    assert snapshot.partial


def test_aggregate_results_partial(taipei_stations, taipei_forecast):
    snapshot = aggregate_results(
        SourceResult(name="warnings"),
        SourceResult(name="observations", records=taipei_stations),
        SourceResult.failed("uv", "HTTP 503"),
        SourceResult(name="forecast", records=[taipei_forecast]),
        "臺北市",
        TAIPEI_MAIN,
    )
    assert snapshot.station.station_id == "466920"
    assert snapshot.uv_index is None
    assert snapshot.forecast is taipei_forecast
    assert snapshot.failed_sources == ["uv"]
