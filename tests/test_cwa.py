"""Tests for the CWA open data client."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from weather_calendar.common.errors import ConfigurationMissing
from weather_calendar.config import Settings
from weather_calendar.weather.cwa import CwaClient, parse_station, parse_warnings


def _make_mock_response(json_data, status_code=200):
    resp = MagicMock()
    resp.json.return_value = json_data
    resp.status_code = status_code
    resp.raise_for_status = MagicMock()
    return resp


def _patch_http(get):
    """Patch HttpClient so every request goes through ``get``."""
    patcher = patch("weather_calendar.weather.cwa.HttpClient")
    MockClient = patcher.start()
    instance = AsyncMock()
    instance.get = get
    instance.__aenter__ = AsyncMock(return_value=instance)
    instance.__aexit__ = AsyncMock(return_value=False)
    MockClient.return_value = instance
    return patcher, MockClient


def _status_error(code):
    request = httpx.Request("GET", "https://opendata.cwa.gov.tw/api/v1/rest/datastore/X")
    response = httpx.Response(code, request=request)
    return httpx.HTTPStatusError(str(code), request=request, response=response)


def test_missing_api_key_fails_fast():
    with pytest.raises(ConfigurationMissing):
        CwaClient(Settings(cwa_api_key="", _env_file=None))


def test_http_client_gets_key_and_format(settings):
    with patch("weather_calendar.weather.cwa.HttpClient") as MockClient:
        CwaClient(settings)._http()

    kwargs = MockClient.call_args.kwargs
    assert kwargs["params"] == {"Authorization": "CWA-TEST-0000", "format": "JSON"}
    assert kwargs["base_url"] == settings.cwa_api_url
    assert kwargs["timeout"] == settings.http_timeout


@pytest.mark.asyncio
async def test_station_observations_filter_and_normalize(settings, observation_response):
    get = AsyncMock(return_value=_make_mock_response(observation_response))
    patcher, _ = _patch_http(get)
    try:
        result = await CwaClient(settings).get_station_observations("臺北市")
    finally:
        patcher.stop()

    assert result.ok
    assert [s.station_id for s in result.records] == ["466920", "C0A9F0"]

    taipei = result.records[0]
    assert taipei.lat == pytest.approx(25.0377)  # WGS84, not TWD67
    assert taipei.lon == pytest.approx(121.5149)
    assert taipei.temperature == pytest.approx(33.1)
    assert taipei.humidity == pytest.approx(0.62)
    assert taipei.pressure == pytest.approx(1005.3)
    assert taipei.weather == "晴"
    assert taipei.observed_at is not None and taipei.observed_at.hour == 12
    assert taipei.uv_index is None

    # -99 sentinels become missing values
    wenshan = result.records[1]
    assert wenshan.temperature is None
    assert wenshan.humidity is None
    assert wenshan.weather is None


@pytest.mark.asyncio
async def test_station_observations_default_city(settings, observation_response):
    get = AsyncMock(return_value=_make_mock_response(observation_response))
    patcher, _ = _patch_http(get)
    try:
        result = await CwaClient(settings).get_station_observations(None)
    finally:
        patcher.stop()

    assert {s.county for s in result.records} == {"臺北市"}


@pytest.mark.asyncio
async def test_uv_index(settings, uv_response):
    get = AsyncMock(return_value=_make_mock_response(uv_response))
    patcher, _ = _patch_http(get)
    try:
        result = await CwaClient(settings).get_uv_index("臺北市")
    finally:
        patcher.stop()

    assert result.ok
    assert result.records[0].station_id == "466920"
    assert result.records[0].uv_index == pytest.approx(8.2)
    get.assert_awaited_once_with("/M-A0085-001", params={"County": "臺北市"})


@pytest.mark.asyncio
async def test_uv_and_forecast_without_city_skip_request(settings):
    get = AsyncMock()
    patcher, _ = _patch_http(get)
    try:
        client = CwaClient(settings)
        uv = await client.get_uv_index(None)
        forecast = await client.get_forecast("")
    finally:
        patcher.stop()

    assert uv.ok and uv.records == []
    assert forecast.ok and forecast.records == []
    get.assert_not_awaited()


@pytest.mark.asyncio
async def test_forecast_elements(settings, forecast_response):
    get = AsyncMock(return_value=_make_mock_response(forecast_response))
    patcher, _ = _patch_http(get)
    try:
        result = await CwaClient(settings).get_forecast("臺北市")
    finally:
        patcher.stop()

    assert result.ok
    forecast = result.records[0]
    assert forecast.location_name == "臺北市"
    assert set(forecast.elements) == {"Wx", "PoP", "MinT", "MaxT"}
    assert len(forecast.elements["PoP"]) == 2
    assert forecast.first_value("PoP") == "80"
    assert forecast.elements["PoP"][0].unit == "百分比"
    assert forecast.elements["PoP"][0].start_time.hour == 12


@pytest.mark.asyncio
async def test_warnings_deduplicated(settings, warnings_response):
    get = AsyncMock(return_value=_make_mock_response(warnings_response))
    patcher, _ = _patch_http(get)
    try:
        result = await CwaClient(settings).get_warnings()
    finally:
        patcher.stop()

    assert result.ok
    assert len(result.records) == 1
    assert result.records[0].phenomenon_text == "颱風警報"
    assert result.records[0].location_name == "臺北市"


@pytest.mark.asyncio
async def test_http_error_becomes_failed_result(settings):
    get = AsyncMock(side_effect=_status_error(401))
    patcher, _ = _patch_http(get)
    try:
        result = await CwaClient(settings).get_station_observations("臺北市")
    finally:
        patcher.stop()

    assert not result.ok
    assert result.records == []
    assert result.error == "HTTP 401"


@pytest.mark.asyncio
async def test_timeout_becomes_failed_result(settings):
    get = AsyncMock(side_effect=httpx.ReadTimeout("slow"))
    patcher, _ = _patch_http(get)
    try:
        result = await CwaClient(settings).get_forecast("臺北市")
    finally:
        patcher.stop()

    assert not result.ok
    assert result.error == "timeout"


@pytest.mark.asyncio
async def test_unsuccessful_body_becomes_failed_result(settings):
    get = AsyncMock(return_value=_make_mock_response({"success": "false", "message": "Resource not found"}))
    patcher, _ = _patch_http(get)
    try:
        result = await CwaClient(settings).get_warnings()
    finally:
        patcher.stop()

    assert not result.ok
    assert result.error == "Resource not found"


@pytest.mark.asyncio
async def test_missing_records_becomes_failed_result(settings):
    get = AsyncMock(return_value=_make_mock_response({"success": "true", "records": {}}))
    patcher, _ = _patch_http(get)
    try:
        result = await CwaClient(settings).get_uv_index("臺北市")
    finally:
        patcher.stop()

    assert not result.ok
    assert result.records == []


@pytest.mark.asyncio
async def test_probe_reports_each_dataset(settings, observation_response):
    async def mock_get(url, params=None):
        if url == "/W-C0033-001":
            raise _status_error(503)
        return _make_mock_response(observation_response if url == "/O-A0001-001" else {"success": "true", "records": {}})

    patcher, _ = _patch_http(mock_get)
    try:
        results = await CwaClient(settings).probe()
    finally:
        patcher.stop()

    by_dataset = {r.dataset: r for r in results}
    assert by_dataset["O-A0001-001"].ok and by_dataset["O-A0001-001"].has_data
    assert by_dataset["F-C0032-001"].ok and not by_dataset["F-C0032-001"].has_data
    assert not by_dataset["W-C0033-001"].ok
    assert by_dataset["W-C0033-001"].status == 503


def test_parse_station_without_id():
    assert parse_station({"StationName": "x"}) is None


def test_parse_station_first_coordinate_when_no_wgs84():
    station = parse_station({
        "StationId": "A1",
        "GeoInfo": {"Coordinates": [{"StationLatitude": "24.1", "StationLongitude": "120.6"}]},
        "WeatherElement": {},
    })
    assert station is not None
    assert station.lat == pytest.approx(24.1)
    assert station.name == "A1"


def test_parse_warnings_skips_empty_hazards():
    assert parse_warnings([{"locationName": "臺北市", "hazardConditions": None}]) == []
