"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from weather_calendar.config import Settings
from weather_calendar.events.models import CalendarEvent
from weather_calendar.weather.models import (
    ForecastPeriod,
    LocationForecast,
    Station,
    UVReading,
    WeatherWarning,
)

TAIPEI = ZoneInfo("Asia/Taipei")


@pytest.fixture
def settings():
    return Settings(cwa_api_key="CWA-TEST-0000", _env_file=None)


@pytest.fixture
def noon():
    """12:00 local time, inside the strong-sun window."""
    return datetime(2024, 7, 1, 12, 0, tzinfo=TAIPEI)


@pytest.fixture
def evening():
    """20:00 local time, outside the strong-sun window."""
    return datetime(2024, 7, 1, 20, 0, tzinfo=TAIPEI)


@pytest.fixture
def taipei_stations():
    """Three Taipei stations, north to south, plus one without coordinates."""
    return [
        Station(station_id="466910", name="鞍部", lat=25.1826, lon=121.5297,
                temperature=26.0, humidity=0.9, county="臺北市"),
        Station(station_id="466920", name="臺北", lat=25.0377, lon=121.5149,
                temperature=31.5, humidity=0.7, county="臺北市"),
        Station(station_id="C0A9F0", name="文山", lat=24.9965, lon=121.5646,
                temperature=30.8, humidity=0.75, county="臺北市"),
        Station(station_id="C0AC70", name="無座標", temperature=29.0, county="臺北市"),
    ]


@pytest.fixture
def uv_readings():
    return [
        UVReading(station_id="466920", name="臺北", uv_index=9.0),
        UVReading(station_id="466910", name="鞍部", uv_index=6.0),
    ]


@pytest.fixture
def taipei_forecast():
    start = datetime(2024, 7, 1, 12, 0, tzinfo=TAIPEI)
    end = start + timedelta(hours=6)

    def period(value: str, unit: str = "") -> list[ForecastPeriod]:
        return [ForecastPeriod(start_time=start, end_time=end, value=value, unit=unit)]

    return LocationForecast(
        location_name="臺北市",
        elements={
            "Wx": period("午後短暫雷陣雨"),
            "PoP": period("70", "百分比"),
            "MinT": period("27", "C"),
            "MaxT": period("35", "C"),
            "CI": period("悶熱"),
        },
    )


@pytest.fixture
def typhoon_warning():
    return WeatherWarning(phenomenon_text="颱風警報", location_name="臺北市")


@pytest.fixture
def make_event():
    def _make(event_id: str, location: str | None, hour: int = 9) -> CalendarEvent:
        start = datetime(2024, 7, 1, hour, 0, tzinfo=TAIPEI)
        return CalendarEvent(
            event_id=event_id,
            title=f"Event {event_id}",
            start=start,
            end=start + timedelta(hours=1),
            location=location,
        )
    return _make


# --- Mock CWA response fixtures ---


@pytest.fixture
def observation_response():
    """O-A0001-001 payload: two Taipei stations, one Kaohsiung station."""
    def station(station_id, name, county, lat, lon, temp, humidity, weather="晴"):
        return {
            "StationName": name,
            "StationId": station_id,
            "ObsTime": {"DateTime": "2024-07-01T12:00:00+08:00"},
            "GeoInfo": {
                "Coordinates": [
                    {"CoordinateName": "TWD67", "StationLatitude": lat - 0.002, "StationLongitude": lon - 0.008},
                    {"CoordinateName": "WGS84", "StationLatitude": lat, "StationLongitude": lon},
                ],
                "CountyName": county,
            },
            "WeatherElement": {
                "Weather": weather,
                "AirTemperature": temp,
                "RelativeHumidity": humidity,
                "WindSpeed": 2.4,
                "AirPressure": 1005.3,
            },
        }

    return {
        "success": "true",
        "records": {
            "Station": [
                station("466920", "臺北", "臺北市", 25.0377, 121.5149, 33.1, 62),
                station("C0A9F0", "文山", "臺北市", 24.9965, 121.5646, -99, -99, weather="-99"),
                station("467441", "高雄", "高雄市", 22.5660, 120.3157, 31.0, 70),
            ]
        },
    }


@pytest.fixture
def uv_response():
    return {
        "success": "true",
        "records": {
            "Station": [
                {"StationName": "臺北", "StationId": "466920", "UVI": "8.2", "ObserveTime": "2024-07-01T12:00:00+08:00"},
            ]
        },
    }


@pytest.fixture
def forecast_response():
    def element(name, value, unit=""):
        return {
            "elementName": name,
            "time": [
                {
                    "startTime": "2024-07-01 12:00:00",
                    "endTime": "2024-07-01 18:00:00",
                    "parameter": {"parameterName": value, "parameterUnit": unit},
                },
                {
                    "startTime": "2024-07-01 18:00:00",
                    "endTime": "2024-07-02 06:00:00",
                    "parameter": {"parameterName": "10", "parameterUnit": unit},
                },
            ],
        }

    return {
        "success": "true",
        "records": {
            "location": [
                {
                    "locationName": "臺北市",
                    "weatherElement": [
                        element("Wx", "多雲午後短暫雷陣雨"),
                        element("PoP", "80", "百分比"),
                        element("MinT", "27", "C"),
                        element("MaxT", "35", "C"),
                    ],
                }
            ]
        },
    }


@pytest.fixture
def warnings_response():
    """W-C0033-001 payload: the same typhoon warning under two counties."""
    hazard = {
        "info": {"language": "zh", "phenomena": "颱風", "significance": "警報"},
        "validTime": {"startTime": "2024-07-01 08:00:00", "endTime": "2024-07-02 08:00:00"},
    }
    return {
        "success": "true",
        "records": {
            "location": [
                {"locationName": "臺北市", "hazardConditions": {"hazards": [hazard]}},
                {"locationName": "新北市", "hazardConditions": {"hazards": [hazard]}},
                {"locationName": "高雄市", "hazardConditions": {"hazards": []}},
            ]
        },
    }
