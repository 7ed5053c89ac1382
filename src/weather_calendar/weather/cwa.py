"""CWA (Central Weather Administration) open data API client.

Four datasets back the dashboard:

    W-C0033-001  active weather warnings (nationwide)
    O-A0001-001  automatic weather station observations
    M-A0085-001  UV index observations
    F-C0032-001  36-hour county forecast

Every public coroutine returns a ``SourceResult`` and never raises, so the
callers can launch all four together and keep whatever succeeded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import httpx

from weather_calendar.common.errors import ConfigurationMissing, SourceUnavailable
from weather_calendar.common.http import HttpClient
from weather_calendar.common.types import JsonDict, dig, to_float
from weather_calendar.config import Settings, get_settings
from weather_calendar.weather.geocoding import normalize_address
from weather_calendar.weather.models import (
    ForecastPeriod,
    LocationForecast,
    SourceResult,
    Station,
    UVReading,
    WeatherWarning,
)

logger = logging.getLogger(__name__)

WARNINGS_DATASET = "W-C0033-001"
OBSERVATION_DATASET = "O-A0001-001"
UV_DATASET = "M-A0085-001"
FORECAST_DATASET = "F-C0032-001"

_OBSERVATION_ELEMENTS = "Weather,AirTemperature,RelativeHumidity,WindSpeed,AirPressure"


def _parse_time(value: Any) -> datetime | None:
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        return None


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text in ("-99", "-999"):
        return None
    return text


def _wgs84(coordinates: Any) -> dict:
    """Pick the WGS84 entry from a station's coordinate list (TWD67 comes first)."""
    if not isinstance(coordinates, list) or not coordinates:
        return {}
    for entry in coordinates:
        if isinstance(entry, dict) and entry.get("CoordinateName") == "WGS84":
            return entry
    first = coordinates[0]
    return first if isinstance(first, dict) else {}


def parse_station(raw: dict) -> Station | None:
    """Normalize one O-A0001-001 station record."""
    station_id = _text(raw.get("StationId"))
    if station_id is None:
        return None

    coords = _wgs84(dig(raw, "GeoInfo", "Coordinates"))
    element = dig(raw, "WeatherElement", default={})
    humidity = to_float(element.get("RelativeHumidity"))
    pressure = element.get("AirPressure", element.get("StationPressure"))

    return Station(
        station_id=station_id,
        name=_text(raw.get("StationName")) or station_id,
        lat=to_float(coords.get("StationLatitude")),
        lon=to_float(coords.get("StationLongitude")),
        temperature=to_float(element.get("AirTemperature")),
        humidity=humidity / 100 if humidity is not None else None,
        wind_speed=to_float(element.get("WindSpeed")),
        pressure=to_float(pressure),
        weather=_text(element.get("Weather")),
        observed_at=_parse_time(dig(raw, "ObsTime", "DateTime") or raw.get("ObserveTime")),
        county=_text(dig(raw, "GeoInfo", "CountyName")),
    )


def parse_uv_reading(raw: dict) -> UVReading | None:
    """Normalize one M-A0085-001 station record."""
    station_id = _text(raw.get("StationId") or raw.get("StationID"))
    if station_id is None:
        return None
    return UVReading(
        station_id=station_id,
        name=_text(raw.get("StationName")) or station_id,
        uv_index=to_float(raw.get("UVI", raw.get("UVIndex"))),
        observed_at=_parse_time(raw.get("ObserveTime")),
    )


def parse_forecast(raw: dict) -> LocationForecast | None:
    """Normalize one F-C0032-001 location, keyed by element name."""
    name = _text(raw.get("locationName"))
    if name is None:
        return None

    elements: dict[str, list[ForecastPeriod]] = {}
    for element in raw.get("weatherElement") or []:
        element_name = _text(element.get("elementName"))
        if element_name is None:
            continue
        elements[element_name] = [
            ForecastPeriod(
                start_time=_parse_time(period.get("startTime")),
                end_time=_parse_time(period.get("endTime")),
                value=str(dig(period, "parameter", "parameterName", default="")),
                unit=str(dig(period, "parameter", "parameterUnit", default="")),
            )
            for period in element.get("time") or []
        ]
    return LocationForecast(location_name=name, elements=elements)


def parse_warnings(locations: list) -> list[WeatherWarning]:
    """Flatten W-C0033-001 hazards into one warning per distinct phenomenon.

    The dataset repeats a nationwide hazard under every county; only the
    first occurrence is kept.
    """
    warnings: list[WeatherWarning] = []
    seen: set[str] = set()
    for location in locations:
        for hazard in dig(location, "hazardConditions", "hazards", default=[]):
            phenomena = _text(dig(hazard, "info", "phenomena"))
            if phenomena is None:
                continue
            text = phenomena + (_text(dig(hazard, "info", "significance")) or "")
            if text in seen:
                continue
            seen.add(text)
            warnings.append(
                WeatherWarning(
                    phenomenon_text=text,
                    location_name=_text(location.get("locationName")) or "",
                    start_time=_parse_time(dig(hazard, "validTime", "startTime")),
                    end_time=_parse_time(dig(hazard, "validTime", "endTime")),
                    raw=hazard,
                )
            )
    return warnings


@dataclass
class ProbeResult:
    """Reachability of one dataset, for ``weather-calendar diagnose``."""

    dataset: str
    ok: bool
    status: int | None = None
    success: bool = False
    has_data: bool = False
    error: str | None = None


class CwaClient:
    """Async client for the four CWA datasets.

    The API key comes from the injected settings; a missing key fails here,
    at construction, rather than on the first request.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        if not self._settings.cwa_api_key:
            raise ConfigurationMissing(
                "CWA API key is not set; export CWA_API_KEY or add it to .env"
            )

    @property
    def settings(self) -> Settings:
        return self._settings

    def _http(self) -> HttpClient:
        return HttpClient(
            base_url=self._settings.cwa_api_url,
            params={"Authorization": self._settings.cwa_api_key, "format": "JSON"},
            timeout=self._settings.http_timeout,
        )

    async def _fetch(self, dataset: str, params: dict[str, str] | None = None) -> JsonDict:
        """GET one dataset, raising SourceUnavailable on any failure."""
        query = {k: v for k, v in (params or {}).items() if v}
        try:
            async with self._http() as client:
                resp = await client.get(f"/{dataset}", params=query)
            data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise SourceUnavailable(dataset, f"HTTP {exc.response.status_code}") from exc
        except httpx.TimeoutException as exc:
            raise SourceUnavailable(dataset, "timeout") from exc
        except httpx.HTTPError as exc:
            raise SourceUnavailable(dataset, f"transport error: {exc}") from exc
        except ValueError as exc:
            raise SourceUnavailable(dataset, "invalid JSON body") from exc

        if not isinstance(data, dict):
            raise SourceUnavailable(dataset, "unexpected response shape")
        if str(data.get("success")).lower() != "true":
            raise SourceUnavailable(dataset, str(data.get("message") or "unsuccessful response"))
        return data

    async def get_warnings(self) -> SourceResult[WeatherWarning]:
        """Active weather warnings, nationwide."""
        try:
            data = await self._fetch(WARNINGS_DATASET)
            locations = dig(data, "records", "location")
            if not isinstance(locations, list):
                raise SourceUnavailable(WARNINGS_DATASET, "no warning records")
            return SourceResult(name="warnings", records=parse_warnings(locations))
        except SourceUnavailable as exc:
            logger.warning("Weather warnings unavailable: %s", exc.reason)
            return SourceResult.failed("warnings", exc.reason)
        except (KeyError, TypeError, AttributeError) as exc:
            logger.warning("Weather warnings parse error: %s", exc)
            return SourceResult.failed("warnings", f"parse error: {exc}")

    async def get_station_observations(self, city: str | None = None) -> SourceResult[Station]:
        """Station observations for one county."""
        if not city:
            logger.info("No city given for observations, using %s", self._settings.default_city)
            city = self._settings.default_city
        try:
            data = await self._fetch(
                OBSERVATION_DATASET,
                {"WeatherElement": _OBSERVATION_ELEMENTS, "GeoInfo": "Coordinates,CountyName"},
            )
            raw_stations = dig(data, "records", "Station")
            if not isinstance(raw_stations, list):
                raise SourceUnavailable(OBSERVATION_DATASET, "no station records")
            stations = [
                station
                for station in (parse_station(raw) for raw in raw_stations)
                if station is not None
                and station.county is not None
                and normalize_address(station.county) == city
            ]
            logger.debug("%d station(s) observed in %s", len(stations), city)
            return SourceResult(name="observations", records=stations)
        except SourceUnavailable as exc:
            logger.warning("Station observations unavailable for %s: %s", city, exc.reason)
            return SourceResult.failed("observations", exc.reason)
        except (KeyError, TypeError, AttributeError) as exc:
            logger.warning("Station observations parse error for %s: %s", city, exc)
            return SourceResult.failed("observations", f"parse error: {exc}")

    async def get_uv_index(self, city: str | None) -> SourceResult[UVReading]:
        """UV index readings for one county."""
        if not city:
            return SourceResult(name="uv")
        try:
            data = await self._fetch(UV_DATASET, {"County": city})
            raw_stations = dig(data, "records", "Station")
            if not isinstance(raw_stations, list):
                raise SourceUnavailable(UV_DATASET, "no UV records")
            readings = [r for r in (parse_uv_reading(raw) for raw in raw_stations) if r is not None]
            return SourceResult(name="uv", records=readings)
        except SourceUnavailable as exc:
            logger.warning("UV index unavailable for %s: %s", city, exc.reason)
            return SourceResult.failed("uv", exc.reason)
        except (KeyError, TypeError, AttributeError) as exc:
            logger.warning("UV index parse error for %s: %s", city, exc)
            return SourceResult.failed("uv", f"parse error: {exc}")

    async def get_forecast(self, city: str | None) -> SourceResult[LocationForecast]:
        """36-hour forecast for one county."""
        if not city:
            return SourceResult(name="forecast")
        try:
            data = await self._fetch(FORECAST_DATASET, {"locationName": city, "sort": "time"})
            raw_locations = dig(data, "records", "location")
            if not isinstance(raw_locations, list):
                raise SourceUnavailable(FORECAST_DATASET, "no forecast records")
            forecasts = [f for f in (parse_forecast(raw) for raw in raw_locations) if f is not None]
            return SourceResult(name="forecast", records=forecasts)
        except SourceUnavailable as exc:
            logger.warning("Forecast unavailable for %s: %s", city, exc.reason)
            return SourceResult.failed("forecast", exc.reason)
        except (KeyError, TypeError, AttributeError) as exc:
            logger.warning("Forecast parse error for %s: %s", city, exc)
            return SourceResult.failed("forecast", f"parse error: {exc}")

    async def probe(self, city: str | None = None) -> list[ProbeResult]:
        """Hit each dataset once and report reachability without raising."""
        city = city or self._settings.default_city
        checks = [
            (OBSERVATION_DATASET, {"WeatherElement": _OBSERVATION_ELEMENTS}, "Station"),
            (FORECAST_DATASET, {"locationName": city}, "location"),
            (UV_DATASET, {"County": city}, "Station"),
            (WARNINGS_DATASET, {}, "location"),
        ]
        results: list[ProbeResult] = []
        async with self._http() as client:
            for dataset, params, records_key in checks:
                try:
                    resp = await client.get(f"/{dataset}", params=params)
                    data = resp.json()
                except httpx.HTTPStatusError as exc:
                    results.append(ProbeResult(dataset, ok=False, status=exc.response.status_code, error=str(exc)))
                    continue
                except (httpx.HTTPError, ValueError) as exc:
                    results.append(ProbeResult(dataset, ok=False, error=str(exc) or type(exc).__name__))
                    continue

                success = isinstance(data, dict) and str(data.get("success")).lower() == "true"
                records = dig(data, "records", records_key)
                results.append(
                    ProbeResult(
                        dataset,
                        ok=success,
                        status=resp.status_code,
                        success=success,
                        has_data=isinstance(records, list) and len(records) > 0,
                        error=None if success else str(dig(data, "message", default="unsuccessful response")),
                    )
                )
        return results
