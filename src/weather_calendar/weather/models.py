"""Weather data models normalized from the CWA open data datasets."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, TypeVar

from weather_calendar.common.types import to_float

T = TypeVar("T")


@dataclass
class Station:
    """Latest observation at one CWA automatic weather station.

    Attributes:
        station_id: CWA station ID (e.g. "C0A9C0")
        name: station name (e.g. "天母")
        lat: WGS84 latitude, if reported
        lon: WGS84 longitude, if reported
        temperature: air temperature in Celsius
        humidity: relative humidity as a fraction in [0, 1]
        wind_speed: wind speed in m/s
        pressure: air pressure in hPa
        weather: weather description (e.g. "晴")
        uv_index: UV index, merged in from the UV dataset
        observed_at: observation time
        county: county the station belongs to (e.g. "臺北市")
    """

    station_id: str
    name: str
    lat: float | None = None
    lon: float | None = None
    temperature: float | None = None
    humidity: float | None = None
    wind_speed: float | None = None
    pressure: float | None = None
    weather: str | None = None
    uv_index: float | None = None
    observed_at: datetime | None = None
    county: str | None = None


@dataclass
class UVReading:
    """A UV index reading for one station."""

    station_id: str
    name: str
    uv_index: float | None = None
    observed_at: datetime | None = None


@dataclass
class ForecastPeriod:
    """One period of a forecast element (e.g. 12 hours of PoP)."""

    start_time: datetime | None
    end_time: datetime | None
    value: str
    unit: str = ""


@dataclass
class LocationForecast:
    """36-hour forecast for one county, keyed by element name.

    Common elements: "Wx" (weather), "PoP" (rain probability %),
    "MinT"/"MaxT" (Celsius), "CI" (comfort index).
    """

    location_name: str
    elements: dict[str, list[ForecastPeriod]] = field(default_factory=dict)

    def first_value(self, element: str) -> str | None:
        periods = self.elements.get(element)
        if not periods:
            return None
        return periods[0].value


@dataclass
class WeatherWarning:
    """An active weather advisory (e.g. "颱風警報")."""

    phenomenon_text: str
    location_name: str = ""
    start_time: datetime | None = None
    end_time: datetime | None = None
    raw: dict = field(default_factory=dict, repr=False)


@dataclass
class SourceResult(Generic[T]):
    """Outcome of one dataset call: records on success, a reason on failure."""

    name: str
    records: list[T] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, name: str, reason: str) -> SourceResult[T]:
        return cls(name=name, records=[], error=reason)


@dataclass
class WeatherSnapshot:
    """Merged weather state for one city/coordinate.

    Both ``station`` and ``forecast`` may be None when their sources failed;
    consumers must check every field.
    """

    city: str | None = None
    station: Station | None = None
    forecast: LocationForecast | None = None
    warnings: list[WeatherWarning] = field(default_factory=list)
    failed_sources: list[str] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.failed_sources)

    @property
    def temperature(self) -> float | None:
        return self.station.temperature if self.station else None

    @property
    def humidity(self) -> float | None:
        return self.station.humidity if self.station else None

    @property
    def uv_index(self) -> float | None:
        return self.station.uv_index if self.station else None

    @property
    def rain_probability(self) -> float | None:
        if self.forecast is None:
            return None
        return to_float(self.forecast.first_value("PoP"))
