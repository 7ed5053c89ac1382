"""Per-event weather summary: temperature, comfort level, icon."""

from __future__ import annotations

from dataclasses import dataclass

from weather_calendar.common.types import to_float
from weather_calendar.weather.models import LocationForecast, Station


@dataclass(frozen=True)
class Comfort:
    text: str
    style: str  # rich style
    description: str


def event_temperature(station: Station | None, forecast: LocationForecast | None) -> float | None:
    """Observed temperature, else the mean of the first MaxT/MinT periods."""
    if station is not None and station.temperature is not None:
        return station.temperature
    if forecast is not None:
        max_t = to_float(forecast.first_value("MaxT"))
        min_t = to_float(forecast.first_value("MinT"))
        if max_t is not None and min_t is not None:
            return (max_t + min_t) / 2
    return None


def comfort_level(temp: float | None, humidity: float | None) -> Comfort | None:
    if temp is None or humidity is None:
        return None

    if temp > 30:
        text, style = "悶熱", "red"
    elif temp > 26:
        text, style = "偏熱", "dark_orange"
    elif temp < 16:
        text, style = "寒冷", "blue"
    elif temp < 20:
        text, style = "偏涼", "cyan"
    else:
        text, style = "舒適", "green"

    return Comfort(text, style, f"溫度 {temp:g}°C，濕度 {humidity * 100:.0f}%")


def weather_icon(weather: str | None, temp: float | None) -> str:
    """Icon from the weather description, falling back to temperature."""
    if not weather:
        if temp is None:
            return "🌤️"
        if temp >= 30:
            return "🌞"
        if temp <= 15:
            return "❄️"
        return "🌤️"
    if "雨" in weather:
        return "🌧️"
    if "雷" in weather:
        return "⛈️"
    if "陰" in weather:
        return "☁️"
    if "晴" in weather:
        return "☀️"
    return "⛅"


def weather_text(station: Station | None, forecast: LocationForecast | None) -> str | None:
    """Observed weather description, else the first forecast "Wx" value."""
    if station is not None and station.weather:
        return station.weather
    if forecast is not None:
        return forecast.first_value("Wx")
    return None
