"""Calendar event model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from weather_calendar.weather.models import LocationForecast, Station, WeatherSnapshot, WeatherWarning


@dataclass
class CalendarEvent:
    """A calendar event, optionally enriched with weather for its location.

    Attributes:
        event_id: UID from the calendar file (or a generated "event-N")
        title: event summary
        start: start time (timezone-aware)
        end: end time (timezone-aware)
        location: free-text location, if any
        description: free-text description, if any
        weather_data: representative station observation
        weather_forecast: forecast for the event's county
        weather_warning: first active warning at enrichment time
    """

    event_id: str
    title: str
    start: datetime
    end: datetime
    location: str | None = None
    description: str | None = None
    weather_data: Station | None = None
    weather_forecast: LocationForecast | None = None
    weather_warning: WeatherWarning | None = None

    @property
    def enriched(self) -> bool:
        return self.weather_data is not None or self.weather_forecast is not None

    def snapshot(self) -> WeatherSnapshot:
        """Rebuild a snapshot from the attached weather, for alerting."""
        return WeatherSnapshot(
            city=self.weather_forecast.location_name if self.weather_forecast else None,
            station=self.weather_data,
            forecast=self.weather_forecast,
            warnings=[self.weather_warning] if self.weather_warning else [],
        )
