"""Exception hierarchy.

Only ``ConfigurationMissing`` and ``MalformedInput`` ever leave the package;
the others are raised and caught inside the weather pipeline.
"""

from __future__ import annotations


class WeatherCalendarError(Exception):
    """Base class for all weather-calendar errors."""


class ConfigurationMissing(WeatherCalendarError):
    """A required setting (the CWA API key) is absent."""


class SourceUnavailable(WeatherCalendarError):
    """One CWA dataset call failed."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class UnresolvableLocation(WeatherCalendarError):
    """A live geocoder could not map an address to a known county."""

    def __init__(self, address: str) -> None:
        super().__init__(f"cannot resolve location {address!r}")
        self.address = address


class MalformedInput(WeatherCalendarError):
    """Calendar input could not be read at all."""
