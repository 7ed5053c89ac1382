"""Application configuration via pydantic-settings."""

from __future__ import annotations

from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # CWA open data authorization key ("CWA-XXXXXXXX-...")
    cwa_api_key: str = ""

    # CWA open data datastore base URL
    cwa_api_url: str = "https://opendata.cwa.gov.tw/api/v1/rest/datastore"

    # HTTP request timeout seconds
    http_timeout: float = 30.0

    # County used when an address cannot be resolved or no city is given
    default_city: str = "臺北市"

    # Local timezone for calendar times and time-of-day alerts
    timezone: str = "Asia/Taipei"

    # Location lookup backend
    geocoder: Literal["table", "nominatim"] = "table"

    # Nominatim user agent (only used with geocoder="nominatim")
    nominatim_user_agent: str = "weather-calendar"

    # Fetch CWA datasets once per city when enriching events
    dedupe_city_fetches: bool = False

    # Alerts shown per event in the CLI
    max_alerts: int = 3

    @field_validator("http_timeout")
    @classmethod
    def _http_timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"http_timeout must be > 0, got {v}")
        return v

    @field_validator("timezone")
    @classmethod
    def _timezone_known(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone {v!r}") from exc
        return v

    @field_validator("max_alerts")
    @classmethod
    def _max_alerts_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_alerts must be >= 1, got {v}")
        return v

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def get_settings() -> Settings:
    """Get a fresh settings instance."""
    return Settings()
