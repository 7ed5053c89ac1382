"""Merge the four CWA sources into one WeatherSnapshot."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Sequence

from weather_calendar.common.types import LatLon
from weather_calendar.weather.models import (
    LocationForecast,
    SourceResult,
    Station,
    UVReading,
    WeatherSnapshot,
    WeatherWarning,
)
from weather_calendar.weather.stations import nearest

logger = logging.getLogger(__name__)


def merge_uv(stations: Sequence[Station], uv_records: Sequence[UVReading]) -> list[Station]:
    """Copy stations, filling ``uv_index`` from the reading with the same station ID."""
    uv_by_id = {r.station_id: r.uv_index for r in uv_records}
    return [
        dataclasses.replace(station, uv_index=uv_by_id.get(station.station_id))
        for station in stations
    ]


def aggregate(
    warnings: Sequence[WeatherWarning],
    stations: Sequence[Station],
    uv_records: Sequence[UVReading],
    forecasts: Sequence[LocationForecast],
    city: str | None,
    target: LatLon | None,
) -> WeatherSnapshot:
    """Build the snapshot for ``city``, using the station nearest ``target``.

    Any input may be empty; the result then simply lacks that part.
    Forecasts match on exact county name only.
    """
    merged = merge_uv(stations, uv_records)

    station = nearest(merged, target)
    if station is None and merged:
        station = merged[0]

    forecast = next((f for f in forecasts if f.location_name == city), None)
    if forecast is None and forecasts:
        logger.debug("No forecast entry named %r among %d", city, len(forecasts))

    return WeatherSnapshot(
        city=city,
        station=station,
        forecast=forecast,
        warnings=list(warnings),
    )


def aggregate_results(
    warnings: SourceResult[WeatherWarning],
    stations: SourceResult[Station],
    uv_records: SourceResult[UVReading],
    forecasts: SourceResult[LocationForecast],
    city: str | None,
    target: LatLon | None,
) -> WeatherSnapshot:
    """Like ``aggregate`` but also records which sources failed."""
    snapshot = aggregate(
        warnings.records,
        stations.records,
        uv_records.records,
        forecasts.records,
        city,
        target,
    )
    snapshot.failed_sources = [
        result.name for result in (warnings, stations, uv_records, forecasts) if not result.ok
    ]
    return snapshot
