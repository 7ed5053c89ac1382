"""Nearest-station selection by great-circle distance."""

from __future__ import annotations

import math
from collections.abc import Sequence

from weather_calendar.common.types import LatLon
from weather_calendar.weather.models import Station

EARTH_RADIUS_M = 6_371_000.0


def haversine_distance(a: LatLon, b: LatLon) -> float:
    """Great-circle distance in metres between two (lat, lon) points."""
    lat1, lon1 = map(math.radians, a)
    lat2, lon2 = map(math.radians, b)
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def nearest(stations: Sequence[Station], target: LatLon | None) -> Station | None:
    """Pick the station closest to ``target``.

    With no target the first station is returned. Stations without both
    coordinates are never candidates; on equal distances the earlier
    station wins.
    """
    if target is None:
        return stations[0] if stations else None

    best: Station | None = None
    best_distance = math.inf
    for station in stations:
        if station.lat is None or station.lon is None:
            continue
        distance = haversine_distance(target, (station.lat, station.lon))
        if distance < best_distance:
            best, best_distance = station, distance
    return best
