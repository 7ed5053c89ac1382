"""Free-text Taiwan address to lat/lon + CWA county name.

The default resolver is a static table. Matching is "first key in table
order that appears in the address", so the table order below is part of
the behaviour: an address containing both "新竹" and "新竹縣" resolves
through "新竹" because it is listed first.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from geopy.adapters import AioHTTPAdapter
from geopy.exc import GeocoderTimedOut, GeocoderServiceError, GeocoderUnavailable
from geopy.geocoders import Nominatim

from weather_calendar.common.errors import UnresolvableLocation
from weather_calendar.common.types import LatLon

logger = logging.getLogger(__name__)

DEFAULT_CITY = "臺北市"


@dataclass(frozen=True)
class GeoResult:
    """A resolved location: coordinates plus the CWA county name."""

    lat: float
    lon: float
    city: str

    @property
    def lat_lon(self) -> LatLon:
        return (self.lat, self.lon)


@dataclass(frozen=True)
class _Place:
    lat_lon: LatLon
    city: str  # CWA county name used by the observation and forecast datasets


# Ordered: first substring hit wins. Do not sort.
_PLACES: dict[str, _Place] = {
    "臺北":   _Place((25.0330, 121.5654), "臺北市"),
    "臺北市": _Place((25.0330, 121.5654), "臺北市"),
    "新北":   _Place((25.0170, 121.4628), "新北市"),
    "新北市": _Place((25.0170, 121.4628), "新北市"),
    "桃園":   _Place((24.9936, 121.3010), "桃園市"),
    "桃園市": _Place((24.9936, 121.3010), "桃園市"),
    "臺中":   _Place((24.1477, 120.6736), "臺中市"),
    "臺中市": _Place((24.1477, 120.6736), "臺中市"),
    "臺南":   _Place((22.9998, 120.2268), "臺南市"),
    "臺南市": _Place((22.9998, 120.2268), "臺南市"),
    "高雄":   _Place((22.6273, 120.3014), "高雄市"),
    "高雄市": _Place((22.6273, 120.3014), "高雄市"),
    "基隆":   _Place((25.1276, 121.7392), "基隆市"),
    "基隆市": _Place((25.1276, 121.7392), "基隆市"),
    "新竹":   _Place((24.8138, 120.9675), "新竹市"),
    "新竹市": _Place((24.8138, 120.9675), "新竹市"),
    "新竹縣": _Place((24.8390, 121.0181), "新竹縣"),
    "苗栗":   _Place((24.5600, 120.8220), "苗栗縣"),
    "苗栗縣": _Place((24.5600, 120.8220), "苗栗縣"),
    "彰化":   _Place((24.0809, 120.5383), "彰化縣"),
    "彰化縣": _Place((24.0809, 120.5383), "彰化縣"),
    "南投":   _Place((23.9157, 120.6738), "南投縣"),
    "南投縣": _Place((23.9157, 120.6738), "南投縣"),
    "雲林":   _Place((23.7092, 120.4313), "雲林縣"),
    "雲林縣": _Place((23.7092, 120.4313), "雲林縣"),
    "嘉義":   _Place((23.4801, 120.4490), "嘉義市"),
    "嘉義市": _Place((23.4801, 120.4490), "嘉義市"),
    "嘉義縣": _Place((23.4518, 120.2556), "嘉義縣"),
    "屏東":   _Place((22.5519, 120.5487), "屏東縣"),
    "屏東縣": _Place((22.5519, 120.5487), "屏東縣"),
    "宜蘭":   _Place((24.7591, 121.7539), "宜蘭縣"),
    "宜蘭縣": _Place((24.7591, 121.7539), "宜蘭縣"),
    "花蓮":   _Place((23.9772, 121.6044), "花蓮縣"),
    "花蓮縣": _Place((23.9772, 121.6044), "花蓮縣"),
    "臺東":   _Place((22.7583, 121.1444), "臺東縣"),
    "臺東縣": _Place((22.7583, 121.1444), "臺東縣"),
    "澎湖":   _Place((23.5711, 119.5793), "澎湖縣"),
    "澎湖縣": _Place((23.5711, 119.5793), "澎湖縣"),
    "金門":   _Place((24.4493, 118.3767), "金門縣"),
    "金門縣": _Place((24.4493, 118.3767), "金門縣"),
    "連江":   _Place((26.1597, 119.9515), "連江縣"),
    "連江縣": _Place((26.1597, 119.9515), "連江縣"),
    # Districts carry their parent county
    "北投":   _Place((25.1175, 121.5071), "臺北市"),
    "信義區": _Place((25.0299, 121.5706), "臺北市"),
    "板橋":   _Place((25.0119, 121.4581), "新北市"),
    "淡水":   _Place((25.1712, 121.4410), "新北市"),
}

KNOWN_CITIES: frozenset[str] = frozenset(p.city for p in _PLACES.values())

_CITY_PREFIX = re.compile(r"^(.*?[市縣])")


def normalize_address(address: str) -> str:
    """Fold the 台/臺 variants onto 臺, as used by CWA county names."""
    return address.strip().replace("台", "臺")


def _result(place: _Place) -> GeoResult:
    return GeoResult(lat=place.lat_lon[0], lon=place.lat_lon[1], city=place.city)


def _lookup(normalized: str) -> GeoResult | None:
    for key, place in _PLACES.items():
        if key in normalized:
            return _result(place)

    prefix = _CITY_PREFIX.match(normalized)
    if prefix is not None:
        place = _PLACES.get(prefix.group(1))
        if place is not None:
            return _result(place)

    return None


def resolve(address: str | None) -> GeoResult | None:
    """Resolve a free-text address against the static place table.

    Falls back to the default city when nothing matches, so the only
    None results are empty input and unexpected internal errors.

    Examples:
        resolve("台北市大安區") → GeoResult(25.0330, 121.5654, "臺北市")
        resolve("板橋車站") → GeoResult(25.0119, 121.4581, "新北市")
    """
    if not address:
        return None

    try:
        normalized = normalize_address(address)
        result = _lookup(normalized)
        if result is not None:
            return result

        logger.warning("Unresolvable address %r, using %s", address, DEFAULT_CITY)
        return _result(_PLACES[DEFAULT_CITY])
    except Exception:
        logger.exception("Geocoding error for %r", address)
        return None


class TableResolver:
    """Resolver backed by the static place table."""

    async def resolve(self, address: str | None) -> GeoResult | None:
        return resolve(address)


class NominatimResolver:
    """Live geocoding through Nominatim, mapped onto CWA county names.

    Nominatim supplies coordinates; the county comes from the returned
    address parts. Anything Nominatim cannot place in a known county goes
    through the static table instead.
    """

    def __init__(self, user_agent: str = "weather-calendar") -> None:
        self._user_agent = user_agent

    async def _geocode(self, address: str) -> GeoResult:
        try:
            async with Nominatim(
                user_agent=self._user_agent,
                adapter_factory=AioHTTPAdapter,
            ) as geolocator:
                location = await geolocator.geocode(
                    address, addressdetails=True, language="zh-TW", country_codes="tw",
                )
        except (GeocoderTimedOut, GeocoderServiceError, GeocoderUnavailable) as exc:
            logger.warning("Geocoding service error for %r: %s", address, exc)
            raise UnresolvableLocation(address) from exc

        if location is None:
            raise UnresolvableLocation(address)

        parts = (location.raw or {}).get("address", {})
        for key in ("city", "county", "state"):
            county = normalize_address(str(parts.get(key, "")))
            if county in KNOWN_CITIES:
                return GeoResult(lat=location.latitude, lon=location.longitude, city=county)

        raise UnresolvableLocation(address)

    async def resolve(self, address: str | None) -> GeoResult | None:
        if not address:
            return None
        try:
            return await self._geocode(address)
        except UnresolvableLocation:
            logger.debug("Nominatim could not place %r, using table", address)
            return resolve(address)


def get_resolver(backend: str = "table", user_agent: str = "weather-calendar") -> TableResolver | NominatimResolver:
    """Build the resolver named by ``Settings.geocoder``."""
    if backend == "nominatim":
        return NominatimResolver(user_agent=user_agent)
    return TableResolver()
