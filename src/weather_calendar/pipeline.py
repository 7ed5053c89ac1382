"""Top-level pipeline orchestrator.

Wires together: geocoding → CWA fetching → aggregation → event enrichment.
The four dataset calls for a query, and the per-event enrichments, are
launched with asyncio.gather(return_exceptions=True) so one failure never
cancels its siblings. Results are matched back to their inputs by index.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from dataclasses import dataclass, field

from weather_calendar.common.types import LatLon
from weather_calendar.events.models import CalendarEvent
from weather_calendar.weather.aggregator import aggregate_results
from weather_calendar.weather.cwa import CwaClient
from weather_calendar.weather.geocoding import GeoResult, NominatimResolver, TableResolver, get_resolver
from weather_calendar.weather.models import (
    LocationForecast,
    SourceResult,
    Station,
    UVReading,
    WeatherSnapshot,
    WeatherWarning,
)

logger = logging.getLogger(__name__)

Resolver = TableResolver | NominatimResolver

PARTIAL_DATA_NOTICE = "部分天氣資料暫時無法取得"


@dataclass
class SourceBundle:
    """Raw results of the four dataset calls for one city."""

    city: str | None
    warnings: SourceResult[WeatherWarning]
    stations: SourceResult[Station]
    uv: SourceResult[UVReading]
    forecasts: SourceResult[LocationForecast]

    def snapshot(self, target: LatLon | None) -> WeatherSnapshot:
        return aggregate_results(
            self.warnings, self.stations, self.uv, self.forecasts, self.city, target,
        )


def _settled(name: str, result: SourceResult | BaseException) -> SourceResult:
    if isinstance(result, BaseException):
        logger.warning("Source %s raised unexpectedly: %r", name, result)
        return SourceResult.failed(name, f"{type(result).__name__}: {result}")
    return result


async def fetch_sources(client: CwaClient, city: str | None) -> SourceBundle:
    """Fetch warnings, observations, UV and forecast concurrently."""
    names = ("warnings", "observations", "uv", "forecast")
    results = await asyncio.gather(
        client.get_warnings(),
        client.get_station_observations(city),
        client.get_uv_index(city),
        client.get_forecast(city),
        return_exceptions=True,
    )
    warnings, stations, uv, forecasts = (
        _settled(name, result) for name, result in zip(names, results)
    )
    return SourceBundle(city, warnings, stations, uv, forecasts)


async def fetch_city_weather(
    client: CwaClient,
    city: str | None,
    target: LatLon | None = None,
) -> WeatherSnapshot:
    """Fetch and merge everything for one city, nearest station to ``target``."""
    bundle = await fetch_sources(client, city)
    snapshot = bundle.snapshot(target)
    if snapshot.partial:
        logger.warning("Partial weather for %s: %s failed", city, ", ".join(snapshot.failed_sources))
    return snapshot


class _SourceFetcher:
    """Hands out source bundles per city, optionally sharing one fetch per city."""

    def __init__(self, client: CwaClient, dedupe: bool) -> None:
        self._client = client
        self._dedupe = dedupe
        self._tasks: dict[str | None, asyncio.Task[SourceBundle]] = {}

    async def get(self, city: str | None) -> SourceBundle:
        if not self._dedupe:
            return await fetch_sources(self._client, city)
        task = self._tasks.get(city)
        if task is None:
            task = asyncio.ensure_future(fetch_sources(self._client, city))
            self._tasks[city] = task
        return await task


async def _enrich_event(
    event: CalendarEvent,
    resolver: Resolver,
    fetcher: _SourceFetcher,
) -> CalendarEvent:
    if not event.location:
        return event

    geo: GeoResult | None = await resolver.resolve(event.location)
    if geo is None:
        logger.warning("Could not resolve location %r for event %s", event.location, event.event_id)
        return event

    bundle = await fetcher.get(geo.city)
    snapshot = bundle.snapshot(geo.lat_lon)
    return dataclasses.replace(
        event,
        weather_data=snapshot.station,
        weather_forecast=snapshot.forecast,
        weather_warning=snapshot.warnings[0] if snapshot.warnings else None,
    )


async def enrich_events(
    events: list[CalendarEvent],
    client: CwaClient,
    resolver: Resolver | None = None,
    dedupe: bool | None = None,
) -> list[CalendarEvent]:
    """Attach weather to every event that has a location.

    Every event re-fetches all four datasets unless ``dedupe`` (default:
    ``Settings.dedupe_city_fetches``) is set. An event whose enrichment
    fails is returned unchanged; output order always matches input order.
    """
    settings = client.settings
    if resolver is None:
        resolver = get_resolver(settings.geocoder, settings.nominatim_user_agent)
    if dedupe is None:
        dedupe = settings.dedupe_city_fetches

    fetcher = _SourceFetcher(client, dedupe)
    results = await asyncio.gather(
        *(_enrich_event(event, resolver, fetcher) for event in events),
        return_exceptions=True,
    )

    enriched: list[CalendarEvent] = []
    failed = 0
    for event, result in zip(events, results):
        if isinstance(result, BaseException):
            failed += 1
            logger.warning("Enrichment failed for event %s: %r", event.event_id, result)
            enriched.append(event)
        else:
            enriched.append(result)

    logger.info(
        "Enriched %d/%d event(s), %d failure(s)",
        sum(1 for e in enriched if e.enriched), len(events), failed,
    )
    return enriched


@dataclass
class Dashboard:
    """Everything one dashboard load produces.

    ``notice`` is a soft message set when the city-level fetch lost one or
    more sources; per-event failures never set it.
    """

    city: str
    snapshot: WeatherSnapshot
    events: list[CalendarEvent] = field(default_factory=list)
    notice: str | None = None


async def load_dashboard(
    client: CwaClient,
    city: str | None = None,
    events: list[CalendarEvent] | None = None,
    resolver: Resolver | None = None,
    dedupe: bool | None = None,
    target: LatLon | None = None,
) -> Dashboard:
    """City-level weather plus enriched events, fetched concurrently.

    The city panel uses the station nearest ``target`` when one is given.
    """
    city = city or client.settings.default_city
    snapshot, enriched = await asyncio.gather(
        fetch_city_weather(client, city, target),
        enrich_events(events or [], client, resolver=resolver, dedupe=dedupe),
    )
    notice = None
    if snapshot.partial:
        notice = f"{PARTIAL_DATA_NOTICE}（{', '.join(snapshot.failed_sources)}）"
    return Dashboard(city=city, snapshot=snapshot, events=enriched, notice=notice)
