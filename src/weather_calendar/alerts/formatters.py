"""Dashboard output formatters: Rich tables and JSON."""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime, tzinfo

from rich.console import Console
from rich.table import Table

from weather_calendar.alerts.engine import DEFAULT_TIMEZONE, Alert, AlertLevel, derive_alerts, top_alerts
from weather_calendar.alerts.summary import comfort_level, event_temperature, weather_icon, weather_text
from weather_calendar.events.models import CalendarEvent
from weather_calendar.pipeline import Dashboard
from weather_calendar.weather.models import WeatherSnapshot

_LEVEL_STYLE = {
    AlertLevel.INFO: "cyan",
    AlertLevel.WARNING: "yellow",
    AlertLevel.DANGER: "bold red",
}


def _fmt(value: float | None, spec: str, suffix: str = "") -> str:
    return "-" if value is None else f"{value:{spec}}{suffix}"


def format_alert(alert: Alert) -> str:
    style = _LEVEL_STYLE[alert.level]
    return f"[{style}]{alert.icon} {alert.title}[/{style}]"


def format_snapshot(
    snapshot: WeatherSnapshot,
    alerts: list[Alert],
    console: Console | None = None,
    notice: str | None = None,
) -> None:
    """Print the city-level weather panel."""
    if console is None:
        console = Console()

    if notice:
        console.print(f"[red]{notice}[/red]")

    station = snapshot.station
    table = Table(title=f"{snapshot.city or '-'} 即時天氣", show_header=False)
    table.add_column("Field", style="bold", width=10)
    table.add_column("Value", width=40)

    temp = event_temperature(station, snapshot.forecast)
    table.add_row("測站", station.name if station else "-")
    table.add_row("天氣", f"{weather_icon(weather_text(station, snapshot.forecast), temp)} "
                          f"{weather_text(station, snapshot.forecast) or '-'}")
    table.add_row("溫度", _fmt(temp, ".1f", "°C"))
    table.add_row("濕度", _fmt(snapshot.humidity * 100 if snapshot.humidity is not None else None, ".0f", "%"))
    table.add_row("風速", _fmt(station.wind_speed if station else None, ".1f", " m/s"))
    table.add_row("紫外線", _fmt(snapshot.uv_index, "g"))
    table.add_row("降雨機率", _fmt(snapshot.rain_probability, "g", "%"))
    if station and station.observed_at:
        table.add_row("觀測時間", station.observed_at.strftime("%Y-%m-%d %H:%M"))
    console.print(table)

    if not alerts:
        console.print("[dim]No weather alerts.[/dim]")
        return
    for alert in alerts:
        style = _LEVEL_STYLE[alert.level]
        console.print(f"  [{style}]{alert.icon} {alert.title}[/{style}]  {alert.message}")


def format_events_table(
    events: list[CalendarEvent],
    console: Console | None = None,
    max_alerts: int = 3,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> None:
    """Print enriched events as a Rich table in calendar order.

    Start times are shown in ``tz`` when given, and alerts use its local hour.
    """
    if console is None:
        console = Console()

    if not events:
        console.print("[yellow]No events to show.[/yellow]")
        return

    table = Table(title="行程天氣提醒", show_lines=True)
    table.add_column("時間", width=16)
    table.add_column("行程", width=24, no_wrap=False)
    table.add_column("地點", width=16)
    table.add_column("天氣", width=12)
    table.add_column("舒適度", width=8)
    table.add_column("提醒", width=36, no_wrap=False)

    for event in events:
        temp = event_temperature(event.weather_data, event.weather_forecast)
        icon = weather_icon(weather_text(event.weather_data, event.weather_forecast), temp)
        humidity = event.weather_data.humidity if event.weather_data else None
        comfort = comfort_level(temp, humidity)
        alerts = top_alerts(derive_alerts(event.snapshot(), now=now, tz=tz or DEFAULT_TIMEZONE), max_alerts)

        table.add_row(
            (event.start.astimezone(tz) if tz else event.start).strftime("%m/%d %a %H:%M"),
            event.title[:60],
            (event.location or "")[:16],
            f"{icon} {_fmt(temp, '.1f', '°C')}" if event.enriched else "[dim]-[/dim]",
            f"[{comfort.style}]{comfort.text}[/{comfort.style}]" if comfort else "",
            "\n".join(format_alert(a) for a in alerts),
        )

    console.print(table)
    enriched = sum(1 for e in events if e.enriched)
    console.print(f"\n[dim]{enriched}/{len(events)} event(s) with weather[/dim]")


def _alert_dict(alert: Alert) -> dict:
    return {
        "type": alert.type.value,
        "level": alert.level.value,
        "icon": alert.icon,
        "title": alert.title,
        "message": alert.message,
    }


def _snapshot_dict(snapshot: WeatherSnapshot) -> dict:
    return {
        "city": snapshot.city,
        "station": asdict(snapshot.station) if snapshot.station else None,
        "forecast": asdict(snapshot.forecast) if snapshot.forecast else None,
        "warnings": [w.phenomenon_text for w in snapshot.warnings],
        "failed_sources": snapshot.failed_sources,
    }


def format_json(dashboard: Dashboard, now: datetime | None = None, tz: tzinfo | None = None) -> str:
    """Format a dashboard (snapshot, alerts, events) as a JSON string."""
    zone = tz or DEFAULT_TIMEZONE
    payload = {
        "city": dashboard.city,
        "notice": dashboard.notice,
        "weather": _snapshot_dict(dashboard.snapshot),
        "alerts": [_alert_dict(a) for a in derive_alerts(dashboard.snapshot, now=now, tz=zone)],
        "events": [
            {
                "id": e.event_id,
                "title": e.title,
                "start": e.start.isoformat(),
                "end": e.end.isoformat(),
                "location": e.location,
                "temperature": event_temperature(e.weather_data, e.weather_forecast),
                "alerts": [_alert_dict(a) for a in derive_alerts(e.snapshot(), now=now, tz=zone)],
            }
            for e in dashboard.events
        ],
    }
    return json.dumps(payload, ensure_ascii=False, indent=2, default=str)
