"""Typer CLI: weather-calendar now, events, diagnose."""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from weather_calendar.common.errors import ConfigurationMissing, MalformedInput
from weather_calendar.config import get_settings

app = typer.Typer(
    name="weather-calendar",
    help="Calendar events enriched with CWA weather and alerts",
    no_args_is_help=True,
)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _client():
    from weather_calendar.weather.cwa import CwaClient

    try:
        return CwaClient(get_settings())
    except ConfigurationMissing as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=2)


@app.command()
def now(
    city: Optional[str] = typer.Argument(None, help="City or address (default: settings.default_city)"),
    output: str = typer.Option("table", "--output", "-o", help="Output format: table, json"),
) -> None:
    """Show current weather and alerts for a city."""
    from weather_calendar.alerts.engine import derive_alerts
    from weather_calendar.alerts.formatters import format_json, format_snapshot
    from weather_calendar.pipeline import load_dashboard
    from weather_calendar.weather.geocoding import resolve

    client = _client()
    geo = resolve(city) if city else None

    async def _run() -> None:
        dashboard = await load_dashboard(
            client, geo.city if geo else None, target=geo.lat_lon if geo else None,
        )
        if output == "json":
            console.print_json(format_json(dashboard, tz=client.settings.tzinfo))
        else:
            alerts = derive_alerts(dashboard.snapshot, tz=client.settings.timezone)
            format_snapshot(dashboard.snapshot, alerts, console, notice=dashboard.notice)

    asyncio.run(_run())


@app.command()
def events(
    calendar_file: Path = typer.Argument(help="Calendar file (.ics)"),
    on: Optional[str] = typer.Option(None, "--date", "-d", help="Only events on this day (YYYY-MM-DD)"),
    output: str = typer.Option("table", "--output", "-o", help="Output format: table, json"),
    dedupe: bool = typer.Option(False, "--dedupe", help="Fetch weather once per city"),
) -> None:
    """Enrich calendar events with weather and print their alerts."""
    from weather_calendar.alerts.formatters import format_events_table, format_json
    from weather_calendar.events.ics import events_on, read_ics
    from weather_calendar.pipeline import load_dashboard

    client = _client()
    settings = client.settings

    try:
        parsed = read_ics(calendar_file, default_tz=settings.tzinfo)
    except MalformedInput as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)

    if on is not None:
        try:
            day = date.fromisoformat(on)
        except ValueError:
            console.print(f"[red]Invalid date {on!r}, expected YYYY-MM-DD[/red]")
            raise typer.Exit(code=1)
        parsed = events_on(parsed, day, tz=settings.tzinfo)

    if not parsed:
        console.print("[yellow]No events found in calendar.[/yellow]")
        return

    async def _run() -> None:
        dashboard = await load_dashboard(client, events=parsed, dedupe=dedupe or None)
        if output == "json":
            console.print_json(format_json(dashboard, tz=settings.tzinfo))
            return
        if dashboard.notice:
            console.print(f"[red]{dashboard.notice}[/red]")
        format_events_table(
            dashboard.events,
            console,
            max_alerts=settings.max_alerts,
            now=datetime.now(settings.tzinfo),
            tz=settings.tzinfo,
        )

    asyncio.run(_run())


@app.command()
def diagnose() -> None:
    """Check the API key and reachability of each CWA dataset."""
    client = _client()
    key = client.settings.cwa_api_key
    key_ok = key.startswith("CWA-")
    console.print(
        f"API key: {'[green]format OK[/green]' if key_ok else '[red]unexpected format[/red]'} "
        f"(prefix {key[:4]}..., length {len(key)})"
    )

    results = asyncio.run(client.probe())

    table = Table(title="CWA Dataset Check")
    table.add_column("Dataset", width=12)
    table.add_column("Status", justify="right", width=6)
    table.add_column("Success", width=7)
    table.add_column("Data", width=5)
    table.add_column("Error", width=40, no_wrap=False)
    for r in results:
        table.add_row(
            r.dataset,
            str(r.status) if r.status is not None else "-",
            "[green]yes[/green]" if r.success else "[red]no[/red]",
            "yes" if r.has_data else "no",
            r.error or "",
        )
    console.print(table)

    if not all(r.ok for r in results):
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
