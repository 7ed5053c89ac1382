"""iCalendar (.ics) reader.

Only VEVENT blocks and the handful of properties the dashboard shows are
read: UID, SUMMARY, DESCRIPTION, LOCATION, DTSTART, DTEND. Events without
a title or a parseable start/end are dropped.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from weather_calendar.common.errors import MalformedInput
from weather_calendar.events.models import CalendarEvent

logger = logging.getLogger(__name__)

_DATE_PATTERN = re.compile(
    r"^(\d{4})(\d{2})(\d{2})(?:T(\d{2})(\d{2})(\d{2})?)?(Z)?$"
)
_ESCAPES = {"\\n": "\n", "\\N": "\n", "\\,": ",", "\\;": ";", "\\\\": "\\"}
_ESCAPE_PATTERN = re.compile(r"\\[nN,;\\]")


def _unfold(text: str) -> list[str]:
    """Split into logical lines, joining RFC 5545 continuation lines."""
    lines: list[str] = []
    for line in re.split(r"\r\n|\n|\r", text):
        if line[:1] in (" ", "\t") and lines:
            lines[-1] += line[1:]
        else:
            lines.append(line)
    return lines


def _unescape(value: str) -> str:
    return _ESCAPE_PATTERN.sub(lambda m: _ESCAPES[m.group(0)], value)


def _split_property(line: str) -> tuple[str, dict[str, str], str]:
    """Split "NAME;PARAM=X:value" into (NAME, {PARAM: X}, value)."""
    head, _, value = line.partition(":")
    name, *raw_params = head.split(";")
    params: dict[str, str] = {}
    for raw in raw_params:
        key, _, param_value = raw.partition("=")
        params[key.upper()] = param_value.strip('"')
    return name.upper(), params, value


def parse_ics_datetime(value: str, params: dict[str, str], default_tz: tzinfo) -> datetime | None:
    """Parse DATE or DATE-TIME values; unparseable input gives None.

    Trailing "Z" means UTC, a TZID parameter names the zone, anything else
    is floating time in ``default_tz``. All-day dates start at midnight.
    """
    match = _DATE_PATTERN.match(value.strip())
    if match is None:
        return None

    year, month, day, hour, minute, second, utc = match.groups()
    tz: tzinfo = default_tz
    if utc:
        tz = timezone.utc
    elif "TZID" in params:
        try:
            tz = ZoneInfo(params["TZID"])
        except (ZoneInfoNotFoundError, ValueError):
            logger.debug("Unknown TZID %r, using default", params["TZID"])

    try:
        day_value = date(int(year), int(month), int(day))
        clock = time(int(hour or 0), int(minute or 0), int(second or 0))
    except ValueError:
        return None
    return datetime.combine(day_value, clock, tzinfo=tz)


def parse_ics(text: str, default_tz: tzinfo | None = None) -> list[CalendarEvent]:
    """Parse calendar text into events, in file order."""
    tz = default_tz or timezone.utc
    events: list[CalendarEvent] = []
    current: dict[str, object] | None = None
    skipped = 0

    for line in _unfold(text):
        if not line.strip():
            continue
        name, params, value = _split_property(line)

        if name == "BEGIN" and value.strip().upper() == "VEVENT":
            current = {}
        elif name == "END" and value.strip().upper() == "VEVENT":
            if current is not None:
                event = _build_event(current, len(events) + skipped)
                if event is None:
                    skipped += 1
                else:
                    events.append(event)
            current = None
        elif current is None:
            continue
        elif name == "UID":
            current["uid"] = value.strip()
        elif name == "SUMMARY":
            current["title"] = _unescape(value).strip()
        elif name == "DESCRIPTION":
            current["description"] = _unescape(value)
        elif name == "LOCATION":
            current["location"] = _unescape(value).strip()
        elif name == "DTSTART":
            current["start"] = parse_ics_datetime(value, params, tz)
            current["all_day"] = params.get("VALUE", "").upper() == "DATE" or "T" not in value
        elif name == "DTEND":
            current["end"] = parse_ics_datetime(value, params, tz)

    if skipped:
        logger.info("Dropped %d event(s) missing a title, start or end", skipped)
    return events


def _build_event(fields: dict[str, object], index: int) -> CalendarEvent | None:
    title = fields.get("title")
    start = fields.get("start")
    end = fields.get("end")
    if not title or not isinstance(start, datetime):
        return None
    if not isinstance(end, datetime):
        # RFC 5545: an all-day event without DTEND lasts one day
        if not fields.get("all_day"):
            return None
        end = start + timedelta(days=1)

    return CalendarEvent(
        event_id=str(fields.get("uid") or f"event-{index}"),
        title=str(title),
        start=start,
        end=end,
        location=str(fields["location"]) if fields.get("location") else None,
        description=str(fields["description"]) if fields.get("description") else None,
    )


def read_ics(path: str | Path, default_tz: tzinfo | None = None) -> list[CalendarEvent]:
    """Read and parse an .ics file."""
    path = Path(path)
    if path.suffix.lower() != ".ics":
        raise MalformedInput(f"{path.name}: expected an .ics calendar file")
    try:
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        raise MalformedInput(f"{path.name}: cannot read calendar file ({exc})") from exc
    return parse_ics(text, default_tz=default_tz)


def events_on(events: list[CalendarEvent], day: date, tz: tzinfo | None = None) -> list[CalendarEvent]:
    """Events overlapping the given calendar day (in ``tz``, default UTC)."""
    tz = tz or timezone.utc
    day_start = datetime.combine(day, time.min, tzinfo=tz)
    day_end = day_start + timedelta(days=1)
    return [e for e in events if e.start < day_end and e.end > day_start]
