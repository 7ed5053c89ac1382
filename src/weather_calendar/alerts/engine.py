"""Derive human-facing weather alerts from a snapshot.

Each rule is evaluated independently and appends at most one alert (the
warnings rule appends one per active warning). The emission order is
fixed: umbrella, UV, temperature, humidity, special warnings, time of day.
A rule whose input is missing is skipped.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from enum import Enum
from zoneinfo import ZoneInfo

from weather_calendar.weather.models import WeatherSnapshot

DEFAULT_TIMEZONE = "Asia/Taipei"

# Strong-sun window, inclusive local hours
_SUN_HOURS = range(10, 17)


class AlertType(Enum):
    UMBRELLA = "umbrella"
    UV = "uv"
    TEMPERATURE = "temperature"
    AIR = "air"
    SPECIAL = "special"
    TIME = "time"


class AlertLevel(Enum):
    INFO = "info"
    WARNING = "warning"
    DANGER = "danger"


@dataclass(frozen=True)
class Alert:
    """A derived alert badge."""

    type: AlertType
    level: AlertLevel
    icon: str
    title: str
    message: str


def _rain_alert(pop: float | None) -> Alert | None:
    if pop is None:
        return None
    shown = f"{pop:g}"
    if pop >= 70:
        return Alert(AlertType.UMBRELLA, AlertLevel.WARNING, "☔", "記得帶傘",
                     f"降雨機率 {shown}%，建議攜帶雨具")
    if pop >= 30:
        return Alert(AlertType.UMBRELLA, AlertLevel.INFO, "🌂", "可能會下雨",
                     f"降雨機率 {shown}%，建議留意天氣變化")
    return None


def _uv_alert(uvi: float | None) -> Alert | None:
    if uvi is None:
        return None
    if uvi >= 11:
        return Alert(AlertType.UV, AlertLevel.DANGER, "☀️", "紫外線危險",
                     "紫外線指數極高，請做好防曬措施")
    if uvi >= 8:
        return Alert(AlertType.UV, AlertLevel.WARNING, "🌞", "紫外線過量",
                     "紫外線指數偏高，建議使用防曬用品")
    if uvi >= 5:
        return Alert(AlertType.UV, AlertLevel.INFO, "😎", "適度防曬",
                     "建議戴帽子或使用防曬乳")
    return None


def _temperature_alert(temp: float | None) -> Alert | None:
    if temp is None:
        return None
    if temp >= 35:
        return Alert(AlertType.TEMPERATURE, AlertLevel.DANGER, "🌡️", "高溫危險",
                     "請注意防暑、補充水分")
    if temp >= 32:
        return Alert(AlertType.TEMPERATURE, AlertLevel.WARNING, "♨️", "炎熱",
                     "請適當補充水分")
    if temp <= 10:
        return Alert(AlertType.TEMPERATURE, AlertLevel.WARNING, "❄️", "低溫",
                     "請注意保暖")
    return None


def _humidity_alert(humidity: float | None) -> Alert | None:
    if humidity is None:
        return None
    percent = humidity * 100
    if percent > 80:
        return Alert(AlertType.AIR, AlertLevel.WARNING, "💧", "潮濕",
                     "空氣濕度過高，請注意通風")
    if percent < 40:
        return Alert(AlertType.AIR, AlertLevel.WARNING, "🏜️", "乾燥",
                     "空氣濕度偏低，請注意保濕")
    return None


def _time_alert(now: datetime, uvi: float | None) -> Alert | None:
    if uvi is None or uvi < 5 or now.hour not in _SUN_HOURS:
        return None
    return Alert(AlertType.TIME, AlertLevel.INFO, "⏰", "戶外活動提醒",
                 "現在是日照強烈時段，請注意防曬")


def derive_alerts(
    snapshot: WeatherSnapshot | None,
    now: datetime | None = None,
    tz: str | tzinfo = DEFAULT_TIMEZONE,
) -> list[Alert]:
    """Derive the ordered alert list for a snapshot.

    Args:
        snapshot: merged weather; None yields no alerts
        now: moment used by the time-of-day rule; defaults to the current
            time in ``tz``. Aware values are converted to ``tz``.
        tz: IANA zone name or tzinfo for the local hour

    Returns:
        Alerts in emission order (most specific first); never raises on
        missing fields.
    """
    if snapshot is None:
        return []

    zone = ZoneInfo(tz) if isinstance(tz, str) else tz
    if now is None:
        now = datetime.now(zone)
    elif now.tzinfo is not None:
        now = now.astimezone(zone)

    uvi = snapshot.uv_index
    alerts = [
        _rain_alert(snapshot.rain_probability),
        _uv_alert(uvi),
        _temperature_alert(snapshot.temperature),
        _humidity_alert(snapshot.humidity),
    ]
    alerts.extend(
        Alert(AlertType.SPECIAL, AlertLevel.DANGER, "⚠️", "特別警報", warning.phenomenon_text)
        for warning in snapshot.warnings
    )
    alerts.append(_time_alert(now, uvi))
    return [a for a in alerts if a is not None]


def top_alerts(alerts: list[Alert], n: int) -> list[Alert]:
    """Keep the first ``n`` alerts, for compact displays."""
    return alerts[:max(n, 0)]
