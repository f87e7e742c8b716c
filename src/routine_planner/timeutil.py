from __future__ import annotations

"""Wall-clock helpers. All timestamps handled by the planner are epoch ms."""

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo

MIN_MS = 60_000
HOUR_MS = 60 * MIN_MS
DAY_MIN = 24 * 60

WEEKDAY_CODES = ("MO", "TU", "WE", "TH", "FR", "SA", "SU")


def resolve_tz(name: str | None) -> tzinfo:
    if not name or name.upper() in {"UTC", "Z"}:
        return timezone.utc
    return ZoneInfo(name)


def as_date(value: date | datetime | str) -> date:
    """Date-only view of ``value``; time of day is ignored."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def parse_hhmm(hhmm: str) -> int:
    """Minutes after midnight for ``HH:MM``. Hours past 23 spill into the next day."""
    hh, mm = hhmm.strip().split(":")
    h, m = int(hh), int(mm)
    if h < 0 or not (0 <= m < 60):
        raise ValueError(f"invalid time of day: {hhmm!r}")
    return h * 60 + m


def format_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def wall_clock_ms(day: date, minutes: int, tz: tzinfo) -> int:
    """Epoch ms of local wall-clock ``minutes`` after midnight on ``day``."""
    extra_days, minute_of_day = divmod(minutes, DAY_MIN)
    d = day + timedelta(days=extra_days)
    local = datetime.combine(d, time(minute_of_day // 60, minute_of_day % 60), tzinfo=tz)
    return int(local.timestamp() * 1000)


def day_bounds_ms(day: date, tz: tzinfo) -> tuple[int, int]:
    return wall_clock_ms(day, 0, tz), wall_clock_ms(day + timedelta(days=1), 0, tz)


def to_local(ms: int, tz: tzinfo) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=tz)


def local_date(ms: int, tz: tzinfo) -> date:
    return to_local(ms, tz).date()


def hhmm_of(ms: int, tz: tzinfo) -> str:
    return to_local(ms, tz).strftime("%H:%M")


def to_ms(value: int | float | datetime | str) -> int:
    """Coerce epoch ms, an aware datetime or an ISO timestamp to epoch ms."""
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def weekday_code(day: date) -> str:
    return WEEKDAY_CODES[day.weekday()]


def human_delta(ms: int) -> str:
    mins = max(0, round(ms / MIN_MS))
    h, m = divmod(mins, 60)
    if h and m:
        return f"{h} h {m} min"
    if h:
        return f"{h} h"
    return f"{m} min"


__all__ = [
    "MIN_MS",
    "HOUR_MS",
    "WEEKDAY_CODES",
    "resolve_tz",
    "as_date",
    "parse_hhmm",
    "format_hhmm",
    "wall_clock_ms",
    "day_bounds_ms",
    "to_local",
    "local_date",
    "hhmm_of",
    "to_ms",
    "weekday_code",
    "human_delta",
]
