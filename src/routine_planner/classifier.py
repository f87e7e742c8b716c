from __future__ import annotations

"""Day classification: calendar date -> day-type."""

from datetime import date, datetime

from .models import RuleSet
from .timeutil import as_date, weekday_code


def _in_break(day: date, start: date, end: date) -> bool:
    return start <= day < end


def classify_day(day: date | datetime | str, rules: RuleSet) -> str:
    """Return the day-type for ``day``; first matching rule wins.

    Order: explicit per-date override, break range, special date, weekday sets.
    Weekdays in neither set fall back to the off-day type.
    """
    d = as_date(day)
    override = rules.per_date_overrides.get(d)
    if override:
        return override
    for br in rules.breaks:
        if _in_break(d, br.start, br.end):
            return br.day_type or rules.off_day_type
    if d in rules.special_dates:
        return rules.special_day_type
    code = weekday_code(d)
    if code in rules.weekdays_school:
        return rules.school_day_type
    return rules.off_day_type


__all__ = ["classify_day"]
