from __future__ import annotations

"""Day-fill: cover a person's idle time with synthetic placeholder events."""

from datetime import date, tzinfo
from typing import Iterable

from .config import FillPolicy
from .models import AnyEvent, FillerEvent
from .timeutil import day_bounds_ms, local_date, to_local


def _filler(person_id: str, day: date, start_ms: int, end_ms: int, tz: tzinfo, policy: FillPolicy) -> FillerEvent:
    hour = to_local(start_ms, tz).hour
    is_night = hour >= policy.night_starts_hour or hour < policy.night_ends_hour
    return FillerEvent(
        id=f"fill-{person_id}-{start_ms}",
        person_id=person_id,
        title=policy.night_title if is_night else policy.day_title,
        day=day,
        start_ms=start_ms,
        end_ms=end_ms,
    )


def synthesize_day_fill(
    events: Iterable[AnyEvent],
    person_id: str,
    now_ms: int,
    *,
    tz: tzinfo,
    policy: FillPolicy | None = None,
    day: date | None = None,
) -> list[AnyEvent]:
    """Return the person's events plus fillers for every uncovered stretch of today.

    "Today" is ``day`` when given, else the local date of ``now_ms``. Gaps
    before the first event, between events and after the last one up to the
    next midnight are filled.
    """
    policy = policy or FillPolicy()
    if day is None:
        day = local_date(now_ms, tz)
    day_start, day_end = day_bounds_ms(day, tz)
    own = sorted((e for e in events if e.person_id == person_id), key=lambda e: (e.start_ms, e.id))

    out: list[AnyEvent] = list(own)
    cursor = day_start
    for ev in own:
        if ev.end_ms <= day_start or ev.start_ms >= day_end:
            continue
        if cursor < ev.start_ms:
            out.append(_filler(person_id, day, cursor, ev.start_ms, tz, policy))
        cursor = max(cursor, ev.end_ms)
    if cursor < day_end:
        out.append(_filler(person_id, day, cursor, day_end, tz, policy))
    out.sort(key=lambda e: (e.start_ms, e.synthetic, e.id))
    return out


__all__ = ["synthesize_day_fill"]
