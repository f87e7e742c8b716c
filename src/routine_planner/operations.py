from __future__ import annotations

"""Structured calendar operations (create / modify / delete / query).

Operations arrive already resolved: dates as ``datetime.date`` and times as
"HH:MM" strings. Turning free text into these structures is someone else's
job; this module only locates the targeted event and applies the change to an
in-memory event list, returning a new list.
"""

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import date, tzinfo
from typing import Callable, Literal, Optional, Sequence

from .errors import OperationError
from .models import AnyEvent, Event
from .timeutil import HOUR_MS, hhmm_of, parse_hhmm, to_local, wall_clock_ms

_log = logging.getLogger(__name__)

Command = Literal["CREATE", "MODIFY", "DELETE", "QUERY"]

DEFAULT_START = "09:00"
DEFAULT_DURATION_MS = HOUR_MS
DEFAULT_COLOR = "#69B4EB"


@dataclass(frozen=True, slots=True)
class EventQuery:
    title: Optional[str] = None
    day: Optional[date] = None
    start: Optional[str] = None  # HH:MM


@dataclass(frozen=True, slots=True)
class EventDetails:
    title: Optional[str] = None
    day: Optional[date] = None
    start: Optional[str] = None
    end: Optional[str] = None
    person_id: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None


@dataclass(frozen=True, slots=True)
class CalendarOperation:
    command: Command
    target: Optional[EventQuery] = None
    details: Optional[EventDetails] = None


@dataclass(frozen=True, slots=True)
class OperationResult:
    events: tuple[AnyEvent, ...]
    affected_ids: tuple[str, ...] = ()
    matches: tuple[Event, ...] = ()


def _new_id() -> str:
    return f"manual-{uuid.uuid4().hex[:12]}"


def _minutes(hhmm: str) -> int:
    try:
        return parse_hhmm(hhmm)
    except ValueError as e:
        raise OperationError(str(e)) from None


def match_events(events: Sequence[AnyEvent], query: EventQuery, *, tz: tzinfo) -> list[Event]:
    """All real events matching every field set on ``query``."""
    found = [e for e in events if not e.synthetic]
    if query.title:
        needle = query.title.casefold()
        found = [e for e in found if needle in e.title.casefold()]
    if query.day is not None:
        found = [e for e in found if e.day == query.day]
    if query.start:
        wanted = _minutes(query.start)
        found = [e for e in found if _minutes(hhmm_of(e.start_ms, tz)) == wanted]
    return sorted(found, key=lambda e: (e.start_ms, e.id))


def find_event(events: Sequence[AnyEvent], query: EventQuery, *, tz: tzinfo) -> Event:
    found = match_events(events, query, tz=tz)
    if not found:
        raise OperationError(f"no event matches {query}")
    if len(found) > 1:
        raise OperationError(
            f"{len(found)} events match {query}; add a date or start time to narrow it down"
        )
    return found[0]


def _create(details: EventDetails, *, tz: tzinfo, default_person_id: str, id_factory: Callable[[], str]) -> Event:
    if not details.title:
        raise OperationError("a new event needs a title")
    if details.day is None:
        raise OperationError("a new event needs a date")
    start_ms = wall_clock_ms(details.day, _minutes(details.start or DEFAULT_START), tz)
    end_ms = (
        wall_clock_ms(details.day, _minutes(details.end), tz)
        if details.end
        else start_ms + DEFAULT_DURATION_MS
    )
    if end_ms <= start_ms:
        raise OperationError("event must end after it starts")
    return Event(
        id=id_factory(),
        person_id=details.person_id or default_person_id,
        title=details.title,
        day=details.day,
        start_ms=start_ms,
        end_ms=end_ms,
        source="manual",
        description=details.description,
        color=details.color or DEFAULT_COLOR,
    )


def _modify(event: Event, details: EventDetails, *, tz: tzinfo) -> Event:
    day = details.day or event.day
    duration = event.end_ms - event.start_ms
    if details.start:
        start_ms = wall_clock_ms(day, _minutes(details.start), tz)
    elif details.day is not None:
        local = to_local(event.start_ms, tz)
        start_ms = wall_clock_ms(day, local.hour * 60 + local.minute, tz)
    else:
        start_ms = event.start_ms
    end_ms = wall_clock_ms(day, _minutes(details.end), tz) if details.end else start_ms + duration
    if end_ms <= start_ms:
        raise OperationError("event must end after it starts")
    return replace(
        event,
        title=details.title or event.title,
        day=day,
        start_ms=start_ms,
        end_ms=end_ms,
        person_id=details.person_id or event.person_id,
        description=details.description if details.description is not None else event.description,
        color=details.color or event.color,
    )


def apply_operation(
    events: Sequence[AnyEvent],
    op: CalendarOperation,
    *,
    tz: tzinfo,
    default_person_id: str,
    id_factory: Callable[[], str] = _new_id,
) -> OperationResult:
    if op.command == "CREATE":
        created = _create(op.details or EventDetails(), tz=tz, default_person_id=default_person_id, id_factory=id_factory)
        result = OperationResult(events=tuple(events) + (created,), affected_ids=(created.id,))
    elif op.command == "QUERY":
        matches = match_events(events, op.target or EventQuery(), tz=tz)
        return OperationResult(events=tuple(events), matches=tuple(matches))
    elif op.command in ("MODIFY", "DELETE"):
        if op.target is None:
            raise OperationError(f"{op.command} needs a target")
        target = find_event(events, op.target, tz=tz)
        if op.command == "DELETE":
            kept = tuple(e for e in events if e.id != target.id)
        else:
            changed = _modify(target, op.details or EventDetails(), tz=tz)
            kept = tuple(changed if e.id == target.id else e for e in events)
        result = OperationResult(events=kept, affected_ids=(target.id,), matches=(target,))
    else:
        raise OperationError(f"unknown command {op.command!r}")

    _log.info(
        "calendar operation applied",
        extra={"_json_command": op.command, "_json_affected": list(result.affected_ids)},
    )
    return result


__all__ = [
    "Command",
    "DEFAULT_START",
    "DEFAULT_DURATION_MS",
    "DEFAULT_COLOR",
    "EventQuery",
    "EventDetails",
    "CalendarOperation",
    "OperationResult",
    "match_events",
    "find_event",
    "apply_operation",
]
