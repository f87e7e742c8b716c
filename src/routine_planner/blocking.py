from __future__ import annotations

"""Advisory blocking hints: why can't this activity start right now?

Checks run in a fixed order and the first unmet condition is reported:
unfinished dependencies, busy required participants, exhausted shared
resources, then participants who are somewhere else. Nothing here changes the
schedule.
"""

from typing import Iterable, Mapping, Optional, Sequence

from .models import AnyEvent, Event, Person, is_ongoing

UNKNOWN_PERSON = "someone"


def _name(person_id: str, people: Sequence[Person]) -> str:
    return next((p.name for p in people if p.id == person_id), UNKNOWN_PERSON)


def _required(event: Event) -> list[str]:
    return [i.person_id for i in event.involved if i.role == "required"]


def _current_real(person_id: str, now_ms: int, events: Iterable[AnyEvent], exclude_id: str) -> list[Event]:
    return [
        e
        for e in events
        if not e.synthetic and e.person_id == person_id and e.id != exclude_id and is_ongoing(e, now_ms)
    ]


def _unmet_dependency(event: Event, now_ms: int, events: Sequence[AnyEvent], people: Sequence[Person]) -> Optional[str]:
    by_id = {e.id: e for e in events}
    for dep_id in event.depends_on:
        dep = by_id.get(dep_id)
        if dep is None or dep.synthetic:
            continue
        if not dep.is_completed(now_ms):
            return f"Waiting for {_name(dep.person_id, people)} ({dep.title})"
    return None


def _unmet_presence(event: Event, now_ms: int, events: Sequence[AnyEvent], people: Sequence[Person]) -> Optional[str]:
    for person_id in _required(event):
        for cur in _current_real(person_id, now_ms, events, event.id):
            if cur.is_completed(now_ms):
                continue
            shared = any(i.person_id == event.person_id for i in cur.involved)
            if not shared:
                return f"Waiting for {_name(person_id, people)}"
    return None


def _unmet_resource(
    event: Event, now_ms: int, events: Sequence[AnyEvent], resources: Optional[Mapping[str, int]]
) -> Optional[str]:
    if not event.resource or not resources or event.resource not in resources:
        return None
    using = sum(
        1
        for e in events
        if not e.synthetic
        and e.id != event.id
        and e.resource == event.resource
        and not e.is_completed(now_ms)
        and is_ongoing(e, now_ms)
    )
    if using >= resources[event.resource]:
        return f"Waiting for the {event.resource}"
    return None


def _unmet_co_location(event: Event, now_ms: int, events: Sequence[AnyEvent], people: Sequence[Person]) -> Optional[str]:
    if not event.location:
        return None
    for person_id in _required(event):
        for cur in _current_real(person_id, now_ms, events, event.id):
            if cur.location and cur.location != event.location:
                return f"Waiting for {_name(person_id, people)} to arrive at {event.location}"
    return None


def why_blocked(
    event: AnyEvent,
    now_ms: int,
    events: Sequence[AnyEvent],
    people: Sequence[Person],
    *,
    resources: Optional[Mapping[str, int]] = None,
) -> Optional[str]:
    if event.synthetic:
        return None
    return (
        _unmet_dependency(event, now_ms, events, people)
        or _unmet_presence(event, now_ms, events, people)
        or _unmet_resource(event, now_ms, events, resources)
        or _unmet_co_location(event, now_ms, events, people)
    )


__all__ = ["why_blocked"]
