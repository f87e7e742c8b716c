from __future__ import annotations

"""Proportional replanning of a person's remaining day after a late finish.

When an activity runs past its planned end, the overrun is absorbed by
shrinking the person's following flexible activities in proportion to how
much each can give up. Fixed-start activities, and everything after the first
one, never move. The result is a preview: a list of absolute patches that the
caller may commit through the override layer.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Literal, Sequence

from .allocation import distribute_proportionally
from .errors import UnknownEventError
from .models import AnyEvent, Event

_log = logging.getLogger(__name__)

ReplanStatus = Literal["ok", "insufficient_flex"]


@dataclass(frozen=True, slots=True)
class ReplanPatch:
    event_id: str
    new_start_ms: int
    new_planned_duration_ms: int
    shrink_ms: int


@dataclass(frozen=True, slots=True)
class ReplanPreview:
    status: ReplanStatus
    patches: tuple[ReplanPatch, ...] = ()
    overrun_ms: int = 0
    total_slack_ms: int = 0
    missing_ms: int = 0
    horizon_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.status == "ok"


def _same_day_real(event: Event, events: Iterable[AnyEvent]) -> list[Event]:
    return sorted(
        (
            e
            for e in events
            if not e.synthetic and e.person_id == event.person_id and e.day == event.day
        ),
        key=lambda e: (e.start_ms, e.id),
    )


def _find(event_id: str, events: Sequence[AnyEvent]) -> AnyEvent:
    for e in events:
        if e.id == event_id:
            return e
    raise UnknownEventError(event_id)


def _next_starts(day_events: Sequence[Event]) -> dict[str, int]:
    """Event id -> start of the next later-starting event, or the event's own end."""
    out: dict[str, int] = {}
    later: int | None = None
    group: int | None = None
    for e in reversed(day_events):
        if e.start_ms != group:
            later, group = group, e.start_ms
        out[e.id] = later if later is not None else e.end_ms
    return out


def planned_end_ms(event: AnyEvent, events: Iterable[AnyEvent]) -> int:
    """Start of the person's next real event that day, else the event's own end."""
    if event.synthetic:
        return event.end_ms
    later = [e.start_ms for e in _same_day_real(event, events) if e.start_ms > event.start_ms]
    return min(later) if later else event.end_ms


def _horizon_ms(seed: Event, after_ms: int, day_events: Sequence[Event]) -> int:
    fixed = [e.start_ms for e in day_events if e.fixed_start and e.id != seed.id and e.start_ms >= after_ms]
    if fixed:
        return min(fixed)
    return max([after_ms] + [e.end_ms for e in day_events])


def _slack_ms(planned_ms: int, minimum_ms: int | None, unbounded_slack_ratio: float) -> int:
    if minimum_ms is None:
        return int(planned_ms * unbounded_slack_ratio)
    return max(0, planned_ms - minimum_ms)


def _window_planned_ms(window: Sequence[Event], next_starts: dict[str, int], horizon_ms: int) -> list[int]:
    # Each window event runs until the next one starts; the last one stops at the horizon.
    planned = [nxt.start_ms - ev.start_ms for ev, nxt in zip(window, window[1:])]
    if window:
        last = window[-1]
        planned.append(min(horizon_ms, next_starts[last.id]) - last.start_ms)
    return planned


def preview_replan_proportional(
    event_id: str,
    now_ms: int,
    events: Sequence[AnyEvent],
    *,
    unbounded_slack_ratio: float = 0.5,
) -> ReplanPreview:
    seed = _find(event_id, events)
    if seed.synthetic:
        raise ValueError(f"cannot replan around filler event {event_id}")

    day_events = _same_day_real(seed, events)
    next_starts = _next_starts(day_events)
    seed_end = next_starts[seed.id]
    horizon = _horizon_ms(seed, seed_end, day_events)
    overrun = now_ms - seed_end
    if overrun <= 0:
        return ReplanPreview(status="ok", horizon_ms=horizon)

    window = [
        e
        for e in day_events
        if e.id != seed.id and not e.fixed_start and seed_end <= e.start_ms < horizon
    ]
    planned = _window_planned_ms(window, next_starts, horizon)
    slacks = [_slack_ms(p, e.min_duration_ms, unbounded_slack_ratio) for p, e in zip(planned, window)]
    total_slack = sum(slacks)
    # Events already planned below their minimum grow back to it; that time is absorbed too.
    deficit = sum(max(0, (e.min_duration_ms or 0) - p) for p, e in zip(planned, window))
    needed = overrun + deficit

    if total_slack < needed:
        shrinks = slacks
        status: ReplanStatus = "insufficient_flex"
        missing = needed - total_slack
    else:
        shrinks = distribute_proportionally(needed, slacks)
        status = "ok"
        missing = 0

    patches: list[ReplanPatch] = []
    cursor = now_ms
    for ev, p, shrink in zip(window, planned, shrinks):
        duration = max(ev.min_duration_ms or 0, p - shrink)
        patches.append(
            ReplanPatch(
                event_id=ev.id,
                new_start_ms=cursor,
                new_planned_duration_ms=duration,
                shrink_ms=shrink,
            )
        )
        cursor += duration

    _log.debug(
        "replan preview",
        extra={
            "_json_event": event_id,
            "_json_status": status,
            "_json_overrun_ms": overrun,
            "_json_deficit_ms": deficit,
            "_json_window": len(window),
        },
    )
    return ReplanPreview(
        status=status,
        patches=tuple(patches),
        overrun_ms=overrun,
        total_slack_ms=total_slack,
        missing_ms=missing,
        horizon_ms=horizon,
    )


__all__ = [
    "ReplanStatus",
    "ReplanPatch",
    "ReplanPreview",
    "planned_end_ms",
    "preview_replan_proportional",
]
