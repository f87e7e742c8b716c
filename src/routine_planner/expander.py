from __future__ import annotations

"""Template expansion: day profile + date -> concrete, contiguous events.

Steps are resolved to wall-clock times on the date, ordered by
(start, person, key), and given ids derived from person, key and date so that
expanding the same date twice yields identical events. Each event ends where
the same person's next event starts; the last one of the day gets its best,
minimum or default duration. ``depends_on_keys`` are turned into event-id
edges within the batch. Keys that do not resolve are dropped, logged and
reported back as ``DanglingDependency`` records.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional

from .classifier import classify_day
from .config import DEFAULT_DURATION_MIN, PlannerConfig
from .errors import ConfigurationError
from .models import DanglingDependency, DayProfile, Event, TemplateStep
from .timeutil import MIN_MS, as_date, parse_hhmm, wall_clock_ms

_log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProfileExpansion:
    events: tuple[Event, ...]
    dangling: tuple[DanglingDependency, ...] = ()


@dataclass(frozen=True, slots=True)
class DayExpansion:
    day: date
    day_type: str
    tomorrow_type: str
    events: tuple[Event, ...]
    dangling: tuple[DanglingDependency, ...] = ()


def event_id_for(person_id: str, key: str, day: date) -> str:
    return f"{person_id}-{key}-{day.isoformat()}"


def resolve_step_minutes(step: TemplateStep, next_day_type: Optional[str]) -> int:
    """Minutes after midnight at which ``step`` starts.

    Evening steps may be timed by tomorrow's day-type; otherwise the fixed
    ``at`` time wins over ``offset_min``.
    """
    if step.cluster == "evening" and next_day_type and next_day_type in step.at_by_next_day_type:
        hhmm = step.at_by_next_day_type[next_day_type]
    elif step.at is not None:
        hhmm = step.at
    elif step.offset_min is not None:
        return step.offset_min
    else:
        raise ConfigurationError(f"step {step.person_id}/{step.key} has no resolvable start time")
    try:
        return parse_hhmm(hhmm)
    except ValueError as e:
        raise ConfigurationError(f"step {step.person_id}/{step.key}: {e}") from None


def _fallback_duration_min(step: TemplateStep, default_duration_min: int) -> int:
    if step.best_duration_min is not None:
        return step.best_duration_min
    if step.min_duration_min is not None:
        return step.min_duration_min
    return default_duration_min


def _to_ms(minutes: Optional[int]) -> Optional[int]:
    return None if minutes is None else minutes * MIN_MS


def expand_profile_for_date(
    day: date,
    profile: DayProfile,
    next_day_type: Optional[str],
    *,
    tz: tzinfo,
    default_duration_min: int = DEFAULT_DURATION_MIN,
) -> ProfileExpansion:
    resolved = sorted(
        ((wall_clock_ms(day, resolve_step_minutes(s, next_day_type), tz), s) for s in profile.steps),
        key=lambda item: (item[0], item[1].person_id, item[1].key),
    )

    ids: list[str] = []
    seen: set[str] = set()
    starts: dict[tuple[str, int], str] = {}
    ids_by_key: dict[str, list[str]] = defaultdict(list)
    for start_ms, step in resolved:
        event_id = event_id_for(step.person_id, step.key, day)
        if event_id in seen:
            raise ConfigurationError(
                f"{profile.id}: duplicate key {step.key!r} for person {step.person_id!r}"
            )
        other = starts.setdefault((step.person_id, start_ms), step.key)
        if other != step.key:
            raise ConfigurationError(
                f"{profile.id}: steps {other!r} and {step.key!r} for person {step.person_id!r}"
                f" both start at the same time on {day.isoformat()}"
            )
        seen.add(event_id)
        ids.append(event_id)
        ids_by_key[step.key].append(event_id)

    # Walk backwards so each step sees the start of its person's next step.
    ends: list[int] = [0] * len(resolved)
    following: dict[str, int] = {}
    for i in range(len(resolved) - 1, -1, -1):
        start_ms, step = resolved[i]
        nxt = following.get(step.person_id)
        if nxt is None:
            ends[i] = start_ms + _fallback_duration_min(step, default_duration_min) * MIN_MS
        else:
            ends[i] = nxt
        following[step.person_id] = start_ms

    events: list[Event] = []
    dangling: list[DanglingDependency] = []
    for i, (start_ms, step) in enumerate(resolved):
        depends_on: list[str] = []
        for key in step.depends_on_keys:
            targets = [t for t in ids_by_key.get(key, ()) if t != ids[i]]
            if not targets:
                dangling.append(DanglingDependency(event_id=ids[i], missing_key=key))
                _log.warning(
                    "dropping unresolved dependency %s -> %s",
                    ids[i],
                    key,
                    extra={"_json_profile": profile.id, "_json_day": day.isoformat()},
                )
                continue
            depends_on.extend(t for t in targets if t not in depends_on)
        events.append(
            Event(
                id=ids[i],
                person_id=step.person_id,
                title=step.title,
                day=day,
                start_ms=start_ms,
                end_ms=ends[i],
                min_duration_ms=_to_ms(step.min_duration_min),
                best_duration_ms=_to_ms(step.best_duration_min),
                fixed_start=step.fixed_start,
                depends_on=tuple(depends_on),
                involved=step.involved,
                resource=step.resource,
                location=step.location,
                cluster=step.cluster,
                source="template",
                template_key=step.key,
                day_type=profile.id,
            )
        )
    return ProfileExpansion(events=tuple(events), dangling=tuple(dangling))


def expand_day(day: date | datetime | str, config: PlannerConfig) -> DayExpansion:
    d = as_date(day)
    day_type = classify_day(d, config.rules)
    tomorrow_type = classify_day(d + timedelta(days=1), config.rules)
    expansion = expand_profile_for_date(
        d,
        config.profile(day_type),
        tomorrow_type,
        tz=config.tz,
        default_duration_min=config.default_duration_min,
    )
    _log.info(
        "day expanded",
        extra={
            "_json_day": d.isoformat(),
            "_json_day_type": day_type,
            "_json_events": len(expansion.events),
        },
    )
    return DayExpansion(
        day=d,
        day_type=day_type,
        tomorrow_type=tomorrow_type,
        events=expansion.events,
        dangling=expansion.dangling,
    )


__all__ = [
    "ProfileExpansion",
    "DayExpansion",
    "event_id_for",
    "resolve_step_minutes",
    "expand_profile_for_date",
    "expand_day",
]
