from __future__ import annotations

"""Override layer: sparse, absolute start/duration patches keyed by event id.

Base events are never modified; ``apply_overrides`` computes the effective
events at read time. Every write returns a new mapping.
"""

from dataclasses import replace
from typing import TYPE_CHECKING, Iterable, Mapping, Optional

from .models import AnyEvent, Override

if TYPE_CHECKING:  # pragma: no cover
    from .replan import ReplanPatch

Overrides = Mapping[str, Override]


def apply_overrides(events: Iterable[AnyEvent], overrides: Overrides) -> list[AnyEvent]:
    out: list[AnyEvent] = []
    for ev in events:
        o = overrides.get(ev.id)
        if o is None:
            out.append(ev)
            continue
        start_ms = o.start_ms if o.start_ms is not None else ev.start_ms
        planned_ms = o.planned_ms if o.planned_ms is not None else ev.end_ms - ev.start_ms
        out.append(replace(ev, start_ms=start_ms, end_ms=start_ms + planned_ms))
    return out


def set_override(
    overrides: Overrides,
    event_id: str,
    *,
    start_ms: Optional[int] = None,
    planned_ms: Optional[int] = None,
) -> dict[str, Override]:
    """Merge a patch for ``event_id``; fields left as None keep their previous value."""
    if planned_ms is not None and planned_ms < 0:
        raise ValueError("planned duration cannot be negative")
    current = overrides.get(event_id, Override())
    merged = Override(
        start_ms=start_ms if start_ms is not None else current.start_ms,
        planned_ms=planned_ms if planned_ms is not None else current.planned_ms,
    )
    out = dict(overrides)
    out[event_id] = merged
    return out


def merge_patches(overrides: Overrides, patches: Iterable["ReplanPatch"]) -> dict[str, Override]:
    out = dict(overrides)
    for p in patches:
        out = set_override(out, p.event_id, start_ms=p.new_start_ms, planned_ms=p.new_planned_duration_ms)
    return out


__all__ = ["Overrides", "apply_overrides", "set_override", "merge_patches"]
