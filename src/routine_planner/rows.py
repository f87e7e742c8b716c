from __future__ import annotations

"""Row builder for the per-person grid.

A row exists for every distinct start time among the displayed people's
events. A person has a cell in a row only when one of their events starts at
exactly that time; otherwise the grid shows their earlier, still-running event
carried forward (see ``source_event_for_cell``).
"""

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Sequence

from .models import AnyEvent, Person, is_ongoing

VISIBLE_SLOTS = 5


@dataclass(frozen=True, slots=True)
class Row:
    time_ms: int
    cells: Mapping[str, AnyEvent] = field(default_factory=dict)

    def cell(self, person_id: str) -> Optional[AnyEvent]:
        return self.cells.get(person_id)


def build_rows(events: Iterable[AnyEvent], people: Sequence[Person]) -> list[Row]:
    shown = {p.id for p in people}
    by_time: dict[int, dict[str, AnyEvent]] = {}
    for ev in sorted(events, key=lambda e: (e.start_ms, e.synthetic, e.id)):
        if ev.person_id not in shown:
            continue
        cells = by_time.setdefault(ev.start_ms, {})
        # A real event wins over a filler starting at the same instant.
        cells.setdefault(ev.person_id, ev)
    return [Row(time_ms=t, cells=by_time[t]) for t in sorted(by_time)]


def current_row_index(rows: Sequence[Row], now_ms: int) -> int:
    """Index of the last row starting at or before ``now_ms`` (0 if none)."""
    if not rows:
        return 0
    upcoming = next((i for i, r in enumerate(rows) if r.time_ms > now_ms), len(rows))
    return max(0, min(upcoming - 1, len(rows) - 1))


def visible_window(rows: Sequence[Row], now_ms: int, slots: int = VISIBLE_SLOTS) -> list[Row]:
    """Up to ``slots`` rows centred on the current row, clamped to the ends."""
    if slots <= 0:
        raise ValueError("slots must be positive")
    if len(rows) <= slots:
        return list(rows)
    current = current_row_index(rows, now_ms)
    start = max(0, min(current - slots // 2, len(rows) - slots))
    return list(rows[start:start + slots])


def source_event_for_cell(person_id: str, row: Row, events: Iterable[AnyEvent]) -> Optional[AnyEvent]:
    direct = row.cell(person_id)
    if direct is not None:
        return direct
    ongoing = [e for e in events if e.person_id == person_id and is_ongoing(e, row.time_ms)]
    if not ongoing:
        return None
    # Prefer the latest-starting real event covering the row time.
    return max(ongoing, key=lambda e: (not e.synthetic, e.start_ms))


__all__ = [
    "VISIBLE_SLOTS",
    "Row",
    "build_rows",
    "current_row_index",
    "visible_window",
    "source_event_for_cell",
]
