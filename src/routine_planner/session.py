from __future__ import annotations

"""PlannerSession: the single owner of a loaded day's mutable state.

The core modules are pure; the session is where the current day's events,
the override map and completion marks live. It recomputes the effective
schedule on demand and notifies listeners through Qt signals:

 - ``day_loaded(iso_date)`` after a new day has been expanded.
 - ``overrides_changed()`` whenever the override map is replaced.
 - ``events_changed()`` whenever the effective schedule may differ.
 - ``replanned(event_id, status, overrun_ms)`` after a late finish was absorbed.
 - ``insufficient_flex(event_id, missing_ms)`` when it could not be.
 - ``error(message)`` for rejected calendar operations.
"""

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Sequence

from PyQt6.QtCore import QObject, pyqtSignal

from . import overrides as override_layer
from .blocking import why_blocked as resolve_blocking
from .config import PlannerConfig, validate_config
from .errors import OperationError, UnknownEventError
from .expander import DayExpansion, expand_day
from .fill import synthesize_day_fill
from .models import AnyEvent, Override, Person
from .operations import CalendarOperation, OperationResult, apply_operation as apply_calendar_operation
from .replan import ReplanPreview, preview_replan_proportional
from .rows import VISIBLE_SLOTS, Row, build_rows, visible_window
from .timeutil import human_delta

_log = logging.getLogger(__name__)


class PlannerSession(QObject):
    day_loaded = pyqtSignal(str)
    overrides_changed = pyqtSignal()
    events_changed = pyqtSignal()
    replanned = pyqtSignal(str, str, int)
    insufficient_flex = pyqtSignal(str, int)
    error = pyqtSignal(str)

    def __init__(self, config: PlannerConfig, tracked_people: Optional[Sequence[str]] = None) -> None:
        super().__init__()
        self._config = validate_config(config)
        self._tracked: List[str] = list(tracked_people) if tracked_people is not None else [p.id for p in config.people]
        self._expansion: Optional[DayExpansion] = None
        self._base: List[AnyEvent] = []
        self._overrides: Dict[str, Override] = {}
        self._completed: Dict[str, int] = {}
        self._completed_up_to: Dict[str, int] = {}

    # --- Properties -----------------------------------------------------
    @property
    def config(self) -> PlannerConfig:
        return self._config

    @property
    def day(self) -> Optional[date]:
        return self._expansion.day if self._expansion else None

    @property
    def expansion(self) -> Optional[DayExpansion]:
        return self._expansion

    @property
    def base_events(self) -> List[AnyEvent]:
        return list(self._base)

    @property
    def overrides(self) -> Dict[str, Override]:
        return dict(self._overrides)

    @property
    def people(self) -> List[Person]:
        return [p for p in self._config.people if p.id in self._tracked]

    def completed_up_to(self, person_id: str) -> Optional[int]:
        return self._completed_up_to.get(person_id)

    # --- Loading --------------------------------------------------------
    def load_day(self, day: date | datetime | str) -> DayExpansion:
        expansion = expand_day(day, self._config)
        self._expansion = expansion
        self._base = list(expansion.events)
        self._overrides = {}
        self._completed = {}
        self._completed_up_to = {}
        _log.info(
            "day loaded",
            extra={
                "_json_day": expansion.day.isoformat(),
                "_json_day_type": expansion.day_type,
                "_json_dangling": len(expansion.dangling),
            },
        )
        self.day_loaded.emit(expansion.day.isoformat())
        self.overrides_changed.emit()
        self.events_changed.emit()
        return expansion

    # --- Effective schedule --------------------------------------------
    def effective_events(self, now_ms: int) -> List[AnyEvent]:
        filled: List[AnyEvent] = []
        for person_id in self._tracked:
            filled.extend(
                synthesize_day_fill(
                    self._base,
                    person_id,
                    now_ms,
                    tz=self._config.tz,
                    policy=self._config.fill,
                    day=self.day,
                )
            )
        effective = override_layer.apply_overrides(filled, self._overrides)
        out: List[AnyEvent] = []
        for ev in effective:
            done_at = self._completed.get(ev.id)
            if done_at is not None and not ev.synthetic:
                ev = replace(ev, completed_at_ms=done_at)
            out.append(ev)
        out.sort(key=lambda e: (e.start_ms, e.person_id, e.synthetic, e.id))
        return out

    def rows(self, now_ms: int) -> List[Row]:
        return build_rows(self.effective_events(now_ms), self.people)

    def visible_rows(self, now_ms: int, slots: int = VISIBLE_SLOTS) -> List[Row]:
        return visible_window(self.rows(now_ms), now_ms, slots)

    def _event(self, event_id: str, now_ms: int) -> AnyEvent:
        for ev in self.effective_events(now_ms):
            if ev.id == event_id:
                return ev
        raise UnknownEventError(event_id)

    # --- Replanning -----------------------------------------------------
    def preview_replan(self, event_id: str, now_ms: int) -> ReplanPreview:
        return preview_replan_proportional(
            event_id,
            now_ms,
            self.effective_events(now_ms),
            unbounded_slack_ratio=self._config.unbounded_slack_ratio,
        )

    def mark_done(self, event_id: str, now_ms: int) -> ReplanPreview:
        """Record ``event_id`` as finished at ``now_ms`` and absorb any overrun."""
        event = self._event(event_id, now_ms)
        if event.synthetic:
            raise ValueError(f"cannot complete filler event {event_id}")
        preview = self.preview_replan(event_id, now_ms)
        self._completed[event_id] = now_ms
        self._completed_up_to[event.person_id] = now_ms
        if preview.overrun_ms > 0:
            self._commit(preview)
            self.replanned.emit(event_id, preview.status, preview.overrun_ms)
            if preview.status == "insufficient_flex":
                _log.warning(
                    "not enough flexible time to absorb overrun (%s missing)",
                    human_delta(preview.missing_ms),
                    extra={"_json_event": event_id, "_json_missing_ms": preview.missing_ms},
                )
                self.insufficient_flex.emit(event_id, preview.missing_ms)
        self.events_changed.emit()
        return preview

    def _commit(self, preview: ReplanPreview) -> None:
        if not preview.patches:
            return
        self._overrides = override_layer.merge_patches(self._overrides, preview.patches)
        _log.info(
            "replan committed",
            extra={
                "_json_status": preview.status,
                "_json_patches": [p.event_id for p in preview.patches],
                "_json_overrun_ms": preview.overrun_ms,
            },
        )
        self.overrides_changed.emit()

    def set_override(
        self, event_id: str, *, start_ms: Optional[int] = None, planned_ms: Optional[int] = None
    ) -> None:
        if not any(e.id == event_id for e in self._base):
            raise UnknownEventError(event_id)
        self._overrides = override_layer.set_override(
            self._overrides, event_id, start_ms=start_ms, planned_ms=planned_ms
        )
        self.overrides_changed.emit()
        self.events_changed.emit()

    # --- Hints ----------------------------------------------------------
    def why_blocked(self, event_id: str, now_ms: int) -> Optional[str]:
        events = self.effective_events(now_ms)
        event = next((e for e in events if e.id == event_id), None)
        if event is None:
            raise UnknownEventError(event_id)
        return resolve_blocking(
            event, now_ms, events, self._config.people, resources=self._config.resources
        )

    # --- Calendar operations -------------------------------------------
    def apply_operation(
        self,
        op: CalendarOperation,
        *,
        default_person_id: Optional[str] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> Optional[OperationResult]:
        person = default_person_id or (self._tracked[0] if self._tracked else "")
        kwargs = {"id_factory": id_factory} if id_factory is not None else {}
        try:
            result = apply_calendar_operation(
                self._base, op, tz=self._config.tz, default_person_id=person, **kwargs
            )
        except OperationError as e:
            _log.info("calendar operation rejected", extra={"_json_reason": str(e)})
            self.error.emit(str(e))
            return None
        if op.command == "QUERY":
            return result
        remaining = {e.id for e in result.events}
        self._base = list(result.events)
        dropped = [k for k in self._overrides if k not in remaining]
        for k in dropped:
            del self._overrides[k]
        self._completed = {k: v for k, v in self._completed.items() if k in remaining}
        if dropped:
            self.overrides_changed.emit()
        self.events_changed.emit()
        return result


__all__ = ["PlannerSession"]
